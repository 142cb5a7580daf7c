"""
Record shapes persisted by both storage backends.

Records travel through the stores as plain JSON dicts; the dataclasses here
are what the services hand back to callers.
"""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


class EntityType(str, Enum):
    """Entity kinds; the value doubles as table name and local namespace."""

    USER = "profiles"
    ARTICLE = "articles"
    BOOKMARK = "bookmarks"
    PREFERENCE = "user_preferences"
    SUBMISSION = "submissions"
    READING_HISTORY = "reading_history"


class Category(str, Enum):
    TECHNOLOGY = "Technology"
    BUSINESS = "Business"
    SPORTS = "Sports"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    SCIENCE = "Science"
    POLITICS = "Politics"
    WORLD = "World"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class SubmissionKind(str, Enum):
    NEWS = "news"
    PROBLEM = "problem"


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Mirrors the unique constraints of the hosted tables. The local store
# enforces these itself.
UNIQUE_FIELDS: Dict[EntityType, List[Tuple[str, ...]]] = {
    EntityType.USER: [("email",), ("username",)],
    EntityType.BOOKMARK: [("user_id", "article_id")],
    EntityType.PREFERENCE: [("user_id",)],
}


class _Record:
    """Shared dict conversion for the record dataclasses."""

    def as_dict(self) -> dict:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        # Hosted rows may carry extra columns; ignore anything unknown.
        names = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


@dataclass
class User(_Record):
    id: str
    email: str
    username: str
    avatar_url: Optional[str] = None
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)


@dataclass
class Article(_Record):
    id: str
    title: str
    summary: str
    source: str
    category: str
    published_at: str
    image_url: Optional[str] = None
    sentiment: str = Sentiment.NEUTRAL.value
    credibility_score: float = 0.5
    is_fake: bool = False
    is_trending: bool = False


@dataclass
class Bookmark(_Record):
    id: str
    user_id: str
    article_id: str
    created_at: str = field(default_factory=utc_now)


@dataclass
class Preference(_Record):
    id: str
    user_id: str
    dark_mode: bool = False
    favorite_categories: List[str] = field(default_factory=list)
    notifications_enabled: bool = True

    def __post_init__(self):
        # Stored as a list but behaves as a set.
        self.favorite_categories = sorted(set(self.favorite_categories or []))


@dataclass
class Submission(_Record):
    id: str
    user_id: str
    title: str
    description: str
    category: str
    kind: str
    source: Optional[str] = None
    status: str = SubmissionStatus.PENDING.value
    created_at: str = field(default_factory=utc_now)


@dataclass
class ReadingHistoryEntry(_Record):
    id: str
    user_id: str
    article_id: str
    read_duration: float = 0.0
    read_at: str = field(default_factory=utc_now)


RECORD_TYPES = {
    EntityType.USER: User,
    EntityType.ARTICLE: Article,
    EntityType.BOOKMARK: Bookmark,
    EntityType.PREFERENCE: Preference,
    EntityType.SUBMISSION: Submission,
    EntityType.READING_HISTORY: ReadingHistoryEntry,
}
