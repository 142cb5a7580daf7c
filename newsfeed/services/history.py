"""
Append-only reading history.
"""

from __future__ import annotations

import logging

from newsfeed.errors import ValidationError
from newsfeed.records import Article, EntityType, ReadingHistoryEntry, new_id
from newsfeed.services.validation import require_limit, require_text
from newsfeed.store import Filter, RecordStore

logger = logging.getLogger(__name__)


class HistoryService:
    def __init__(self, store: RecordStore):
        self.store = store

    def record_read(
        self, user_id: str, article_id: str, read_duration: float = 0.0
    ) -> ReadingHistoryEntry:
        user_id = require_text(user_id, "user_id")
        article_id = require_text(article_id, "article_id")
        try:
            read_duration = float(read_duration)
        except (TypeError, ValueError) as exc:
            raise ValidationError("read_duration must be a number") from exc
        if read_duration < 0:
            raise ValidationError("read_duration cannot be negative")
        # Raises NotFound for unknown articles.
        self.store.get(EntityType.ARTICLE, article_id)

        entry = ReadingHistoryEntry(
            id=new_id(),
            user_id=user_id,
            article_id=article_id,
            read_duration=read_duration,
        )
        created = self.store.create(EntityType.READING_HISTORY, entry.as_dict())
        logger.info("User %s read article %s", user_id, article_id)
        return ReadingHistoryEntry.from_dict(created)

    def list_history(self, user_id: str, limit: int = 50) -> list[ReadingHistoryEntry]:
        rows = self.store.query(
            EntityType.READING_HISTORY,
            [Filter.eq("user_id", require_text(user_id, "user_id"))],
            order_by="read_at",
            descending=True,
            limit=require_limit(limit),
        )
        return [ReadingHistoryEntry.from_dict(row) for row in rows]

    def recently_read_articles(self, user_id: str, limit: int = 10) -> list[Article]:
        """Distinct articles from the history, most recent read first."""
        limit = require_limit(limit)
        article_ids: list[str] = []
        for entry in self.list_history(user_id, limit=200):
            if entry.article_id not in article_ids:
                article_ids.append(entry.article_id)
            if len(article_ids) >= limit:
                break
        if not article_ids:
            return []
        rows = self.store.query(EntityType.ARTICLE, [Filter("id", "in", article_ids)])
        by_id = {row["id"]: row for row in rows}
        return [Article.from_dict(by_id[i]) for i in article_ids if i in by_id]
