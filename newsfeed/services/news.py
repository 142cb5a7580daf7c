"""
Read access to ingested articles, plus the ingest operation itself.

Articles are immutable once ingested; there is no update path here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from newsfeed.errors import ValidationError
from newsfeed.records import Article, Category, EntityType, Sentiment, new_id
from newsfeed.services.validation import (
    optional_text,
    require_choice,
    require_limit,
    require_text,
)
from newsfeed.store import Filter, RecordStore

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50


def _utc_timestamp(value: str) -> str:
    """Parse an ISO-8601 timestamp and return it in UTC; naive values are UTC."""
    value = require_text(value, "published_at")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError("published_at must be an ISO-8601 timestamp") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat()


class NewsService:
    def __init__(self, store: RecordStore):
        self.store = store

    def _list(self, filters: list[Filter], limit: int) -> list[Article]:
        rows = self.store.query(
            EntityType.ARTICLE,
            filters,
            order_by="published_at",
            descending=True,
            limit=require_limit(limit),
        )
        return [Article.from_dict(row) for row in rows]

    def list_articles(
        self,
        category: Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
        include_fake: bool = True,
    ) -> list[Article]:
        """Newest first, optionally narrowed to one category."""
        filters: list[Filter] = []
        if category is not None:
            filters.append(
                Filter.eq("category", require_choice(category, Category, "category"))
            )
        if not include_fake:
            filters.append(Filter.eq("is_fake", False))
        return self._list(filters, limit)

    def get_article(self, article_id: str) -> Article:
        return Article.from_dict(
            self.store.get(EntityType.ARTICLE, require_text(article_id, "article_id"))
        )

    def trending_articles(self, limit: int = 10) -> list[Article]:
        return self._list([Filter.eq("is_trending", True)], limit)

    def search_articles(self, term: str, limit: int = DEFAULT_LIMIT) -> list[Article]:
        return self._list(
            [Filter("title", "ilike", require_text(term, "search term"))], limit
        )

    def articles_by_sentiment(
        self, sentiment: str, limit: int = DEFAULT_LIMIT
    ) -> list[Article]:
        sentiment = require_choice(sentiment, Sentiment, "sentiment")
        return self._list([Filter.eq("sentiment", sentiment)], limit)

    def add_article(
        self,
        title: str,
        summary: str,
        source: str,
        category: str,
        published_at: str,
        image_url: Optional[str] = None,
        sentiment: str = Sentiment.NEUTRAL.value,
        credibility_score: float = 0.5,
        is_fake: bool = False,
        is_trending: bool = False,
    ) -> Article:
        try:
            credibility_score = float(credibility_score)
        except (TypeError, ValueError) as exc:
            raise ValidationError("credibility_score must be a number") from exc
        if not 0.0 <= credibility_score <= 1.0:
            raise ValidationError("credibility_score must be between 0 and 1")

        article = Article(
            id=new_id(),
            title=require_text(title, "title"),
            summary=require_text(summary, "summary"),
            source=require_text(source, "source"),
            category=require_choice(category, Category, "category"),
            published_at=_utc_timestamp(published_at),
            image_url=optional_text(image_url),
            sentiment=require_choice(sentiment, Sentiment, "sentiment"),
            credibility_score=credibility_score,
            is_fake=bool(is_fake),
            is_trending=bool(is_trending),
        )
        created = self.store.create(EntityType.ARTICLE, article.as_dict())
        logger.info("Ingested article %s from %s", article.id, article.source)
        return Article.from_dict(created)
