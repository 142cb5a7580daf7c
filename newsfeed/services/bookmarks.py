"""
Bookmarks: at most one per (user, article) pair.
"""

from __future__ import annotations

import logging

from newsfeed.errors import NotFound
from newsfeed.records import Article, Bookmark, EntityType, new_id
from newsfeed.services.validation import require_text
from newsfeed.store import Filter, RecordStore

logger = logging.getLogger(__name__)


class BookmarkService:
    def __init__(self, store: RecordStore):
        self.store = store

    def _find(self, user_id: str, article_id: str) -> list[dict]:
        return self.store.query(
            EntityType.BOOKMARK,
            [Filter.eq("user_id", user_id), Filter.eq("article_id", article_id)],
        )

    def is_bookmarked(self, user_id: str, article_id: str) -> bool:
        return bool(
            self._find(
                require_text(user_id, "user_id"), require_text(article_id, "article_id")
            )
        )

    def add_bookmark(self, user_id: str, article_id: str) -> Bookmark:
        bookmark = Bookmark(
            id=new_id(),
            user_id=require_text(user_id, "user_id"),
            article_id=require_text(article_id, "article_id"),
        )
        return Bookmark.from_dict(
            self.store.create(EntityType.BOOKMARK, bookmark.as_dict())
        )

    def remove_bookmark(self, user_id: str, article_id: str) -> None:
        existing = self._find(
            require_text(user_id, "user_id"), require_text(article_id, "article_id")
        )
        if not existing:
            raise NotFound(f"Article {article_id} is not bookmarked")
        for row in existing:
            self.store.delete(EntityType.BOOKMARK, row["id"])

    def toggle_bookmark(self, user_id: str, article_id: str) -> bool:
        """Flip the bookmark state and return the new state."""
        if self.is_bookmarked(user_id, article_id):
            self.remove_bookmark(user_id, article_id)
            logger.info("User %s removed bookmark on %s", user_id, article_id)
            return False
        self.add_bookmark(user_id, article_id)
        logger.info("User %s bookmarked %s", user_id, article_id)
        return True

    def list_bookmarks(self, user_id: str) -> list[Bookmark]:
        rows = self.store.query(
            EntityType.BOOKMARK,
            [Filter.eq("user_id", require_text(user_id, "user_id"))],
            order_by="created_at",
            descending=True,
        )
        return [Bookmark.from_dict(row) for row in rows]

    def bookmarked_articles(self, user_id: str) -> list[Article]:
        """Articles the user bookmarked, most recently bookmarked first."""
        bookmarks = self.list_bookmarks(user_id)
        if not bookmarks:
            return []
        rows = self.store.query(
            EntityType.ARTICLE,
            [Filter("id", "in", [b.article_id for b in bookmarks])],
        )
        by_id = {row["id"]: row for row in rows}
        # Weak references: bookmarks to removed articles are skipped.
        return [
            Article.from_dict(by_id[b.article_id])
            for b in bookmarks
            if b.article_id in by_id
        ]
