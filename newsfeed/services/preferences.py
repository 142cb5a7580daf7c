"""
Per-user display and notification preferences. Exactly one record per user.
"""

from __future__ import annotations

import logging
from typing import Iterable

from newsfeed.errors import NotFound
from newsfeed.records import Category, EntityType, Preference, new_id
from newsfeed.services.validation import require_choice, require_text
from newsfeed.store import Filter, RecordStore

logger = logging.getLogger(__name__)


def default_preference(user_id: str) -> Preference:
    return Preference(id=new_id(), user_id=user_id)


class PreferencesService:
    def __init__(self, store: RecordStore):
        self.store = store

    def _find(self, user_id: str) -> Preference | None:
        rows = self.store.query(
            EntityType.PREFERENCE, [Filter.eq("user_id", user_id)], limit=1
        )
        return Preference.from_dict(rows[0]) if rows else None

    def get_preferences(self, user_id: str) -> Preference:
        user_id = require_text(user_id, "user_id")
        preference = self._find(user_id)
        if preference is None:
            raise NotFound(f"No preferences for user {user_id}")
        return preference

    def ensure_preferences(self, user_id: str) -> Preference:
        """Return the user's preferences, creating the defaults if missing."""
        user_id = require_text(user_id, "user_id")
        preference = self._find(user_id)
        if preference is not None:
            return preference
        logger.info("Creating default preferences for user %s", user_id)
        created = self.store.create(
            EntityType.PREFERENCE, default_preference(user_id).as_dict()
        )
        return Preference.from_dict(created)

    def _patch(self, preference: Preference, patch: dict) -> Preference:
        return Preference.from_dict(
            self.store.update(EntityType.PREFERENCE, preference.id, patch)
        )

    def toggle_dark_mode(self, user_id: str) -> Preference:
        preference = self.get_preferences(user_id)
        return self._patch(preference, {"dark_mode": not preference.dark_mode})

    def set_notifications(self, user_id: str, enabled: bool) -> Preference:
        preference = self.get_preferences(user_id)
        return self._patch(preference, {"notifications_enabled": bool(enabled)})

    def set_favorite_categories(
        self, user_id: str, categories: Iterable[str]
    ) -> Preference:
        preference = self.get_preferences(user_id)
        chosen = sorted(
            {require_choice(c, Category, "category") for c in categories or []}
        )
        return self._patch(preference, {"favorite_categories": chosen})

    def toggle_favorite_category(self, user_id: str, category: str) -> Preference:
        category = require_choice(category, Category, "category")
        preference = self.get_preferences(user_id)
        favorites = set(preference.favorite_categories)
        favorites ^= {category}
        return self._patch(preference, {"favorite_categories": sorted(favorites)})
