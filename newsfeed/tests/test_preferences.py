import unittest

from newsfeed.errors import NotFound, ValidationError
from newsfeed.local_store import LocalRecordStore
from newsfeed.records import EntityType
from newsfeed.services.preferences import PreferencesService


class PreferencesServiceTests(unittest.TestCase):
    def setUp(self):
        self.store = LocalRecordStore("sqlite+pysqlite:///:memory:")
        self.prefs = PreferencesService(self.store)

    def test_get_missing_preferences(self):
        with self.assertRaises(NotFound):
            self.prefs.get_preferences("u1")

    def test_ensure_creates_once(self):
        first = self.prefs.ensure_preferences("u1")
        second = self.prefs.ensure_preferences("u1")
        self.assertEqual(first.id, second.id)
        self.assertEqual(len(self.store.query(EntityType.PREFERENCE)), 1)

    def test_second_preference_record_is_rejected(self):
        self.prefs.ensure_preferences("u1")
        with self.assertRaises(ValidationError):
            self.store.create(EntityType.PREFERENCE, {"user_id": "u1"})

    def test_toggle_dark_mode(self):
        self.prefs.ensure_preferences("u1")
        self.assertTrue(self.prefs.toggle_dark_mode("u1").dark_mode)
        self.assertFalse(self.prefs.toggle_dark_mode("u1").dark_mode)
        self.assertFalse(self.prefs.get_preferences("u1").dark_mode)

    def test_set_favorite_categories_dedupes(self):
        self.prefs.ensure_preferences("u1")
        pref = self.prefs.set_favorite_categories(
            "u1", ["Sports", "Health", "Sports"]
        )
        self.assertEqual(pref.favorite_categories, ["Health", "Sports"])
        self.assertEqual(
            self.prefs.set_favorite_categories("u1", []).favorite_categories, []
        )

    def test_set_favorite_categories_rejects_unknown(self):
        self.prefs.ensure_preferences("u1")
        with self.assertRaises(ValidationError):
            self.prefs.set_favorite_categories("u1", ["Sports", "Gossip"])
        self.assertEqual(self.prefs.get_preferences("u1").favorite_categories, [])

    def test_toggle_favorite_category(self):
        self.prefs.ensure_preferences("u1")
        self.assertEqual(
            self.prefs.toggle_favorite_category("u1", "Science").favorite_categories,
            ["Science"],
        )
        self.assertEqual(
            self.prefs.toggle_favorite_category("u1", "Science").favorite_categories,
            [],
        )

    def test_set_notifications(self):
        self.prefs.ensure_preferences("u1")
        self.assertFalse(self.prefs.set_notifications("u1", False).notifications_enabled)
        self.assertTrue(self.prefs.set_notifications("u1", True).notifications_enabled)


if __name__ == "__main__":
    unittest.main()
