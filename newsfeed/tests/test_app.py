import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from newsfeed.app import create_app
from newsfeed.config import BackendMode, Settings
from newsfeed.dependencies import Backend
from newsfeed.errors import BackendUnavailable
from newsfeed.services.news import NewsService
from newsfeed.services.submissions import SubmissionService
from newsfeed.store import AuthUser
from newsfeed.storage import InMemoryStorageClient


def make_settings() -> Settings:
    return Settings(
        _env_file=None,
        supabase_url=None,
        supabase_key=None,
        local_store_url="sqlite+pysqlite:///:memory:",
        avatar_bucket=None,
    )


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.app = create_app(make_settings())
        self.client = TestClient(self.app)

    def _sign_up_and_login(self, email="ann@newsreader.io", username="ann"):
        response = self.client.post(
            "/api/auth/signup",
            json={"email": email, "password": "hunter22", "username": username},
        )
        self.assertEqual(response.status_code, 201, response.text)
        login = self.client.post(
            "/api/auth/login", json={"email": email, "password": "hunter22"}
        )
        self.assertEqual(login.status_code, 200, login.text)
        token = login.json()["access_token"]
        return {"Authorization": f"Bearer {token}"}

    def _add_article(self, **overrides):
        payload = {
            "title": "Chipmaker earnings beat",
            "summary": "Strong quarter.",
            "source": "Wire",
            "category": "Technology",
            "published_at": "2024-03-10T08:00:00+00:00",
            "is_trending": True,
        }
        payload.update(overrides)
        news = NewsService(self.app.state.backend.store)
        return news.add_article(**payload).as_dict()

    def test_health_reports_local_backend(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok", "backend": "local"})

    def test_signup_login_me_logout(self):
        headers = self._sign_up_and_login()
        me = self.client.get("/api/auth/me", headers=headers)
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["username"], "ann")

        prefs = self.client.get("/api/preferences", headers=headers)
        self.assertEqual(prefs.status_code, 200)
        self.assertFalse(prefs.json()["dark_mode"])

        self.assertEqual(
            self.client.post("/api/auth/logout", headers=headers).status_code, 204
        )
        self.assertEqual(self.client.get("/api/auth/me", headers=headers).status_code, 403)

    def test_duplicate_signup_is_422(self):
        self._sign_up_and_login()
        response = self.client.post(
            "/api/auth/signup",
            json={"email": "ann@newsreader.io", "password": "hunter22", "username": "ann2"},
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"], "validation_error")

    def test_bad_login_and_missing_token_are_403(self):
        self._sign_up_and_login()
        response = self.client.post(
            "/api/auth/login", json={"email": "ann@newsreader.io", "password": "nope"}
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"], "permission_denied")
        self.assertEqual(self.client.get("/api/bookmarks").status_code, 403)

    def test_articles_and_bookmarks(self):
        headers = self._sign_up_and_login()
        article = self._add_article()

        listing = self.client.get("/api/articles", params={"category": "Technology"})
        self.assertEqual([a["id"] for a in listing.json()], [article["id"]])
        trending = self.client.get("/api/articles/trending")
        self.assertEqual([a["id"] for a in trending.json()], [article["id"]])
        search = self.client.get("/api/articles/search", params={"q": "EARNINGS"})
        self.assertEqual(len(search.json()), 1)
        self.assertEqual(
            self.client.get(f"/api/articles/{article['id']}").json()["title"],
            article["title"],
        )
        self.assertEqual(self.client.get("/api/articles/missing").status_code, 404)

        toggle = self.client.post(f"/api/bookmarks/{article['id']}", headers=headers)
        self.assertEqual(toggle.json(), {"article_id": article["id"], "bookmarked": True})
        state = self.client.get(f"/api/bookmarks/{article['id']}", headers=headers)
        self.assertTrue(state.json()["bookmarked"])
        saved = self.client.get("/api/bookmarks/articles", headers=headers)
        self.assertEqual([a["id"] for a in saved.json()], [article["id"]])

        toggle = self.client.post(f"/api/bookmarks/{article['id']}", headers=headers)
        self.assertFalse(toggle.json()["bookmarked"])
        delete = self.client.delete(f"/api/bookmarks/{article['id']}", headers=headers)
        self.assertEqual(delete.status_code, 404)

    def test_ingest_and_review_are_not_routed(self):
        headers = self._sign_up_and_login()
        ingest = self.client.post(
            "/api/articles",
            json={"title": "x", "summary": "y", "source": "z"},
            headers=headers,
        )
        self.assertEqual(ingest.status_code, 405)
        review = self.client.post(
            "/api/submissions/any/review",
            json={"status": "approved"},
            headers=headers,
        )
        self.assertEqual(review.status_code, 404)

    def test_preferences_mutations(self):
        headers = self._sign_up_and_login()
        dark = self.client.post("/api/preferences/dark-mode", headers=headers)
        self.assertTrue(dark.json()["dark_mode"])
        cats = self.client.put(
            "/api/preferences/categories",
            json={"categories": ["Sports", "Health"]},
            headers=headers,
        )
        self.assertEqual(cats.json()["favorite_categories"], ["Health", "Sports"])
        toggled = self.client.post("/api/preferences/categories/Sports", headers=headers)
        self.assertEqual(toggled.json()["favorite_categories"], ["Health"])
        notes = self.client.put(
            "/api/preferences/notifications", json={"enabled": False}, headers=headers
        )
        self.assertFalse(notes.json()["notifications_enabled"])

    def test_submissions(self):
        headers = self._sign_up_and_login()
        missing = self.client.post(
            "/api/submissions",
            json={"title": "X", "category": "Technology", "kind": "news"},
            headers=headers,
        )
        self.assertEqual(missing.status_code, 422)
        self.assertEqual(missing.json()["error"], "validation_error")

        created = self.client.post(
            "/api/submissions",
            json={
                "title": "X",
                "description": "Details",
                "category": "Technology",
                "kind": "news",
            },
            headers=headers,
        )
        self.assertEqual(created.status_code, 201)
        submission = created.json()
        self.assertEqual(submission["status"], "pending")

        mine = self.client.get("/api/submissions", headers=headers)
        self.assertEqual([s["id"] for s in mine.json()], [submission["id"]])

        SubmissionService(self.app.state.backend.store).review(
            submission["id"], "rejected"
        )
        rejected = self.client.get("/api/submissions/status/rejected", headers=headers)
        self.assertEqual([s["id"] for s in rejected.json()], [submission["id"]])
        self.assertEqual(
            self.client.get(
                f"/api/submissions/{submission['id']}", headers=headers
            ).json()["status"],
            "rejected",
        )

    def test_submissions_are_private_to_their_author(self):
        author = self._sign_up_and_login()
        created = self.client.post(
            "/api/submissions",
            json={"title": "X", "description": "D", "category": "World"},
            headers=author,
        ).json()
        other = self._sign_up_and_login(email="bob@newsreader.io", username="bob")

        response = self.client.get(f"/api/submissions/{created['id']}", headers=other)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "not_found")
        pending = self.client.get("/api/submissions/status/pending", headers=other)
        self.assertEqual(pending.json(), [])
        self.assertEqual(self.client.get("/api/submissions", headers=other).json(), [])

    def test_history(self):
        headers = self._sign_up_and_login()
        article = self._add_article()
        recorded = self.client.post(
            "/api/history",
            json={"article_id": article["id"], "read_duration": 30},
            headers=headers,
        )
        self.assertEqual(recorded.status_code, 201)
        entries = self.client.get("/api/history", headers=headers).json()
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0]["read_duration"], 30.0)
        recent = self.client.get("/api/history/articles", headers=headers).json()
        self.assertEqual([a["id"] for a in recent], [article["id"]])

    def test_profile_and_avatar(self):
        headers = self._sign_up_and_login()
        updated = self.client.put(
            "/api/profile", json={"username": "annie"}, headers=headers
        )
        self.assertEqual(updated.json()["username"], "annie")
        avatar = self.client.post(
            "/api/profile/avatar",
            files={"file": ("me.png", b"\x89PNG...", "image/png")},
            headers=headers,
        )
        self.assertEqual(avatar.status_code, 200, avatar.text)
        self.assertTrue(avatar.json()["avatar_url"].endswith(".png"))

    def test_backend_unavailable_is_503(self):
        store = MagicMock()
        store.query.side_effect = BackendUnavailable("Cannot reach service")
        backend = Backend(
            mode=BackendMode.REMOTE,
            store=store,
            auth=MagicMock(),
            storage=InMemoryStorageClient(),
        )
        client = TestClient(create_app(make_settings(), backend=backend))
        response = client.get("/api/articles")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(
            response.json(),
            {"detail": "Cannot reach service", "error": "backend_unavailable"},
        )


    def test_data_calls_act_as_the_signed_in_user(self):
        store = MagicMock()
        scoped = store.as_user.return_value
        scoped.get.return_value = {
            "id": "u1",
            "email": "ann@newsreader.io",
            "username": "ann",
        }
        scoped.query.return_value = []
        auth = MagicMock()
        auth.get_user.return_value = AuthUser(
            id="u1", email="ann@newsreader.io", metadata={}
        )
        backend = Backend(
            mode=BackendMode.REMOTE,
            store=store,
            auth=auth,
            storage=InMemoryStorageClient(),
        )
        client = TestClient(create_app(make_settings(), backend=backend))

        response = client.get(
            "/api/bookmarks", headers={"Authorization": "Bearer user-token"}
        )

        self.assertEqual(response.status_code, 200, response.text)
        store.as_user.assert_called_with("user-token")
        scoped.query.assert_called_once()
        store.query.assert_not_called()


if __name__ == "__main__":
    unittest.main()
