import unittest

from newsfeed.errors import NotFound, ValidationError
from newsfeed.local_store import LocalRecordStore
from newsfeed.services.submissions import SubmissionService


class SubmissionServiceTests(unittest.TestCase):
    def setUp(self):
        self.store = LocalRecordStore("sqlite+pysqlite:///:memory:")
        self.submissions = SubmissionService(self.store)

    def _submit(self, **overrides):
        values = {
            "user_id": "u1",
            "title": "X",
            "description": "Flooding on the ring road",
            "category": "Technology",
            "kind": "news",
        }
        values.update(overrides)
        return self.submissions.submit(**values)

    def test_missing_description_is_rejected(self):
        with self.assertRaises(ValidationError):
            self._submit(description=None)
        with self.assertRaises(ValidationError):
            self._submit(description="   ")

    def test_submission_with_description_is_pending(self):
        submission = self._submit()
        self.assertEqual(submission.status, "pending")
        self.assertEqual(submission.title, "X")
        self.assertEqual(self.submissions.get_submission(submission.id), submission)

    def test_enum_fields_are_checked(self):
        for overrides in ({"category": "Gossip"}, {"kind": "rumour"}, {"title": ""}):
            with self.subTest(**overrides):
                with self.assertRaises(ValidationError):
                    self._submit(**overrides)

    def test_list_user_submissions_and_by_status(self):
        first = self._submit(title="First")
        self._submit(title="Report", kind="problem", user_id="u2")
        self.assertEqual(
            [s.id for s in self.submissions.list_user_submissions("u1")], [first.id]
        )
        self.assertEqual(len(self.submissions.list_by_status("pending")), 2)
        self.assertEqual(self.submissions.list_by_status("approved"), [])
        with self.assertRaises(ValidationError):
            self.submissions.list_by_status("archived")

    def test_owner_scoped_reads(self):
        mine = self._submit()
        theirs = self._submit(user_id="u2")
        self.assertEqual(self.submissions.get_submission(mine.id, user_id="u1"), mine)
        with self.assertRaises(NotFound):
            self.submissions.get_submission(theirs.id, user_id="u1")
        self.assertEqual(
            [s.id for s in self.submissions.list_by_status("pending", user_id="u1")],
            [mine.id],
        )

    def test_reviewed_submission_never_reverts(self):
        submission = self._submit()
        approved = self.submissions.review(submission.id, "approved")
        self.assertEqual(approved.status, "approved")

        for status in ("pending", "rejected", "approved"):
            with self.subTest(status=status):
                with self.assertRaises(ValidationError):
                    self.submissions.review(submission.id, status)
                self.assertEqual(
                    self.submissions.get_submission(submission.id).status, "approved"
                )

    def test_review_missing_submission(self):
        with self.assertRaises(NotFound):
            self.submissions.review("missing", "rejected")


if __name__ == "__main__":
    unittest.main()
