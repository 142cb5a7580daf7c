"""
User-submitted news tips and problem reports.

Submissions start pending. Moderation itself happens elsewhere and is not
exposed over HTTP; ``review`` only guards the pending -> approved/rejected
transition for whatever moderation tool calls it.
"""

from __future__ import annotations

import logging
from typing import Optional

from newsfeed.errors import NotFound, ValidationError
from newsfeed.records import (
    Category,
    EntityType,
    Submission,
    SubmissionKind,
    SubmissionStatus,
    new_id,
)
from newsfeed.services.validation import optional_text, require_choice, require_text
from newsfeed.store import Filter, RecordStore

logger = logging.getLogger(__name__)


class SubmissionService:
    def __init__(self, store: RecordStore):
        self.store = store

    def submit(
        self,
        user_id: str,
        title: str,
        description: str,
        category: str,
        kind: str = SubmissionKind.NEWS.value,
        source: Optional[str] = None,
    ) -> Submission:
        submission = Submission(
            id=new_id(),
            user_id=require_text(user_id, "user_id"),
            title=require_text(title, "title"),
            description=require_text(description, "description"),
            category=require_choice(category, Category, "category"),
            kind=require_choice(kind, SubmissionKind, "kind"),
            source=optional_text(source),
        )
        created = self.store.create(EntityType.SUBMISSION, submission.as_dict())
        logger.info("User %s submitted %s %s", user_id, submission.kind, submission.id)
        return Submission.from_dict(created)

    def get_submission(
        self, submission_id: str, user_id: Optional[str] = None
    ) -> Submission:
        """
        Fetch one submission. With ``user_id`` only that user's own
        submissions are visible; anyone else's reads as ``NotFound``.
        """
        submission_id = require_text(submission_id, "submission_id")
        submission = Submission.from_dict(
            self.store.get(EntityType.SUBMISSION, submission_id)
        )
        if user_id is not None and submission.user_id != user_id:
            raise NotFound(f"submissions {submission_id} not found")
        return submission

    def list_user_submissions(self, user_id: str) -> list[Submission]:
        rows = self.store.query(
            EntityType.SUBMISSION,
            [Filter.eq("user_id", require_text(user_id, "user_id"))],
            order_by="created_at",
            descending=True,
        )
        return [Submission.from_dict(row) for row in rows]

    def list_by_status(
        self, status: str, user_id: Optional[str] = None
    ) -> list[Submission]:
        status = require_choice(status, SubmissionStatus, "status")
        filters = [Filter.eq("status", status)]
        if user_id is not None:
            filters.append(Filter.eq("user_id", require_text(user_id, "user_id")))
        rows = self.store.query(EntityType.SUBMISSION, filters, order_by="created_at")
        return [Submission.from_dict(row) for row in rows]

    def review(self, submission_id: str, status: str) -> Submission:
        status = require_choice(status, SubmissionStatus, "status")
        if status == SubmissionStatus.PENDING.value:
            raise ValidationError("A submission cannot be moved back to pending")
        current = self.get_submission(submission_id)
        if current.status != SubmissionStatus.PENDING.value:
            raise ValidationError(f"Submission already {current.status}")
        updated = self.store.update(
            EntityType.SUBMISSION, current.id, {"status": status}
        )
        logger.info("Submission %s %s", current.id, status)
        return Submission.from_dict(updated)
