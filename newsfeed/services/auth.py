"""
Account operations: sign-up, sign-in, sessions and profile maintenance.
"""

from __future__ import annotations

import logging
import mimetypes
import uuid
from dataclasses import dataclass
from typing import Optional

from email_validator import EmailNotValidError, validate_email

from newsfeed.errors import ValidationError
from newsfeed.records import EntityType, User, utc_now
from newsfeed.services.preferences import default_preference
from newsfeed.services.validation import optional_text, require_text
from newsfeed.storage import StorageClient
from newsfeed.store import AuthProvider, Filter, RecordStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MAX_AVATAR_BYTES = 2 * 1024 * 1024


@dataclass(frozen=True)
class Session:
    access_token: str
    token_type: str
    expires_in: Optional[int]
    user: User


def normalize_email(email: Optional[str]) -> str:
    email = require_text(email, "email")
    try:
        return validate_email(email, check_deliverability=False).normalized.lower()
    except EmailNotValidError as exc:
        raise ValidationError(str(exc)) from exc


class AuthService:
    def __init__(
        self, store: RecordStore, auth: AuthProvider, storage: StorageClient
    ):
        self.store = store
        self.auth = auth
        self.storage = storage

    def sign_up(self, email: str, password: str, username: str) -> User:
        """
        Register an account and create its profile and default preferences.

        Raises:
            ValidationError: malformed input, or email/username already taken.
        """
        email = normalize_email(email)
        username = require_text(username, "username")
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        # Checked up front so a taken username does not leave an orphan account.
        if self.store.query(
            EntityType.USER, [Filter.eq("username", username)], limit=1
        ):
            raise ValidationError("Username already taken")

        account = self.auth.sign_up(email, password, {"username": username})
        store = self.store
        if account.access_token:
            store = store.as_user(account.access_token)
        profile = User(id=account.id, email=email, username=username)
        created = store.create(EntityType.USER, profile.as_dict())
        store.create(
            EntityType.PREFERENCE, default_preference(account.id).as_dict()
        )
        logger.info("Signed up user %s", account.id)
        return User.from_dict(created)

    def sign_in(self, email: str, password: str) -> Session:
        email = normalize_email(email)
        if not isinstance(password, str) or not password:
            raise ValidationError("password is required")
        auth_session = self.auth.sign_in(email, password)
        profile = self.get_profile(auth_session.user.id)
        return Session(
            access_token=auth_session.access_token,
            token_type=auth_session.token_type,
            expires_in=auth_session.expires_in,
            user=profile,
        )

    def sign_out(self, access_token: str) -> None:
        self.auth.sign_out(require_text(access_token, "access token"))

    def get_current_user(self, access_token: str) -> User:
        account = self.auth.get_user(require_text(access_token, "access token"))
        return self.get_profile(account.id)

    def get_profile(self, user_id: str) -> User:
        return User.from_dict(
            self.store.get(EntityType.USER, require_text(user_id, "user_id"))
        )

    def update_profile(
        self,
        user_id: str,
        username: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> User:
        patch: dict = {}
        if username is not None:
            patch["username"] = require_text(username, "username")
        if avatar_url is not None:
            patch["avatar_url"] = optional_text(avatar_url)
        if not patch:
            raise ValidationError("Nothing to update")
        patch["updated_at"] = utc_now()
        updated = self.store.update(
            EntityType.USER, require_text(user_id, "user_id"), patch
        )
        return User.from_dict(updated)

    def upload_avatar(
        self,
        user_id: str,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> User:
        user_id = require_text(user_id, "user_id")
        filename = require_text(filename, "filename")
        if not content:
            raise ValidationError("Avatar file is empty")
        if len(content) > MAX_AVATAR_BYTES:
            raise ValidationError("Avatar file is larger than 2 MB")
        content_type = content_type or mimetypes.guess_type(filename)[0] or ""
        if not content_type.startswith("image/"):
            raise ValidationError("Avatar must be an image")

        extension = mimetypes.guess_extension(content_type) or ""
        path = f"avatars/{user_id}/{uuid.uuid4().hex}{extension}"
        self.storage.upload_bytes(path, content, content_type)
        logger.info("Stored avatar for user %s at %s", user_id, path)
        return self.update_profile(user_id, avatar_url=self.storage.public_url(path))
