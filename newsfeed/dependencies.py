"""
Backend selection and dependency wiring for the FastAPI app.

``build_backend`` runs once per process (from ``create_app``); the bound
bundle is immutable and handed to every service explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request

from newsfeed.config import BackendConfig, BackendMode, Settings
from newsfeed.errors import PermissionDenied
from newsfeed.local_store import LocalAuthProvider, LocalRecordStore
from newsfeed.records import User
from newsfeed.remote_store import RemoteAuthProvider, RemoteClient, RemoteRecordStore
from newsfeed.services.auth import AuthService
from newsfeed.services.bookmarks import BookmarkService
from newsfeed.services.history import HistoryService
from newsfeed.services.news import NewsService
from newsfeed.services.preferences import PreferencesService
from newsfeed.services.submissions import SubmissionService
from newsfeed.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from newsfeed.store import AuthProvider, RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Backend:
    """Record store, auth provider and object storage bound together."""

    mode: BackendMode
    store: RecordStore
    auth: AuthProvider
    storage: StorageClient


def build_storage(settings: Settings) -> StorageClient:
    if not settings.avatar_bucket:
        return InMemoryStorageClient()
    return S3StorageClient(
        bucket=settings.avatar_bucket,
        region=settings.s3_region or "",
        endpoint=settings.s3_endpoint or "",
        access_key_id=settings.aws_access_key_id or "",
        secret_access_key=settings.aws_secret_access_key or "",
    )


def build_backend(
    config: BackendConfig, storage: Optional[StorageClient] = None
) -> Backend:
    storage = storage or InMemoryStorageClient()
    if config.mode == BackendMode.REMOTE:
        client = RemoteClient(
            config.service_url,
            config.service_key,
            timeout=config.request_timeout_seconds,
        )
        logger.info("Bound remote backend at %s", client.base_url)
        return Backend(
            mode=config.mode,
            store=RemoteRecordStore(client),
            auth=RemoteAuthProvider(client),
            storage=storage,
        )

    store = LocalRecordStore(config.local_store_url)
    logger.info("Bound local fallback store (%s)", store.engine.url.drivername)
    return Backend(
        mode=config.mode,
        store=store,
        auth=LocalAuthProvider(
            store,
            secret_key=config.local_jwt_secret,
            token_ttl_minutes=config.local_token_ttl_minutes,
        ),
        storage=storage,
    )


def get_backend(request: Request) -> Backend:
    return request.app.state.backend


def get_bearer_token(
    authorization: Optional[str] = Header(default=None),
) -> Optional[str]:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_access_token(token: Optional[str] = Depends(get_bearer_token)) -> str:
    if token is None:
        raise PermissionDenied("Missing bearer token")
    return token


def get_record_store(
    backend: Backend = Depends(get_backend),
    token: Optional[str] = Depends(get_bearer_token),
) -> RecordStore:
    """The bound store, acting as the caller when a bearer token is present."""
    return backend.store.as_user(token) if token else backend.store


def get_auth_service(
    backend: Backend = Depends(get_backend),
    store: RecordStore = Depends(get_record_store),
) -> AuthService:
    return AuthService(store, backend.auth, backend.storage)


def get_news_service(store: RecordStore = Depends(get_record_store)) -> NewsService:
    return NewsService(store)


def get_bookmark_service(
    store: RecordStore = Depends(get_record_store),
) -> BookmarkService:
    return BookmarkService(store)


def get_preferences_service(
    store: RecordStore = Depends(get_record_store),
) -> PreferencesService:
    return PreferencesService(store)


def get_submission_service(
    store: RecordStore = Depends(get_record_store),
) -> SubmissionService:
    return SubmissionService(store)


def get_history_service(
    store: RecordStore = Depends(get_record_store),
) -> HistoryService:
    return HistoryService(store)


def get_current_user(
    token: str = Depends(get_access_token),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    return auth.get_current_user(token)
