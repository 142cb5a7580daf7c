"""
Local fallback backend: a persistent key-value store plus a stand-in auth service.

Every entity type gets its own flat namespace keyed by record id. Values are
the JSON record shapes from ``newsfeed.records``. Any SQLAlchemy URL works;
SQLite on disk is the default and in-memory SQLite is used by the tests.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import secrets
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional, Sequence

from jose import JWTError, jwt
from sqlalchemy import JSON, Column, Float, String, create_engine, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from newsfeed.errors import (
    BackendUnavailable,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from newsfeed.records import UNIQUE_FIELDS, EntityType, new_id, utc_now
from newsfeed.store import AuthSession, AuthUser, Filter, check_patch

logger = logging.getLogger(__name__)

Base = declarative_base()


class KvRow(Base):
    __tablename__ = "kv_records"

    namespace = Column(String, primary_key=True)
    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


def _to_json(payload: dict) -> dict:
    return json.loads(json.dumps(payload, default=str))


def matches(record: dict, flt: Filter) -> bool:
    value = record.get(flt.field)
    if flt.op == "eq":
        return value == flt.value
    if flt.op == "neq":
        return value != flt.value
    if flt.op == "in":
        return value in list(flt.value)
    if value is None:
        return False
    if flt.op == "ilike":
        return str(flt.value).lower() in str(value).lower()
    if flt.op == "gte":
        return value >= flt.value
    return value <= flt.value


def order_records(
    records: list[dict], order_by: Optional[str], descending: bool
) -> list[dict]:
    if not order_by:
        return records
    # Postgres puts NULLs last ascending and first descending.
    return sorted(
        records,
        key=lambda r: (r.get(order_by) is None, r.get(order_by)),
        reverse=descending,
    )


class LocalRecordStore:
    """SQLAlchemy-backed key-value implementation of ``RecordStore``."""

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("A database URL is required for LocalRecordStore")
        engine_kwargs: dict[str, Any] = {"future": True}
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # Share the single in-memory database across sessions.
            engine_kwargs.update(
                connect_args={"check_same_thread": False}, poolclass=StaticPool
            )
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    # Raw namespace access, shared with LocalAuthProvider.

    def _session(self) -> Session:
        return self.Session()

    def _run(self, fn):
        try:
            with self._session() as session:
                return fn(session)
        except SQLAlchemyError as exc:
            logger.warning("Local store failure: %s", exc)
            raise BackendUnavailable("Local store is unavailable") from exc

    def scan(self, namespace: str) -> list[dict]:
        def _scan(session: Session) -> list[dict]:
            stmt = (
                select(KvRow)
                .where(KvRow.namespace == namespace)
                .order_by(KvRow.created_at.asc(), KvRow.key.asc())
            )
            return [dict(row.value) for row in session.execute(stmt).scalars()]

        return self._run(_scan)

    def read(self, namespace: str, key: str) -> Optional[dict]:
        def _read(session: Session) -> Optional[dict]:
            row = session.get(KvRow, (namespace, key))
            return dict(row.value) if row else None

        return self._run(_read)

    def write(self, namespace: str, key: str, value: dict) -> None:
        def _write(session: Session) -> None:
            now = time.time()
            row = session.get(KvRow, (namespace, key))
            if row:
                row.value = value
                row.updated_at = now
            else:
                session.add(
                    KvRow(
                        namespace=namespace,
                        key=key,
                        value=value,
                        created_at=now,
                        updated_at=now,
                    )
                )
            session.commit()

        self._run(_write)

    def remove(self, namespace: str, key: str) -> bool:
        def _remove(session: Session) -> bool:
            result = session.execute(
                delete(KvRow).where(KvRow.namespace == namespace, KvRow.key == key)
            )
            session.commit()
            return bool(result.rowcount)

        return self._run(_remove)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""

        def _reset(session: Session) -> None:
            session.execute(delete(KvRow))
            session.commit()

        self._run(_reset)

    # RecordStore

    def _check_unique(
        self, entity: EntityType, candidate: dict, existing: Iterable[dict]
    ) -> None:
        for fields in UNIQUE_FIELDS.get(entity, []):
            values = tuple(candidate.get(f) for f in fields)
            if None in values:
                continue
            for other in existing:
                if other.get("id") == candidate.get("id"):
                    continue
                if tuple(other.get(f) for f in fields) == values:
                    raise ValidationError(
                        f"{entity.value} with this {', '.join(fields)} already exists"
                    )

    def create(self, entity: EntityType, payload: dict) -> dict:
        record = _to_json(payload)
        if not record.get("id"):
            record["id"] = new_id()
        if self.read(entity.value, record["id"]) is not None:
            raise ValidationError(f"{entity.value} {record['id']} already exists")
        self._check_unique(entity, record, self.scan(entity.value))
        self.write(entity.value, record["id"], record)
        logger.debug("Created %s %s", entity.value, record["id"])
        return record

    def get(self, entity: EntityType, record_id: str) -> dict:
        record = self.read(entity.value, record_id)
        if record is None:
            raise NotFound(f"{entity.value} {record_id} not found")
        return record

    def query(
        self,
        entity: EntityType,
        filters: Sequence[Filter] = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        records = [
            r for r in self.scan(entity.value) if all(matches(r, f) for f in filters)
        ]
        records = order_records(records, order_by, descending)
        if limit is not None:
            records = records[:limit]
        return records

    def update(self, entity: EntityType, record_id: str, patch: dict) -> dict:
        check_patch(patch)
        record = self.get(entity, record_id)
        record.update(_to_json(patch))
        self._check_unique(entity, record, self.scan(entity.value))
        self.write(entity.value, record_id, record)
        return record

    def delete(self, entity: EntityType, record_id: str) -> None:
        if not self.remove(entity.value, record_id):
            raise NotFound(f"{entity.value} {record_id} not found")

    def as_user(self, access_token: str) -> "LocalRecordStore":
        # Nothing is scoped per caller on the device.
        return self


AUTH_USERS = "auth_users"
REVOKED_TOKENS = "auth_revoked_tokens"
PBKDF2_ROUNDS = 200_000
JWT_ALGORITHM = "HS256"


def hash_password(password: str, salt: Optional[bytes] = None) -> tuple[str, str]:
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ROUNDS)
    return salt.hex(), digest.hex()


class LocalAuthProvider:
    """
    Offline stand-in for the hosted auth service.

    Credentials live in the local store next to the records; sessions are
    signed JWTs so no session table is needed, only a revocation list.
    """

    def __init__(
        self,
        store: LocalRecordStore,
        secret_key: str,
        token_ttl_minutes: int = 1440,
    ):
        self.store = store
        self.secret_key = secret_key
        self.token_ttl_minutes = token_ttl_minutes

    def _find_by_email(self, email: str) -> Optional[dict]:
        for credential in self.store.scan(AUTH_USERS):
            if credential["email"] == email:
                return credential
        return None

    @staticmethod
    def _to_user(credential: dict) -> AuthUser:
        return AuthUser(
            id=credential["id"],
            email=credential["email"],
            metadata=dict(credential.get("metadata") or {}),
        )

    def sign_up(self, email: str, password: str, metadata: dict) -> AuthUser:
        email = email.strip().lower()
        if self._find_by_email(email):
            raise ValidationError("Email already registered")
        salt, digest = hash_password(password)
        credential = {
            "id": new_id(),
            "email": email,
            "salt": salt,
            "password_hash": digest,
            "metadata": _to_json(metadata or {}),
            "created_at": utc_now(),
        }
        self.store.write(AUTH_USERS, credential["id"], credential)
        logger.info("Registered local account %s", credential["id"])
        return self._to_user(credential)

    def sign_in(self, email: str, password: str) -> AuthSession:
        credential = self._find_by_email(email.strip().lower())
        if not credential:
            raise PermissionDenied("Invalid login credentials")
        _, digest = hash_password(password, bytes.fromhex(credential["salt"]))
        if not hmac.compare_digest(digest, credential["password_hash"]):
            raise PermissionDenied("Invalid login credentials")

        now = datetime.now(timezone.utc)
        expires_in = self.token_ttl_minutes * 60
        claims = {
            "sub": credential["id"],
            "email": credential["email"],
            "iat": now,
            "exp": now + timedelta(seconds=expires_in),
            "jti": uuid.uuid4().hex,
        }
        token = jwt.encode(claims, self.secret_key, algorithm=JWT_ALGORITHM)
        return AuthSession(
            access_token=token, user=self._to_user(credential), expires_in=expires_in
        )

    def _decode(self, access_token: str) -> dict:
        try:
            claims = jwt.decode(
                access_token, self.secret_key, algorithms=[JWT_ALGORITHM]
            )
        except JWTError as exc:
            raise PermissionDenied("Invalid or expired access token") from exc
        if self.store.read(REVOKED_TOKENS, claims.get("jti", "")) is not None:
            raise PermissionDenied("Access token has been revoked")
        return claims

    def _prune_revoked(self) -> None:
        # Expired tokens fail signature checks anyway.
        now = time.time()
        for entry in self.store.scan(REVOKED_TOKENS):
            if entry.get("exp") is not None and entry["exp"] < now:
                self.store.remove(REVOKED_TOKENS, entry["jti"])

    def sign_out(self, access_token: str) -> None:
        claims = self._decode(access_token)
        self._prune_revoked()
        self.store.write(
            REVOKED_TOKENS,
            claims["jti"],
            {"jti": claims["jti"], "exp": claims.get("exp")},
        )

    def get_user(self, access_token: str) -> AuthUser:
        claims = self._decode(access_token)
        credential = self.store.read(AUTH_USERS, claims["sub"])
        if credential is None:
            raise PermissionDenied("Account no longer exists")
        return self._to_user(credential)
