"""
Storage and auth interfaces implemented by the remote and local backends.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from newsfeed.errors import ValidationError
from newsfeed.records import EntityType

FILTER_OPS = ("eq", "neq", "in", "ilike", "gte", "lte")


@dataclass(frozen=True)
class Filter:
    """
    A single predicate on a record field.

    ``ilike`` is a case-insensitive substring match and ``in`` expects a
    sequence of candidate values. Every other op compares scalars.
    """

    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in FILTER_OPS:
            raise ValidationError(f"Unsupported filter op: {self.op}")
        if self.op == "in" and isinstance(self.value, (str, bytes)):
            raise ValidationError("'in' filters need a sequence of values")

    @classmethod
    def eq(cls, field: str, value: Any) -> "Filter":
        return cls(field, "eq", value)


class RecordStore(Protocol):
    """CRUD capability set shared by every storage backend."""

    def create(self, entity: EntityType, payload: dict) -> dict:
        ...

    def get(self, entity: EntityType, record_id: str) -> dict:
        ...

    def query(
        self,
        entity: EntityType,
        filters: Sequence[Filter] = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        ...

    def update(self, entity: EntityType, record_id: str, patch: dict) -> dict:
        ...

    def delete(self, entity: EntityType, record_id: str) -> None:
        ...

    def as_user(self, access_token: str) -> "RecordStore":
        """The same store, acting on behalf of the holder of ``access_token``."""
        ...


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str
    metadata: dict
    # Set when the provider opens a session at sign-up.
    access_token: Optional[str] = None


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    user: AuthUser
    token_type: str = "bearer"
    expires_in: Optional[int] = None


class AuthProvider(Protocol):
    """Account operations delegated to the hosted auth service or its stand-in."""

    def sign_up(self, email: str, password: str, metadata: dict) -> AuthUser:
        ...

    def sign_in(self, email: str, password: str) -> AuthSession:
        ...

    def sign_out(self, access_token: str) -> None:
        ...

    def get_user(self, access_token: str) -> AuthUser:
        ...


def check_patch(patch: dict) -> None:
    """Reject patches both backends would refuse."""
    if not patch:
        raise ValidationError("Update patch is empty")
    if "id" in patch:
        raise ValidationError("Record id cannot be changed")
