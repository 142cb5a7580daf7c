"""
Remote backend: the hosted Postgres service's REST data API and auth API.

Both clients share one ``requests.Session`` and translate HTTP failures into
the ``newsfeed.errors`` taxonomy. Row-level security is enforced by the
platform, never here: data calls made through ``as_user`` carry the caller's
access token so the platform knows who is asking. The service key always
travels as ``apikey``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional, Sequence

import requests

from newsfeed.errors import (
    BackendUnavailable,
    NewsfeedError,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from newsfeed.records import EntityType, new_id
from newsfeed.store import AuthSession, AuthUser, Filter, check_patch

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10  # seconds


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason or ""
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return str(body)


def raise_for_response(response: requests.Response) -> None:
    """Map a failed response onto the error taxonomy."""
    if response.ok:
        return
    message = _error_message(response)
    status = response.status_code
    logger.warning("Remote call failed (%s): %s", status, message)
    if status in (401, 403):
        raise PermissionDenied(message)
    if status == 404:
        raise NotFound(message)
    if status in (400, 409, 422):
        raise ValidationError(message)
    if status >= 500 or status == 429:
        raise BackendUnavailable(message)
    raise NewsfeedError(message)


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def filter_params(filters: Sequence[Filter]) -> list[tuple[str, str]]:
    """Translate filters into REST query parameters."""
    params: list[tuple[str, str]] = []
    for flt in filters:
        if flt.op == "in":
            values = ",".join(f'"{_format_value(v)}"' for v in flt.value)
            params.append((flt.field, f"in.({values})"))
        elif flt.op == "ilike":
            params.append((flt.field, f"ilike.*{_format_value(flt.value)}*"))
        elif flt.op == "eq" and flt.value is None:
            params.append((flt.field, "is.null"))
        elif flt.op == "neq" and flt.value is None:
            params.append((flt.field, "not.is.null"))
        else:
            params.append((flt.field, f"{flt.op}.{_format_value(flt.value)}"))
    return params


class RemoteClient:
    """Thin wrapper over ``requests.Session`` with the service headers applied."""

    def __init__(
        self,
        service_url: str,
        service_key: str,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = service_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
                "Content-Type": "application/json",
            }
        )

    def request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, path)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise BackendUnavailable(f"Cannot reach {self.base_url}") from exc
        raise_for_response(response)
        return response


class RemoteRecordStore:
    """``RecordStore`` backed by the hosted REST data API."""

    def __init__(self, client: RemoteClient, access_token: Optional[str] = None):
        self.client = client
        self.access_token = access_token

    def as_user(self, access_token: str) -> "RemoteRecordStore":
        return RemoteRecordStore(self.client, access_token)

    def _headers(self, **extra: str) -> dict:
        headers = dict(extra)
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    @staticmethod
    def _path(entity: EntityType) -> str:
        return f"/rest/v1/{entity.value}"

    def create(self, entity: EntityType, payload: dict) -> dict:
        record = dict(payload)
        if not record.get("id"):
            record["id"] = new_id()
        response = self.client.request(
            "POST",
            self._path(entity),
            json=record,
            headers=self._headers(Prefer="return=representation"),
        )
        rows = response.json()
        return rows[0] if rows else record

    def get(self, entity: EntityType, record_id: str) -> dict:
        response = self.client.request(
            "GET",
            self._path(entity),
            params=[("id", f"eq.{record_id}"), ("select", "*")],
            headers=self._headers(),
        )
        rows = response.json()
        if not rows:
            raise NotFound(f"{entity.value} {record_id} not found")
        return rows[0]

    def query(
        self,
        entity: EntityType,
        filters: Sequence[Filter] = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        params = filter_params(filters)
        params.append(("select", "*"))
        if order_by:
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))
        if limit is not None:
            params.append(("limit", str(limit)))
        response = self.client.request(
            "GET", self._path(entity), params=params, headers=self._headers()
        )
        return list(response.json())

    def update(self, entity: EntityType, record_id: str, patch: dict) -> dict:
        check_patch(patch)
        response = self.client.request(
            "PATCH",
            self._path(entity),
            params=[("id", f"eq.{record_id}")],
            json=patch,
            headers=self._headers(Prefer="return=representation"),
        )
        rows = response.json()
        if not rows:
            raise NotFound(f"{entity.value} {record_id} not found")
        return rows[0]

    def delete(self, entity: EntityType, record_id: str) -> None:
        response = self.client.request(
            "DELETE",
            self._path(entity),
            params=[("id", f"eq.{record_id}")],
            headers=self._headers(Prefer="return=representation"),
        )
        if not response.json():
            raise NotFound(f"{entity.value} {record_id} not found")


class RemoteAuthProvider:
    """``AuthProvider`` backed by the hosted auth REST API."""

    def __init__(self, client: RemoteClient):
        self.client = client

    @staticmethod
    def _to_user(payload: dict) -> AuthUser:
        return AuthUser(
            id=payload["id"],
            email=payload.get("email", ""),
            metadata=dict(payload.get("user_metadata") or {}),
        )

    @staticmethod
    def _bearer(access_token: str) -> dict:
        return {"Authorization": f"Bearer {access_token}"}

    def sign_up(self, email: str, password: str, metadata: dict) -> AuthUser:
        response = self.client.request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": metadata},
        )
        body = response.json()
        # With auto-confirm the service returns a session wrapping the user.
        user = self._to_user(body.get("user") or body)
        return replace(user, access_token=body.get("access_token"))

    def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            response = self.client.request(
                "POST",
                "/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        except ValidationError as exc:
            # The auth API answers bad credentials with a 400.
            raise PermissionDenied(exc.message) from exc
        body = response.json()
        return AuthSession(
            access_token=body["access_token"],
            token_type=body.get("token_type", "bearer"),
            expires_in=body.get("expires_in"),
            user=self._to_user(body["user"]),
        )

    def sign_out(self, access_token: str) -> None:
        self.client.request(
            "POST", "/auth/v1/logout", headers=self._bearer(access_token)
        )

    def get_user(self, access_token: str) -> AuthUser:
        response = self.client.request(
            "GET", "/auth/v1/user", headers=self._bearer(access_token)
        )
        return self._to_user(response.json())
