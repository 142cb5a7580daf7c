"""
Error taxonomy shared by the storage backends and the domain services.

Backends translate transport failures into these; services let them
propagate untouched so the HTTP layer can decide what the user sees.
"""

from __future__ import annotations


class NewsfeedError(Exception):
    """Base class for every error surfaced to the presentation layer."""

    kind = "error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class NotFound(NewsfeedError):
    kind = "not_found"


class ValidationError(NewsfeedError):
    kind = "validation_error"


class PermissionDenied(NewsfeedError):
    kind = "permission_denied"


class BackendUnavailable(NewsfeedError):
    kind = "backend_unavailable"
