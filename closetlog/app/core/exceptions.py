"""Application exception hierarchy.

Every error that should reach an HTTP client derives from ``AppException`` and
is rendered by the handler registered in ``app.main`` as ``{"error": detail}``.
``PartialPersistenceError`` is the exception to that rule: it describes a single
garment's bookkeeping step that failed inside an outfit create/delete, and is
recorded and logged instead of raised.
"""

from typing import Optional
from fastapi import status


class AppException(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, status_code: Optional[int] = None):
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(detail)


class ValidationError(AppException):
    """Malformed or missing required input."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, field: Optional[str] = None):
        self.field = field
        super().__init__(detail)


class NotFoundError(AppException):
    """Referenced record does not exist or is not owned by the caller."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppException):
    """Record already exists."""

    status_code = status.HTTP_409_CONFLICT


class UpstreamServiceError(AppException):
    """The vision model failed or answered with unusable content."""

    status_code = status.HTTP_502_BAD_GATEWAY
    user_message = "Could not analyze outfit photo; retry or pick garments manually"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(self.user_message)


class PartialPersistenceError(Exception):
    """One garment's link, use-count or creation step failed mid-batch."""

    def __init__(
        self,
        step: str,
        garment_id: Optional[str] = None,
        outfit_id: Optional[str] = None,
        reason: str = ""
    ):
        self.step = step
        self.garment_id = garment_id
        self.outfit_id = outfit_id
        self.reason = reason
        super().__init__(f"{step} failed for garment {garment_id}: {reason}")

    def to_dict(self) -> dict:
        return {
            "step": self.step,
            "garment_id": self.garment_id,
            "outfit_id": self.outfit_id,
            "reason": self.reason,
        }
