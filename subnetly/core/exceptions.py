"""Domain exceptions raised by the IPAM services.

Each exception carries the HTTP status it maps to, so the API layer can
render it with a single exception handler.
"""

from typing import Any, Dict, List, Optional

from fastapi import status


class IPAMError(Exception):
    """Base exception for IPAM errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "IPAM error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise for an error response body."""
        return {"detail": self.detail}


class ValidationError(IPAMError):
    """Malformed prefix, mask, address or range."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Validation error"


class NotFoundError(IPAMError):
    """Referenced resource does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class ConflictError(IPAMError):
    """Duplicate name or uniqueness violation."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists"


class PartialFailureError(IPAMError):
    """A follow-up step failed after the primary write succeeded.

    The primary write is never retracted. ``step`` names the correction
    that failed so the caller can retry only that one.
    """

    default_detail = "Binding saved but a follow-up step failed"

    def __init__(
        self,
        step: str,
        record_id: Optional[int] = None,
        address: Optional[str] = None,
        completed_steps: Optional[List[str]] = None,
        detail: Optional[str] = None,
    ):
        self.step = step
        self.record_id = record_id
        self.address = address
        self.completed_steps = list(completed_steps or [])
        super().__init__(detail or f"{self.default_detail}: {step}")

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["step"] = self.step
        body["completed_steps"] = self.completed_steps
        body["record_id"] = self.record_id
        body["address"] = self.address
        return body
