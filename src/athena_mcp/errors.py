"""Exception taxonomy shared by every layer of the adapter.

Errors are created once, at the boundary where they happen (config
loading, token exchange, upstream response handling, caller-input checks),
and re-raised untouched after that. The two front ends turn them into
structured payloads: JSON text for the tool surface, ``{success: false}``
for the HTTP bridge.
"""

from __future__ import annotations

from typing import Any


class AthenaError(Exception):
    """Base class for all adapter errors."""

    def to_dict(self) -> dict[str, Any]:
        return {"error": type(self).__name__, "message": str(self)}


class ConfigurationError(AthenaError):
    """Raised at startup when required settings are missing or malformed."""

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        super().__init__(message)
        self.problems = problems or []


class AuthenticationError(AthenaError):
    """Raised when the OAuth2 token exchange fails."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        return {"error": "authentication_failed", "message": str(self), "status": self.status}


class UpstreamError(AthenaError):
    """Normalized error for a failed call to an athenahealth resource endpoint.

    Attributes:
        error: Upstream error code (``error`` field of the body).
        message: Human-readable message.
        detailcode: Optional athenahealth detail code.
        details: Optional structured details from the body.
        response: The raw upstream body, when one was returned.
        status: HTTP status code, or None for transport failures.
    """

    def __init__(
        self,
        message: str,
        *,
        error: str = "Unknown error",
        detailcode: str | None = None,
        details: Any = None,
        response: Any = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error = error
        self.message = message
        self.detailcode = detailcode
        self.details = details
        self.response = response
        self.status = status

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"HTTP {self.status}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error,
            "message": self.message,
            "detailcode": self.detailcode,
            "details": self.details,
            "response": self.response,
            "status": self.status,
        }


class UnavailableEndpointError(UpstreamError):
    """An endpoint that is not provisioned on the preview/sandbox tier.

    athenahealth answers these with 403 or 404. The condition is fixed by
    moving to a production account, not by changing the request.
    """

    note = (
        "This endpoint is not available in the athenahealth preview/sandbox "
        "environment. It requires a production API account."
    )

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["note"] = self.note
        return payload


class SearchCriteriaError(AthenaError):
    """Caller input rejected before any upstream call was made."""

    def __init__(self, message: str, *, fields: list[str], example: dict[str, Any]) -> None:
        super().__init__(message)
        self.fields = fields
        self.example = example

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "At least one search parameter is required",
            "message": str(self),
            "example": self.example,
        }
