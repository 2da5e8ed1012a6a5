"""
Error taxonomy for the QC Image API.

Every user-visible failure is a QCImageError carrying the HTTP status and the
short `error` string rendered in the JSON body. Watermarking failures
(WatermarkAssetMissing, CompositionError) are absorbed inside the watermark
services and never reach a response.
"""
from typing import Any, Optional


class QCImageError(Exception):
    """Base class for failures that map onto a JSON error response."""

    status_code: int = 500
    error: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        error: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        super().__init__(message or error or self.error)
        self.message = message
        if error is not None:
            self.error = error
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_body(self) -> dict:
        body = {"success": False, "error": self.error}
        if self.message:
            body["message"] = self.message
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(QCImageError):
    status_code = 400
    error = "Validation failed"


class AuthenticationError(QCImageError):
    status_code = 401
    error = "Unauthorized"


class AuthorizationError(QCImageError):
    status_code = 403
    error = "Forbidden"


class NotFoundError(QCImageError):
    status_code = 404
    error = "No images found in the response"


# ─── Upstream ─────────────────────────────────────────────────────

class UpstreamError(QCImageError):
    """Any failure talking to the upstream service."""


class UpstreamHttpError(UpstreamError):
    """Upstream answered with a non-2xx status; the status is mirrored."""

    error = "Error fetching data from upstream API"

    def __init__(self, status_code: int, message: Optional[str] = None, **kwargs):
        super().__init__(message, status_code=status_code, **kwargs)


class UpstreamUnavailable(UpstreamError):
    """Request was sent but no response came back."""

    status_code = 503
    error = "Service temporarily unavailable"


class UpstreamTimeout(UpstreamError):
    status_code = 504
    error = "Request timeout"


class UpstreamSetupError(UpstreamError):
    """Request could not be built or sent at all."""

    status_code = 500
    error = "Internal server error"


# ─── Watermarking (never surfaced) ────────────────────────────────

class WatermarkAssetMissing(QCImageError):
    error = "Watermark asset missing"


class CompositionError(QCImageError):
    error = "Watermark composition failed"


class InternalError(QCImageError):
    status_code = 500
    error = "Internal server error"
