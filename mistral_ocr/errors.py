"""Adapter exception hierarchy"""

from __future__ import annotations

from typing import Optional


class OcrAdapterError(RuntimeError):
    """Base class for every error raised by the OCR pipeline."""

    def __init__(
        self,
        message: str,
        *,
        description: Optional[str] = None,
        item_index: Optional[int] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.description = description
        self.item_index = item_index
        self.cause = cause

    def __str__(self) -> str:  # pragma: no cover - simple formatter
        if self.cause:
            return f"{self.message} (cause={self.cause})"
        return self.message


# =============================================================================
# Validation errors (never retried)
# =============================================================================

class ValidationError(OcrAdapterError):
    """Input could not be turned into a valid provider request."""


class MissingBinaryData(ValidationError):
    pass


class EmptyOrCorruptData(ValidationError):
    pass


class UnsupportedFormat(ValidationError):
    pass


class FileTooLarge(ValidationError):
    pass


class TooManyPages(ValidationError):
    pass


class InvalidSchemaJson(ValidationError):
    pass


class SchemaBuildError(OcrAdapterError):
    """Field definitions are structurally wrong."""


# =============================================================================
# Upstream errors
# =============================================================================

class UpstreamCallFailed(OcrAdapterError):
    """A provider call returned no usable payload."""


class UploadFailed(UpstreamCallFailed):
    pass


class SignedUrlFailed(UpstreamCallFailed):
    pass


class OcrRequestFailed(UpstreamCallFailed):
    pass


class RateLimitExceeded(OcrAdapterError):
    """Raised once the retry budget for 429 responses is used up."""


class ApiHttpError(OcrAdapterError):
    """Non-2xx response from the provider."""

    def __init__(self, status: int, body: str = "", *, method: str = "", url: str = ""):
        target = f"{method} {url}".strip()
        message = f"Request failed: {status} - {body}" if not target else f"{target} failed: {status} - {body}"
        super().__init__(message)
        self.status = status
        self.body = body


__all__ = [
    "OcrAdapterError",
    "ValidationError",
    "MissingBinaryData",
    "EmptyOrCorruptData",
    "UnsupportedFormat",
    "FileTooLarge",
    "TooManyPages",
    "InvalidSchemaJson",
    "SchemaBuildError",
    "UpstreamCallFailed",
    "UploadFailed",
    "SignedUrlFailed",
    "OcrRequestFailed",
    "RateLimitExceeded",
    "ApiHttpError",
]
