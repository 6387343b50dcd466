"""Error taxonomy shared by the service endpoints and the voice pipeline."""

from __future__ import annotations

from typing import Optional

RATE_LIMITED_MESSAGE = "Rate limit exceeded. Please try again in a moment."
QUOTA_EXHAUSTED_MESSAGE = "AI credits exhausted. Please contact support."
GENERIC_FAILURE_MESSAGE = "Could not process your request. Please try again."


class MarketplaceError(RuntimeError):
    """Base class for errors surfaced to marketplace users."""

    status_code: int = 500
    default_message: str = GENERIC_FAILURE_MESSAGE

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class CaptureError(MarketplaceError):
    """Raised when a recording session is used out of order."""

    status_code = 409
    default_message = "A recording is already in progress."


class DeviceUnavailableError(CaptureError):
    default_message = "Could not access your microphone. Please check permissions."


class AssistantBusyError(MarketplaceError):
    status_code = 409
    default_message = "Please wait for the assistant to finish before speaking again."


class DraftValidationError(MarketplaceError, ValueError):
    status_code = 400
    default_message = "Invalid product details."


class BadRequestError(MarketplaceError):
    status_code = 400
    default_message = "Invalid request."


class AuthenticationError(MarketplaceError):
    status_code = 401
    default_message = "Authentication failed"


class PermissionDeniedError(MarketplaceError):
    status_code = 403
    default_message = "User does not have seller role"


class PayloadTooLargeError(MarketplaceError):
    status_code = 413
    default_message = "Audio payload too large"


class PersistenceError(MarketplaceError):
    status_code = 500
    default_message = "Could not list your product. Please try again."


class UpstreamError(MarketplaceError):
    """A transcription, completion or synthesis call failed."""

    status_code = 502

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        service: Optional[str] = None,
        upstream_status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.upstream_status = upstream_status


class RateLimitedError(UpstreamError):
    status_code = 429
    default_message = RATE_LIMITED_MESSAGE


class QuotaExhaustedError(UpstreamError):
    status_code = 402
    default_message = QUOTA_EXHAUSTED_MESSAGE


class EmptyTranscriptError(UpstreamError):
    default_message = "No speech was recognised. Please try again."


def upstream_error_for_status(
    status: Optional[int],
    *,
    service: str,
    detail: Optional[str] = None,
) -> UpstreamError:
    """Map an upstream HTTP status onto the matching error type.

    429 and 402 get their own user-facing messages; every other status is a
    generic upstream failure carrying ``detail`` when given.
    """

    if status == 429:
        return RateLimitedError(service=service, upstream_status=status)
    if status == 402:
        return QuotaExhaustedError(service=service, upstream_status=status)
    return UpstreamError(detail or f"{service} failed", service=service, upstream_status=status)


__all__ = [
    "MarketplaceError",
    "CaptureError",
    "DeviceUnavailableError",
    "AssistantBusyError",
    "DraftValidationError",
    "BadRequestError",
    "AuthenticationError",
    "PermissionDeniedError",
    "PayloadTooLargeError",
    "PersistenceError",
    "UpstreamError",
    "RateLimitedError",
    "QuotaExhaustedError",
    "EmptyTranscriptError",
    "upstream_error_for_status",
    "RATE_LIMITED_MESSAGE",
    "QUOTA_EXHAUSTED_MESSAGE",
    "GENERIC_FAILURE_MESSAGE",
]
