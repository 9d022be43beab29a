"""
Error Taxonomy

Exceptions raised by the selection, compositing and generation stages.
Every failure is recoverable: the edit session catches these, records a
user-facing message and keeps its last good state.
"""

from enum import Enum
from typing import Optional


class FacePatchError(Exception):
    """Base class for all face patch errors."""


class InvalidRegion(FacePatchError, ValueError):
    """Selection or crop rectangle outside image bounds or malformed."""


class DecodeFailure(FacePatchError):
    """An image could not be read or decoded."""


class CompositeFailure(FacePatchError):
    """Feathering or drawing the composite failed."""


class GenerationErrorKind(Enum):
    """Failure kinds reported by a generation client."""
    MISSING_CREDENTIAL = "missing_credential"
    RATE_LIMITED = "rate_limited"
    SERVICE_UNAVAILABLE = "service_unavailable"
    TIMEOUT = "timeout"
    CONTENT_POLICY_BLOCKED = "content_policy_blocked"
    NO_IMAGE_RETURNED = "no_image_returned"


class GenerationError(FacePatchError):
    """
    Failure raised by a generation client.

    Subclasses fix the ``kind`` and whether the call may be retried.
    """

    kind: GenerationErrorKind = GenerationErrorKind.SERVICE_UNAVAILABLE
    retryable: bool = False

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class MissingCredential(GenerationError):
    kind = GenerationErrorKind.MISSING_CREDENTIAL
    retryable = False


class RateLimited(GenerationError):
    kind = GenerationErrorKind.RATE_LIMITED
    retryable = True


class ServiceUnavailable(GenerationError):
    kind = GenerationErrorKind.SERVICE_UNAVAILABLE
    retryable = True


class GenerationTimeout(GenerationError):
    kind = GenerationErrorKind.TIMEOUT
    retryable = True


class ContentPolicyBlocked(GenerationError):
    """Request refused by the service's safety policy; ``reason`` is shown as-is."""

    kind = GenerationErrorKind.CONTENT_POLICY_BLOCKED
    retryable = False

    def __init__(self, reason: str, detail: Optional[str] = None):
        super().__init__(reason, detail)
        self.reason = reason


class NoImageReturned(GenerationError):
    """Service answered without an image; ``diagnostic`` holds any text it sent."""

    kind = GenerationErrorKind.NO_IMAGE_RETURNED
    retryable = False

    def __init__(self, message: str, diagnostic: Optional[str] = None):
        super().__init__(message, diagnostic)
        self.diagnostic = diagnostic


class GenerationFailure(FacePatchError):
    """
    Final outcome of a generation attempt after retries.

    Args:
        cause: The last error reported by the generation client
        attempts: Number of calls made before giving up
    """

    def __init__(self, cause: GenerationError, attempts: int = 1):
        super().__init__(str(cause))
        self.cause = cause
        self.attempts = attempts

    @property
    def kind(self) -> GenerationErrorKind:
        return self.cause.kind

    @property
    def user_message(self) -> str:
        """Message suitable for showing to the user."""
        if self.kind == GenerationErrorKind.CONTENT_POLICY_BLOCKED:
            return self.cause.message
        if self.kind == GenerationErrorKind.NO_IMAGE_RETURNED:
            if self.cause.detail:
                return f"{self.cause.message} Message: \"{self.cause.detail}\""
            return self.cause.message
        if self.kind == GenerationErrorKind.MISSING_CREDENTIAL:
            return "API key is missing. Set GEMINI_API_KEY or pass --api-key."
        if self.kind == GenerationErrorKind.TIMEOUT:
            return "Request timed out. The model is experiencing high traffic."
        return "The generation service is unavailable right now. Please try again later."
