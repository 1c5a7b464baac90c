"""Failure taxonomy shared by the transport, the orchestrator and the CLI."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class FailureReason(str, Enum):
    RATE_LIMITED = "rate_limited"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    NETWORK = "network"
    SAFETY_BLOCKED = "safety_blocked"
    NO_IMAGE = "no_image"
    RECITATION = "recitation"
    UNKNOWN = "unknown"


class StudioError(RuntimeError):
    """Base class for every error raised by portrait_studio."""


class ValidationError(StudioError):
    """Raised when required input is missing or unusable."""


class ConfigError(StudioError):
    """Raised when the configuration cannot be loaded."""


class ResponseFormatError(StudioError):
    """Raised when the remote service returns a payload we cannot use."""


class TransportError(StudioError):
    """Raised when an HTTP request fails after the retry policy is applied."""

    def __init__(
        self,
        reason: FailureReason,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code
        self.body = body


class GenerationAttemptFailure(StudioError):
    """Raised when a generation response carries no usable image."""

    def __init__(
        self,
        reason: FailureReason,
        message: str,
        *,
        finish_reason: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.finish_reason = finish_reason


_USER_MESSAGES = {
    FailureReason.RATE_LIMITED: "The service is receiving too many requests. Wait a minute and try again.",
    FailureReason.PAYLOAD_TOO_LARGE: "The reference image is too large. Use a smaller or more compressed image.",
    FailureReason.TIMEOUT: "The request timed out. Try a smaller image or fewer variations.",
    FailureReason.SERVER_ERROR: "The generation service returned an error. Try again later.",
    FailureReason.NETWORK: "Could not reach the generation service. Check your connection.",
    FailureReason.SAFETY_BLOCKED: "The image was blocked by the safety filters. Try a different prompt.",
    FailureReason.NO_IMAGE: "The model did not return an image. Try rephrasing the prompt.",
    FailureReason.RECITATION: (
        "The result was too similar to the reference photo or to training images. "
        "Ask for a more distinct setting or style."
    ),
    FailureReason.UNKNOWN: "The service returned an unexpected response.",
}


def describe_reason(reason: FailureReason) -> str:
    return _USER_MESSAGES.get(reason, _USER_MESSAGES[FailureReason.UNKNOWN])


def user_message(exc: BaseException) -> str:
    """Map a failure to the message shown to the person running the tool."""

    if isinstance(exc, (TransportError, GenerationAttemptFailure)):
        return describe_reason(exc.reason)
    if isinstance(exc, (ValidationError, ConfigError)):
        return str(exc)
    if isinstance(exc, ResponseFormatError):
        return f"The service response could not be understood: {exc}"
    return f"A critical error stopped the process: {exc}"


__all__ = [
    "ConfigError",
    "FailureReason",
    "GenerationAttemptFailure",
    "ResponseFormatError",
    "StudioError",
    "TransportError",
    "ValidationError",
    "describe_reason",
    "user_message",
]
