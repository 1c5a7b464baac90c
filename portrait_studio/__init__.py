"""Portrait variation and photo restoration through a generative image API."""

from .assist import CaptionSet, StudioAssistant
from .client import GeminiClient
from .config import StudioConfig, load_config
from .encoding import EncodedImage, encode_image
from .errors import (
    ConfigError,
    FailureReason,
    GenerationAttemptFailure,
    ResponseFormatError,
    StudioError,
    TransportError,
    ValidationError,
)
from .generation import GenerationSession, SessionStatus, generate_variations
from .prompts import StudioMode, compose_prompt
from .transport import Transport

__all__ = [
    "CaptionSet",
    "ConfigError",
    "EncodedImage",
    "FailureReason",
    "GeminiClient",
    "GenerationAttemptFailure",
    "GenerationSession",
    "ResponseFormatError",
    "SessionStatus",
    "StudioAssistant",
    "StudioConfig",
    "StudioError",
    "StudioMode",
    "Transport",
    "TransportError",
    "ValidationError",
    "compose_prompt",
    "encode_image",
    "generate_variations",
    "load_config",
]

__version__ = "0.1.0"
