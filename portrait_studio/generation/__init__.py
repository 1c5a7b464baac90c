"""Multi-variation image generation."""

from .interfaces import (
    GenerationFailure,
    GenerationOutcome,
    GenerationRequest,
    GenerationSession,
    GenerationSuccess,
    ImageBackend,
    ProgressEvent,
    ProgressKind,
    SessionStatus,
)
from .orchestrator import OrchestratorSettings, generate_variations

__all__ = [
    "GenerationFailure",
    "GenerationOutcome",
    "GenerationRequest",
    "GenerationSession",
    "GenerationSuccess",
    "ImageBackend",
    "OrchestratorSettings",
    "ProgressEvent",
    "ProgressKind",
    "SessionStatus",
    "generate_variations",
]
