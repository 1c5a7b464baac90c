from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Union

from ..encoding import EncodedImage, build_data_url
from ..errors import FailureReason


@dataclass(frozen=True)
class GenerationRequest:
    reference: EncodedImage
    prompt_text: str
    variation_index: int
    attempt: int
    system_instruction: str


@dataclass(frozen=True)
class GenerationSuccess:
    image_bytes: bytes = field(repr=False)
    mime_type: str
    variation_index: int
    attempt: int
    data: str = field(default="", repr=False)

    def as_data_url(self) -> str:
        return build_data_url(self.data, self.mime_type)


@dataclass(frozen=True)
class GenerationFailure:
    reason: FailureReason
    detail: str
    variation_index: int
    attempt: int
    finish_reason: Optional[str] = None


GenerationOutcome = Union[GenerationSuccess, GenerationFailure]


class SessionStatus(str, Enum):
    PENDING = "pending"
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class GenerationSession:
    """Mutable record of one user-initiated generation run."""

    target_count: int
    attempts: int = 0
    results: List[GenerationSuccess] = field(default_factory=list)
    failures: List[GenerationFailure] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    elapsed_s: Optional[float] = None

    @property
    def attempt_budget(self) -> int:
        return 2 * self.target_count

    @property
    def budget_exhausted(self) -> bool:
        return self.attempts >= self.attempt_budget

    @property
    def is_satisfied(self) -> bool:
        return len(self.results) >= self.target_count

    @property
    def finished(self) -> bool:
        return self.elapsed_s is not None

    @property
    def status(self) -> SessionStatus:
        if not self.finished:
            return SessionStatus.PENDING
        if not self.results:
            return SessionStatus.FAILED
        if self.is_satisfied:
            return SessionStatus.COMPLETE
        return SessionStatus.PARTIAL

    def record(self, outcome: GenerationOutcome) -> None:
        if isinstance(outcome, GenerationSuccess):
            self.results.append(outcome)
        else:
            self.failures.append(outcome)

    def summary(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "target_count": self.target_count,
            "attempts": self.attempts,
            "produced": len(self.results),
            "started_at": self.started_at.isoformat(timespec="seconds"),
            "elapsed_s": round(self.elapsed_s, 3) if self.elapsed_s is not None else None,
            "failures": [
                {
                    "variation": failure.variation_index,
                    "attempt": failure.attempt,
                    "reason": failure.reason.value,
                    "finish_reason": failure.finish_reason,
                    "detail": failure.detail,
                }
                for failure in self.failures
            ],
        }


class ProgressKind(str, Enum):
    ATTEMPT = "attempt"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class ProgressEvent:
    kind: ProgressKind
    variation_index: int
    attempt: int
    session: GenerationSession
    outcome: Optional[GenerationOutcome] = None


ProgressCallback = Callable[[ProgressEvent], None]


class ImageBackend(Protocol):
    def generate_image(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Submit one image-generation body and return the decoded JSON."""


__all__ = [
    "GenerationFailure",
    "GenerationOutcome",
    "GenerationRequest",
    "GenerationSession",
    "GenerationSuccess",
    "ImageBackend",
    "ProgressCallback",
    "ProgressEvent",
    "ProgressKind",
    "SessionStatus",
]
