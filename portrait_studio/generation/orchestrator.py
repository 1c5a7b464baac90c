"""Sequential multi-variation generation with per-attempt failure tolerance."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..config import MAX_VARIATIONS, MIN_VARIATIONS, GenerationConfig
from ..encoding import EncodedImage, ImageSource, encode_image
from ..errors import (
    FailureReason,
    GenerationAttemptFailure,
    ResponseFormatError,
    TransportError,
    ValidationError,
)
from ..logging_utils import RunLogger, silent_logger
from ..prompts import IDENTITY_SYSTEM_INSTRUCTION, StudioMode, compose_prompt
from .interfaces import (
    GenerationFailure,
    GenerationOutcome,
    GenerationRequest,
    GenerationSession,
    GenerationSuccess,
    ImageBackend,
    ProgressCallback,
    ProgressEvent,
    ProgressKind,
)
from .payloads import build_image_payload, build_prompt_text, parse_image_response

__all__ = ["OrchestratorSettings", "generate_variations"]


@dataclass(frozen=True)
class OrchestratorSettings:
    inter_request_delay_s: float = 2.0
    # Keep retrying missing variations until the budget runs out instead of
    # giving each variation index a single attempt.
    refill_failures: bool = False

    @classmethod
    def from_config(cls, config: GenerationConfig) -> "OrchestratorSettings":
        return cls(
            inter_request_delay_s=float(config.inter_request_delay_s),
            refill_failures=bool(config.refill_failures),
        )


def _check_preconditions(
    reference: Optional[ImageSource],
    prompt_base: Optional[str],
    target_count: int,
    mode: StudioMode,
) -> None:
    if reference is None or (isinstance(reference, (bytes, bytearray, str)) and not reference):
        if mode is StudioMode.RESTORE:
            raise ValidationError("Please provide a photo to restore.")
        raise ValidationError("Please provide a text prompt and a reference image.")
    if mode is StudioMode.GENERATE and not (prompt_base or "").strip():
        raise ValidationError("Please provide a text prompt and a reference image.")
    if not isinstance(target_count, int) or not MIN_VARIATIONS <= target_count <= MAX_VARIATIONS:
        raise ValidationError(
            f"The number of variations must be between {MIN_VARIATIONS} and {MAX_VARIATIONS}."
        )


def _run_attempt(backend: ImageBackend, request: GenerationRequest, logger: RunLogger) -> GenerationOutcome:
    start = time.perf_counter()
    try:
        result = backend.generate_image(build_image_payload(request))
        success = parse_image_response(result, request)
    except (TransportError, GenerationAttemptFailure) as exc:
        elapsed = (time.perf_counter() - start) * 1000.0
        logger.log(
            "ATTEMPT",
            f"variation={request.variation_index} attempt={request.attempt} non-fatal failure "
            f"reason={exc.reason.value}: {exc}",
            level="WARN",
            elapsed_ms=elapsed,
        )
        return GenerationFailure(
            reason=exc.reason,
            detail=str(exc),
            variation_index=request.variation_index,
            attempt=request.attempt,
            finish_reason=getattr(exc, "finish_reason", None),
        )
    except ResponseFormatError as exc:
        elapsed = (time.perf_counter() - start) * 1000.0
        logger.log(
            "ATTEMPT",
            f"variation={request.variation_index} attempt={request.attempt} unreadable response: {exc}",
            level="WARN",
            elapsed_ms=elapsed,
        )
        return GenerationFailure(
            reason=FailureReason.UNKNOWN,
            detail=str(exc),
            variation_index=request.variation_index,
            attempt=request.attempt,
        )

    elapsed = (time.perf_counter() - start) * 1000.0
    logger.log(
        "ATTEMPT",
        f"variation={request.variation_index} attempt={request.attempt} image "
        f"mime={success.mime_type} bytes={len(success.image_bytes)}",
        elapsed_ms=elapsed,
    )
    return success


def generate_variations(
    reference: Optional[ImageSource],
    prompt_base: Optional[str],
    target_count: int,
    system_instruction: str = IDENTITY_SYSTEM_INSTRUCTION,
    *,
    backend: ImageBackend,
    mode: StudioMode | str = StudioMode.GENERATE,
    settings: Optional[OrchestratorSettings] = None,
    session: Optional[GenerationSession] = None,
    on_progress: Optional[ProgressCallback] = None,
    logger: Optional[RunLogger] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> GenerationSession:
    """Request up to ``target_count`` images, one sequential attempt at a time.

    The reference image is encoded once and reused for every attempt.  At most
    ``2 * target_count`` attempts are made.  Transport errors and responses
    without an image only fail the attempt they belong to; the returned session
    holds the successes in attempt order, and an empty ``results`` list means
    nothing was produced.

    Raises :class:`ValidationError` before any network activity when the
    reference image or prompt is missing, or ``target_count`` is out of range.
    """

    mode = StudioMode(mode)
    settings = settings or OrchestratorSettings()
    logger = logger or silent_logger()
    _check_preconditions(reference, prompt_base, target_count, mode)
    prompt_base = (prompt_base or "").strip() or compose_prompt(mode, None)

    if session is None:
        session = GenerationSession(target_count=target_count)
    elif session.target_count != target_count or session.attempts or session.results:
        raise ValidationError("A generation session can only be used once, with a matching target count.")

    start = time.perf_counter()
    encoded: EncodedImage = encode_image(reference)
    logger.log(
        "SESSION",
        f"mode={mode.value} target={target_count} budget={session.attempt_budget} "
        f"reference={encoded.mime_type} bytes={encoded.size}",
    )

    def _emit(kind: ProgressKind, request: GenerationRequest, outcome: Optional[GenerationOutcome] = None) -> None:
        if on_progress is not None:
            on_progress(
                ProgressEvent(
                    kind=kind,
                    variation_index=request.variation_index,
                    attempt=request.attempt,
                    session=session,
                    outcome=outcome,
                )
            )

    next_variation = 1
    while not session.is_satisfied and not session.budget_exhausted:
        if not settings.refill_failures and next_variation > target_count:
            break
        if session.attempts > 0 and settings.inter_request_delay_s > 0:
            sleep(settings.inter_request_delay_s)

        session.attempts += 1
        variation_index = len(session.results) + 1 if settings.refill_failures else next_variation
        next_variation += 1

        request = GenerationRequest(
            reference=encoded,
            prompt_text=build_prompt_text(prompt_base, variation_index, session.attempts),
            variation_index=variation_index,
            attempt=session.attempts,
            system_instruction=system_instruction,
        )
        _emit(ProgressKind.ATTEMPT, request)
        outcome = _run_attempt(backend, request, logger)
        session.record(outcome)
        _emit(
            ProgressKind.SUCCESS if isinstance(outcome, GenerationSuccess) else ProgressKind.FAILURE,
            request,
            outcome,
        )

    session.elapsed_s = time.perf_counter() - start
    level = {"complete": "INFO", "partial": "WARN", "failed": "ERROR"}.get(session.status.value, "INFO")
    logger.log(
        "SESSION",
        f"status={session.status.value} produced={len(session.results)}/{target_count} "
        f"attempts={session.attempts}",
        level=level,
        elapsed_ms=session.elapsed_s * 1000.0,
    )
    return session
