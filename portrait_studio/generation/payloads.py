from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ..client import candidate_parts, first_candidate
from ..encoding import DEFAULT_MIME_TYPE, decode_base64
from ..errors import FailureReason, GenerationAttemptFailure, ValidationError
from ..prompts import variation_suffix
from .interfaces import GenerationRequest, GenerationSuccess

_SAFETY_FINISH_REASONS = {"SAFETY", "IMAGE_SAFETY", "PROHIBITED_CONTENT", "IMAGE_PROHIBITED_CONTENT", "BLOCKLIST", "SPII"}
_RECITATION_FINISH_REASONS = {"RECITATION", "IMAGE_RECITATION"}
_NO_IMAGE_FINISH_REASONS = {"NO_IMAGE", "IMAGE_OTHER"}


def build_prompt_text(prompt_base: str, variation_index: int, attempt: int) -> str:
    return prompt_base + variation_suffix(variation_index, attempt)


def build_image_payload(request: GenerationRequest) -> Dict[str, Any]:
    return {
        "systemInstruction": {"parts": [{"text": request.system_instruction}]},
        "contents": [
            {
                "role": "user",
                "parts": [
                    {"text": request.prompt_text},
                    request.reference.inline_part(),
                ],
            }
        ],
        "generationConfig": {"responseModalities": ["IMAGE"]},
    }


def _inline_blob(part: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    blob = part.get("inlineData") or part.get("inline_data")
    if isinstance(blob, Mapping) and blob.get("data"):
        return blob
    return None


def _finish_reason(candidate: Mapping[str, Any]) -> Optional[str]:
    value = candidate.get("finishReason") or candidate.get("finish_reason")
    return str(value).upper() if value else None


def classify_missing_image(result: Mapping[str, Any], variation_index: int) -> GenerationAttemptFailure:
    """Explain why a response carried no image."""

    candidate = first_candidate(result)
    finish_reason = _finish_reason(candidate)
    prefix = f"Variation {variation_index} failed"

    if finish_reason in _SAFETY_FINISH_REASONS:
        return GenerationAttemptFailure(
            FailureReason.SAFETY_BLOCKED,
            f"{prefix}: the image was blocked for safety reasons",
            finish_reason=finish_reason,
        )
    if finish_reason in _NO_IMAGE_FINISH_REASONS:
        return GenerationAttemptFailure(
            FailureReason.NO_IMAGE,
            f"{prefix}: the model could not produce an image",
            finish_reason=finish_reason,
        )
    if finish_reason in _RECITATION_FINISH_REASONS:
        return GenerationAttemptFailure(
            FailureReason.RECITATION,
            f"{prefix}: the output was too similar to the reference photo or to training images",
            finish_reason=finish_reason,
        )

    feedback = result.get("promptFeedback")
    block_reason = feedback.get("blockReason") if isinstance(feedback, Mapping) else None
    if block_reason:
        return GenerationAttemptFailure(
            FailureReason.SAFETY_BLOCKED,
            f"{prefix}: the prompt was blocked ({block_reason})",
            finish_reason=str(block_reason),
        )

    error = result.get("error")
    if isinstance(error, Mapping):
        return GenerationAttemptFailure(
            FailureReason.SERVER_ERROR,
            f"{prefix}: API error: {error.get('message', error)}",
            finish_reason=finish_reason,
        )

    return GenerationAttemptFailure(
        FailureReason.UNKNOWN,
        f"{prefix}: invalid API response",
        finish_reason=finish_reason,
    )


def parse_image_response(result: Mapping[str, Any], request: GenerationRequest) -> GenerationSuccess:
    """Return the first embedded image or raise :class:`GenerationAttemptFailure`."""

    for part in candidate_parts(first_candidate(result)):
        blob = _inline_blob(part)
        if blob is None:
            continue
        data = str(blob["data"])
        mime_type = str(blob.get("mimeType") or blob.get("mime_type") or DEFAULT_MIME_TYPE)
        try:
            image_bytes = decode_base64(data)
        except ValidationError as exc:
            raise GenerationAttemptFailure(
                FailureReason.UNKNOWN,
                f"Variation {request.variation_index} failed: {exc}",
            ) from exc
        return GenerationSuccess(
            image_bytes=image_bytes,
            mime_type=mime_type,
            variation_index=request.variation_index,
            attempt=request.attempt,
            data=data,
        )
    raise classify_missing_image(result, request.variation_index)


__all__ = [
    "build_image_payload",
    "build_prompt_text",
    "classify_missing_image",
    "parse_image_response",
]
