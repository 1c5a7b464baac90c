from __future__ import annotations

import pytest

from fakes import finish_body, image_body, png
from portrait_studio.encoding import encode_bytes
from portrait_studio.errors import FailureReason, GenerationAttemptFailure
from portrait_studio.generation import GenerationRequest
from portrait_studio.generation.payloads import (
    build_image_payload,
    build_prompt_text,
    classify_missing_image,
    parse_image_response,
)
from portrait_studio.prompts import IDENTITY_SYSTEM_INSTRUCTION


def _request(variation_index: int = 2, attempt: int = 3) -> GenerationRequest:
    return GenerationRequest(
        reference=encode_bytes(png()),
        prompt_text=build_prompt_text("A knight at dawn", variation_index, attempt),
        variation_index=variation_index,
        attempt=attempt,
        system_instruction=IDENTITY_SYSTEM_INSTRUCTION,
    )


def test_image_payload_carries_prompt_reference_and_modalities() -> None:
    request = _request()

    payload = build_image_payload(request)

    assert payload["systemInstruction"]["parts"][0]["text"] == IDENTITY_SYSTEM_INSTRUCTION
    content = payload["contents"][0]
    assert content["role"] == "user"
    text_part, image_part = content["parts"]
    assert text_part["text"].startswith("A knight at dawn Create variation no. 2")
    assert text_part["text"].endswith("(Attempt 3)")
    assert image_part["inlineData"] == {"mimeType": "image/png", "data": request.reference.data}
    assert payload["generationConfig"] == {"responseModalities": ["IMAGE"]}


def test_parse_returns_first_inline_image() -> None:
    body = image_body(mime_type="image/jpeg")
    body["candidates"][0]["content"]["parts"].insert(0, {"text": "here you go"})

    success = parse_image_response(body, _request())

    assert success.mime_type == "image/jpeg"
    assert success.variation_index == 2
    assert success.attempt == 3
    assert success.image_bytes.startswith(b"\x89PNG")
    assert success.as_data_url().startswith("data:image/jpeg;base64,")


def test_parse_accepts_snake_case_blob_and_defaults_mime() -> None:
    data = image_body()["candidates"][0]["content"]["parts"][0]["inlineData"]["data"]
    body = {"candidates": [{"content": {"parts": [{"inline_data": {"data": data}}]}}]}

    success = parse_image_response(body, _request())

    assert success.mime_type == "image/png"


def test_parse_rejects_corrupt_base64() -> None:
    body = {"candidates": [{"content": {"parts": [{"inlineData": {"data": "%%%not-base64"}}]}}]}

    with pytest.raises(GenerationAttemptFailure) as excinfo:
        parse_image_response(body, _request())

    assert excinfo.value.reason is FailureReason.UNKNOWN


@pytest.mark.parametrize(
    ("finish_reason", "expected"),
    [
        ("SAFETY", FailureReason.SAFETY_BLOCKED),
        ("IMAGE_SAFETY", FailureReason.SAFETY_BLOCKED),
        ("NO_IMAGE", FailureReason.NO_IMAGE),
        ("IMAGE_RECITATION", FailureReason.RECITATION),
        ("RECITATION", FailureReason.RECITATION),
        ("STOP", FailureReason.UNKNOWN),
    ],
)
def test_missing_image_is_classified_by_finish_reason(finish_reason: str, expected: FailureReason) -> None:
    with pytest.raises(GenerationAttemptFailure) as excinfo:
        parse_image_response(finish_body(finish_reason), _request())

    assert excinfo.value.reason is expected
    assert excinfo.value.finish_reason == finish_reason
    assert str(excinfo.value).startswith("Variation 2 failed")


def test_blocked_prompt_feedback_is_a_safety_block() -> None:
    failure = classify_missing_image({"promptFeedback": {"blockReason": "OTHER"}}, 1)

    assert failure.reason is FailureReason.SAFETY_BLOCKED
    assert "OTHER" in str(failure)


def test_error_object_is_a_server_error() -> None:
    failure = classify_missing_image({"error": {"code": 400, "message": "bad request"}}, 1)

    assert failure.reason is FailureReason.SERVER_ERROR
    assert "bad request" in str(failure)


def test_empty_response_is_unknown() -> None:
    assert classify_missing_image({}, 1).reason is FailureReason.UNKNOWN
