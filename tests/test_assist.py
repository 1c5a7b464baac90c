from __future__ import annotations

import json
from pathlib import Path

import pytest

from fakes import FakeBackend, text_body
from portrait_studio.assist import (
    CaptionSet,
    StudioAssistant,
    clean_prompt_text,
    parse_numbered_list,
    strip_code_fences,
)
from portrait_studio.errors import ResponseFormatError, ValidationError
from portrait_studio.prompts import CAPTION_SCHEMA, ENHANCE_SYSTEM_PROMPT

CAPTIONS = {
    "Inspiring": "Rise with the dawn.",
    "Funny": "Armor polished, coffee pending.",
    "Mysterious": "Who waits behind the visor?",
    "Hashtags": "#knight #dawn #portrait",
}


def test_enhance_prompt_strips_quotes_and_sends_system_prompt() -> None:
    backend = FakeBackend(text_script=[text_body('"A knight in golden armor at sunrise"\n')])
    assistant = StudioAssistant(backend)

    enhanced = assistant.enhance_prompt("  knight  ")

    assert enhanced == "A knight in golden armor at sunrise"
    payload = backend.text_payloads[0]
    assert '"knight"' in payload["contents"][0]["parts"][0]["text"]
    assert payload["systemInstruction"]["parts"][0]["text"] == ENHANCE_SYSTEM_PROMPT
    assert any("enhance ok" in line for line in assistant.logger.lines)


@pytest.mark.parametrize("prompt", [None, "", "   "])
def test_enhance_prompt_requires_text(prompt) -> None:
    backend = FakeBackend()

    with pytest.raises(ValidationError):
        StudioAssistant(backend).enhance_prompt(prompt)
    assert backend.text_payloads == []


def test_response_without_text_is_a_format_error() -> None:
    backend = FakeBackend(text_script=[{"candidates": []}])

    with pytest.raises(ResponseFormatError):
        StudioAssistant(backend).enhance_prompt("knight")


def test_captions_request_json_schema_and_parse_fenced_reply(reference_path: Path) -> None:
    reply = "```json\n" + json.dumps(CAPTIONS) + "\n```"
    backend = FakeBackend(text_script=[text_body(reply)])

    captions = StudioAssistant(backend).generate_captions(reference_path, "knight at dawn")

    assert captions == CaptionSet.from_mapping(CAPTIONS)
    assert captions.as_dict() == CAPTIONS
    payload = backend.text_payloads[0]
    assert payload["generationConfig"]["responseMimeType"] == "application/json"
    assert payload["generationConfig"]["responseSchema"] == CAPTION_SCHEMA
    parts = payload["contents"][0]["parts"]
    assert "knight at dawn" in parts[0]["text"]
    assert parts[1]["inlineData"]["mimeType"] == "image/png"


def test_captions_reject_invalid_json(reference_path: Path) -> None:
    backend = FakeBackend(text_script=[text_body("Inspiring: be brave")])

    with pytest.raises(ResponseFormatError):
        StudioAssistant(backend).generate_captions(reference_path, "knight")


def test_captions_require_reference() -> None:
    with pytest.raises(ValidationError):
        StudioAssistant(FakeBackend()).generate_captions(None, "knight")


def test_background_suggestions_are_parsed_from_numbered_list(reference_path: Path) -> None:
    reply = "1. Ancient temple ruins at dusk\n2) Neon-lit Tokyo alley\n\n3. Quiet Nordic beach"
    backend = FakeBackend(text_script=[text_body(reply)])

    suggestions = StudioAssistant(backend).suggest_backgrounds(reference_path)

    assert suggestions == [
        "Ancient temple ruins at dusk",
        "Neon-lit Tokyo alley",
        "Quiet Nordic beach",
    ]


def test_background_suggestions_require_reference() -> None:
    with pytest.raises(ValidationError):
        StudioAssistant(FakeBackend()).suggest_backgrounds(None)


def test_text_helpers() -> None:
    assert clean_prompt_text("'quoted'") == "quoted"
    assert strip_code_fences("```\n{}\n```") == "{}"
    assert parse_numbered_list("  \n") == []
