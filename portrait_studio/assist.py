"""Single-shot text requests: prompt enhancement, captions and background ideas."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol

from .client import extract_text
from .encoding import ImageSource, encode_image
from .errors import ResponseFormatError, ValidationError
from .logging_utils import RunLogger, silent_logger
from .prompts import (
    BACKGROUND_QUERY,
    BACKGROUND_SYSTEM_PROMPT,
    CAPTION_SCHEMA,
    CAPTION_SYSTEM_PROMPT,
    ENHANCE_SYSTEM_PROMPT,
    caption_query,
    enhance_query,
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|```\s*$")
_QUOTES_RE = re.compile(r"^[\"']|[\"']$")
_NUMBERING_RE = re.compile(r"^\s*\d+[.)]\s*")


class TextBackend(Protocol):
    def generate_text(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Submit one text-generation body and return the decoded JSON."""


@dataclass(frozen=True)
class CaptionSet:
    inspiring: str
    funny: str
    mysterious: str
    hashtags: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CaptionSet":
        return cls(
            inspiring=str(data.get("Inspiring", "")).strip(),
            funny=str(data.get("Funny", "")).strip(),
            mysterious=str(data.get("Mysterious", "")).strip(),
            hashtags=str(data.get("Hashtags", "")).strip(),
        )

    def as_dict(self) -> Dict[str, str]:
        return {
            "Inspiring": self.inspiring,
            "Funny": self.funny,
            "Mysterious": self.mysterious,
            "Hashtags": self.hashtags,
        }


def clean_prompt_text(text: str) -> str:
    return _QUOTES_RE.sub("", text.strip()).strip()


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text.strip()).strip()


def parse_numbered_list(text: str) -> List[str]:
    items: List[str] = []
    for line in text.splitlines():
        cleaned = _NUMBERING_RE.sub("", line).strip()
        if cleaned:
            items.append(cleaned)
    return items


def _system(text: str) -> Dict[str, Any]:
    return {"parts": [{"text": text}]}


@dataclass
class StudioAssistant:
    backend: TextBackend
    logger: RunLogger = field(default_factory=silent_logger)

    def _ask(self, step: str, payload: Dict[str, Any]) -> str:
        result = self.logger.timed(
            "ASSIST",
            lambda res: f"{step} ok",
            self.backend.generate_text,
            payload,
        )
        text = extract_text(result)
        if text is None:
            raise ResponseFormatError(f"The model returned no text for {step}")
        return text

    def enhance_prompt(self, prompt: Optional[str]) -> str:
        """Expand a short prompt into one detailed paragraph."""

        prompt = (prompt or "").strip()
        if not prompt:
            raise ValidationError("Please enter an initial prompt to enhance.")
        payload = {
            "contents": [{"parts": [{"text": enhance_query(prompt)}]}],
            "systemInstruction": _system(ENHANCE_SYSTEM_PROMPT),
        }
        enhanced = clean_prompt_text(self._ask("enhance", payload))
        if not enhanced:
            raise ResponseFormatError("The model returned an empty prompt")
        return enhanced

    def generate_captions(self, reference: Optional[ImageSource], prompt: str) -> CaptionSet:
        if reference is None:
            raise ValidationError("Please load a reference image before generating captions.")
        encoded = encode_image(reference)
        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": caption_query(prompt)}, encoded.inline_part()],
                }
            ],
            "systemInstruction": _system(CAPTION_SYSTEM_PROMPT),
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": CAPTION_SCHEMA,
            },
        }
        raw = strip_code_fences(self._ask("captions", payload))
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise ResponseFormatError("Caption response was not valid JSON") from exc
        if not isinstance(data, dict):
            raise ResponseFormatError("Caption response was not a JSON object")
        return CaptionSet.from_mapping(data)

    def suggest_backgrounds(self, reference: Optional[ImageSource]) -> List[str]:
        if reference is None:
            raise ValidationError("Please load a reference image first so it can be analysed.")
        encoded = encode_image(reference)
        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": BACKGROUND_QUERY}, encoded.inline_part()],
                }
            ],
            "systemInstruction": _system(BACKGROUND_SYSTEM_PROMPT),
        }
        suggestions = parse_numbered_list(self._ask("backgrounds", payload))
        if not suggestions:
            raise ResponseFormatError("The model returned no background suggestions")
        return suggestions


__all__ = [
    "CaptionSet",
    "StudioAssistant",
    "TextBackend",
    "clean_prompt_text",
    "parse_numbered_list",
    "strip_code_fences",
]
