from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .config import StudioConfig
from .errors import ResponseFormatError
from .logging_utils import RunLogger
from .transport import Transport


@dataclass
class GeminiClient:
    """Posts ``generateContent`` bodies to the image and text endpoints."""

    api_key: str
    transport: Transport
    image_url: str
    text_url: str

    @classmethod
    def from_config(cls, config: StudioConfig, *, logger: Optional[RunLogger] = None) -> "GeminiClient":
        return cls(
            api_key=config.api_key(),
            transport=Transport.from_config(config.transport, logger=logger, seed=config.generation.seed),
            image_url=config.api.image_url,
            text_url=config.api.text_url,
        )

    def generate_image(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return self._post(self.image_url, payload)

    def generate_text(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return self._post(self.text_url, payload)

    def _post(self, url: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        response = self.transport.send(url, payload, params={"key": self.api_key})
        try:
            data = response.json()
        except ValueError as exc:
            raise ResponseFormatError("Invalid JSON payload from the generation API") from exc
        if not isinstance(data, dict):
            raise ResponseFormatError("Unexpected response format from the generation API")
        return data


def first_candidate(result: Mapping[str, Any]) -> Mapping[str, Any]:
    candidates = result.get("candidates")
    if isinstance(candidates, list) and candidates and isinstance(candidates[0], Mapping):
        return candidates[0]
    return {}


def candidate_parts(candidate: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    content = candidate.get("content")
    if not isinstance(content, Mapping):
        return []
    parts = content.get("parts")
    if not isinstance(parts, list):
        return []
    return [part for part in parts if isinstance(part, Mapping)]


def extract_text(result: Mapping[str, Any]) -> Optional[str]:
    """Return the first text part of the first candidate, if any."""

    for part in candidate_parts(first_candidate(result)):
        text = part.get("text")
        if isinstance(text, str) and text.strip():
            return text
    return None


__all__ = ["GeminiClient", "candidate_parts", "extract_text", "first_candidate"]
