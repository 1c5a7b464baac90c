"""Scripted stand-ins for the remote API used across the test-suite."""

from __future__ import annotations

import base64
import io
import json
from typing import Any, Dict, List

from PIL import Image


def png(color: tuple[int, int, int] = (200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), color).save(buf, format="PNG")
    return buf.getvalue()


def image_body(color: tuple[int, int, int] = (10, 120, 200), mime_type: str = "image/png") -> Dict[str, Any]:
    data = base64.b64encode(png(color)).decode("ascii")
    return {
        "candidates": [
            {
                "content": {"parts": [{"inlineData": {"mimeType": mime_type, "data": data}}]},
                "finishReason": "STOP",
            }
        ]
    }


def finish_body(reason: str) -> Dict[str, Any]:
    return {"candidates": [{"content": {"parts": []}, "finishReason": reason}]}


def text_body(text: str) -> Dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}]}


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        self._body = body if body is not None else {}
        self.text = text if text is not None else json.dumps(self._body)

    def json(self) -> Any:
        if isinstance(self._body, (dict, list)):
            return self._body
        return json.loads(self.text)


class FakeBackend:
    """Replays scripted responses; exceptions in the script are raised."""

    def __init__(self, image_script: List[Any] | None = None, text_script: List[Any] | None = None) -> None:
        self.image_script = list(image_script or [])
        self.text_script = list(text_script or [])
        self.image_payloads: List[Dict[str, Any]] = []
        self.text_payloads: List[Dict[str, Any]] = []

    @staticmethod
    def _next(script: List[Any]) -> Dict[str, Any]:
        if not script:
            raise AssertionError("backend called more often than scripted")
        item = script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def generate_image(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.image_payloads.append(payload)
        return self._next(self.image_script)

    def generate_text(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.text_payloads.append(payload)
        return self._next(self.text_script)
