"""Image encoding helpers for the ``inlineData`` and data-URL boundaries."""

from __future__ import annotations

import base64
import binascii
import io
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple, Union

from PIL import Image, UnidentifiedImageError

from .errors import ValidationError

DEFAULT_MIME_TYPE = "image/png"

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;,]*)(?:;[^;,]*)*?;base64,(?P<data>.*)$", re.S)
_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/bmp": ".bmp",
    "image/tiff": ".tiff",
}

ImageSource = Union[str, Path, bytes, bytearray, "EncodedImage"]


@dataclass(frozen=True)
class EncodedImage:
    """Raw image bytes together with their base64 transfer form."""

    raw: bytes = field(repr=False)
    mime_type: str
    data: str = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.raw)

    def as_data_url(self) -> str:
        return build_data_url(self.data, self.mime_type)

    def inline_part(self) -> Dict[str, Dict[str, str]]:
        return {"inlineData": {"mimeType": self.mime_type, "data": self.data}}


def sniff_mime_type(raw: bytes) -> str:
    """Identify image bytes with Pillow, rejecting anything it cannot open."""

    try:
        with Image.open(io.BytesIO(raw)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError) as exc:
        raise ValidationError("The reference file is not a readable image") from exc
    mime = Image.MIME.get(fmt or "")
    return mime or DEFAULT_MIME_TYPE


def encode_bytes(raw: bytes, mime_type: str | None = None) -> EncodedImage:
    if not raw:
        raise ValidationError("The reference image is empty")
    raw = bytes(raw)
    sniffed = sniff_mime_type(raw)
    mime = mime_type or sniffed
    data = base64.b64encode(raw).decode("ascii")
    return EncodedImage(raw=raw, mime_type=mime, data=data)


def encode_image(source: ImageSource, mime_type: str | None = None) -> EncodedImage:
    """Encode a path, raw bytes or data URL into an :class:`EncodedImage`."""

    if isinstance(source, EncodedImage):
        return source
    if isinstance(source, (bytes, bytearray)):
        return encode_bytes(bytes(source), mime_type)
    if isinstance(source, str) and source.startswith("data:"):
        mime, raw = parse_data_url(source)
        return encode_bytes(raw, mime_type or mime)
    path = Path(source)
    if not path.is_file():
        raise ValidationError(f"Reference image not found: {path}")
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ValidationError(f"Could not read reference image {path}: {exc}") from exc
    return encode_bytes(raw, mime_type)


def build_data_url(data: str, mime_type: str = DEFAULT_MIME_TYPE) -> str:
    return f"data:{mime_type};base64,{data}"


def parse_data_url(url: str) -> Tuple[str, bytes]:
    match = _DATA_URL_RE.match(url.strip())
    if not match:
        raise ValidationError("Not a base64 data URL")
    mime = match.group("mime") or DEFAULT_MIME_TYPE
    return mime, decode_base64(match.group("data"))


def decode_base64(data: str) -> bytes:
    try:
        return base64.b64decode(data, validate=True)
    except (ValueError, binascii.Error) as exc:
        raise ValidationError("Invalid base64 image data") from exc


def extension_for(mime_type: str) -> str:
    return _EXTENSIONS.get(mime_type.lower(), ".png")


__all__ = [
    "DEFAULT_MIME_TYPE",
    "EncodedImage",
    "ImageSource",
    "build_data_url",
    "decode_base64",
    "encode_bytes",
    "encode_image",
    "extension_for",
    "parse_data_url",
    "sniff_mime_type",
]
