from __future__ import annotations

import base64
import io
from pathlib import Path

import pytest
from PIL import Image

from portrait_studio.encoding import (
    build_data_url,
    decode_base64,
    encode_bytes,
    encode_image,
    extension_for,
    parse_data_url,
)
from portrait_studio.errors import ValidationError


def _jpeg() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), (0, 255, 0)).save(buf, format="JPEG")
    return buf.getvalue()


def test_encoding_is_deterministic(reference_path: Path) -> None:
    first = encode_image(reference_path)
    second = encode_image(reference_path)

    assert first.data == second.data
    assert first.raw == reference_path.read_bytes()
    assert base64.b64decode(first.data) == first.raw


def test_mime_type_is_sniffed_from_content(tmp_path: Path) -> None:
    path = tmp_path / "photo.png"
    path.write_bytes(_jpeg())

    encoded = encode_image(path)

    assert encoded.mime_type == "image/jpeg"
    assert encoded.inline_part()["inlineData"]["mimeType"] == "image/jpeg"


def test_explicit_mime_type_wins(png_bytes: bytes) -> None:
    assert encode_bytes(png_bytes, "image/webp").mime_type == "image/webp"


def test_data_url_input_decodes_to_same_bytes(png_bytes: bytes) -> None:
    url = build_data_url(base64.b64encode(png_bytes).decode("ascii"))

    encoded = encode_image(url)

    assert encoded.raw == png_bytes
    assert encoded.as_data_url() == url


def test_encoded_image_passes_through(png_bytes: bytes) -> None:
    encoded = encode_bytes(png_bytes)

    assert encode_image(encoded) is encoded


def test_parse_data_url_ignores_extra_parameters(png_bytes: bytes) -> None:
    data = base64.b64encode(png_bytes).decode("ascii")

    mime, raw = parse_data_url(f"data:image/png;name=ref.png;base64,{data}")

    assert mime == "image/png"
    assert raw == png_bytes


@pytest.mark.parametrize("url", ["data:image/png,plain", "https://example.test/a.png"])
def test_non_base64_urls_are_rejected(url: str) -> None:
    with pytest.raises(ValidationError):
        parse_data_url(url)


def test_invalid_base64_is_rejected() -> None:
    with pytest.raises(ValidationError):
        decode_base64("not*base64")


def test_empty_and_unreadable_bytes_are_rejected() -> None:
    with pytest.raises(ValidationError):
        encode_bytes(b"")
    with pytest.raises(ValidationError):
        encode_bytes(b"plain text, not pixels")


def test_missing_file_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        encode_image(tmp_path / "nope.png")


def test_extension_for_known_and_unknown_types() -> None:
    assert extension_for("image/jpeg") == ".jpg"
    assert extension_for("IMAGE/WEBP") == ".webp"
    assert extension_for("application/octet-stream") == ".png"


def test_data_url_with_non_image_payload_is_rejected() -> None:
    url = build_data_url(base64.b64encode(b"just some text").decode("ascii"), "image/png")

    with pytest.raises(ValidationError):
        encode_image(url)


def test_declared_mime_type_still_requires_image_bytes() -> None:
    with pytest.raises(ValidationError):
        encode_bytes(b"plain text, not pixels", "image/jpeg")
