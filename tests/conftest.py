from __future__ import annotations

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
TESTS = Path(__file__).resolve().parent
if str(TESTS) not in sys.path:
    sys.path.insert(0, str(TESTS))

from fakes import png


@pytest.fixture()
def png_bytes() -> bytes:
    return png((200, 30, 30))


@pytest.fixture()
def reference_path(tmp_path: Path, png_bytes: bytes) -> Path:
    path = tmp_path / "reference.png"
    path.write_bytes(png_bytes)
    return path
