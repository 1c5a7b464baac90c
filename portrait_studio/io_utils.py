from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .encoding import extension_for
from .generation.interfaces import GenerationSession, GenerationSuccess
from .prompts import StudioMode

_FILE_PREFIX = {
    StudioMode.GENERATE: "generated",
    StudioMode.RESTORE: "restored",
}


@dataclass(slots=True)
class SessionPaths:
    session_id: str
    root: Path
    log_file: Path


@dataclass(slots=True)
class ResultArtifact:
    file_id: str
    image_path: Path
    json_path: Path


def generate_session_id(prefix: str) -> str:
    return f"{prefix}-{datetime.now():%Y%m%d-%H%M%S}"


def create_session(out_dir: Path, session_id: Optional[str], prefix: str = "studio") -> SessionPaths:
    sid = session_id or generate_session_id(prefix)
    root = out_dir / sid
    root.mkdir(parents=True, exist_ok=True)
    return SessionPaths(session_id=sid, root=root, log_file=root / "log.txt")


def result_filename(mode: StudioMode, position: int, mime_type: str) -> str:
    return f"{_FILE_PREFIX[StudioMode(mode)]}-{position}{extension_for(mime_type)}"


def save_result(
    session: SessionPaths,
    mode: StudioMode,
    position: int,
    result: GenerationSuccess,
    prompt: str,
) -> ResultArtifact:
    image_path = session.root / result_filename(mode, position, result.mime_type)
    json_path = image_path.with_suffix(".json")

    with image_path.open("wb") as fh:
        fh.write(result.image_bytes)

    payload = {
        "id": image_path.stem,
        "session_id": session.session_id,
        "mode": StudioMode(mode).value,
        "variation": result.variation_index,
        "attempt": result.attempt,
        "mime_type": result.mime_type,
        "prompt": prompt,
    }
    with json_path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, ensure_ascii=False, indent=2)

    return ResultArtifact(image_path.stem, image_path, json_path)


def save_results(
    session: SessionPaths,
    mode: StudioMode,
    results: Iterable[GenerationSuccess],
    prompt: str,
) -> List[ResultArtifact]:
    return [
        save_result(session, mode, position, result, prompt)
        for position, result in enumerate(results, start=1)
    ]


def write_json(path: Path, payload: Mapping[str, Any] | List[Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, ensure_ascii=False, indent=2)
    return path


def write_session_summary(
    session: SessionPaths,
    generation: GenerationSession,
    extra: Optional[Dict[str, Any]] = None,
) -> Path:
    payload: Dict[str, Any] = {"session_id": session.session_id}
    payload.update(generation.summary())
    if extra:
        payload.update(extra)
    return write_json(session.root / "session.json", payload)


__all__ = [
    "ResultArtifact",
    "SessionPaths",
    "create_session",
    "generate_session_id",
    "result_filename",
    "save_result",
    "save_results",
    "write_json",
    "write_session_summary",
]
