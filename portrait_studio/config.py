from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_CONFIG_PATH = Path("conf/studio.toml")
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_IMAGE_URL = f"{GEMINI_BASE_URL}/gemini-2.5-flash-image-preview:generateContent"
DEFAULT_TEXT_URL = f"{GEMINI_BASE_URL}/gemini-2.5-flash-preview-09-2025:generateContent"

MIN_VARIATIONS = 1
MAX_VARIATIONS = 3

_LOG_LEVELS = {"DEBUG", "INFO", "WARN", "WARNING", "ERROR"}


@dataclass(slots=True)
class ApiConfig:
    image_url: str = DEFAULT_IMAGE_URL
    text_url: str = DEFAULT_TEXT_URL
    api_key_env: str = "GEMINI_API_KEY"


@dataclass(slots=True)
class TransportConfig:
    timeout_s: float = 60.0
    max_retries: int = 3
    backoff_base_s: float = 1.0
    jitter_s: float = 1.0


@dataclass(slots=True)
class GenerationConfig:
    variations: int = 3
    inter_request_delay_s: float = 2.0
    refill_failures: bool = False
    seed: Optional[int] = None


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    to_file: bool = True


@dataclass(slots=True)
class OutputConfig:
    out_dir: Path = Path("out")
    session_prefix: str = "studio"


@dataclass(slots=True)
class StudioConfig:
    path: Optional[Path] = None
    api: ApiConfig = field(default_factory=ApiConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def validate(self) -> None:
        if not MIN_VARIATIONS <= self.generation.variations <= MAX_VARIATIONS:
            raise ConfigError(
                f"generation.variations must be between {MIN_VARIATIONS} and {MAX_VARIATIONS}, "
                f"got {self.generation.variations}"
            )
        if self.transport.max_retries < 1:
            raise ConfigError("transport.max_retries must be at least 1")
        if self.transport.timeout_s <= 0:
            raise ConfigError("transport.timeout_s must be positive")
        if self.transport.backoff_base_s < 0 or self.transport.jitter_s < 0:
            raise ConfigError("transport.backoff_base_s and transport.jitter_s cannot be negative")
        if self.generation.inter_request_delay_s < 0:
            raise ConfigError("generation.inter_request_delay_s cannot be negative")
        if str(self.logging.level).upper() not in _LOG_LEVELS:
            raise ConfigError(f"logging.level must be one of {', '.join(sorted(_LOG_LEVELS))}")

    def resolve_paths(self) -> None:
        out_path = Path(self.output.out_dir)
        if self.path is not None and not out_path.is_absolute():
            project_root = self.path.parent.parent if self.path.parent.name == "conf" else self.path.parent
            out_path = (project_root / out_path).resolve()
        self.output.out_dir = out_path

    def apply_overrides(
        self,
        variations: Optional[int] = None,
        refill_failures: Optional[bool] = None,
        out_dir: Optional[Path] = None,
        log_level: Optional[str] = None,
        seed: Optional[int] = None,
    ) -> None:
        if variations is not None:
            self.generation.variations = int(variations)
        if refill_failures is not None:
            self.generation.refill_failures = bool(refill_failures)
        if out_dir is not None:
            self.output.out_dir = out_dir.resolve()
        if log_level is not None:
            self.logging.level = log_level
        if seed is not None:
            self.generation.seed = int(seed)
        self.validate()

    def api_key(self) -> str:
        load_dotenv()
        value = os.getenv(self.api.api_key_env, "").strip()
        if not value:
            raise ConfigError(f"Environment variable {self.api.api_key_env} is required")
        return value


def _section(raw: Mapping[str, Any], key: str, cls: type) -> Any:
    data = raw.get(key, {})
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"Section [{key}] must be a mapping")
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ConfigError(f"Unknown keys in [{key}]: {', '.join(unknown)}")
    try:
        return cls(**dict(data))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid values in [{key}]: {exc}") from exc


def _load_config_dict(path: Path) -> Dict[str, Any]:
    suffix = path.suffix.lower()
    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        else:
            with path.open("rb") as fh:
                data = tomllib.load(fh)
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a mapping at the top level")
    return data


def config_from_dict(raw: Mapping[str, Any], path: Optional[Path] = None) -> StudioConfig:
    output = _section(raw, "output", OutputConfig)
    output.out_dir = Path(output.out_dir)
    cfg = StudioConfig(
        path=path,
        api=_section(raw, "api", ApiConfig),
        transport=_section(raw, "transport", TransportConfig),
        generation=_section(raw, "generation", GenerationConfig),
        logging=_section(raw, "logging", LoggingConfig),
        output=output,
    )
    cfg.resolve_paths()
    cfg.validate()
    return cfg


def load_config(path: Optional[Path] = None) -> StudioConfig:
    """Load the studio configuration; a missing default file yields the defaults."""

    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return config_from_dict({})
        path = DEFAULT_CONFIG_PATH
    elif not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    return config_from_dict(_load_config_dict(path), path=path.resolve())


__all__ = [
    "ApiConfig",
    "DEFAULT_CONFIG_PATH",
    "GenerationConfig",
    "LoggingConfig",
    "MAX_VARIATIONS",
    "MIN_VARIATIONS",
    "OutputConfig",
    "StudioConfig",
    "TransportConfig",
    "config_from_dict",
    "load_config",
]
