"""Configuration loading for authmem (.authmem.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from . import __version__

CONFIG_FILENAME = ".authmem.yml"

ENV_TOKEN_KEYS = ("AUTHMEM_GITHUB_TOKEN", "GITHUB_TOKEN")

OUTPUT_FORMATS = ("typescript", "json")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class AcquisitionConfig:
    """Repository acquisition settings."""

    clone_timeout: float = 60.0
    max_clone_output: int = 10 * 1024 * 1024
    request_timeout: float = 30.0
    user_agent: str = f"authmem/{__version__}"
    github_token: Optional[str] = None
    git_executable: str = "git"


@dataclass
class ExtractionConfig:
    """Corpus enumeration and extractor limits."""

    exclude_paths: List[str] = field(default_factory=list)
    component_guard_limit: int = 20
    page_route_limit: int = 10
    max_file_bytes: int = 1024 * 1024


@dataclass
class OutputConfig:
    """Artifact rendering settings."""

    format: str = "typescript"


@dataclass
class AuthMemConfig:
    """Represents the high-level settings defined in .authmem.yml."""

    root: Path
    acquisition: AcquisitionConfig = field(default_factory=AcquisitionConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def load_config(
    config_path: Path | None = None, *, environ: Mapping[str, str] | None = None
) -> AuthMemConfig:
    """Load configuration from disk, applying environment overrides."""
    env = os.environ if environ is None else environ
    config_file = _resolve_config_path(config_path or Path.cwd())
    root = config_file.parent.resolve()

    if config_file.exists():
        data = _read_config(config_file)
    else:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    acquisition = AcquisitionConfig()
    acquisition_data = _as_dict(data.get("acquisition"))
    if acquisition_data:
        acquisition.clone_timeout = _as_float(
            acquisition_data.get("clone_timeout"), acquisition.clone_timeout
        )
        acquisition.max_clone_output = _as_int(
            acquisition_data.get("max_clone_output"), acquisition.max_clone_output
        )
        acquisition.request_timeout = _as_float(
            acquisition_data.get("request_timeout"), acquisition.request_timeout
        )
        acquisition.user_agent = (
            _as_str(acquisition_data.get("user_agent")) or acquisition.user_agent
        )
        acquisition.github_token = _as_str(acquisition_data.get("github_token"))
        acquisition.git_executable = (
            _as_str(acquisition_data.get("git_executable")) or acquisition.git_executable
        )
    for key in ENV_TOKEN_KEYS:
        token = env.get(key)
        if token:
            acquisition.github_token = token
            break

    extraction = ExtractionConfig()
    extraction_data = _as_dict(data.get("extraction"))
    if extraction_data:
        extraction.exclude_paths = _as_str_list(extraction_data.get("exclude_paths"))
        extraction.component_guard_limit = _as_int(
            extraction_data.get("component_guard_limit"), extraction.component_guard_limit
        )
        extraction.page_route_limit = _as_int(
            extraction_data.get("page_route_limit"), extraction.page_route_limit
        )
        extraction.max_file_bytes = _as_int(
            extraction_data.get("max_file_bytes"), extraction.max_file_bytes
        )

    output = OutputConfig()
    output_data = _as_dict(data.get("output"))
    fmt = _as_str(output_data.get("format")) if output_data else None
    if fmt:
        fmt = fmt.lower()
        if fmt not in OUTPUT_FORMATS:
            raise ConfigError(
                f"Unsupported output format '{fmt}'; expected one of {', '.join(OUTPUT_FORMATS)}"
            )
        output.format = fmt

    return AuthMemConfig(
        root=root,
        acquisition=acquisition,
        extraction=extraction,
        output=output,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return default
    return default


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "AcquisitionConfig",
    "AuthMemConfig",
    "ConfigError",
    "ExtractionConfig",
    "OutputConfig",
    "load_config",
]
