"""Runtime settings for the resource CLI."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

CONFIG_FILENAME = "rimg.yml"
ENV_PREFIX = "RIMG_"
DEFAULT_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _ensure_mapping(data: Any) -> Mapping[str, Any]:
    if data is None:
        return {}
    if isinstance(data, Mapping):
        return data
    raise ValueError("expected mapping for resource configuration")


def _resolve_env_value(value: Any, env: Mapping[str, str]) -> Any:
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        env_name = value[2:-1].strip()
        if env_name:
            return env.get(env_name, "")
    return value


def _parse_log_level(value: Any) -> str:
    normalized = str(value).strip().upper() if value is not None else ""
    if not normalized:
        return "WARNING"
    if normalized in _LEVELS:
        return normalized
    raise ValueError(f"log_level must be one of: {', '.join(sorted(_LEVELS))}")


@dataclass(frozen=True)
class ResourceSettings:
    log_level: str = "WARNING"
    log_format: str = DEFAULT_LOG_FORMAT

    @property
    def level(self) -> int:
        return logging.getLevelName(self.log_level)


def load_settings(
    path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ResourceSettings:
    """Read settings from ``rimg.yml`` and ``RIMG_*`` environment overrides."""
    env = os.environ if env is None else env
    data: dict[str, Any] = {}
    if path is not None:
        data.update(_ensure_mapping(yaml.safe_load(path.read_text(encoding="utf-8"))))

    for key in ("log_level", "log_format"):
        override = env.get(f"{ENV_PREFIX}{key.upper()}")
        if override:
            data[key] = override

    log_format = _resolve_env_value(data.get("log_format"), env)
    return ResourceSettings(
        log_level=_parse_log_level(_resolve_env_value(data.get("log_level"), env)),
        log_format=str(log_format) if log_format else DEFAULT_LOG_FORMAT,
    )
