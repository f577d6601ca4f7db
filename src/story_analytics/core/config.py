"""Analytics configuration management helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml


def _str_to_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer value: {value}") from exc


@dataclass(frozen=True)
class AnalyticsConfig:
    """Immutable configuration object loaded from env or files."""

    default_days: int = 30
    default_activity_limit: int = 5
    story_window_days: int = 7
    cost_precision: int = 4
    currency_precision: int = 2
    log_level: str = "INFO"

    _INT_FIELDS = (
        "default_days",
        "default_activity_limit",
        "story_window_days",
        "cost_precision",
        "currency_precision",
    )

    def __post_init__(self) -> None:
        self.validate()

    @classmethod
    def from_env(cls) -> "AnalyticsConfig":
        defaults = cls()
        values: Dict[str, Any] = {
            name: _str_to_int(
                os.getenv(f"ANALYTICS_{name.upper()}"), getattr(defaults, name)
            )
            for name in cls._INT_FIELDS
        }
        values["log_level"] = os.getenv("ANALYTICS_LOG_LEVEL", defaults.log_level)
        return cls(**values)

    @classmethod
    def from_file(cls, path: str) -> "AnalyticsConfig":
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        raw = file_path.read_text()
        data: Dict[str, Any]
        suffix = file_path.suffix.lower()
        if suffix == ".json":
            data = json.loads(raw)
        elif suffix in {".yaml", ".yml"}:
            data = cls._load_yaml(raw)
        else:
            raise ValueError("Unsupported config format. Use JSON or YAML.")
        return cls(**cls._merge_with_defaults(data))

    def validate(self) -> None:
        for name in self._INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer")
            if value < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.story_window_days == 0:
            raise ValueError("story_window_days must be greater than zero")
        if logging.getLevelName(self.log_level.upper()) not in (
            logging.DEBUG,
            logging.INFO,
            logging.WARNING,
            logging.ERROR,
            logging.CRITICAL,
        ):
            raise ValueError(f"Unknown log_level '{self.log_level}'")

    @classmethod
    def _merge_with_defaults(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        defaults = cls()
        unknown = set(data) - {*cls._INT_FIELDS, "log_level"}
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        merged = {name: data.get(name, getattr(defaults, name)) for name in cls._INT_FIELDS}
        merged["log_level"] = data.get("log_level", defaults.log_level)
        return merged

    @staticmethod
    def _load_yaml(raw: str) -> Dict[str, Any]:
        return yaml.safe_load(raw) or {}
