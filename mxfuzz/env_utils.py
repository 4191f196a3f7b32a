"""Helpers for reading run settings from .env files and environment variables."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable, Optional

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def load_env_file(path: str | None, override: bool = False) -> bool:
    """Load KEY=value pairs from a .env-style file into ``os.environ``.

    Supported line formats:
      - KEY=value
      - export KEY=value
      - optional single/double quotes around values
    """

    if not path:
        return False

    env_path = Path(path)
    if not env_path.is_file():
        return False

    loaded_any = False
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()

        key, sep, value = line.partition("=")
        key = key.strip()
        value = value.strip()
        if not sep or not key:
            continue
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]

        if override or key not in os.environ:
            os.environ[key] = value
        loaded_any = True

    return loaded_any


def first_env(keys: Iterable[str]) -> Optional[str]:
    """Return first non-empty env value from candidate keys."""

    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return None


def env_float(keys: Iterable[str], default: float, minimum: float = 0.0) -> float:
    """Parse first non-empty env value as float; fall back when unparsable or below ``minimum``."""

    raw = first_env(keys)
    if raw is None:
        return float(default)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return float(default)
    return value if value >= minimum else float(default)


def parse_bool(value: Any, default: bool) -> bool:
    """Interpret a bool, number, or yes/no style string; unknown values give ``default``."""

    if value is None:
        return bool(default)
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return bool(default)


def env_bool(keys: Iterable[str], default: bool) -> bool:
    """Parse first non-empty env value as a boolean flag."""

    return parse_bool(first_env(keys), default)
