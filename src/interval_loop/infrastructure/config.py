"""Default interval settings from the environment and .env."""

from __future__ import annotations

import os
from pathlib import Path


def read_env_file(keys: list[str]) -> dict[str, str]:
    """Parse .env file and return values for requested keys.

    Does NOT load into os.environ — callers decide what to do with values.
    """
    env_file = Path.cwd() / ".env"
    try:
        content = env_file.read_text()
    except OSError:
        return {}

    result: dict[str, str] = {}
    wanted = set(keys)

    for line in content.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        eq_idx = trimmed.find("=")
        if eq_idx == -1:
            continue
        key = trimmed[:eq_idx].strip()
        if key not in wanted:
            continue
        value = trimmed[eq_idx + 1 :].strip()
        if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
            value = value[1:-1]
        if value:
            result[key] = value

    return result


def parse_seconds(name: str, raw: str | None) -> float | None:
    """Parse a non-negative duration in seconds. Empty means unset."""
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"Invalid {name}: {raw!r} is not a number of seconds") from None
    if value < 0:
        raise ValueError(f"Invalid {name}: {raw!r} must not be negative")
    return value


def parse_max_loop_times(name: str, raw: str | None) -> int | None:
    """Parse a loop limit. Empty or 0 means no limit."""
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Invalid {name}: {raw!r} is not an integer") from None
    if value < 0:
        raise ValueError(f"Invalid {name}: {raw!r} must not be negative")
    return value or None


def parse_flag(raw: str | None, default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in ("false", "0", "no", "off")


_ENV_KEYS = [
    "INTERVAL_DEBOUNCE_INTERVAL",
    "INTERVAL_RETRY",
    "INTERVAL_RETRY_DEFER",
    "INTERVAL_MAX_LOOP_TIMES",
]

# Read config values from .env (falls back to os.environ).
_env_config = read_env_file(_ENV_KEYS)


def _get(key: str) -> str | None:
    return os.environ.get(key) or _env_config.get(key)


DEFAULT_DEBOUNCE_INTERVAL: float = parse_seconds("INTERVAL_DEBOUNCE_INTERVAL", _get("INTERVAL_DEBOUNCE_INTERVAL")) or 1.0
DEFAULT_RETRY: bool = parse_flag(_get("INTERVAL_RETRY"), True)
DEFAULT_RETRY_DEFER: float | None = parse_seconds("INTERVAL_RETRY_DEFER", _get("INTERVAL_RETRY_DEFER"))
DEFAULT_MAX_LOOP_TIMES: int | None = parse_max_loop_times("INTERVAL_MAX_LOOP_TIMES", _get("INTERVAL_MAX_LOOP_TIMES"))
