"""Shared runtime helpers for Python sidecar services."""

from __future__ import annotations

import json
import os
from typing import Any, Optional

import httpx

DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_REQUEST_TIMEOUT = 30.0


def env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read a string env var, treating blank values as unset."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def env_float(name: str, default: str) -> float:
    """Parse a float env var using a string default value."""
    return float(os.getenv(name, default))


def env_json(name: str, default: Any) -> Any:
    """Parse a JSON env var, returning ``default`` when unset or blank.

    Raises ``ValueError`` for malformed JSON so callers can report which
    variable is broken.
    """
    raw = env_str(name)
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{name} is not valid JSON: {exc.msg}") from exc


def upstream_timeout(total: float = DEFAULT_REQUEST_TIMEOUT) -> httpx.Timeout:
    """Return the timeout used for upstream API requests."""
    return httpx.Timeout(total, connect=min(DEFAULT_CONNECT_TIMEOUT, total))
