from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional


DEFAULT_API_BASE = "https://localhost:7268/odata"
DEFAULT_TIMEOUT = 15.0
GEOMETRY_MODES = ("pairwise", "mean")


@dataclass(frozen=True)
class Settings:
    api_base: str = DEFAULT_API_BASE
    timeout_seconds: float = DEFAULT_TIMEOUT
    verify_tls: bool = True
    # "pairwise" keeps the running (prev + new) / 2 coordinate; "mean" is a true average.
    geometry: str = "pairwise"
    max_workers: int = 3


def _as_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        out = float(value)
    except Exception:
        return default
    return out if out > 0 else default


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env

    api_base = (env.get("CASEBOARD_API_BASE") or DEFAULT_API_BASE).strip().rstrip("/")
    geometry = (env.get("CASEBOARD_GEOMETRY") or "pairwise").strip().lower()
    if geometry not in GEOMETRY_MODES:
        geometry = "pairwise"

    return Settings(
        api_base=api_base or DEFAULT_API_BASE,
        timeout_seconds=_as_float(env.get("CASEBOARD_TIMEOUT"), DEFAULT_TIMEOUT),
        verify_tls=_as_bool(env.get("CASEBOARD_VERIFY_TLS"), True),
        geometry=geometry,
    )
