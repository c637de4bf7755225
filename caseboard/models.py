"""
Data model
==========

Source rows and merged country records are immutable (`frozen=True`):
- a fetch cycle builds a fresh set of records and never edits them afterwards,
- derived values (percentages) are applied by creating new records.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ParsedNumber:
    """Outcome of an explicit numeric parse: a finite value, or a failure carrying NaN."""
    value: float
    ok: bool = True

    @classmethod
    def failed(cls) -> "ParsedNumber":
        return cls(value=math.nan, ok=False)


def parse_number(raw: object) -> ParsedNumber:
    """Parse a number or a numeric string ("12", " 3.5 ")."""
    if raw is None or isinstance(raw, bool):
        return ParsedNumber.failed()
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return ParsedNumber.failed()
    try:
        out = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return ParsedNumber.failed()
    if not math.isfinite(out):
        return ParsedNumber.failed()
    return ParsedNumber(value=out)


@dataclass(frozen=True)
class RawLocationRow:
    """One province/state row of a single category response."""
    country_region: str
    province_state: Optional[str]
    lat: ParsedNumber
    long: ParsedNumber
    total_cases: ParsedNumber


@dataclass(frozen=True)
class CountryStat:
    """Merged per-country record across confirmed, death and recovered."""
    country_region: str
    lat: float
    long: float
    total_confirmed: int = 0
    total_death: int = 0
    total_recovered: int = 0
    total_active: int = 0
    percentage_active: Optional[float] = None
    # False once any contributing confirmed row had an unparseable coordinate
    geometry_ok: bool = True

    def has_geometry(self) -> bool:
        return self.geometry_ok and math.isfinite(self.lat) and math.isfinite(self.long)


@dataclass(frozen=True)
class ColorDomain:
    min: float
    max: float


@dataclass(frozen=True)
class CountrySnapshot:
    """Published result of one successful fetch cycle."""
    version: int
    fetched_at: datetime
    stats: Tuple[CountryStat, ...]
    total_active_global: int = 0
    coercion_failures: int = 0
    source_rows: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Success-with-value or failure-with-message."""
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "Result[T]":
        return cls(error=error or "unknown error")
