from __future__ import annotations

from dataclasses import dataclass


SORT_COLUMNS = (
    "country_region",
    "total_confirmed",
    "total_death",
    "total_recovered",
    "total_active",
    "percentage_active",
)


@dataclass(frozen=True)
class TableFilters:
    country_query: str = ""
    sort_by: str = "total_confirmed"
    ascending: bool = False
    page: int = 1
    page_size: int = 25


def _as_int(value: object, default: int, lo: int, hi: int) -> int:
    try:
        out = int(value)  # type: ignore[arg-type]
    except Exception:
        out = default
    return max(lo, min(hi, out))


def normalize_filters(raw: dict) -> TableFilters:
    raw = raw or {}
    country_query = (raw.get("country_query") or "").strip()

    sort_by = str(raw.get("sort_by") or "total_confirmed").strip()
    if sort_by not in SORT_COLUMNS:
        sort_by = "total_confirmed"

    return TableFilters(
        country_query=country_query,
        sort_by=sort_by,
        ascending=bool(raw.get("ascending", False)),
        page=_as_int(raw.get("page", 1), 1, 1, 100000),
        page_size=_as_int(raw.get("page_size", 25), 25, 1, 500),
    )
