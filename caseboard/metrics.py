from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Sequence, Tuple

from caseboard.models import ColorDomain, CountryStat


METRICS: Tuple[str, ...] = ("active", "confirmed", "death", "recovered")

METRIC_FIELDS: Dict[str, str] = {
    "active": "total_active",
    "confirmed": "total_confirmed",
    "death": "total_death",
    "recovered": "total_recovered",
}

METRIC_LABELS: Dict[str, str] = {
    "active": "Active",
    "confirmed": "Confirmed",
    "death": "Deaths",
    "recovered": "Recovered",
}


def normalize_metric(metric: str) -> str:
    m = (metric or "").strip().lower()
    if m in ("deaths", "dead"):
        m = "death"
    if m not in METRIC_FIELDS:
        raise ValueError(f"metric must be one of: {', '.join(METRICS)}")
    return m


def metric_value(stat: CountryStat, metric: str) -> int:
    return getattr(stat, METRIC_FIELDS[normalize_metric(metric)])


def metric_values(stats: Iterable[CountryStat], metric: str) -> List[int]:
    field = METRIC_FIELDS[normalize_metric(metric)]
    return [getattr(s, field) for s in stats]


def metric_total(stats: Iterable[CountryStat], metric: str) -> int:
    return sum(metric_values(stats, metric))


def total_active_global(stats: Iterable[CountryStat]) -> int:
    return sum(s.total_active for s in stats)


def share_of(value: float, total: float) -> float:
    """Percentage share; 0 when the total is not positive."""
    if total <= 0:
        return 0.0
    return value / total * 100


def with_percentages(stats: Sequence[CountryStat]) -> Tuple[CountryStat, ...]:
    """Return new records carrying `percentage_active` (global share of active cases)."""
    total = total_active_global(stats)
    return tuple(replace(s, percentage_active=share_of(s.total_active, total)) for s in stats)


def color_domain(stats: Iterable[CountryStat], metric: str) -> ColorDomain:
    # floor of 1 keeps the domain non-degenerate when every value is 0
    values = metric_values(stats, metric)
    return ColorDomain(min=0, max=max(values + [1]))
