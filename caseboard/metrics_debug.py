from __future__ import annotations

from typing import Any, Dict

from caseboard.data import stats_frame
from caseboard.models import CountrySnapshot


def compute_debug(snapshot: CountrySnapshot, *, last_error: str | None = None) -> Dict[str, Any]:
    stats = snapshot.stats
    payload = {
        "snapshot": {
            "version": snapshot.version,
            "fetched_at": snapshot.fetched_at.isoformat(),
            "last_error": last_error,
        },
        "row_counts": {
            "source_rows": dict(snapshot.source_rows),
            "countries": len(stats),
        },
        "cleaning_checks": {
            "rows_with_unparseable_numbers": int(snapshot.coercion_failures),
            "countries_without_geometry": [s.country_region for s in stats if not s.has_geometry()],
            "countries_zero_active": sum(1 for s in stats if s.total_active == 0),
        },
        "sample": [],
    }

    df = stats_frame(stats)
    if not df.empty:
        payload["sample"] = df.head(5).to_dict(orient="records")
    return payload
