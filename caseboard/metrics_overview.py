from __future__ import annotations

from typing import Any, Dict, List

from caseboard.charts import to_vega_spec, top_countries_chart
from caseboard.metrics import METRICS, color_domain, metric_total, metric_value, normalize_metric, share_of
from caseboard.models import CountrySnapshot
from caseboard.scales import make_color_scale


def compute_overview(snapshot: CountrySnapshot, *, metric: str = "active", top_n: int = 10) -> Dict[str, Any]:
    metric = normalize_metric(metric)
    stats = snapshot.stats
    top_n = max(1, int(top_n))

    totals = {m: metric_total(stats, m) for m in METRICS}
    confirmed = totals["confirmed"]
    kpis = {
        "countries": len(stats),
        "totals": totals,
        "total_active_global": snapshot.total_active_global,
        "case_fatality_pct": share_of(totals["death"], confirmed),
        "recovery_pct": share_of(totals["recovered"], confirmed),
    }

    color = make_color_scale(color_domain(stats, metric), metric)
    ranked = sorted(stats, key=lambda s: metric_value(s, metric), reverse=True)[:top_n]
    top: List[Dict[str, Any]] = []
    for s in ranked:
        value = metric_value(s, metric)
        top.append(
            {
                "country_region": s.country_region,
                "value": value,
                "percentage": share_of(value, totals[metric]),
                "color": color(value),
            }
        )

    charts: Dict[str, Any] = {}
    if top:
        charts["top_countries"] = to_vega_spec(top_countries_chart(top, metric))

    return {
        "snapshot": {"version": snapshot.version, "fetched_at": snapshot.fetched_at.isoformat()},
        "metric": metric,
        "kpis": kpis,
        "top": top,
        "charts": charts,
    }
