from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

from caseboard.charts import map_chart, to_vega_spec
from caseboard.metrics import METRIC_LABELS, color_domain, metric_total, metric_value, normalize_metric, share_of
from caseboard.models import CountrySnapshot
from caseboard.scales import GRADIENTS, make_color_scale, radius


def compute_map(snapshot: CountrySnapshot, metric: str = "confirmed") -> Dict[str, Any]:
    metric = normalize_metric(metric)
    stats = snapshot.stats
    domain = color_domain(stats, metric)
    color = make_color_scale(domain, metric)
    total = metric_total(stats, metric)

    markers: List[Dict[str, Any]] = []
    excluded: List[str] = []
    for s in stats:
        # entries with unusable coordinates keep their counts but get no marker
        if not s.has_geometry():
            excluded.append(s.country_region)
            continue
        value = metric_value(s, metric)
        pct = s.percentage_active if metric == "active" and s.percentage_active is not None else share_of(value, total)
        markers.append(
            {
                "country_region": s.country_region,
                "lat": s.lat,
                "long": s.long,
                "value": value,
                "radius": radius(value),
                "color": color(value),
                "percentage": pct,
                "total_confirmed": s.total_confirmed,
                "total_death": s.total_death,
                "total_recovered": s.total_recovered,
                "total_active": s.total_active,
            }
        )

    charts: Dict[str, Any] = {}
    if markers:
        charts["map"] = to_vega_spec(map_chart(markers, metric))

    return {
        "metric": metric,
        "label": METRIC_LABELS[metric],
        "version": snapshot.version,
        "domain": asdict(domain),
        "gradient": list(GRADIENTS[metric]),
        "total": total,
        "markers": markers,
        "excluded_geometry": excluded,
        "charts": charts,
    }
