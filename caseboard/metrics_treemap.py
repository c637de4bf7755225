from __future__ import annotations

from typing import Any, Dict, List, Tuple

from caseboard.metrics import METRIC_LABELS, metric_total, metric_value, normalize_metric, share_of
from caseboard.models import CountrySnapshot


PALETTES: Dict[str, Tuple[str, ...]] = {
    "active": (
        "#F59E0B", "#10B981", "#EF4444", "#6366F1", "#F97316",
        "#8B5CF6", "#22D3EE", "#14B8A6", "#F43F5E", "#60A5FA",
        "#A3E635", "#F87171", "#818CF8", "#34D399", "#EC4899",
    ),
    "confirmed": (
        "#6366F1", "#EF4444", "#10B981", "#8B5CF6", "#F59E0B",
        "#EC4899", "#22D3EE", "#F97316", "#14B8A6", "#F43F5E",
        "#60A5FA", "#A3E635", "#F87171", "#818CF8", "#34D399",
    ),
    "death": (
        "#EF4444", "#F97316", "#8B5CF6", "#F43F5E", "#6366F1",
        "#F59E0B", "#EC4899", "#14B8A6", "#F87171", "#60A5FA",
        "#818CF8", "#22D3EE", "#A3E635", "#10B981", "#34D399",
    ),
    "recovered": (
        "#10B981", "#60A5FA", "#FBBF24", "#F43F5E", "#6366F1",
        "#EC4899", "#34D399", "#F97316", "#22D3EE", "#A3E635",
        "#818CF8", "#F87171", "#14B8A6", "#8B5CF6", "#F59E0B",
    ),
}


def palette_color(metric: str, index: int) -> str:
    palette = PALETTES[normalize_metric(metric)]
    return palette[index % len(palette)]


def compute_treemap(snapshot: CountrySnapshot, metric: str = "confirmed") -> Dict[str, Any]:
    metric = normalize_metric(metric)
    stats = snapshot.stats
    total = metric_total(stats, metric)

    nodes: List[Dict[str, Any]] = []
    # colors follow the model order so a country keeps its color across sorts
    for i, s in enumerate(stats):
        size = metric_value(s, metric)
        if size <= 0:
            continue
        pct = s.percentage_active if metric == "active" and s.percentage_active is not None else share_of(size, total)
        nodes.append({"name": s.country_region, "size": size, "percentage": pct, "color": palette_color(metric, i)})
    nodes.sort(key=lambda n: n["size"], reverse=True)

    return {
        "metric": metric,
        "title": f"Total {METRIC_LABELS[metric]} Cases by Country",
        "version": snapshot.version,
        "total": total,
        "nodes": nodes,
    }
