from __future__ import annotations

from typing import Any, Dict, List

import altair as alt
import numpy as np
import pandas as pd

from caseboard.metrics import METRIC_LABELS, normalize_metric

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def map_chart(markers: List[Dict[str, Any]], metric: str) -> alt.Chart:
    """Circle markers placed by longitude/latitude, pre-scaled radius and color."""
    metric = normalize_metric(metric)
    label = METRIC_LABELS[metric]
    df = pd.DataFrame(markers, columns=["country_region", "lat", "long", "value", "radius", "color", "percentage"])
    # Vega-Lite sizes are areas in px^2
    df["size"] = (df["radius"] ** 2) * np.pi
    return (
        alt.Chart(df)
        .mark_circle(opacity=0.85, stroke="rgba(0,0,0,0.25)", strokeWidth=0.5)
        .encode(
            longitude="long:Q",
            latitude="lat:Q",
            size=alt.Size("size:Q", scale=None, legend=None),
            color=alt.Color("color:N", scale=None, legend=None),
            tooltip=[
                alt.Tooltip("country_region:N", title="Country/Region"),
                alt.Tooltip("value:Q", title=label, format=","),
                alt.Tooltip("percentage:Q", title="% of global", format=".2f"),
            ],
        )
        .project(type="equirectangular")
    )


def top_countries_chart(rows: List[Dict[str, Any]], metric: str) -> alt.Chart:
    metric = normalize_metric(metric)
    label = METRIC_LABELS[metric]
    df = pd.DataFrame(rows, columns=["country_region", "value", "color"])
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("value:Q", title=label, axis=alt.Axis(format="~s")),
            y=alt.Y("country_region:N", title=None, sort="-x"),
            color=alt.Color("color:N", scale=None, legend=None),
            tooltip=[alt.Tooltip("country_region:N", title="Country/Region"), alt.Tooltip("value:Q", title=label, format=",")],
        )
    )
