from __future__ import annotations

import math
from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from caseboard.data import stats_frame
from caseboard.filters import TableFilters
from caseboard.models import CountrySnapshot


TABLE_COLUMNS = [
    "country_region",
    "total_confirmed",
    "total_death",
    "total_recovered",
    "total_active",
    "percentage_active",
]


def table_frame(filters: TableFilters, snapshot: CountrySnapshot) -> pd.DataFrame:
    """Full filtered + sorted table (no paging); used by the page view and CSV export."""
    df = stats_frame(snapshot.stats)[TABLE_COLUMNS]
    if filters.country_query and not df.empty:
        q = filters.country_query.lower()
        df = df[df["country_region"].astype(str).str.lower().str.contains(q, na=False, regex=False)]
    # stable sort keeps model order among ties
    df = df.sort_values(filters.sort_by, ascending=filters.ascending, kind="mergesort")
    return df.reset_index(drop=True)


def compute_table(filters: TableFilters, snapshot: CountrySnapshot) -> Dict[str, Any]:
    df = table_frame(filters, snapshot)
    total_rows = int(len(df))
    pages = max(1, math.ceil(total_rows / filters.page_size))
    page = min(filters.page, pages)
    start = (page - 1) * filters.page_size
    page_df = df.iloc[start : start + filters.page_size].copy()
    page_df.insert(0, "rank", range(start + 1, start + 1 + len(page_df)))

    return {
        "filters": asdict(filters),
        "version": snapshot.version,
        "page": page,
        "pages": pages,
        "total_rows": total_rows,
        "rows": page_df.to_dict(orient="records"),
    }
