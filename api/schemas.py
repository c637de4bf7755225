from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel


class TableFiltersModel(BaseModel):
    country_query: str = ""
    sort_by: str = "total_confirmed"
    ascending: bool = False
    page: int = 1
    page_size: int = 25


class RefreshResponse(BaseModel):
    ok: bool
    version: int
    stale: bool = False
    countries: int = 0
    error: Optional[str] = None


class MetricsMetaResponse(BaseModel):
    metrics: List[str]
    gradients: Dict[str, List[str]]
