from __future__ import annotations

import logging
import math
from typing import Literal

import numpy as np
import pandas as pd
import requests
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import MetricsMetaResponse, RefreshResponse, TableFiltersModel
from caseboard.data import SnapshotStore, default_store, load_dashboard_data, run_fetch_cycle
from caseboard.errors import CaseboardError
from caseboard.filters import TableFilters, normalize_filters
from caseboard.metrics import METRICS
from caseboard.metrics_debug import compute_debug
from caseboard.metrics_map import compute_map
from caseboard.metrics_overview import compute_overview
from caseboard.metrics_table import compute_table, table_frame
from caseboard.metrics_treemap import compute_treemap
from caseboard.models import CountrySnapshot
from caseboard.scales import GRADIENTS
from caseboard.settings import load_settings


app = FastAPI(title="Caseboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8501"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

MetricName = Literal["active", "confirmed", "death", "recovered"]

# Replaceable in tests.
store: SnapshotStore = default_store()
settings = load_settings()
http_get = requests.get


class SnapshotUnavailable(CaseboardError):
    """No published snapshot and the fetch cycle failed."""


def _snapshot() -> CountrySnapshot:
    result = load_dashboard_data(store, settings, http_get)
    if not result.ok or result.snapshot is None:
        raise SnapshotUnavailable(result.error or "no data available")
    return result.snapshot


def _filters_from_model(model: TableFiltersModel) -> TableFilters:
    return normalize_filters(model.model_dump())


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/metrics")
def meta_metrics():
    return MetricsMetaResponse(metrics=list(METRICS), gradients={m: list(GRADIENTS[m]) for m in METRICS})


@app.post("/refresh")
def refresh():
    result = run_fetch_cycle(store, settings, http_get)
    body = RefreshResponse(
        ok=result.ok,
        version=result.version,
        stale=result.stale,
        countries=len(result.snapshot.stats) if result.snapshot is not None else 0,
        error=result.error,
    )
    return JSONResponse(status_code=200 if result.ok else 502, content=body.model_dump())


@app.get("/overview")
def overview(metric: MetricName = Query(default="active"), top_n: int = Query(default=10, ge=1, le=200)):
    try:
        return _json(compute_overview(_snapshot(), metric=metric, top_n=top_n))
    except SnapshotUnavailable as exc:
        return _error(exc, 502)
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc)


@app.get("/map/{metric}")
def map_view(metric: MetricName):
    try:
        return _json(compute_map(_snapshot(), metric))
    except SnapshotUnavailable as exc:
        return _error(exc, 502)
    except Exception as exc:
        logger.exception("map failed")
        return _error(exc)


@app.get("/treemap/{metric}")
def treemap_view(metric: MetricName):
    try:
        return _json(compute_treemap(_snapshot(), metric))
    except SnapshotUnavailable as exc:
        return _error(exc, 502)
    except Exception as exc:
        logger.exception("treemap failed")
        return _error(exc)


@app.post("/table")
def table(filters: TableFiltersModel):
    try:
        return _json(compute_table(_filters_from_model(filters), _snapshot()))
    except SnapshotUnavailable as exc:
        return _error(exc, 502)
    except Exception as exc:
        logger.exception("table failed")
        return _error(exc)


@app.get("/debug")
def debug():
    try:
        return _json(compute_debug(_snapshot(), last_error=store.last_error))
    except SnapshotUnavailable as exc:
        return _error(exc, 502)
    except Exception as exc:
        logger.exception("debug failed")
        return _error(exc)


@app.post("/export/table")
def export_table(filters: TableFiltersModel):
    try:
        export_df = table_frame(_filters_from_model(filters), _snapshot())
    except SnapshotUnavailable as exc:
        return _error(exc, 502)
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": "attachment; filename=countries.csv"})
