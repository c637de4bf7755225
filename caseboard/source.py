"""
Source client (OData category endpoints -> RawLocationRow lists)
================================================================

The remote API groups raw case events by (ProvinceState, CountryRegion, Lat, Long)
and sums `Cases` into a category-specific total field. One request per category;
the three requests run concurrently and are joined once all have settled.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping
from urllib.parse import quote

import requests

from caseboard.errors import MalformedPayloadError, SourceError, TransportError
from caseboard.models import RawLocationRow, Result, parse_number
from caseboard.settings import Settings


logger = logging.getLogger(__name__)

HttpGet = Callable[..., Any]


class Category(str, Enum):
    CONFIRMED = "Confirmed"
    DEATH = "Death"
    RECOVERED = "Recovered"

    @property
    def total_field(self) -> str:
        return f"Total{self.value}"


# Merge order used by the aggregator: confirmed establishes entries.
CATEGORY_ORDER = (Category.CONFIRMED, Category.DEATH, Category.RECOVERED)

CategoryRows = Dict[Category, List[RawLocationRow]]


def build_category_url(base: str, category: Category) -> str:
    apply = (
        "groupby((ProvinceState,CountryRegion,Lat,Long),"
        f"aggregate(Cases with sum as {category.total_field}))"
    )
    return f"{base.rstrip('/')}/{category.value}?$apply={quote(apply, safe=',')}"


def extract_rows(payload: object, category: Category) -> List[Any]:
    """Accept a bare JSON array or an object exposing the array under `value`."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("value"), list):
        return payload["value"]
    raise MalformedPayloadError(category.value, "expected a JSON array or an object with a 'value' array")


def parse_rows(items: List[Any], category: Category) -> List[RawLocationRow]:
    rows: List[RawLocationRow] = []
    skipped = 0
    for item in items:
        if not isinstance(item, dict):
            raise MalformedPayloadError(category.value, f"row is not an object: {item!r}")
        country = item.get("CountryRegion")
        if not isinstance(country, str):
            skipped += 1
            continue
        province = item.get("ProvinceState")
        rows.append(
            RawLocationRow(
                country_region=country,
                province_state=province if isinstance(province, str) else None,
                lat=parse_number(item.get("Lat")),
                long=parse_number(item.get("Long")),
                total_cases=parse_number(item.get(category.total_field)),
            )
        )
    if skipped:
        logger.warning("%s: skipped %d rows without a CountryRegion", category.value, skipped)
    return rows


def fetch_category(category: Category, settings: Settings, http_get: HttpGet = requests.get) -> List[RawLocationRow]:
    url = build_category_url(settings.api_base, category)
    try:
        resp = http_get(
            url,
            timeout=settings.timeout_seconds,
            verify=settings.verify_tls,
            headers={"Accept": "application/json"},
        )
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise TransportError(category.value, str(exc)) from exc

    try:
        payload = resp.json()
    except ValueError as exc:
        raise MalformedPayloadError(category.value, "response body is not JSON") from exc
    return parse_rows(extract_rows(payload, category), category)


def join_results(results: Mapping[Category, Result[List[RawLocationRow]]]) -> Result[CategoryRows]:
    """All three categories or nothing: any failure fails the join."""
    errors = []
    for category in CATEGORY_ORDER:
        res = results.get(category)
        if res is None:
            errors.append(f"{category.value}: no result")
        elif not res.ok:
            errors.append(res.error)
    if errors:
        return Result.failure("; ".join(errors))
    return Result.success({category: list(results[category].value or []) for category in CATEGORY_ORDER})


def fetch_all_categories(settings: Settings, http_get: HttpGet = requests.get) -> Result[CategoryRows]:
    results: Dict[Category, Result[List[RawLocationRow]]] = {}
    with ThreadPoolExecutor(max_workers=settings.max_workers) as pool:
        futures = {c: pool.submit(fetch_category, c, settings, http_get) for c in CATEGORY_ORDER}
        for category, future in futures.items():
            try:
                results[category] = Result.success(future.result())
            except SourceError as exc:
                logger.warning("category fetch failed: %s", exc)
                results[category] = Result.failure(str(exc))
    return join_results(results)
