from __future__ import annotations

from typing import Any, Dict, Optional

import pytest
import requests

from caseboard.models import RawLocationRow, parse_number
from caseboard.settings import Settings


def make_row(country: str, total: object, lat: object = 0.0, long: object = 0.0, province: Optional[str] = None) -> RawLocationRow:
    return RawLocationRow(
        country_region=country,
        province_state=province,
        lat=parse_number(lat),
        long=parse_number(long),
        total_cases=parse_number(total),
    )


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, body_is_json: bool = True) -> None:
        self._payload = payload
        self.status_code = status_code
        self._body_is_json = body_is_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self) -> Any:
        if not self._body_is_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeApi:
    """Routes GET calls by category name found in the URL."""

    def __init__(self, responses: Dict[str, Any]) -> None:
        self.responses = responses
        self.urls = []

    def __call__(self, url: str, **kwargs: Any) -> FakeResponse:
        self.urls.append(url)
        for category, resp in self.responses.items():
            if f"/{category}?" in url:
                if isinstance(resp, Exception):
                    raise resp
                return resp
        raise requests.ConnectionError(f"no route for {url}")


def odata_rows(field: str, *rows: tuple) -> list:
    """rows: (country, total, lat, long)"""
    return [
        {"ProvinceState": None, "CountryRegion": c, "Lat": lat, "Long": long, field: total}
        for c, total, lat, long in rows
    ]


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base="https://example.test/odata", timeout_seconds=1.0)


@pytest.fixture
def healthy_api() -> FakeApi:
    return FakeApi(
        {
            "Confirmed": FakeResponse(
                {"value": odata_rows("TotalConfirmed", ("VN", "10", "14.0", "108.0"), ("VN", 5, 16.0, 106.0), ("FR", 8, 46.0, 2.0))}
            ),
            "Death": FakeResponse(odata_rows("TotalDeath", ("VN", "2", 14.0, 108.0), ("DE", 9, 51.0, 10.0))),
            "Recovered": FakeResponse(odata_rows("TotalRecovered", ("VN", 1, 14.0, 108.0), ("FR", 3, 46.0, 2.0))),
        }
    )
