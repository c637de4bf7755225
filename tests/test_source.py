from __future__ import annotations

import math
import threading

import pytest
import requests

from caseboard.errors import MalformedPayloadError, TransportError
from caseboard.models import Result, parse_number
from caseboard.source import (
    CATEGORY_ORDER,
    Category,
    build_category_url,
    extract_rows,
    fetch_all_categories,
    fetch_category,
    join_results,
    parse_rows,
)
from conftest import FakeApi, FakeResponse, odata_rows


class TestParseNumber:
    def test_accepts_numbers_and_numeric_strings(self):
        assert parse_number(12).value == 12.0
        assert parse_number("12").value == 12.0
        assert parse_number(" 3.5 ").value == 3.5
        assert parse_number("-33.86").ok

    @pytest.mark.parametrize("raw", ["abc", "", "  ", None, True, "nan", "inf", [1]])
    def test_rejects_non_numeric(self, raw):
        parsed = parse_number(raw)
        assert not parsed.ok
        assert math.isnan(parsed.value)

    def test_integer_too_large_for_float_is_a_failed_parse(self):
        parsed = parse_number(10**400)
        assert not parsed.ok
        assert math.isnan(parsed.value)


class TestCategoryUrl:
    def test_total_field_names(self):
        assert [c.total_field for c in CATEGORY_ORDER] == ["TotalConfirmed", "TotalDeath", "TotalRecovered"]

    def test_odata_apply_query(self):
        url = build_category_url("https://localhost:7268/odata/", Category.DEATH)
        assert url == (
            "https://localhost:7268/odata/Death?$apply=groupby%28%28ProvinceState,CountryRegion,Lat,Long%29,"
            "aggregate%28Cases%20with%20sum%20as%20TotalDeath%29%29"
        )


class TestPayloadShapes:
    def test_bare_array(self):
        assert extract_rows([{"a": 1}], Category.CONFIRMED) == [{"a": 1}]

    def test_value_envelope(self):
        assert extract_rows({"@odata.context": "x", "value": []}, Category.CONFIRMED) == []

    @pytest.mark.parametrize("payload", [{"items": []}, {"value": None}, "text", None, 5])
    def test_malformed(self, payload):
        with pytest.raises(MalformedPayloadError):
            extract_rows(payload, Category.RECOVERED)

    def test_parse_rows_coerces_strings_and_keeps_bad_numbers(self):
        items = odata_rows("TotalConfirmed", ("US", "10", "37.1", "-95.7"), ("XX", 4, "n/a", 1.0))
        rows = parse_rows(items, Category.CONFIRMED)
        assert rows[0].total_cases.value == 10.0
        assert rows[0].lat.value == 37.1
        assert rows[1].total_cases.ok
        assert not rows[1].lat.ok

    def test_parse_rows_skips_rows_without_country(self):
        items = [{"CountryRegion": None, "TotalDeath": 1}, {"CountryRegion": "IT", "TotalDeath": 2}]
        rows = parse_rows(items, Category.DEATH)
        assert [r.country_region for r in rows] == ["IT"]

    def test_parse_rows_rejects_non_object_rows(self):
        with pytest.raises(MalformedPayloadError):
            parse_rows([1, 2], Category.DEATH)


class TestFetchCategory:
    def test_success(self, settings):
        api = FakeApi({"Confirmed": FakeResponse(odata_rows("TotalConfirmed", ("US", 10, 1.0, 2.0)))})
        rows = fetch_category(Category.CONFIRMED, settings, api)
        assert len(rows) == 1
        assert api.urls[0].startswith("https://example.test/odata/Confirmed?$apply=")

    def test_http_error_is_transport_failure(self, settings):
        api = FakeApi({"Death": FakeResponse(status_code=500)})
        with pytest.raises(TransportError) as info:
            fetch_category(Category.DEATH, settings, api)
        assert info.value.category == "Death"

    def test_network_error_is_transport_failure(self, settings):
        api = FakeApi({"Death": requests.ConnectionError("refused")})
        with pytest.raises(TransportError):
            fetch_category(Category.DEATH, settings, api)

    def test_non_json_body_is_malformed(self, settings):
        api = FakeApi({"Recovered": FakeResponse(body_is_json=False)})
        with pytest.raises(MalformedPayloadError):
            fetch_category(Category.RECOVERED, settings, api)


class TestJoin:
    def test_all_success(self):
        results = {c: Result.success([]) for c in CATEGORY_ORDER}
        joined = join_results(results)
        assert joined.ok
        assert set(joined.value) == set(CATEGORY_ORDER)

    def test_any_failure_fails_the_join(self):
        results = {c: Result.success([]) for c in CATEGORY_ORDER}
        results[Category.RECOVERED] = Result.failure("Recovered: boom")
        joined = join_results(results)
        assert not joined.ok
        assert joined.value is None
        assert "Recovered: boom" in joined.error

    def test_missing_result_fails(self):
        joined = join_results({Category.CONFIRMED: Result.success([])})
        assert not joined.ok


class TestFetchAll:
    def test_three_requests(self, settings, healthy_api):
        fetched = fetch_all_categories(settings, healthy_api)
        assert fetched.ok
        assert len(healthy_api.urls) == 3
        assert len(fetched.value[Category.CONFIRMED]) == 3

    def test_one_failure_fails_the_cycle(self, settings, healthy_api):
        healthy_api.responses["Death"] = FakeResponse(status_code=404)
        fetched = fetch_all_categories(settings, healthy_api)
        assert not fetched.ok
        assert fetched.error.startswith("Death:")

    def test_requests_are_in_flight_together(self, settings, healthy_api):
        # each call blocks until all three have arrived; a sequential fetch breaks the barrier
        barrier = threading.Barrier(3, timeout=5)

        def gated_get(url, **kwargs):
            barrier.wait()
            return healthy_api(url, **kwargs)

        fetched = fetch_all_categories(settings, gated_get)
        assert fetched.ok
        assert all(fetched.value[c] for c in CATEGORY_ORDER)
