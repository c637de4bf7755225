from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import api.main as main
from caseboard.data import SnapshotStore
from conftest import FakeResponse


@pytest.fixture
def client(monkeypatch, settings, healthy_api):
    monkeypatch.setattr(main, "store", SnapshotStore())
    monkeypatch.setattr(main, "settings", settings)
    monkeypatch.setattr(main, "http_get", healthy_api)
    return TestClient(main.app)


def test_meta_metrics(client):
    resp = client.get("/meta/metrics")
    assert resp.status_code == 200
    assert resp.json()["gradients"]["death"] == ["#fee5d9", "#67000d"]


def test_map_payload(client):
    resp = client.get("/map/active")
    assert resp.status_code == 200
    body = resp.json()
    assert [m["country_region"] for m in body["markers"]] == ["VN", "FR"]
    assert body["domain"] == {"min": 0, "max": 12}


def test_unknown_metric_is_rejected(client):
    assert client.get("/treemap/hospitalized").status_code == 422


def test_table_and_export(client):
    resp = client.post("/table", json={"sort_by": "country_region", "ascending": True})
    assert [r["country_region"] for r in resp.json()["rows"]] == ["FR", "VN"]
    csv = client.post("/export/table", json={})
    assert csv.status_code == 200
    assert csv.text.splitlines()[0].startswith("country_region,total_confirmed")


def test_refresh_bumps_version(client):
    client.get("/overview")
    resp = client.post("/refresh")
    assert resp.status_code == 200
    assert resp.json()["version"] == 2
    assert client.get("/debug").json()["snapshot"]["version"] == 2


def test_partial_failure_surfaces_error(client, healthy_api):
    healthy_api.responses["Death"] = FakeResponse(status_code=500)
    resp = client.get("/overview")
    assert resp.status_code == 502
    assert "Death" in resp.json()["error"]
    refresh = client.post("/refresh")
    assert refresh.status_code == 502
    assert refresh.json()["ok"] is False
