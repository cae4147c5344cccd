"""
tests/test_api.py
Tests for incidentlog.api — IncidentLogAPI class and the FastAPI app.

All tests use a temporary SQLite DB populated through RecordStore.
HTTP endpoints are exercised with fastapi.testclient.TestClient (needs httpx).
"""

from datetime import datetime, timedelta, timezone

import pytest

from incidentlog.api import IncidentLogAPI, _build_app
from incidentlog.errors import StorageError
from incidentlog.store.sqlite_store import ORDER_ID_DESC, RecordStore


# ── HELPERS ──────────────────────────────────────────────────────────────────

def _ticking_clock():
    state = {"now": datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)}

    def clock():
        state["now"] += timedelta(minutes=5)
        return state["now"]
    return clock


def _make_db(tmp_path):
    db = tmp_path / "incidents.db"
    store = RecordStore(db, clock=_ticking_clock())
    store.append("zima-01", "network", "WiFi restored", "power cycle resolved link")
    store.append("zima-02", "ssh", "Keys installed")
    store.append("zima-01", "boot", "GRUB fixed")
    return db


@pytest.fixture
def client(tmp_path):
    from fastapi.testclient import TestClient
    return TestClient(_build_app(db_path=_make_db(tmp_path), title="Rescue log"))


# ── TESTS: IMPORTABLE CLASS ──────────────────────────────────────────────────

class TestIncidentLogAPI:
    def test_no_db_returns_empty(self, tmp_path):
        api = IncidentLogAPI(db_path=tmp_path / "nonexistent.db")
        assert api.get_records() == []
        assert api.get_sources() == []
        assert api.get_record(1) is None

    def test_get_records_all(self, tmp_path):
        api = IncidentLogAPI(db_path=_make_db(tmp_path))
        assert [r["id"] for r in api.get_records()] == [1, 2, 3]

    def test_get_records_order_and_paging(self, tmp_path):
        api = IncidentLogAPI(db_path=_make_db(tmp_path))
        assert [r["id"] for r in api.get_records(order=ORDER_ID_DESC)] == [3, 2, 1]
        assert [r["id"] for r in api.get_records(limit=1, offset=1)] == [2]

    def test_get_records_by_source(self, tmp_path):
        api = IncidentLogAPI(db_path=_make_db(tmp_path))
        assert [r["summary"] for r in api.get_records(source="zima-01")] == ["WiFi restored", "GRUB fixed"]

    def test_limit_capped(self, tmp_path):
        api = IncidentLogAPI(db_path=_make_db(tmp_path))
        assert len(api.get_records(limit=10_000)) == 3

    def test_get_sources_most_recent_first(self, tmp_path):
        api = IncidentLogAPI(db_path=_make_db(tmp_path))
        sources = api.get_sources()
        assert [s["source"] for s in sources] == ["zima-01", "zima-02"]
        assert sources[0]["record_count"] == 2

    def test_dashboard_html_matches_renderer(self, tmp_path):
        api = IncidentLogAPI(db_path=_make_db(tmp_path))
        assert api.get_dashboard_html() == api.get_dashboard_html()
        assert "GRUB fixed" in api.get_dashboard_html()

    def test_storage_error_propagates(self, tmp_path):
        db = tmp_path / "incidents.db"
        db.write_bytes(b"garbage" * 300)
        with pytest.raises(StorageError):
            IncidentLogAPI(db_path=db).get_records()


# ── TESTS: HTTP APP ──────────────────────────────────────────────────────────

class TestHttpApp:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert resp.json()["db_exists"] is True

    def test_list_records(self, client):
        resp = client.get("/records", params={"order": "id_desc", "limit": 2})
        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 2
        assert [r["id"] for r in body["records"]] == [3, 2]

    def test_bad_order_rejected(self, client):
        assert client.get("/records", params={"order": "random"}).status_code == 422

    def test_get_record_found(self, client):
        resp = client.get("/records/1")
        assert resp.status_code == 200
        assert resp.json()["details"] == "power cycle resolved link"

    def test_get_record_missing(self, client):
        assert client.get("/records/99").status_code == 404

    def test_sources(self, client):
        body = client.get("/sources").json()
        assert body["count"] == 2
        assert body["sources"][0]["source"] == "zima-01"

    def test_dashboard_json(self, client):
        body = client.get("/dashboard").json()
        assert body["title"] == "Rescue log"
        assert body["record_count"] == 3
        assert [g["source"] for g in body["groups"]] == ["zima-01", "zima-02"]

    def test_dashboard_html(self, client):
        resp = client.get("/dashboard.html")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "<title>Rescue log</title>" in resp.text

    def test_no_write_endpoint(self, client):
        assert client.post("/records", json={"source": "a"}).status_code == 405

    def test_storage_failure_is_500(self, tmp_path):
        from fastapi.testclient import TestClient
        db = tmp_path / "incidents.db"
        db.write_bytes(b"garbage" * 300)
        resp = TestClient(_build_app(db_path=db)).get("/records")
        assert resp.status_code == 500
