"""Tests for api.py - routes, status codes and cache invalidation."""

import pytest
from fastapi.testclient import TestClient

from gviz_timetable.api import create_app
from gviz_timetable.cache import ScheduleCache
from gviz_timetable.errors import NotPublished, Timeout
from gviz_timetable.service import TimetableService


@pytest.fixture
def grids(monday_grid, make_grid):
    empty = make_grid([("E-31", [])])
    return {"100": monday_grid, "200": empty, "300": empty, "400": empty, "500": empty}


@pytest.fixture
def fetcher(fake_fetcher_factory, grids):
    return fake_fetcher_factory(grids)


def _client(config, fetcher, clock):
    service = TimetableService(config, fetcher=fetcher, cache=ScheduleCache(30, clock=clock))
    return TestClient(create_app(service=service))


@pytest.fixture
def client(config, fetcher, clock):
    with _client(config, fetcher, clock) as client:
        yield client


class TestMeta:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok", "loaded_days": []}

    def test_days(self, client):
        body = client.get("/api/schedule/days").json()
        assert body["success"] is True
        assert [d["name"] for d in body["days"]] == ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]

    def test_lifespan_closes_fetcher(self, config, fetcher, clock):
        with _client(config, fetcher, clock):
            assert not fetcher.closed
        assert fetcher.closed


class TestSchedule:
    def test_day(self, client):
        response = client.get("/api/schedule", params={"day": 0})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["day"] == "Monday"
        assert body["cached"] is False
        assert body["data"]["total_classrooms"] == 4
        assert client.get("/api/schedule", params={"day": 0}).json()["cached"] is True

    def test_week(self, client):
        body = client.get("/api/schedule", params={"day": "all"}).json()
        assert len(body["week"]) == 5
        assert client.get("/health").json()["loaded_days"] == [
            "Friday",
            "Monday",
            "Thursday",
            "Tuesday",
            "Wednesday",
        ]

    def test_missing_day(self, client):
        response = client.get("/api/schedule")
        assert response.status_code == 400
        assert response.json()["error_type"] == "InvalidDaySelector"

    def test_invalid_day(self, client):
        response = client.get("/api/schedule", params={"day": "7"})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_upstream_failure(self, client, grids):
        grids["100"] = NotPublished("Sheet not found or not published to web. Status: 404.")
        response = client.get("/api/schedule", params={"day": 0})
        assert response.status_code == 502
        assert response.json()["error_type"] == "NotPublished"

    def test_upstream_timeout(self, client, grids):
        grids["100"] = Timeout("Timed out after 15s fetching tab 100")
        assert client.get("/api/schedule", params={"day": 0}).status_code == 504


class TestSearch:
    def test_search(self, client):
        body = client.get("/api/search", params={"query": "BCS-1G"}).json()
        assert body["success"] is True
        assert body["total_matches"] == 3
        lab = body["results"]["Monday"][0]
        assert lab["classroom_name"] == "E-32"
        assert lab["time"] == "08:00-10:40"

    def test_missing_query(self, client):
        response = client.get("/api/search")
        assert response.status_code == 400
        assert response.json()["error_type"] == "InvalidQuery"


class TestFree:
    def test_not_ready(self, client):
        response = client.get("/api/free/rooms", params={"day": 0, "start": "8:00", "end": "9:00"})
        assert response.status_code == 503
        assert response.headers["Retry-After"] == "5"
        assert response.json()["error_type"] == "DataNotReady"

    def test_free_rooms(self, client):
        client.get("/api/schedule", params={"day": 0})
        body = client.get("/api/free/rooms", params={"day": 0, "start": "8:00", "end": "9:00"}).json()
        names = [room["name"] for room in body["results"]["Monday"]]
        assert names == ["R109", "CLASSROOMS"]
        assert body["results"]["Monday"][0]["capacity"] is None

    def test_free_ranges(self, client):
        client.get("/api/schedule", params={"day": 0})
        body = client.get("/api/free/ranges", params={"query": "E-31", "day": 0}).json()
        first = body["results"]["Monday"][0]
        assert (first["start_time"], first["end_time"]) == ("9:50", "10:40")
        assert first["target_room"]["name"] == "E-31"

    def test_free_ranges_missing_query(self, client):
        assert client.get("/api/free/ranges").status_code == 400


class TestClearCache:
    def test_requires_secret(self, client):
        assert client.post("/api/clear-cache").status_code == 401
        response = client.post("/api/clear-cache", headers={"X-TT-Secret": "wrong"})
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_clears(self, client, fetcher):
        client.get("/api/schedule", params={"day": 0})
        response = client.post("/api/clear-cache", headers={"X-TT-Secret": "s3cret"})
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Cache cleared"}
        assert client.get("/api/schedule", params={"day": 0}).json()["cached"] is False
        assert fetcher.calls == ["100", "100"]

    def test_secret_not_configured(self, config, fetcher, clock):
        config = config.model_copy(update={"clear_cache_secret": ""})
        with _client(config, fetcher, clock) as client:
            response = client.post("/api/clear-cache", headers={"X-TT-Secret": ""})
            assert response.status_code == 503
