"""API tests for the FastAPI app (planner and stores are in-memory)."""
import json
from datetime import date

import pytest
from fastapi.testclient import TestClient

from app import create_app
from shootplan.ai_cache import CacheStore, InMemoryCacheBackend
from shootplan.base_config import RUN_OF_SHOW_ENDPOINT
from shootplan.scheduling import ScheduleBuildCoordinator
from shootplan.scheduling.stores import InMemoryProductionStore

PLAN = json.dumps({
    "days": [
        {"dateOffset": 0, "generalCall": "06:00", "estimatedWrap": "18:00", "sceneIds": ["s1", "s2"]},
        {"dateOffset": 1, "sceneIds": ["s3"], "notes": "Night exteriors"},
    ],
    "assumptions": ["Grouped by location"],
})


class StaticPlanner:
    def __init__(self, response):
        self.response = response

    async def plan(self, system_prompt, user_prompt, max_tokens=4000, temperature=0.3):
        return self.response


class ExplodingCoordinator:
    async def build_schedule(self, **kwargs):
        raise RuntimeError("unexpected")


@pytest.fixture
def store():
    store = InMemoryProductionStore()
    store.add_project("Night Harbor", project_id="p1")
    for number in range(1, 5):
        store.add_scene("p1", str(number), id=f"s{number}", script_page_start=number)
    return store


@pytest.fixture
def api_cache(clock):
    return CacheStore(InMemoryCacheBackend(), now=clock)


def _client(store, cache_store, response=PLAN):
    coordinator = ScheduleBuildCoordinator(
        scene_store=store,
        day_store=store,
        planner=StaticPlanner(response),
        cache_store=cache_store,
        processing_log=store,
        on_schedule_changed=lambda project_id: cache_store.invalidate_project(project_id, RUN_OF_SHOW_ENDPOINT),
        today=lambda: date(2025, 3, 1),
    )
    return TestClient(create_app(coordinator=coordinator, cache_store=cache_store))


class TestBuildEndpoint:
    def test_build_schedule(self, store, api_cache):
        client = _client(store, api_cache)

        response = client.post(
            "/api/ai/schedule/build",
            json={"projectId": "p1", "replaceExisting": True, "maxScenesPerDay": 6},
            headers={"X-User-Id": "user-7"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["stats"] == {
            "daysCreated": 2,
            "scenesAssigned": 3,
            "scenesUnscheduled": 1,
            "daysFailed": 0,
        }
        assert data["cacheHit"] is False
        assert data["assumptions"] == ["Grouped by location"]
        first = data["shootingDays"][0]
        assert first["dayNumber"] == 1
        assert first["date"] == "2025-03-02"
        assert first["generalCall"] == "06:00"
        assert first["sceneIds"] == ["s1", "s2"]
        assert store.tables["processing_logs"][-1]["user_id"] == "user-7"

    def test_missing_project_id(self, store, api_cache):
        response = _client(store, api_cache).post("/api/ai/schedule/build", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "projectId is required"}

    def test_invalid_body(self, store, api_cache):
        response = _client(store, api_cache).post(
            "/api/ai/schedule/build", json={"projectId": "p1", "maxScenesPerDay": "lots"}
        )
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request body")

    def test_non_positive_max_scenes(self, store, api_cache):
        response = _client(store, api_cache).post(
            "/api/ai/schedule/build", json={"projectId": "p1", "maxScenesPerDay": 0}
        )
        assert response.status_code == 400

    def test_unknown_project(self, store, api_cache):
        response = _client(store, api_cache).post("/api/ai/schedule/build", json={"projectId": "other"})
        assert response.status_code == 404
        assert response.json() == {"error": "Project not found or access denied"}

    def test_unusable_plan(self, store, api_cache):
        response = _client(store, api_cache, response="no plan today").post(
            "/api/ai/schedule/build", json={"projectId": "p1"}
        )
        assert response.status_code == 500
        assert response.json()["error"].startswith("Invalid AI response")
        assert store.list_day_ids("p1") == []

    def test_unexpected_error(self, api_cache):
        client = TestClient(create_app(coordinator=ExplodingCoordinator(), cache_store=api_cache))
        response = client.post("/api/ai/schedule/build", json={"projectId": "p1"})
        assert response.status_code == 500
        assert response.json() == {"error": "unexpected"}


class TestRunOfShowEndpoint:
    def test_run_of_show(self, store, api_cache):
        response = _client(store, api_cache).post(RUN_OF_SHOW_ENDPOINT, json={
            "projectId": "p1",
            "day": {"generalCall": "07:00", "wrapTime": "20:00"},
            "sceneCount": 4,
        })

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["mealWithinSixHours"] is True
        times = {item["id"]: item["time"] for item in data["items"]}
        assert times["crew-call"] == "06:30"
        assert times["company-move"] == "14:30"
        assert times["wrap"] == "20:00"

    def test_result_is_cached(self, store, api_cache):
        client = _client(store, api_cache)
        body = {"projectId": "p1", "day": {"generalCall": "07:00"}, "sceneCount": 2}

        first = client.post(RUN_OF_SHOW_ENDPOINT, json=body).json()
        second = client.post(RUN_OF_SHOW_ENDPOINT, json=body).json()

        assert first == second
        assert len(api_cache.backend.rows) == 1

    def test_schedule_build_invalidates_run_of_show(self, store, api_cache):
        client = _client(store, api_cache)
        client.post(RUN_OF_SHOW_ENDPOINT, json={"projectId": "p1", "day": {}, "sceneCount": 0})
        assert any(endpoint == RUN_OF_SHOW_ENDPOINT for endpoint, _ in api_cache.backend.rows)

        client.post("/api/ai/schedule/build", json={"projectId": "p1"})

        assert not any(endpoint == RUN_OF_SHOW_ENDPOINT for endpoint, _ in api_cache.backend.rows)

    def test_garbage_day_uses_defaults(self, store, api_cache):
        response = _client(store, api_cache).post(RUN_OF_SHOW_ENDPOINT, json={
            "day": {"generalCall": 7, "customItems": "none", "templateId": "unknown"},
        })
        assert response.status_code == 200
        assert response.json()["data"]["items"][0]["id"] == "crew-call"


def test_list_templates(store, api_cache):
    response = _client(store, api_cache).get("/api/schedule/templates")
    assert response.status_code == 200
    templates = response.json()["data"]
    assert {t["id"] for t in templates} == {"standard-12", "commercial-10", "night-12"}
    assert all("defaultGeneralCall" in t for t in templates)
