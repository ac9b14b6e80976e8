import asyncio
import json

import pytest
from starlette.applications import Starlette
from starlette.routing import Route
from starlette.testclient import TestClient

from planter.events import EventKind
from planter.logservice import LoggingService
from planter.model import Phase, PhaseSpec, Selector, dump_phases
from planter.routes.diff import get_diff
from planter.routes.plan import AppState


class FakeRedis:
    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value


def make_client(app_state):
    app = Starlette(routes=[Route("/diff", get_diff)])
    app.state.app_state = app_state
    return TestClient(app)


def phase(phase_id):
    return Phase(kind="Phase", id=phase_id, spec=PhaseSpec(description=phase_id, selector=Selector({})))


@pytest.fixture(autouse=True)
def _tenant(monkeypatch):
    monkeypatch.delenv("TENANT_KEY", raising=False)


def test_diff_stateless():
    response = make_client(AppState()).get("/diff")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "stateless"
    assert body["diff"] is None


def test_diff_without_baseline():
    response = make_client(AppState(redis_client=FakeRedis())).get("/diff")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "no_baseline"
    assert body["diff"] is None


def test_diff_against_applied_plan():
    redis = FakeRedis()
    applied = [phase("a"), phase("b")]
    redis.data["global:plan:applied"] = json.dumps(dump_phases(applied))
    body = make_client(AppState(redis_client=redis)).get("/diff").json()
    assert body["status"] == "ok"
    assert body["baseline_phases"] == len(applied)
    assert body["current_phases"] == len(applied)
    summary = body["diff"]["summary"]
    assert summary["total_changes"] == summary["adds"] + summary["updates"] + summary["deletes"]
    assert len(body["diff"]["changes"]) == summary["total_changes"]


def test_diff_logs_computation_with_plan_id():
    redis = FakeRedis()
    redis.data["global:plan:applied"] = json.dumps(dump_phases([phase("a")]))
    service = LoggingService(redis)
    make_client(AppState(redis_client=redis, logging_service=service)).get("/diff", params={"plan_id": "p9"})
    logs = asyncio.run(service.get_logs(plan_id="p9"))
    assert len(logs) == 1
    assert logs[0].event.kind is EventKind.DIFF_COMPUTED
    assert logs[0].event.payload == {"adds": 0, "updates": 0, "deletes": 0}