import json

import pytest
import redis.exceptions

from planter.model import Phase, PhaseSpec, Selector, dump_phases
from planter.tracker import (
    load_applied_plan,
    load_current_plan,
    load_state_file,
    save_state_file,
    store_applied_plan,
    store_current_plan,
    tenant_key,
)


class FakeRedis:
    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value


class BrokenRedis:
    async def get(self, key):
        raise redis.exceptions.ConnectionError("down")

    async def set(self, key, value):
        raise redis.exceptions.ConnectionError("down")


def sample_phases():
    return [
        Phase(
            kind="TestKind",
            id="id1",
            spec=PhaseSpec(description="desc", selector=Selector(match_labels={})),
        )
    ]


@pytest.fixture(autouse=True)
def _clean_tenant(monkeypatch):
    monkeypatch.delenv("TENANT_KEY", raising=False)


def test_save_and_load_state_file(tmp_path, monkeypatch):
    monkeypatch.setenv("PLANTER_ROOT", str(tmp_path))
    phases = sample_phases()
    save_state_file(phases)
    assert load_state_file() == phases


def test_load_missing_file(tmp_path, monkeypatch):
    monkeypatch.setenv("PLANTER_ROOT", str(tmp_path))
    assert load_state_file() is None


def test_state_file_is_pretty_json(tmp_path, monkeypatch):
    monkeypatch.setenv("PLANTER_ROOT", str(tmp_path))
    save_state_file(sample_phases())
    text = (tmp_path / "state" / "state.json").read_text()
    assert "\n" in text
    assert json.loads(text) == dump_phases(sample_phases())


def test_corrupt_state_file_is_none(tmp_path, monkeypatch):
    monkeypatch.setenv("PLANTER_ROOT", str(tmp_path))
    (tmp_path / "state").mkdir()
    (tmp_path / "state" / "state.json").write_text("[{\"Kind\": 1}]")
    assert load_state_file() is None


def test_tenant_key_default_and_override(monkeypatch):
    assert tenant_key() == "global"
    monkeypatch.setenv("TENANT_KEY", "abc")
    assert tenant_key() == "abc"


@pytest.mark.asyncio
async def test_store_and_load_current_plan():
    client = FakeRedis()
    await store_current_plan(client, sample_phases())
    assert "global:plan:current" in client.data
    assert await load_current_plan(client) == sample_phases()
    assert await load_applied_plan(client) is None


@pytest.mark.asyncio
async def test_store_and_load_applied_plan():
    client = FakeRedis()
    await store_applied_plan(client, sample_phases())
    assert "global:plan:applied" in client.data
    assert await load_applied_plan(client) == sample_phases()
    assert await load_current_plan(client) is None


@pytest.mark.asyncio
async def test_keys_are_namespaced_by_tenant(monkeypatch):
    monkeypatch.setenv("TENANT_KEY", "abc")
    client = FakeRedis()
    await store_current_plan(client, sample_phases())
    assert list(client.data) == ["abc:plan:current"]


@pytest.mark.asyncio
async def test_invalid_stored_plan_is_none():
    client = FakeRedis()
    client.data["global:plan:current"] = json.dumps({"not": "a plan"})
    assert await load_current_plan(client) is None


@pytest.mark.asyncio
async def test_broken_client_load_is_none():
    assert await load_current_plan(BrokenRedis()) is None
    assert await load_applied_plan(BrokenRedis()) is None


@pytest.mark.asyncio
async def test_broken_client_store_reports(capsys):
    await store_current_plan(BrokenRedis(), sample_phases())
    await store_applied_plan(BrokenRedis(), sample_phases())
    err = capsys.readouterr().err
    assert "Failed to store current plan" in err
    assert "Failed to store applied plan" in err