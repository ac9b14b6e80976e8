import json
from datetime import datetime

import pytest

from planter.model import Phase, PhaseSpec, Selector
from planter.nats.session import NatsSession


class FakeConnection:
    def __init__(self):
        self.published = []
        self.subscribed = []

    async def publish(self, subject, payload):
        self.published.append((subject, json.loads(payload)))

    async def subscribe(self, subject):
        self.subscribed.append(subject)
        return subject


def create_test_phase(phase_id, description):
    return Phase(
        kind="Phase",
        id=phase_id,
        spec=PhaseSpec(description=description, selector=Selector({"phase": phase_id})),
    )


def test_subjects():
    s = NatsSession(FakeConnection(), "abc")
    assert s.start_subject() == "plan.session.abc.start"
    assert s.control_subject() == "plan.session.abc.control"
    assert s.log_subject() == "plan.session.abc.log"
    assert s.events_subject() == "plan.session.abc.events"
    assert s.state_subject() == "plan.session.abc.state"
    assert s.get_state_subject() == "plan.session.abc.get_state"
    assert s.diff_subject() == "plan.session.abc.diff"


def test_generate_session_id_unique():
    a, b = NatsSession.generate_session_id(), NatsSession.generate_session_id()
    assert a.startswith("session-") and b.startswith("session-")
    assert a != b


@pytest.mark.asyncio
async def test_start_message():
    conn = FakeConnection()
    s = NatsSession(conn, "x")
    await s.start_session(
        [create_test_phase("setup", "Initialize system"), create_test_phase("deploy", "Deploy application")],
        False,
    )
    subject, data = conn.published[0]
    assert subject == "plan.session.x.start"
    assert data["dryRun"] is False
    assert len(data["manifest"]) == 2
    assert data["manifest"][0]["Id"] == "setup"
    assert data["manifest"][0]["Spec"]["description"] == "Initialize system"
    assert data["manifest"][1]["Id"] == "deploy"
    assert data["manifest"][1]["Spec"]["description"] == "Deploy application"


@pytest.mark.asyncio
async def test_control_message():
    conn = FakeConnection()
    s = NatsSession(conn, "x")
    await s.send_control("pause")
    assert conn.published == [("plan.session.x.control", {"command": "pause"})]


@pytest.mark.asyncio
async def test_state_and_log_publishing():
    conn = FakeConnection()
    s = NatsSession(conn, "x")
    await s.publish_state("test-phase", "running")
    await s.publish_log("test-phase", "info", "Phase started")
    (state_subject, state), (log_subject, log) = conn.published
    assert state_subject == s.state_subject()
    assert state["phaseId"] == "test-phase"
    assert state["status"] == "running"
    assert datetime.fromisoformat(state["updated"]).tzinfo is not None
    assert log_subject == s.log_subject()
    assert log["phaseId"] == "test-phase"
    assert log["level"] == "info"
    assert log["message"] == "Phase started"
    assert isinstance(log["timestamp"], str)


@pytest.mark.asyncio
async def test_subscriptions():
    conn = FakeConnection()
    s = NatsSession(conn, "x")
    assert await s.subscribe_control() == "plan.session.x.control"
    assert await s.subscribe_start() == "plan.session.x.start"