import pytest

from planter.model import Phase, PhaseSpec, Selector
from planter.nats.messages import (
    ControlMessage,
    LogMessage,
    SessionControl,
    StartMessage,
    StateMessage,
    session_message_from_dict,
    session_message_to_dict,
)


def phase(phase_id):
    return Phase(kind="Phase", id=phase_id, spec=PhaseSpec(description=phase_id, selector=Selector({})))


def test_start_message_wire_keys():
    data = StartMessage([phase("setup")], dry_run=True).to_dict()
    assert data["dryRun"] is True
    assert data["manifest"][0]["Id"] == "setup"


def test_start_message_dry_run_defaults_false():
    msg = StartMessage.from_dict({"manifest": []})
    assert msg.dry_run is False
    assert msg.manifest == []


def test_log_message_omits_missing_phase():
    msg = LogMessage(None, "info", "hello", "t")
    assert "phaseId" not in msg.to_dict()
    assert LogMessage.from_dict(msg.to_dict()) == msg


@pytest.mark.parametrize(
    "message",
    [
        StartMessage([phase("a"), phase("b")], dry_run=False),
        ControlMessage("pause"),
        StateMessage("p", "running", "t"),
        LogMessage("p", "info", "Phase started", "t"),
    ],
)
def test_session_message_round_trip(message):
    data = session_message_to_dict(message)
    assert session_message_from_dict(data) == message


def test_session_message_tag():
    assert session_message_to_dict(ControlMessage("cancel"))["type"] == "Control"


def test_session_message_unknown_type():
    with pytest.raises(ValueError):
        session_message_from_dict({"type": "Nope"})


def test_state_message_missing_field():
    with pytest.raises(ValueError):
        StateMessage.from_dict({"phaseId": "p"})


def test_session_control_display():
    commands = [ControlMessage(str(control)).to_dict()["command"] for control in SessionControl]
    assert commands == ["pause", "resume", "cancel"]