import pytest

from planter.executor.hooks import handle_failure, handle_success
from planter.model import Handler, HandlerSpec, Notify, Phase, PhaseSpec, Selector


def phase_with_handlers(phase_id):
    return Phase(
        kind="Phase",
        id=phase_id,
        spec=PhaseSpec(
            description=f"Test phase {phase_id}",
            selector=Selector({"phase": phase_id}),
            on_failure=Handler(
                action="log",
                spec=HandlerSpec(
                    message=[f"Phase {phase_id} failed"],
                    notify=Notify(email="admin@example.com", slack="#alerts"),
                    labels={"status": "failed"},
                ),
            ),
            on_success=Handler(
                action="log",
                spec=HandlerSpec(
                    message=[f"Phase {phase_id} succeeded"], labels={"status": "success"}
                ),
            ),
        ),
    )


def phase_no_handlers(phase_id):
    return Phase(
        kind="Phase",
        id=phase_id,
        spec=PhaseSpec(description=f"Test phase {phase_id}", selector=Selector({"phase": phase_id})),
    )


@pytest.mark.asyncio
async def test_handle_success_with_handler(capsys):
    await handle_success(phase_with_handlers("test1"))
    lines = capsys.readouterr().out.splitlines()
    assert lines == ["Running Success handler", "[Success] Phase test1 succeeded"]


@pytest.mark.asyncio
async def test_handle_success_no_handler(capsys):
    await handle_success(phase_no_handlers("test1"))
    assert capsys.readouterr().out == ""


@pytest.mark.asyncio
async def test_handle_failure_with_handler(capsys):
    await handle_failure(phase_with_handlers("test1"))
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "Running Failure handler",
        "[Failure] Phase test1 failed",
        "[Notify] email => admin@example.com",
        "[Notify] slack => #alerts",
    ]


@pytest.mark.asyncio
async def test_handle_failure_no_handler(capsys):
    await handle_failure(phase_no_handlers("test1"))
    assert capsys.readouterr().out == ""


@pytest.mark.asyncio
async def test_handler_with_minimal_spec(capsys):
    phase = Phase(
        kind="Phase",
        id="minimal",
        spec=PhaseSpec(
            description="Minimal test",
            selector=Selector({}),
            on_failure=Handler(action="continue", spec=None),
        ),
    )
    await handle_failure(phase)
    assert capsys.readouterr().out.splitlines() == ["Running Failure handler"]