"""Success and failure handlers of a phase."""

from __future__ import annotations

from planter.model import Handler, Phase


async def handle_success(phase: Phase) -> None:
    """Run the phase's success handler, if it has one."""
    if phase.spec.on_success is not None:
        await _run_handler("Success", phase.spec.on_success)


async def handle_failure(phase: Phase) -> None:
    """Run the phase's failure handler, if it has one."""
    if phase.spec.on_failure is not None:
        await _run_handler("Failure", phase.spec.on_failure)


async def _run_handler(label: str, handler: Handler) -> None:
    print(f"Running {label} handler")
    spec = handler.spec
    if spec is None:
        return
    for msg in spec.message:
        print(f"[{label}] {msg}")
    if spec.notify is not None:
        if spec.notify.email is not None:
            print(f"[Notify] email => {spec.notify.email}")
        if spec.notify.slack is not None:
            print(f"[Notify] slack => {spec.notify.slack}")