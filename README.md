# planter

`planter` is a library for working with plans made of phases. It parses
plans, compares a new plan with the one applied before it, and runs phases
one after another with waits, retries and success or failure handlers. It
keeps plans and log entries in Redis, speaks a small session protocol over
NATS, and provides Starlette route handlers for an HTTP service built on
these pieces.

## Installing

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## A plan

A plan is a JSON list of phases:

```json
[
  {
    "Kind": "Phase",
    "Id": "deploy",
    "Spec": {
      "description": "Deploy application",
      "selector": {"match_labels": {"phase": "deploy"}},
      "wait_for": {"phases": ["setup"], "timeout": "30s"},
      "retry": {"max_attempts": 3},
      "onFailure": {
        "action": "continue",
        "spec": {"message": ["deploy failed"], "notify": {"email": "ops@example.com"}}
      }
    }
  }
]
```

`planter.model.parse_phases` turns such a list into `Phase` objects and
raises `ModelError` when a field is missing or of the wrong type;
`dump_phases` turns them back. Every class in `planter.model` (`Phase`,
`PhaseSpec`, `Selector`, `WaitFor`, `Retry`, `Handler`, `HandlerSpec`,
`Notify`) has `from_dict` and `to_dict`.

## Comparing plans

```python
from planter.model import parse_phases
from planter.diff import diff_plans, Add, Update, Delete

changes = diff_plans(parse_phases(old_json), parse_phases(new_json))
```

Phases are told apart by `Kind` and `Id` together. A phase only in the new
plan is an `Add`, one whose spec changed is an `Update` (with `old` and
`new`), and one missing from the new plan is a `Delete`. Additions and
updates come first, in the new plan's order, then deletions.

## Running phases

- `planter.executor.driver.execute(phase)` runs a short script with
  `python3` (or the current interpreter when `python3` is not on the path)
  and returns its output; it raises `ExecutionError` when the script fails.
- `planter.executor.runner.run_phase(client, phase)` waits for
  `wait_for.timeout` if it is set, then tries the phase up to
  `retry.max_attempts` times (once by default), calling the phase's success
  or failure handler from `planter.executor.hooks`.
- `planter.executor.runner.parse_duration(text)` reads durations such as
  `"30s"`, `"1m"` or `"1h 30m"` into a `timedelta`.
- `planter.executor.execution.execute_plan(client, phases)` runs every
  phase in order, reports failures on standard error, and then stores the
  plan as applied.

## State

`planter.store` keeps JSON values in Redis (`connect`, `set_json`,
`get_json`). `planter.tracker` builds on it:

- `store_current_plan`, `load_current_plan`, `store_applied_plan` and
  `load_applied_plan` use the keys `<tenant>:plan:current` and
  `<tenant>:plan:applied`, where the tenant is the `TENANT_KEY` environment
  variable or `global`.
- `save_state_file` and `load_state_file` write and read
  `$PLANTER_ROOT/state/state.json` (`/etc/planter` when `PLANTER_ROOT` is
  unset or empty).

`planter.config.Config.from_env()` reads `PORT` (default 3030),
`REDIS_URL` and `LOG_LEVEL` (default `info`).

## Events and logs

`planter.events` defines `Event` and `EventKind` and a process-wide bus:
`log_event` publishes on it, `set_bus` replaces it, and `DefaultBus`
prints events. `planter.logstorage.LogStorage` stores `LogEntry` objects in
Redis with an index of the 1000 most recent and returns them newest first,
filtered by plan and phase. `planter.logservice.LoggingService` uses that
storage when given a Redis client and prints to the console otherwise;
`RedisEventBus` prints events and stores them in the background.

## NATS sessions

`planter.nats.client.NatsClient.connect(url)` opens a connection (retrying
with backoff up to five times) and creates `NatsSession` objects. A session
publishes on `plan.session.<id>.start`, `.control`, `.state` and `.log`
with the messages in `planter.nats.messages`, and can subscribe to its
start and control subjects.

## HTTP handlers

`planter.routes` holds Starlette endpoint functions. Each reads an
`AppState` (from `planter.routes.plan`) at `request.app.state.app_state`:

| Function | Intended route |
| --- | --- |
| `planter.routes.plan.submit_plan` | POST `/plan` |
| `planter.routes.state.get_state` | GET `/state` |
| `planter.routes.diff.get_diff` | GET `/diff` |
| `planter.routes.logs.get_logs` | GET `/logs` |
| `planter.routes.phases.get_phase` | GET `/phases/{id}` |
| `planter.routes.apply.apply_plan` | POST `/apply` |
| `planter.routes.health.health_check` | GET `/health` |
| `planter.routes.health.readiness_check` | GET `/ready` |
| `planter.routes.health.metrics` | GET `/metrics` |

`submit_plan` dispatches the plan as a NATS session when `nats_client` is
set (answering 202 with a `sessionId`), otherwise diffs, stores and runs it
when `redis_client` is set, and otherwise only simulates execution.

## What the package does not do

The package has no command and no ready-made server: it does not assemble
the handlers into an application, listen on a port, handle signals, save or
reload the state file on shutdown, or sync state from another service. It
has no handler for YAML manifests and no stop or reload endpoints. To serve
the handlers, mount them in a Starlette application of your own and set its
`state.app_state` to an `AppState`.