import asyncio

import pytest

from core.actions import ActionCatalog, ActionDefinition, ActionStatus, content_hash
from core.exceptions import ActionNotFound, AuthFailure, PlatformMismatch, TokenExpired
from core.platform import current_platform
from core.service import AutomationService

from conftest import NOW, CountingExecutor, RecordingAuthority, make_config, make_token


def test_unknown_action_spawns_nothing(service, executor, validator):
    token = make_token(validator, "rm-everything")

    with pytest.raises(ActionNotFound):
        asyncio.run(service.execute("rm-everything", None, token))

    assert executor.spawned == []


def test_expired_token_spawns_nothing(service, executor, validator):
    token = make_token(validator, exp=NOW - 1)

    with pytest.raises(TokenExpired):
        asyncio.run(service.execute("echo-action", None, token))

    assert executor.spawned == []


def test_token_expiring_now_is_accepted(service, validator):
    token = make_token(validator, exp=NOW)

    outcome = asyncio.run(service.execute("echo-action", None, token))

    assert outcome.success is True


def test_bad_token_spawns_nothing(service, executor):
    with pytest.raises(AuthFailure):
        asyncio.run(service.execute("echo-action", None, "not-a-token"))

    assert executor.spawned == []


def test_execute_success(service, validator, authority):
    token = make_token(validator)

    async def scenario():
        outcome = await service.execute("echo-action", {"ignored": True}, token)
        await service.reporter.drain()
        return outcome

    outcome = asyncio.run(scenario())

    assert outcome.success is True
    assert outcome.status == ActionStatus.SUCCESS
    assert outcome.message == "Echo completed successfully"
    assert outcome.output == "Command: echo hello\nOutput: hello\n\n"
    assert outcome.error is None
    assert outcome.rollback_id is None
    assert outcome.artifacts[0].type == "execution_log"
    assert outcome.artifacts[0].hash == content_hash(outcome.output)
    assert outcome.duration_seconds is not None

    assert len(authority.reports) == 1
    report = authority.reports[0]
    assert report["actionId"] == "echo-action"
    assert report["success"] is True
    assert report["output"] == outcome.output
    assert report["rollbackPoint"]["data"]["output_hash"] == content_hash(outcome.output)
    assert authority.headers[0]["authorization"] == f"Bearer {token}"


def test_parameters_never_reach_commands(service, executor, validator):
    token = make_token(validator)

    asyncio.run(service.execute("echo-action", {"command": "rm -rf /"}, token))

    assert executor.spawned == ["echo hello"]


def test_continue_on_error(service, executor, validator):
    outcome = asyncio.run(service.execute("mixed-action", None, make_token(validator)))

    assert outcome.success is False
    assert outcome.status == ActionStatus.FAILED
    assert outcome.message == "Mixed failed"
    assert executor.spawned == ["true", "false", "echo ok"]
    assert outcome.output.count("Command: ") == 3
    assert "ok" in outcome.output
    assert outcome.error == outcome.output
    # Failed executions can still be rolled back, but carry no rollback point.
    assert outcome.rollback_id is not None
    assert outcome.rollback_point is None


def test_backup_action_yields_rollback_point(service, validator, tmp_path):
    (tmp_path / "state.txt").write_text("original")

    outcome = asyncio.run(service.execute("backup-action", None, make_token(validator)))

    assert outcome.success is True
    assert outcome.rollback_id is not None
    assert outcome.rollback_point.method == "command_sequence"
    assert outcome.rollback_point.data["action_id"] == "backup-action"
    assert not (tmp_path / "state.txt").exists()
    assert (tmp_path / "state.bak").read_text() == "original"

    response = outcome.to_response()
    assert response["rollbackId"] == outcome.rollback_id
    assert response["artifacts"][0]["type"] == "execution_log"


def test_idempotent_action_twice(service, validator):
    token = make_token(validator, "flush-action")

    async def twice():
        first = await service.execute("flush-action", None, token)
        second = await service.execute("flush-action", None, token)
        return first, second

    first, second = asyncio.run(twice())

    assert first.success is second.success is True
    assert first.output == second.output


@pytest.mark.parametrize("authority", [
    RecordingAuthority(fail=True),
    RecordingAuthority(status_code=500),
    RecordingAuthority(status_code=401),
])
def test_reporting_failure_never_changes_outcome(catalog, validator, authority):
    service = AutomationService(
        make_config(),
        catalog,
        validator=validator,
        transport=authority.transport,
    )

    async def scenario():
        outcome = await service.execute("echo-action", None, make_token(validator))
        await service.aclose()
        return outcome

    outcome = asyncio.run(scenario())

    assert outcome.success is True
    assert outcome.message == "Echo completed successfully"
    assert len(authority.reports) == 1


def test_concurrent_distinct_actions(validator, authority):
    catalog = ActionCatalog([
        ActionDefinition(
            id=f"action-{i}",
            title=f"Action {i}",
            commands=[f"echo {i}"],
            rollback_commands=[f"echo undo-{i}"],
        )
        for i in range(100)
    ])
    service = AutomationService(
        make_config(),
        catalog,
        validator=validator,
        transport=authority.transport,
    )

    async def scenario():
        outcomes = await asyncio.gather(*[
            service.execute(f"action-{i}", None, make_token(validator, f"action-{i}"))
            for i in range(100)
        ])
        await service.aclose()
        return outcomes

    outcomes = asyncio.run(scenario())

    assert all(o.success for o in outcomes)
    for i, outcome in enumerate(outcomes):
        assert outcome.action_id == f"action-{i}"
        assert outcome.output == f"Command: echo {i}\nOutput: {i}\n\n"
    assert len({o.rollback_id for o in outcomes}) == 100
    assert len(authority.reports) == 100


def test_action_binding_is_opt_in(catalog, validator, authority):
    token = make_token(validator, "some-other-action")

    loose = AutomationService(make_config(), catalog, validator=validator,
                              transport=authority.transport)
    assert asyncio.run(loose.execute("echo-action", None, token)).success is True

    executor = CountingExecutor()
    strict = AutomationService(make_config(enforce_action_binding=True), catalog,
                               executor=executor, validator=validator,
                               transport=authority.transport)
    with pytest.raises(AuthFailure):
        asyncio.run(strict.execute("echo-action", None, token))
    assert executor.spawned == []


@pytest.mark.skipif(current_platform() == "macos", reason="needs a non-macOS host")
def test_platform_mismatch_spawns_nothing(catalog, validator, authority):
    executor = CountingExecutor()
    service = AutomationService(make_config(enforce_platform=True), catalog,
                                executor=executor, validator=validator,
                                transport=authority.transport)

    with pytest.raises(PlatformMismatch) as excinfo:
        asyncio.run(service.execute("mac-only", None, make_token(validator, "mac-only")))

    assert excinfo.value.action_os == "macos"
    assert executor.spawned == []
    assert asyncio.run(service.execute("echo-action", None, make_token(validator))).success


def test_health(service):
    health = service.health()

    assert health["status"] == "healthy"
    assert health["version"] == "0.1.0"
    assert health["platform"] == current_platform()
    assert health["actions_available"] == 6
    assert "backup-action" in health["actions"]


def test_clone_is_independent(service, validator):
    clone = service.clone()

    assert clone is not service
    assert clone.catalog is not service.catalog
    assert clone.catalog.list_available() == service.catalog.list_available()
    assert clone.reporter is not service.reporter
    assert clone.executor is not service.executor
