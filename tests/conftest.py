"""
Shared fixtures: a fixed clock, a recording remote authority and a
service wired to both.
"""

import json
from typing import Any, Dict, List

import httpx
import pytest

from config import Config
from core.actions import ActionCatalog, ActionDefinition, CommandExecutor
from core.auth import TokenValidator
from core.service import AutomationService

SECRET = "test-secret"
NOW = 1_700_000_000
AUTHORITY = "http://authority.test"


class RecordingAuthority:
    """Stands in for the remote authority's report endpoint."""

    def __init__(self, status_code: int = 200, fail: bool = False):
        self.status_code = status_code
        self.fail = fail
        self.reports: List[Dict[str, Any]] = []
        self.headers: List[Dict[str, str]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.reports.append(json.loads(request.content))
        self.headers.append(dict(request.headers))
        if self.fail:
            raise httpx.ConnectError("authority unreachable", request=request)
        return httpx.Response(self.status_code, json={"ok": self.status_code < 400})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class CountingExecutor(CommandExecutor):
    """CommandExecutor that records every command it spawns."""

    def __init__(self, timeout=None):
        super().__init__(timeout=timeout)
        self.spawned: List[str] = []

    async def _run_one(self, command, argv):
        self.spawned.append(command)
        return await super()._run_one(command, argv)


def make_config(**overrides) -> Config:
    values = dict(
        jwt_secret=SECRET,
        jwt_algorithm="HS256",
        server_url=AUTHORITY,
        enforce_platform=False,
        enforce_action_binding=False,
        command_timeout=None,
    )
    values.update(overrides)
    return Config(**values)


def make_token(validator: TokenValidator, action_id: str = "echo-action", **claims) -> str:
    body = {
        "action_id": action_id,
        "approval_id": "approval-1",
        "chat_id": "chat-1",
        "scope": "both",
    }
    body.update(claims)
    return validator.issue(body)


@pytest.fixture
def clock():
    state = {"now": NOW}
    return state


@pytest.fixture
def validator(clock):
    return TokenValidator(SECRET, "HS256", clock=lambda: clock["now"])


@pytest.fixture
def authority():
    return RecordingAuthority()


@pytest.fixture
def executor():
    return CountingExecutor()


@pytest.fixture
def catalog(tmp_path):
    state = tmp_path / "state.txt"
    backup = tmp_path / "state.bak"
    return ActionCatalog([
        ActionDefinition(
            id="echo-action",
            title="Echo",
            commands=["echo hello"],
            reversible=False,
        ),
        ActionDefinition(
            id="mixed-action",
            title="Mixed",
            commands=["true", "false", "echo ok"],
            rollback_commands=["echo undo"],
        ),
        ActionDefinition(
            id="backup-action",
            title="Backup And Remove",
            commands=[f"cp {state} {backup}", f"rm {state}"],
            rollback_commands=[f"cp {backup} {state}"],
            creates_backup=True,
        ),
        ActionDefinition(
            id="flush-action",
            title="Flush",
            commands=["echo flushed"],
            reversible=False,
        ),
        ActionDefinition(
            id="reversible-no-rollback",
            title="Claims Reversible",
            commands=["echo hi"],
            reversible=True,
        ),
        ActionDefinition(
            id="mac-only",
            title="Mac Only",
            os="macos",
            commands=["echo mac"],
        ),
    ])


@pytest.fixture
def service(catalog, executor, validator, authority):
    return AutomationService(
        make_config(),
        catalog,
        executor=executor,
        validator=validator,
        transport=authority.transport,
    )
