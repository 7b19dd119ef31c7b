"""
Automation Service - the in-process surface of the helper.

Executes allowlisted actions on behalf of the embedding shell:
1. Resolve the action in the catalog
2. Validate the scoped token (expiry checked before anything runs)
3. Run the command sequence, continue-on-error
4. Mint a rollback id for actions that can be rolled back
5. Report the outcome to the remote authority, best-effort
"""

import threading
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
import structlog

from config import Config
from core.actions import (
    ActionCatalog, ActionStatus, CommandExecutor, ExecutionOutcome,
    RollbackCoordinator, RollbackPoint, create_artifacts, utcnow,
)
from core.auth import TokenValidator, authorize
from core.platform import current_platform, ensure_compatible
from core.reporting import ReportingClient

log = structlog.get_logger()


@dataclass(frozen=True)
class HelperState:
    """Catalog and credential bundle shared by one call path."""
    catalog: ActionCatalog
    validator: TokenValidator
    coordinator: RollbackCoordinator


class AutomationService:
    """Execute, roll back and describe allowlisted actions."""

    def __init__(
        self,
        config: Config,
        catalog: ActionCatalog,
        executor: Optional[CommandExecutor] = None,
        reporter: Optional[ReportingClient] = None,
        validator: Optional[TokenValidator] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.executor = executor or CommandExecutor(timeout=config.command_timeout)
        self.reporter = reporter or ReportingClient(config, transport=transport)
        self.host_os = current_platform() if config.enforce_platform else None

        validator = validator or TokenValidator(config.jwt_secret, config.jwt_algorithm)
        coordinator = RollbackCoordinator(
            catalog,
            validator,
            self.executor,
            self.reporter,
            enforce_binding=config.enforce_action_binding,
            host_os=self.host_os,
        )

        self._lock = threading.Lock()
        self._state = HelperState(catalog=catalog, validator=validator, coordinator=coordinator)

        if config.uses_default_secret:
            log.warning("Using the default signing secret; set OHFIXIT_JWT_SECRET")

    def _snapshot(self) -> HelperState:
        with self._lock:
            return self._state

    @property
    def catalog(self) -> ActionCatalog:
        return self._snapshot().catalog

    async def execute(
        self,
        action_id: str,
        parameters: Optional[Dict[str, Any]],
        token: str,
    ) -> ExecutionOutcome:
        """
        Run an allowlisted action.

        parameters are accepted for interface compatibility and never
        influence the commands that run.

        Raises:
            ActionNotFound, AuthFailure, TokenExpired, PlatformMismatch:
            before any command runs
        """
        state = self._snapshot()
        action = state.catalog.get(action_id)
        claims = authorize(state.validator, token, action_id, self.config.enforce_action_binding)

        if self.host_os is not None:
            ensure_compatible(action, self.host_os)

        log.info("Starting execution",
                 action_id=action_id,
                 approval_id=claims.approval_id,
                 subject=claims.subject,
                 ignored_parameters=sorted(parameters or {}))

        outcome = ExecutionOutcome(
            action_id=action_id,
            status=ActionStatus.FAILED,
            success=False,
            message="",
        )

        success, output, steps = await self.executor.run_steps(action.commands)

        outcome.success = success
        outcome.status = ActionStatus.SUCCESS if success else ActionStatus.FAILED
        outcome.message = (
            f"{action.title} completed successfully" if success
            else f"{action.title} failed"
        )
        outcome.output = output
        outcome.error = None if success else output
        outcome.steps = steps
        outcome.artifacts = create_artifacts(action_id, output)
        if action.can_rollback:
            outcome.rollback_id = str(uuid.uuid4())
        if success:
            outcome.rollback_point = RollbackPoint.for_output(action_id, output)
        outcome.mark_completed()

        log.info("Execution finished",
                 action_id=action_id,
                 success=success,
                 rollback_id=outcome.rollback_id,
                 duration_seconds=outcome.duration_seconds)

        self.reporter.report(token, action_id, success, output)

        return outcome

    async def rollback(self, action_id: str, rollback_id: str, token: str) -> ExecutionOutcome:
        """Roll back a previously executed action. See RollbackCoordinator."""
        state = self._snapshot()
        return await state.coordinator.rollback(action_id, rollback_id, token)

    def health(self) -> Dict[str, Any]:
        """Capability descriptor for the embedding shell."""
        catalog = self._snapshot().catalog
        return {
            "status": "healthy",
            "version": self.config.version,
            "timestamp": utcnow().isoformat(),
            "platform": current_platform(),
            "actions_available": len(catalog),
            "actions": catalog.list_available(),
        }

    def clone(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> "AutomationService":
        """
        Independently owned service over a copy of the catalog.

        The control plane runs on its own copy so it never shares state
        with the in-process path.
        """
        state = self._snapshot()
        return AutomationService(
            self.config,
            state.catalog.copy(),
            executor=CommandExecutor(timeout=self.executor.timeout),
            validator=TokenValidator(self.config.jwt_secret, self.config.jwt_algorithm),
            transport=transport,
        )

    async def aclose(self):
        await self.reporter.aclose()
