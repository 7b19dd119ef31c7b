"""
Rollback Coordinator - reverses a previously executed action.

Only one level of rollback exists: the rollback sequence of an action is
run as-is and yields no rollback id of its own. The rollback id handed in
is the one minted when the action was executed; it is opaque here and
only threaded through to the report.
"""

from typing import Optional
import structlog

from core.auth import TokenValidator, authorize
from core.exceptions import NotReversible
from core.platform import ensure_compatible
from .executor import CommandExecutor
from .models import ActionStatus, ExecutionOutcome, create_artifacts
from .registry import ActionCatalog

log = structlog.get_logger()


class RollbackCoordinator:
    """
    Workflow:
    1. Resolve the action (ActionNotFound)
    2. Check it is reversible with a rollback sequence (NotReversible)
    3. Validate the token (AuthFailure / TokenExpired)
    4. Run the rollback sequence, continue-on-error
    5. Report the result, best-effort
    """

    def __init__(
        self,
        catalog: ActionCatalog,
        validator: TokenValidator,
        executor: CommandExecutor,
        reporter,
        enforce_binding: bool = False,
        host_os: Optional[str] = None,
    ):
        self.catalog = catalog
        self.validator = validator
        self.executor = executor
        self.reporter = reporter
        self.enforce_binding = enforce_binding
        self.host_os = host_os

    async def rollback(self, action_id: str, rollback_id: str, token: str) -> ExecutionOutcome:
        """
        Run the rollback sequence of action_id.

        Raises:
            ActionNotFound, NotReversible, AuthFailure, TokenExpired,
            PlatformMismatch: before any command runs
        """
        action = self.catalog.get(action_id)

        if not action.can_rollback:
            log.warning("Rollback refused", action_id=action_id, reason="not reversible")
            raise NotReversible(action_id)

        claims = authorize(self.validator, token, action_id, self.enforce_binding)

        if self.host_os is not None:
            ensure_compatible(action, self.host_os)

        log.info("Starting rollback",
                 action_id=action_id,
                 rollback_id=rollback_id,
                 approval_id=claims.approval_id,
                 subject=claims.subject)

        outcome = ExecutionOutcome(
            action_id=action_id,
            status=ActionStatus.FAILED,
            success=False,
            message="",
        )

        success, output, steps = await self.executor.run_steps(action.rollback_commands)

        outcome.success = success
        outcome.status = ActionStatus.SUCCESS if success else ActionStatus.FAILED
        outcome.message = (
            f"{action.title} rollback completed successfully" if success
            else f"{action.title} rollback failed"
        )
        outcome.output = output
        outcome.error = None if success else output
        outcome.steps = steps
        outcome.artifacts = create_artifacts(f"{action_id}_rollback", output)
        outcome.mark_completed()

        log.info("Rollback finished",
                 action_id=action_id,
                 rollback_id=rollback_id,
                 success=success,
                 duration_seconds=outcome.duration_seconds)

        self.reporter.report_rollback(token, action_id, rollback_id, success, output)

        return outcome

