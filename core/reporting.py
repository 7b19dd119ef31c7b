"""
Reporting Client - tells the remote authority what happened.

Reports are fire-and-forget: each one runs as a detached task, is never
retried, and a failure only produces a log entry. The local outcome is
final before any report is sent.

The helper has no outbound credential of its own. Each report carries the
bearer token the caller used for the action, so it inherits that token's
scope and whatever lifetime it has left.
"""

import asyncio
from typing import Any, Dict, Optional, Set

import httpx
import structlog

from config import Config
from core.actions.models import RollbackPoint, create_artifacts, utcnow

log = structlog.get_logger()


class ReportingClient:
    """Best-effort outbound notifications to the remote authority."""

    def __init__(self, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.report_url = config.report_url
        self._timeout = config.report_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._pending: Set[asyncio.Task] = set()

    def report(self, token: str, action_id: str, success: bool, output: str) -> asyncio.Task:
        """Schedule a report of an execution. Returns the detached task."""
        rollback_point = RollbackPoint.for_output(action_id, output) if success else None
        payload = {
            "actionId": action_id,
            "success": success,
            "output": output,
            "artifacts": [a.model_dump(mode="json") for a in create_artifacts(action_id, output)],
            "rollbackPoint": rollback_point.model_dump(mode="json") if rollback_point else None,
            "timestamp": utcnow().isoformat(),
        }
        return self._schedule(token, payload, kind="execution")

    def report_rollback(
        self,
        token: str,
        action_id: str,
        rollback_id: str,
        success: bool,
        output: str,
    ) -> asyncio.Task:
        """Schedule a report of a rollback. Returns the detached task."""
        reported_id = f"{action_id}_rollback"
        payload = {
            "actionId": reported_id,
            "rollbackId": rollback_id,
            "success": success,
            "output": output,
            "artifacts": [a.model_dump(mode="json") for a in create_artifacts(reported_id, output)],
            "timestamp": utcnow().isoformat(),
        }
        return self._schedule(token, payload, kind="rollback")

    def _schedule(self, token: str, payload: Dict[str, Any], kind: str) -> asyncio.Task:
        task = asyncio.create_task(self._send(token, payload, kind), name=f"report:{payload['actionId']}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _send(self, token: str, payload: Dict[str, Any], kind: str) -> bool:
        try:
            response = await self._get_client().post(
                self.report_url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
        except httpx.HTTPError as e:
            log.error("Failed to report result",
                      kind=kind,
                      action_id=payload["actionId"],
                      error=str(e),
                      error_type=type(e).__name__)
            return False
        except Exception as e:
            log.error("Unexpected error while reporting",
                      kind=kind,
                      action_id=payload["actionId"],
                      error=str(e),
                      error_type=type(e).__name__)
            return False

        if response.is_success:
            log.info("Successfully reported result to server",
                     kind=kind,
                     action_id=payload["actionId"])
            return True

        log.error("Server rejected report",
                  kind=kind,
                  action_id=payload["actionId"],
                  status_code=response.status_code,
                  error=response.text[:500])
        return False

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self):
        """Wait for every report scheduled so far."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self):
        await self.drain()
        if self._client is not None:
            await self._client.aclose()
            self._client = None
