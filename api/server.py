"""Loopback control plane exposing the helper to the shell and the remote authority."""

from __future__ import annotations

import asyncio
import contextlib
import re
import socket
from typing import Any, Callable, Dict, Optional

import structlog
import uvicorn
from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config import Config
from core.actions.models import utcnow
from core.exceptions import (
    HelperError, AuthFailure, TokenExpired, ActionNotFound,
    NotReversible, PlatformMismatch
)
from core.service import AutomationService
from probes import CHECKS, get_probe, scan_host

log = structlog.get_logger()

CAPABILITIES = ["screenshot", "system_info", "process_list", "file_operations"]

_BEARER = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)

_STATUS_CODES = {
    AuthFailure: 401,
    TokenExpired: 401,
    ActionNotFound: 404,
    NotReversible: 409,
    PlatformMismatch: 409,
}


class ScreenshotRequest(BaseModel):
    region: Optional[Dict[str, Any]] = None
    display: Optional[int] = None
    includeCursor: Optional[bool] = None
    format: Optional[str] = None
    quality: Optional[int] = None


class AutomationExecuteRequest(BaseModel):
    actionId: str
    parameters: Optional[Dict[str, Any]] = None


class AutomationRollbackRequest(BaseModel):
    actionId: str
    rollbackId: str


def bearer_token(authorization: Optional[str]) -> str:
    match = _BEARER.match((authorization or "").strip())
    return match.group(1).strip() if match else ""


def create_app(
    service: AutomationService,
    probe_factory: Callable[[str], Any] = get_probe,
    host_scan: Callable[[], Dict[str, Any]] = scan_host,
) -> FastAPI:
    """Build the control plane around an independently owned service."""
    app = FastAPI(title="OhFixIt Desktop Helper", version=service.config.version)

    # First-party callers only, but any local process can reach this surface.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(HelperError)
    async def helper_error_handler(request: Request, exc: HelperError):
        status_code = _STATUS_CODES.get(type(exc), 400)
        log.warning("Request rejected",
                    path=request.url.path,
                    error=exc.code,
                    message=exc.message)
        return JSONResponse(
            status_code=status_code,
            content={"success": False, "output": exc.message, "error": exc.code},
        )

    @app.get("/status")
    def status():
        return {
            "status": "ok",
            "version": service.config.version,
            "capabilities": CAPABILITIES,
            "actions_available": len(service.catalog),
        }

    @app.post("/screenshot")
    def screenshot(req: Optional[ScreenshotRequest] = None):
        return {
            "success": False,
            "data": None,
            "format": "png",
            "size": None,
            "dimensions": None,
            "timestamp": utcnow().isoformat(),
            "error": "Not implemented",
            "details": "Desktop Helper installed and reachable, but screenshot capture is not yet implemented.",
        }

    @app.post("/automation/execute")
    async def automation_execute(
        req: AutomationExecuteRequest,
        authorization: Optional[str] = Header(default=None),
    ):
        outcome = await service.execute(req.actionId, req.parameters, bearer_token(authorization))
        return outcome.to_response()

    @app.post("/automation/rollback")
    async def automation_rollback(
        req: AutomationRollbackRequest,
        authorization: Optional[str] = Header(default=None),
    ):
        outcome = await service.rollback(req.actionId, req.rollbackId, bearer_token(authorization))
        return outcome.to_response()

    @app.get("/health/scan")
    def health_scan():
        return host_scan()

    @app.get("/health/{platform}/{check}")
    def platform_check(platform: str, check: str):
        if check not in CHECKS:
            raise HTTPException(status_code=404, detail=f"Unknown check: {check}")
        try:
            probe = probe_factory(platform)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Unknown platform: {platform}")
        return probe.check(check).model_dump(mode="json")

    return app


class ControlPlaneServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the host process."""

    @contextlib.contextmanager
    def capture_signals(self):
        yield

    def install_signal_handlers(self):
        pass


def bind_socket(host: str, port: int) -> Optional[socket.socket]:
    """Bind the listener up front; None when the port is taken."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        log.warning("Port already in use; control plane not started",
                    host=host, port=port, error=str(e))
        return None
    return sock


class ControlPlane:
    """
    Runs the control plane as a task of the host's event loop.

    If the port is occupied the host keeps running without a control plane.
    """

    def __init__(self, config: Config, service: AutomationService):
        self.config = config
        self.service = service
        self.app = create_app(service)
        self.server: Optional[ControlPlaneServer] = None
        self.task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()

    def start(self) -> bool:
        sock = bind_socket(self.config.host, self.config.port)
        if sock is None:
            return False

        self.server = ControlPlaneServer(uvicorn.Config(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level="warning",
        ))
        self.task = asyncio.create_task(self._serve(sock), name="control_plane")
        log.info("Control plane listening", host=self.config.host, port=self.config.port)
        return True

    async def _serve(self, sock: socket.socket):
        try:
            await self.server.serve(sockets=[sock])
        except Exception as e:
            log.error("Control plane stopped", error=str(e))
        finally:
            sock.close()

    async def stop(self):
        if self.server is not None:
            self.server.should_exit = True
        if self.task is not None:
            await asyncio.gather(self.task, return_exceptions=True)
