# probes/macos_probe.py
"""
macOS security posture probes.
"""

import os
import re
from typing import Callable, List, Optional
import psutil
import structlog

from probes.base_probe import (
    PlatformProbe, CommandRunner, run_command_capture,
    UpdatesResult, FirewallResult, AvResult, FileVaultResult,
    TimeMachineResult, SipResult
)

log = structlog.get_logger()

AV_PRODUCTS = [
    "Sophos", "Malwarebytes", "McAfee", "Symantec", "Norton", "CrowdStrike",
    "SentinelOne", "Defender", "ESET", "Avast", "AVG",
]

XPROTECT_BUNDLES = [
    "/System/Library/CoreServices/XProtect.bundle/Contents/Info",
    "/Library/Apple/System/Library/CoreServices/XProtect.app/Contents/Info",
]

_SIP_STATUS = re.compile(r"status:\s*(enabled|disabled)", re.IGNORECASE)
_FIREWALL_STATE = re.compile(r"State\s*=\s*(\d)")


def running_process_names() -> List[str]:
    names = []
    for proc in psutil.process_iter(['name']):
        try:
            name = proc.info['name']
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
        if name:
            names.append(name)
    return names


class MacOSProbe(PlatformProbe):
    """Probes backed by softwareupdate, socketfilterfw, spctl, fdesetup, tmutil and csrutil."""

    platform = "macos"

    def __init__(
        self,
        runner: CommandRunner = run_command_capture,
        process_names: Callable[[], List[str]] = running_process_names,
        path_exists: Callable[[str], bool] = os.path.exists,
    ):
        self._run = runner
        self._process_names = process_names
        self._path_exists = path_exists

    def updates(self) -> UpdatesResult:
        _ok, out = self._run("/usr/sbin/softwareupdate", ["-l", "--no-scan"])
        if "No new software available." in out:
            pending: Optional[int] = 0
        else:
            count = sum(
                1 for line in out.splitlines()
                if line.lstrip().startswith("*") or "Label:" in line
            )
            pending = count or None
        return UpdatesResult(supported=True, pending=pending, raw=out)

    def firewall(self) -> FirewallResult:
        _ok, out = self._run("/usr/libexec/ApplicationFirewall/socketfilterfw", ["--getglobalstate"])
        enabled: Optional[bool] = None
        match = _FIREWALL_STATE.search(out)
        if match:
            enabled = match.group(1) != "0"
        elif "is enabled" in out:
            enabled = True
        elif "is disabled" in out:
            enabled = False
        return FirewallResult(supported=True, enabled=enabled, raw=out)

    def av(self) -> AvResult:
        _ok, spctl_out = self._run("/usr/sbin/spctl", ["--status"])
        lowered = spctl_out.lower()
        gatekeeper: Optional[bool] = None
        if "assessments enabled" in lowered:
            gatekeeper = True
        elif "assessments disabled" in lowered:
            gatekeeper = False

        names = self._process_names()
        products = [p for p in AV_PRODUCTS if any(p in name for name in names)]

        xprotect_version = None
        for bundle in XPROTECT_BUNDLES:
            if self._path_exists(f"{bundle}.plist"):
                ok, out = self._run("/usr/bin/defaults", ["read", bundle, "CFBundleShortVersionString"])
                version = out.strip()
                if ok and version:
                    xprotect_version = version
                    break

        raw = f"spctl: {spctl_out.strip()}\nprocesses: {', '.join(products)}"
        return AvResult(
            supported=True,
            gatekeeper_enabled=gatekeeper,
            third_party_detected=bool(products),
            products=products,
            xprotect_version=xprotect_version,
            raw=raw,
        )

    def filevault(self) -> FileVaultResult:
        _ok, out = self._run("/usr/bin/fdesetup", ["status"])
        lowered = out.lower()
        enabled: Optional[bool] = None
        if "filevault is on" in lowered:
            enabled = True
        elif "filevault is off" in lowered:
            enabled = False
        return FileVaultResult(supported=True, enabled=enabled, raw=out)

    def timemachine(self) -> TimeMachineResult:
        _ok, status_out = self._run("/usr/bin/tmutil", ["status"])
        running: Optional[bool] = None
        if "Running = 1" in status_out:
            running = True
        elif "Running = 0" in status_out:
            running = False

        latest_ok, latest_out = self._run("/usr/bin/tmutil", ["latestbackup"])
        latest = latest_out.strip()
        configured: Optional[bool] = None
        latest_backup = None
        if latest_ok:
            configured = bool(latest) and "(null)" not in latest
            if configured:
                latest_backup = latest.splitlines()[-1].strip()

        raw = f"status: {status_out.strip()}\nlatest: {latest}"
        return TimeMachineResult(
            supported=True,
            configured=configured,
            running=running,
            latest_backup=latest_backup,
            raw=raw,
        )

    def sip(self) -> SipResult:
        _ok, out = self._run("/usr/bin/csrutil", ["status"])
        enabled: Optional[bool] = None
        match = _SIP_STATUS.search(out)
        if match:
            enabled = match.group(1).lower() == "enabled"
        return SipResult(supported=True, enabled=enabled, raw=out)
