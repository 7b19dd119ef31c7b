# probes/base_probe.py
"""
Read-only platform security probes.

A probe shells out to platform tools and pattern-matches their text. When
the text matches no known pattern the answer is None ("unknown"), never
"disabled". Hosts without an implementation get UnsupportedProbe, whose
every answer is `supported: false`.
"""

import subprocess
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence, Tuple
from pydantic import BaseModel, Field
import structlog

log = structlog.get_logger()

CommandRunner = Callable[[str, Sequence[str]], Tuple[bool, str]]

CHECKS = ("updates", "firewall", "av", "filevault", "timemachine", "sip")


def run_command_capture(cmd: str, args: Sequence[str], timeout: int = 30) -> Tuple[bool, str]:
    """Run a probe command; returns (exit status ok, stdout plus stderr)."""
    try:
        result = subprocess.run(
            [cmd, *args],
            capture_output=True,
            text=True,
            timeout=timeout
        )
    except subprocess.TimeoutExpired:
        return False, "Command timed out"
    except OSError as e:
        return False, str(e)

    combined = result.stdout
    if result.stderr.strip():
        combined += "\n" + result.stderr
    return result.returncode == 0, combined


class ProbeResult(BaseModel):
    supported: bool
    raw: str = ""


class UpdatesResult(ProbeResult):
    pending: Optional[int] = None


class FirewallResult(ProbeResult):
    enabled: Optional[bool] = None


class AvResult(ProbeResult):
    gatekeeper_enabled: Optional[bool] = None
    third_party_detected: bool = False
    products: List[str] = Field(default_factory=list)
    xprotect_version: Optional[str] = None


class FileVaultResult(ProbeResult):
    enabled: Optional[bool] = None


class TimeMachineResult(ProbeResult):
    configured: Optional[bool] = None
    running: Optional[bool] = None
    latest_backup: Optional[str] = None


class SipResult(ProbeResult):
    enabled: Optional[bool] = None


class PlatformProbe(ABC):
    """One implementation per platform; every check answers with a ProbeResult."""

    platform: str = "unknown"
    supported: bool = True

    @abstractmethod
    def updates(self) -> UpdatesResult:
        """Pending OS updates."""

    @abstractmethod
    def firewall(self) -> FirewallResult:
        """Host firewall state."""

    @abstractmethod
    def av(self) -> AvResult:
        """Built-in malware protection and third-party antivirus heuristics."""

    @abstractmethod
    def filevault(self) -> FileVaultResult:
        """Disk encryption state."""

    @abstractmethod
    def timemachine(self) -> TimeMachineResult:
        """Backup configuration and freshness."""

    @abstractmethod
    def sip(self) -> SipResult:
        """Platform integrity protection state."""

    def check(self, name: str) -> ProbeResult:
        """Run a check by name (one of CHECKS)."""
        if name not in CHECKS:
            raise KeyError(name)
        return getattr(self, name)()


class UnsupportedProbe(PlatformProbe):
    """Answers `supported: false` for every check."""

    supported = False

    def __init__(self, platform: str):
        self.platform = platform

    def updates(self) -> UpdatesResult:
        return UpdatesResult(supported=False)

    def firewall(self) -> FirewallResult:
        return FirewallResult(supported=False)

    def av(self) -> AvResult:
        return AvResult(supported=False)

    def filevault(self) -> FileVaultResult:
        return FileVaultResult(supported=False)

    def timemachine(self) -> TimeMachineResult:
        return TimeMachineResult(supported=False)

    def sip(self) -> SipResult:
        return SipResult(supported=False)
