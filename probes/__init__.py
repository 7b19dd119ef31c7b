# probes/__init__.py
"""
Read-only platform probes for the control plane.

Security posture:
- MacOSProbe (updates, firewall, av, filevault, timemachine, sip)
- UnsupportedProbe for platforms without an implementation

Host summary:
- scan_host
"""

from .base_probe import (
    PlatformProbe, UnsupportedProbe, ProbeResult, CHECKS,
    UpdatesResult, FirewallResult, AvResult, FileVaultResult,
    TimeMachineResult, SipResult, run_command_capture
)
from .macos_probe import MacOSProbe
from .host_probe import scan_host
from .probe_factory import get_probe, KNOWN_PLATFORMS

__all__ = [
    'PlatformProbe',
    'UnsupportedProbe',
    'ProbeResult',
    'CHECKS',
    'UpdatesResult',
    'FirewallResult',
    'AvResult',
    'FileVaultResult',
    'TimeMachineResult',
    'SipResult',
    'run_command_capture',
    'MacOSProbe',
    'scan_host',
    'get_probe',
    'KNOWN_PLATFORMS'
]
