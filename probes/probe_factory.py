# probes/probe_factory.py
"""
Selects the probe implementation for a platform at runtime.
"""

from typing import Dict, Optional, Type
import structlog

from core.platform import current_platform
from probes.base_probe import PlatformProbe, UnsupportedProbe
from probes.macos_probe import MacOSProbe

log = structlog.get_logger()

KNOWN_PLATFORMS = ("macos", "windows", "linux")

IMPLEMENTATIONS: Dict[str, Type[PlatformProbe]] = {
    "macos": MacOSProbe,
}


def get_probe(platform: str, host_os: Optional[str] = None) -> PlatformProbe:
    """
    Probe for `platform` as seen from this host.

    A real implementation is only returned when the requested platform is
    the one we are running on; anything else is UnsupportedProbe.

    Raises:
        KeyError: platform is not one of KNOWN_PLATFORMS
    """
    if platform not in KNOWN_PLATFORMS:
        raise KeyError(platform)

    host_os = host_os or current_platform()
    implementation = IMPLEMENTATIONS.get(platform)
    if implementation is None or platform != host_os:
        return UnsupportedProbe(platform)
    return implementation()
