"""Runtime platform detection."""

import platform

from core.exceptions import PlatformMismatch

_SYSTEMS = {
    "Darwin": "macos",
    "Windows": "windows",
    "Linux": "linux",
}


def current_platform() -> str:
    """Platform tag of this host: macos, windows, linux, or the lowercased system name."""
    system = platform.system()
    return _SYSTEMS.get(system, system.lower() or "unknown")


def ensure_compatible(action, host_os: str) -> None:
    """Raise PlatformMismatch unless the action targets this host or any host."""
    target = action.os.value
    if target not in ("any", host_os):
        raise PlatformMismatch(action.id, target, host_os)
