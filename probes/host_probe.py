# probes/host_probe.py
"""
Host summary for the health scan: platform, memory, storage, uptime.
"""

import platform
import time
from typing import Any, Dict
import psutil
import structlog

from core.platform import current_platform

log = structlog.get_logger()

USER_AGENT = "ohfixit-desktop-helper"


def _storage_totals() -> Dict[str, int]:
    total = available = 0
    seen = set()
    for partition in psutil.disk_partitions(all=False):
        if partition.device in seen:
            continue
        seen.add(partition.device)
        try:
            usage = psutil.disk_usage(partition.mountpoint)
        except (PermissionError, OSError) as e:
            log.debug("Skipping partition", mountpoint=partition.mountpoint, error=str(e))
            continue
        total += usage.total
        available += usage.free
    return {"total": total, "available": available, "used": max(total - available, 0)}


def scan_host() -> Dict[str, Any]:
    memory = psutil.virtual_memory()
    used_memory = max(memory.total - memory.available, 0)

    return {
        "platform": current_platform(),
        "version": platform.release(),
        "arch": platform.machine(),
        "memory": {
            "total": memory.total,
            "available": memory.available,
            "used": used_memory,
        },
        "storage": _storage_totals(),
        "uptime": int(time.time() - psutil.boot_time()),
        "userAgent": USER_AGENT,
    }
