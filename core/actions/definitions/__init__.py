"""
Default action catalog shipped with the helper.
"""

import tempfile
from pathlib import Path
from typing import Optional

from core.actions.registry import ActionCatalog
from .macos import build_macos_actions


def build_default_catalog(home: Optional[Path] = None, backup_root: Optional[Path] = None) -> ActionCatalog:
    """Build the allowlist with paths resolved for the current user."""
    home = home or Path.home()
    backup_root = backup_root or Path(tempfile.gettempdir()) / "ohfixit-backups"
    return ActionCatalog(build_macos_actions(home, backup_root))


__all__ = [
    'build_default_catalog',
    'build_macos_actions',
]
