"""
Allowlisted macOS remediations.

Commands are split on whitespace and spawned directly, never through a
shell: no pipes, redirects, globbing, `~` or `$(...)`. Paths are therefore
resolved here, when the catalog is built, and patterns such as `*.cache`
reach `find` and `rsync` literally, which is what they expect.
"""

from pathlib import Path
from typing import List

from core.actions.models import ActionDefinition, TargetOS


def build_macos_actions(home: Path, backup_root: Path) -> List[ActionDefinition]:
    caches = home / "Library" / "Caches"
    cache_backup = backup_root / "app-cache"

    return [
        ActionDefinition(
            id="flush-dns-macos",
            title="Flush DNS Cache (macOS)",
            os=TargetOS.MACOS,
            category="network",
            description="Flush the DNS cache to resolve name resolution issues",
            commands=(
                "sudo dscacheutil -flushcache",
                "sudo killall -HUP mDNSResponder",
            ),
            reversible=False,
            estimated_time="5 seconds",
        ),
        ActionDefinition(
            id="toggle-wifi-macos",
            title="Toggle Wi-Fi (macOS)",
            os=TargetOS.MACOS,
            category="network",
            description="Toggle Wi-Fi off and back on to reset the interface",
            commands=(
                "networksetup -setairportpower en0 off",
                "sleep 2",
                "networksetup -setairportpower en0 on",
            ),
            reversible=False,
        ),
        ActionDefinition(
            id="clear-app-cache",
            title="Clear App Cache (macOS)",
            os=TargetOS.MACOS,
            category="storage",
            description="Move *.cache files from the user cache folder into a backup tree",
            # The backup holds exactly what the latest execution removed.
            # Sources are only removed once rsync has copied them.
            commands=(
                f"rm -rf {cache_backup}",
                f"mkdir -p {cache_backup}",
                f"rsync -a --remove-source-files --include=*/ --include=*.cache --exclude=* {caches}/ {cache_backup}/",
            ),
            requirements=(),
            estimated_time="30 seconds",
        ).with_rollback([
            f"rsync -a {cache_backup}/ {caches}/",
        ]),
        ActionDefinition(
            id="restart-finder",
            title="Restart Finder (macOS)",
            os=TargetOS.MACOS,
            category="system",
            description="Relaunch Finder",
            commands=("killall Finder",),
            reversible=False,
            requirements=(),
        ),
        ActionDefinition(
            id="clear-recent-items",
            title="Clear Recent Items (macOS)",
            os=TargetOS.MACOS,
            category="privacy",
            description="Forget recently used applications, documents and servers",
            commands=(
                "defaults delete com.apple.recentitems RecentApplications",
                "defaults delete com.apple.recentitems RecentDocuments",
                "defaults delete com.apple.recentitems RecentServers",
            ),
            reversible=False,
            requirements=(),
        ),
        ActionDefinition(
            id="reset-launchpad",
            title="Reset Launchpad Layout (macOS)",
            os=TargetOS.MACOS,
            category="system",
            description="Restore the default Launchpad layout",
            commands=(
                "defaults write com.apple.dock ResetLaunchPad -bool true",
                "killall Dock",
            ),
            reversible=False,
            requirements=(),
        ),
        ActionDefinition(
            id="clear-system-logs",
            title="Clear Old System Logs (macOS)",
            os=TargetOS.MACOS,
            category="storage",
            description="Delete archived ASL system logs",
            commands=(
                "sudo find /private/var/log/asl -name *.asl -type f -delete",
                "sudo find /private/var/log/DiagnosticMessages -name *.asl -type f -delete",
            ),
            reversible=False,
        ),
    ]
