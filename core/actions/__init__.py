"""
Action Execution System - Core exports.
"""

from .registry import ActionCatalog
from .executor import CommandExecutor, split_command
from .rollback import RollbackCoordinator
from .models import (
    ActionDefinition, ActionCapability, ActionStatus, TargetOS,
    Artifact, CommandStep, ExecutionOutcome, RollbackPoint,
    content_hash, create_artifacts, utcnow
)

__all__ = [
    'ActionCatalog',
    'CommandExecutor',
    'split_command',
    'RollbackCoordinator',
    'ActionDefinition',
    'ActionCapability',
    'ActionStatus',
    'TargetOS',
    'Artifact',
    'CommandStep',
    'ExecutionOutcome',
    'RollbackPoint',
    'content_hash',
    'create_artifacts',
    'utcnow'
]
