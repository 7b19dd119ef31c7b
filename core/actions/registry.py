"""
Action Catalog - the closed allowlist of actions this helper can run.

The catalog is built once at startup from ActionDefinitions and is never
mutated afterwards. Nothing that reaches the helper at runtime can add to
it, so the only commands that can ever be spawned are the ones listed here.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Any
import structlog

from core.exceptions import ActionNotFound, CatalogError
from .models import ActionDefinition, ActionCapability

log = structlog.get_logger()


class ActionCatalog:
    """
    Immutable mapping from action identifier to its definition.

    Usage:
        catalog = ActionCatalog([
            ActionDefinition(id="flush-dns-macos", title="Flush DNS", commands=[...]),
        ])
        action = catalog.get("flush-dns-macos")
    """

    def __init__(self, definitions: Iterable[ActionDefinition] = ()):
        actions: Dict[str, ActionDefinition] = {}
        for definition in definitions:
            if not isinstance(definition, ActionDefinition):
                raise CatalogError(f"Not an ActionDefinition: {definition!r}")
            if definition.id in actions:
                raise CatalogError(f"Duplicate action id: {definition.id}")
            actions[definition.id] = definition

        self._actions: Mapping[str, ActionDefinition] = MappingProxyType(actions)

        log.debug("Action catalog built",
                  total_actions=len(actions),
                  reversible=sum(1 for a in actions.values() if a.can_rollback))

    def get(self, action_id: str) -> ActionDefinition:
        """
        Get an action definition by identifier.

        Raises:
            ActionNotFound: if the identifier is not allowlisted
        """
        action = self._actions.get(action_id)
        if action is None:
            raise ActionNotFound(action_id)
        return action

    def has(self, action_id: str) -> bool:
        """Check if action is allowlisted."""
        return action_id in self._actions

    def list_available(self) -> List[str]:
        """Get list of all allowlisted action ids."""
        return sorted(self._actions.keys())

    def get_capabilities(self) -> Dict[str, ActionCapability]:
        """Get capabilities of all allowlisted actions."""
        return {action_id: action.get_capability() for action_id, action in self._actions.items()}

    def get_stats(self) -> Dict[str, Any]:
        """Get catalog statistics."""
        return {
            'total_actions': len(self._actions),
            'actions': self.list_available(),
            'reversible_count': sum(
                1 for action in self._actions.values()
                if action.can_rollback
            ),
            'backup_count': sum(
                1 for action in self._actions.values()
                if action.creates_backup
            ),
        }

    def copy(self) -> "ActionCatalog":
        """Independently owned clone with the same definitions."""
        return ActionCatalog(self._actions.values())

    def __len__(self) -> int:
        return len(self._actions)

    def __contains__(self, action_id: object) -> bool:
        return action_id in self._actions

    def __iter__(self):
        return iter(self._actions.values())
