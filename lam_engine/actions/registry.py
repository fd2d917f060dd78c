"""Action definition registry and decorator."""

from typing import Any, Dict, List, Optional, Type

import structlog

from .base import ActionDefinition, ActionServices
from .errors import DuplicateActionError

logger = structlog.get_logger(__name__)

# Classes collected by @register_action, in import order
_BUILTIN_ACTIONS: Dict[str, Type[ActionDefinition]] = {}


class ActionRegistry:
    """Static catalog of named actions, built once at startup."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._definitions: Dict[str, ActionDefinition] = {}

        logger.info("Initialized ActionRegistry")

    def register(self, definition: ActionDefinition) -> None:
        """Register an action definition.

        Args:
            definition: Action instance to register

        Raises:
            DuplicateActionError: If an action with the same name exists
        """
        if not definition.name:
            raise ValueError(f"{type(definition).__name__} has no action name")

        if definition.name in self._definitions:
            logger.error("Duplicate action registration", action=definition.name)
            raise DuplicateActionError(definition.name)

        self._definitions[definition.name] = definition

        logger.info(
            "Registered action",
            action=definition.name,
            risk_tier=int(definition.risk_tier),
        )

    def lookup(self, name: str) -> Optional[ActionDefinition]:
        """Find an action by exact name."""
        return self._definitions.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def describe_all(self) -> List[Dict[str, str]]:
        """List every registered action for the upstream model.

        Returns:
            List of ``{name, riskTierLabel, description}`` dictionaries
        """
        return [
            {
                "name": definition.name,
                "riskTierLabel": definition.risk_tier.label,
                "description": definition.description,
            }
            for definition in self._definitions.values()
        ]

    def describe_text(self) -> str:
        """Render the catalog as one ``- name (label): description`` line per action."""
        return "\n".join(
            f"- {entry['name']} ({entry['riskTierLabel']}): {entry['description']}"
            for entry in self.describe_all()
        )

    def get_stats(self) -> Dict[str, Any]:
        return {
            "registered_actions": len(self._definitions),
            "action_names": list(self._definitions.keys()),
        }


def register_action(cls: Type[ActionDefinition]) -> Type[ActionDefinition]:
    """Class decorator adding a built-in action to the default catalog.

    Raises:
        DuplicateActionError: If another built-in already uses the name
    """
    if cls.name in _BUILTIN_ACTIONS and _BUILTIN_ACTIONS[cls.name] is not cls:
        raise DuplicateActionError(cls.name)
    _BUILTIN_ACTIONS[cls.name] = cls
    return cls


def builtin_actions() -> List[Type[ActionDefinition]]:
    """Return the built-in action classes, importing them on first use."""
    from . import builtin  # noqa: F401

    return list(_BUILTIN_ACTIONS.values())


def build_registry(services: ActionServices) -> ActionRegistry:
    """Instantiate every built-in action against the given services.

    Args:
        services: Shared store, settings and gateways

    Returns:
        Populated registry
    """
    registry = ActionRegistry()
    for action_cls in builtin_actions():
        registry.register(action_cls(services))
    return registry
