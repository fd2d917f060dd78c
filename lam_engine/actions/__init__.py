"""Action definitions, registry, validation and routing."""

from .base import ActionCall, ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from .errors import DuplicateActionError, EngineError
from .registry import ActionRegistry, build_registry, register_action

__all__ = [
    "ActionCall",
    "ActionContext",
    "ActionDefinition",
    "ActionParams",
    "ActionResult",
    "RiskTier",
    "ActionRegistry",
    "build_registry",
    "register_action",
    "DuplicateActionError",
    "EngineError",
]
