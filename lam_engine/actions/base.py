"""Base classes for action definitions."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Dict, Optional, Type

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..config import EngineSettings
from ..store.base import Repository
from ..utils.clock import utcnow

if TYPE_CHECKING:
    from ..gateways import EmailGateway, SmsGateway
    from ..undo.reversal import Reversal

logger = structlog.get_logger(__name__)


class RiskTier(IntEnum):
    """Safety classification of an action."""

    READ_ONLY = 0
    MUTATION = 1
    EXTERNAL = 2

    @property
    def label(self) -> str:
        return RISK_TIER_LABELS[self]


RISK_TIER_LABELS: Dict[RiskTier, str] = {
    RiskTier.READ_ONLY: "read-only, auto-execute",
    RiskTier.MUTATION: "mutation with undo, auto-execute",
    RiskTier.EXTERNAL: "external communication, requires approval",
}


@dataclass
class ActionContext:
    """Caller identity passed into every action."""

    tenant_id: str
    run_id: Optional[str] = None


class ActionCall(BaseModel):
    """A single action proposed by the assistant."""

    name: str
    params: Any = Field(default_factory=dict)


@dataclass
class ActionResult:
    """Result of action execution.

    ``reversal`` and ``pending_approval`` are engine-internal and are never
    included in ``to_dict()``.
    """

    success: bool
    message: str
    data: Any = None
    reversal: Optional["Reversal"] = field(default=None, repr=False)
    pending_approval: bool = False

    @classmethod
    def ok(cls, message: str, data: Any = None, reversal: Optional["Reversal"] = None) -> "ActionResult":
        return cls(success=True, message=message, data=data, reversal=reversal)

    @classmethod
    def fail(cls, message: str, data: Any = None) -> "ActionResult":
        return cls(success=False, message=message, data=data)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        return payload


class ActionParams(BaseModel):
    """Base schema for action parameters.

    Fields are snake_case in Python and camelCase on the wire; unknown keys
    are dropped.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class NoParams(ActionParams):
    """Schema for actions that take no parameters."""


@dataclass
class ActionServices:
    """Collaborators shared by all action definitions."""

    store: Repository
    settings: EngineSettings
    sms: Optional["SmsGateway"] = None
    email: Optional["EmailGateway"] = None
    clock: Optional[Callable[[], datetime]] = None


class ActionDefinition(ABC):
    """Base class for all registered actions.

    Subclasses declare ``name``, ``description``, ``risk_tier`` and ``Params``
    as class attributes and implement ``execute``.
    """

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    risk_tier: ClassVar[RiskTier] = RiskTier.READ_ONLY
    Params: ClassVar[Type[ActionParams]] = NoParams

    def __init__(self, services: ActionServices) -> None:
        """Initialize the action with shared collaborators.

        Args:
            services: Store, settings and gateways used by the executor
        """
        self.services = services

    @property
    def store(self) -> Repository:
        return self.services.store

    @property
    def match_policy(self) -> str:
        return self.services.settings.ambiguous_match_policy

    def now(self) -> datetime:
        return (self.services.clock or utcnow)()

    @abstractmethod
    async def execute(self, params: Any, context: ActionContext) -> ActionResult:
        """Execute the action.

        Args:
            params: Validated instance of ``Params``
            context: Caller tenant and run

        Returns:
            Result of action execution
        """
