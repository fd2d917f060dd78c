"""Error taxonomy for the action engine.

Every error below except ``DuplicateActionError`` is converted into a failed
``ActionResult`` by the router. ``DuplicateActionError`` is raised while the
registry is being built and aborts startup.
"""

from dataclasses import dataclass
from typing import List, Optional


class EngineError(Exception):
    """Base class for errors raised inside the engine."""


class DuplicateActionError(EngineError):
    """An action name was registered twice."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Action '{name}' is already registered")
        self.name = name


class UnknownActionError(EngineError):
    """The requested action name is not in the registry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown action: {name}")
        self.name = name


@dataclass(frozen=True)
class FieldError:
    """One failing parameter field."""

    path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.path}: {self.reason}"


class ActionValidationError(EngineError):
    """Action parameters failed their schema."""

    def __init__(self, errors: List[FieldError]) -> None:
        self.errors = list(errors)
        super().__init__("Invalid parameters: " + "; ".join(str(e) for e in self.errors))


class NotFoundError(EngineError):
    """A lookup by id or by name resolved to nothing."""


class AmbiguousMatchError(EngineError):
    """A name lookup matched more than one entity and the policy forbids guessing."""

    def __init__(self, message: str, candidates: List[str]) -> None:
        super().__init__(message)
        self.candidates = list(candidates)


class CrossTenantError(EngineError):
    """A resolved entity belongs to a different tenant."""


class ExternalServiceError(EngineError):
    """An outbound provider call failed."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class ExecutorFault(EngineError):
    """Unexpected exception raised inside an executor."""

    def __init__(self, action: str, cause: BaseException) -> None:
        super().__init__(str(cause) or type(cause).__name__)
        self.action = action
        self.cause = cause
