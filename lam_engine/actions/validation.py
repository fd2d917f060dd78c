"""Parameter validation against action schemas."""

from dataclasses import dataclass, field
from typing import Any, List, Optional

import pydantic
import structlog

from .base import ActionDefinition, ActionParams
from .errors import ActionValidationError, FieldError

logger = structlog.get_logger(__name__)

ROOT_PATH = "params"
_VALUE_ERROR_PREFIX = "Value error, "


@dataclass
class ValidationOutcome:
    """Tagged result of validating raw parameters.

    Exactly one of ``params`` (on success) or ``errors`` (on failure) is set.
    """

    params: Optional[ActionParams] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def summary(self) -> str:
        """Render all field errors as ``<field>: <reason>; ...``."""
        return "; ".join(str(error) for error in self.errors)

    def to_error(self) -> ActionValidationError:
        return ActionValidationError(self.errors)


def _field_path(loc: tuple) -> str:
    parts = [str(part) for part in loc]
    return ".".join(parts) if parts else ROOT_PATH


def _reason(message: str) -> str:
    if message.startswith(_VALUE_ERROR_PREFIX):
        return message[len(_VALUE_ERROR_PREFIX):]
    return message


def field_errors(exc: pydantic.ValidationError) -> List[FieldError]:
    """Flatten a pydantic error into one FieldError per failing location."""
    return [
        FieldError(path=_field_path(tuple(error.get("loc", ()))), reason=_reason(error.get("msg", "invalid")))
        for error in exc.errors(include_url=False)
    ]


def validate_params(definition: ActionDefinition, raw: Any) -> ValidationOutcome:
    """Validate raw parameters for an action.

    Never raises: schema problems, and unexpected exceptions from custom
    validators, are reported as field errors.

    Args:
        definition: Action whose ``Params`` schema applies
        raw: Untyped parameters proposed by the model

    Returns:
        ValidationOutcome with either parsed params or every field error
    """
    if raw is None:
        raw = {}

    try:
        params = definition.Params.model_validate(raw)
    except pydantic.ValidationError as e:
        errors = field_errors(e)
        logger.info(
            "Action parameters rejected",
            action=definition.name,
            errors=[str(error) for error in errors],
        )
        return ValidationOutcome(errors=errors)
    except (TypeError, ValueError) as e:
        logger.warning("Parameter validator raised", action=definition.name, error=str(e))
        return ValidationOutcome(errors=[FieldError(path=ROOT_PATH, reason=str(e))])

    return ValidationOutcome(params=params)
