"""Execution router: lookup, validation and the risk-tier gate."""

import asyncio
import time
from typing import Optional

import structlog

from ..undo.manager import UndoManager
from ..utils.metrics import ACTION_DURATION, ACTIONS_TOTAL
from .base import ActionCall, ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from .errors import EngineError, ExecutorFault, UnknownActionError
from .registry import ActionRegistry
from .validation import validate_params

logger = structlog.get_logger(__name__)


class ExecutionRouter:
    """Routes action calls to their executors.

    ``dispatch`` never raises: every failure comes back as an ActionResult
    with ``success=False``.
    """

    def __init__(
        self,
        registry: ActionRegistry,
        undo: Optional[UndoManager] = None,
        timeout_seconds: float = 30,
    ) -> None:
        """Initialize the router.

        Args:
            registry: Catalog of available actions
            undo: Receives reversal data of successful tier-1 actions
            timeout_seconds: Maximum execution time per action
        """
        self.registry = registry
        self.undo = undo
        self.timeout_seconds = timeout_seconds

    def risk_tier_of(self, name: str) -> Optional[RiskTier]:
        definition = self.registry.lookup(name)
        return definition.risk_tier if definition is not None else None

    async def dispatch(self, call: ActionCall, context: ActionContext) -> ActionResult:
        """Validate a call and execute it, or hold it for approval.

        Args:
            call: Action proposed by the model
            context: Caller tenant and run

        Returns:
            Result of the call; tier-2 calls come back with
            ``pending_approval=True`` and are not executed
        """
        definition = self.registry.lookup(call.name)
        if definition is None:
            ACTIONS_TOTAL.labels(action="unknown", outcome="unknown_action").inc()
            logger.warning("Unknown action requested", action=call.name, tenant=context.tenant_id)
            return ActionResult.fail(str(UnknownActionError(call.name)))

        outcome = validate_params(definition, call.params)
        if not outcome.ok:
            ACTIONS_TOTAL.labels(action=definition.name, outcome="invalid").inc()
            return ActionResult.fail(str(outcome.to_error()))

        if definition.risk_tier is RiskTier.EXTERNAL:
            ACTIONS_TOTAL.labels(action=definition.name, outcome="held").inc()
            logger.info(
                "Holding action for approval",
                action=definition.name,
                tenant=context.tenant_id,
                run_id=context.run_id,
            )
            return ActionResult(
                success=True,
                message=f"{definition.name} requires approval before it runs.",
                data={"approvalRequired": True, "action": definition.name},
                pending_approval=True,
            )

        result = await self._execute(definition, outcome.params, context)

        if definition.risk_tier is RiskTier.MUTATION and result.success and result.reversal is not None:
            if self.undo is not None:
                await self.undo.capture(context, result.reversal, definition.risk_tier)
        elif result.reversal is not None:
            result.reversal = None

        return result

    async def execute_approved(self, call: ActionCall, context: ActionContext) -> ActionResult:
        """Execute a held tier-2 call after explicit approval.

        Parameters are validated again; any reversal the executor returns is
        dropped because external communication cannot be undone.
        """
        definition = self.registry.lookup(call.name)
        if definition is None:
            return ActionResult.fail(str(UnknownActionError(call.name)))

        outcome = validate_params(definition, call.params)
        if not outcome.ok:
            ACTIONS_TOTAL.labels(action=definition.name, outcome="invalid").inc()
            return ActionResult.fail(str(outcome.to_error()))

        result = await self._execute(definition, outcome.params, context)
        result.reversal = None
        return result

    async def _execute(
        self,
        definition: ActionDefinition,
        params: ActionParams,
        context: ActionContext,
    ) -> ActionResult:
        start_time = time.monotonic()

        logger.info(
            "Executing action",
            action=definition.name,
            tenant=context.tenant_id,
            run_id=context.run_id,
        )

        try:
            result = await asyncio.wait_for(
                definition.execute(params, context),
                timeout=self.timeout_seconds,
            )

        except asyncio.TimeoutError:
            ACTIONS_TOTAL.labels(action=definition.name, outcome="timeout").inc()
            logger.error(
                "Action execution timed out",
                action=definition.name,
                timeout=self.timeout_seconds,
                tenant=context.tenant_id,
            )
            return ActionResult.fail(
                f"Action '{definition.name}' timed out after {self.timeout_seconds:g}s"
            )

        except EngineError as e:
            # NotFound, CrossTenant, AmbiguousMatch and ExternalService carry
            # user-facing messages
            ACTIONS_TOTAL.labels(action=definition.name, outcome="failed").inc()
            logger.info(
                "Action refused",
                action=definition.name,
                error=str(e),
                error_type=type(e).__name__,
                tenant=context.tenant_id,
            )
            return ActionResult.fail(str(e))

        except Exception as e:
            fault = ExecutorFault(definition.name, e)
            ACTIONS_TOTAL.labels(action=definition.name, outcome="fault").inc()
            logger.error(
                "Action execution failed",
                action=definition.name,
                error=str(fault),
                error_type=type(e).__name__,
                tenant=context.tenant_id,
                run_id=context.run_id,
                exc_info=True,
            )
            return ActionResult.fail(f"Action failed: {fault}")

        finally:
            ACTION_DURATION.labels(action=definition.name).observe(time.monotonic() - start_time)

        ACTIONS_TOTAL.labels(
            action=definition.name,
            outcome="succeeded" if result.success else "failed",
        ).inc()

        logger.info(
            "Action execution completed",
            action=definition.name,
            success=result.success,
            tenant=context.tenant_id,
            run_id=context.run_id,
        )
        return result
