"""Runs group one assistant turn's actions for approval and reporting."""

from .manager import RunManager
from .models import ActionState, Run, RunAction, RunStatus

__all__ = ["RunManager", "Run", "RunAction", "RunStatus", "ActionState"]
