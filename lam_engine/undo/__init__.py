"""Undo support for tier-1 actions."""

from .manager import UndoManager, UndoRecord
from .reversal import DeleteRecord, RestoreFields, Reversal

__all__ = ["UndoManager", "UndoRecord", "Reversal", "RestoreFields", "DeleteRecord"]
