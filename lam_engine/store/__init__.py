"""Repository contract and in-memory implementation."""

from .base import CONTACTS, DEALS, MESSAGES, PROFILES, PROPERTIES, TASKS, Record, Repository
from .memory import InMemoryRepository

__all__ = [
    "Repository",
    "Record",
    "InMemoryRepository",
    "CONTACTS",
    "DEALS",
    "TASKS",
    "MESSAGES",
    "PROFILES",
    "PROPERTIES",
]
