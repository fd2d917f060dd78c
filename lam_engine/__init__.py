"""Action execution engine for assistant-proposed CRM mutations."""

__version__ = "0.1.0"
