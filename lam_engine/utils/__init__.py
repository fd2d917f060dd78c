"""Utility functions and helpers."""

from .logging import setup_logging
from .rate_limiter import TenantRateLimiter

__all__ = ["setup_logging", "TenantRateLimiter"]
