"""Shared test helpers."""

from lam_engine.actions.base import ActionCall

TENANT = "tenant-a"
OTHER_TENANT = "tenant-b"


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def call(name, /, **params):
    """Build an ActionCall from keyword parameters."""
    return ActionCall(name=name, params=params)
