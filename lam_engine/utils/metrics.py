"""Prometheus metrics for action execution."""

from prometheus_client import Counter, Histogram

ACTIONS_TOTAL = Counter(
    "lam_actions_total",
    "Action calls processed by the router",
    ["action", "outcome"],
)

ACTION_DURATION = Histogram(
    "lam_action_duration_seconds",
    "Time spent inside action executors",
    ["action"],
)

RUNS_TOTAL = Counter(
    "lam_runs_total",
    "Runs that reached a settled status",
    ["status"],
)

UNDO_TOTAL = Counter(
    "lam_undo_total",
    "Undo requests by outcome",
    ["outcome"],
)
