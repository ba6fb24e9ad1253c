"""Refresh scheduling, idle detection and URL policy."""

from .idle import ACTIVITY_EVENTS, ActivityClock, register_activity_tracking, wait_for_idle
from .scheduler import RefreshScheduler, RunState, SchedulerState
from .url_policy import (
    RefreshAction,
    RefreshKind,
    compute_base_url,
    initial_target,
    plan_refresh,
    strip_cache_buster,
    with_cache_buster,
)

__all__ = [
    "ACTIVITY_EVENTS",
    "ActivityClock",
    "RefreshAction",
    "RefreshKind",
    "RefreshScheduler",
    "RunState",
    "SchedulerState",
    "compute_base_url",
    "initial_target",
    "plan_refresh",
    "register_activity_tracking",
    "strip_cache_buster",
    "wait_for_idle",
    "with_cache_buster",
]
