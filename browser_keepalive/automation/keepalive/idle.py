"""Idle detection driven by session activity events."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Awaitable, Callable, Optional

from browser_keepalive.infrastructure.constants import ActivityEvents, IDLE_POLL_CAP_SECONDS
from browser_keepalive.tracking import t

ACTIVITY_EVENTS = ActivityEvents.ALL


class ActivityClock:
    """Timestamp of the most recent page activity.

    Event callbacks only overwrite ``last_activity_at``; the scheduler only
    reads it, so no locking is required.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.last_activity_at: float = clock()
        self.last_event: Optional[str] = None

    def now(self) -> float:
        return self._clock()

    def mark(self, event: Optional[str] = None, *_args) -> None:
        self.last_activity_at = self._clock()
        self.last_event = event

    def idle_for(self) -> float:
        return self._clock() - self.last_activity_at


async def wait_for_idle(
    interval_seconds: float,
    get_last_activity_at: Callable[[], float],
    is_stopped: Callable[[], bool],
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    poll_cap: float = IDLE_POLL_CAP_SECONDS,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """Block until no activity was seen for ``interval_seconds``.

    Sleeps in ticks of at most ``poll_cap`` seconds so stop requests and new
    activity are noticed. Returns ``True`` once idle, ``False`` if stopped
    first. A page with constant background traffic may never become idle.
    """
    t('automation.keepalive.idle.wait_for_idle')
    log = logger or logging.getLogger('IdleDetector')

    while not is_stopped():
        idle_for = clock() - get_last_activity_at()
        if idle_for >= interval_seconds:
            return True

        remaining = interval_seconds - idle_for
        log.info("waiting for idle (~%ss remaining)", math.ceil(remaining))
        await sleep(min(remaining, poll_cap))

    return False


def register_activity_tracking(
    session,
    activity: ActivityClock,
    *,
    events=ACTIVITY_EVENTS,
    logger: Optional[logging.Logger] = None,
) -> list:
    """Subscribe ``activity.mark`` to every activity event on ``session``.

    Returns the ``(event, callback)`` pairs that were registered.
    """
    t('automation.keepalive.idle.register_activity_tracking')
    log = logger or logging.getLogger('IdleDetector')
    registered = []

    for event in events:
        def callback(*_payload, _event=event):
            activity.mark(_event)

        try:
            session.on(event, callback)
        except Exception as exc:
            log.debug("Could not subscribe to %s events: %s", event, exc)
            continue
        registered.append((event, callback))

    return registered
