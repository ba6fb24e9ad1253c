"""
Keepalive Refresh Scheduler
===========================

PURPOSE: Refresh a single browser page on a fixed interval until shutdown
PATTERN: Sleep -> optional idle wait -> exactly one navigate/reload call
SCOPE: One session, one asyncio loop, cooperative cancellation

A refresh failure is logged and the loop moves on to the next cycle; a
single bad refresh never ends the keepalive process. Stop requests are
observed after the interval sleep and after the idle wait, never in the
middle of a browser call.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from browser_keepalive.infrastructure.constants import DEFAULT_WAIT_UNTIL
from browser_keepalive.infrastructure.settings import KeepaliveConfig
from browser_keepalive.tracking import t

from .idle import ActivityClock, wait_for_idle
from .url_policy import (
    RefreshAction,
    RefreshKind,
    compute_base_url,
    initial_target,
    needs_current_url,
    plan_refresh,
)


class SchedulerState(Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class RunState:
    """Stop flag that flips from ``False`` to ``True`` exactly once."""

    def __init__(self) -> None:
        self._stopped = False
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def stopped(self) -> bool:
        return self._stopped

    def request_stop(self, reason: str = "requested") -> bool:
        """Mark the run as stopped. Only the first call returns ``True``."""
        if self._stopped:
            return False
        self._stopped = True
        self.reason = reason
        self._event.set()
        return True

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` or until a stop is requested."""
        if self._stopped:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(seconds, 0))
        except asyncio.TimeoutError:
            pass


class RefreshScheduler:
    """Drive periodic refreshes of one browser session."""

    def __init__(
        self,
        session,
        config: KeepaliveConfig,
        *,
        activity: Optional[ActivityClock] = None,
        run_state: Optional[RunState] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('automation.keepalive.scheduler.RefreshScheduler.__init__')
        self.session = session
        self.config = config
        self.clock = clock
        self.activity = activity or ActivityClock(clock)
        self.run_state = run_state or RunState()
        self._sleep = sleep or self.run_state.sleep
        self.logger = logger or logging.getLogger('KeepaliveScheduler')

        self.base_url = compute_base_url(config.url, config.cache_bust)
        self.state = SchedulerState.STARTING

        self.stats: Dict[str, Any] = {
            'cycles': 0,
            'successful_refreshes': 0,
            'failed_refreshes': 0,
            'last_refresh_at': None,
        }

    @property
    def stopped(self) -> bool:
        return self.run_state.stopped

    async def start(self) -> str:
        """Perform the first load and record it as activity."""
        t('automation.keepalive.scheduler.RefreshScheduler.start')
        self.state = SchedulerState.STARTING
        first_url = initial_target(self.base_url, self.config.cache_bust)
        self.logger.info("loading: %s", first_url)
        await self.session.goto(first_url, wait_until=DEFAULT_WAIT_UNTIL)
        self.activity.mark("initial-load")
        return first_url

    async def run(self) -> None:
        """Refresh until a stop is requested."""
        t('automation.keepalive.scheduler.RefreshScheduler.run')
        if not self.stopped:
            self.state = SchedulerState.RUNNING

        try:
            while not self.stopped:
                await self._sleep(self.config.interval_seconds)
                if self.stopped:
                    break

                if self.config.only_if_idle:
                    await wait_for_idle(
                        self.config.interval_seconds,
                        lambda: self.activity.last_activity_at,
                        lambda: self.stopped,
                        clock=self.clock,
                        sleep=self._sleep,
                        logger=self.logger,
                    )
                    if self.stopped:
                        break

                await self.execute_cycle()
        finally:
            self.state = SchedulerState.STOPPED

    async def plan(self) -> RefreshAction:
        """Compute this cycle's browser call."""
        t('automation.keepalive.scheduler.RefreshScheduler.plan')
        current_url = None
        if needs_current_url(cache_bust=self.config.cache_bust, always_reset=self.config.always_reset):
            current_url = await self.session.current_url()
        return plan_refresh(
            self.base_url,
            current_url,
            cache_bust=self.config.cache_bust,
            always_reset=self.config.always_reset,
        )

    async def execute_cycle(self) -> bool:
        """Run exactly one refresh; errors are logged and swallowed."""
        t('automation.keepalive.scheduler.RefreshScheduler.execute_cycle')
        self.stats['cycles'] += 1

        try:
            action = await self.plan()
            self.logger.info(action.describe())
            if action.kind is RefreshKind.GOTO:
                await self.session.goto(action.url, wait_until=DEFAULT_WAIT_UNTIL)
            else:
                await self.session.reload(wait_until=DEFAULT_WAIT_UNTIL)
        except Exception as exc:
            self.stats['failed_refreshes'] += 1
            self.logger.error("refresh failed: %s", exc, exc_info=True)
            return False

        self.stats['successful_refreshes'] += 1
        self.stats['last_refresh_at'] = datetime.now()
        return True

    def stop(self, reason: str = "requested") -> bool:
        """Request a stop; returns ``False`` if one was already requested."""
        t('automation.keepalive.scheduler.RefreshScheduler.stop')
        if not self.run_state.request_stop(reason):
            return False
        if self.state is not SchedulerState.STOPPED:
            self.state = SchedulerState.STOPPING
        return True

    def get_stats(self) -> Dict[str, Any]:
        """Get refresh statistics"""
        total = self.stats['successful_refreshes'] + self.stats['failed_refreshes']
        return {
            'state': self.state.value,
            'interval_seconds': self.config.interval_seconds,
            'cycles': self.stats['cycles'],
            'successful_refreshes': self.stats['successful_refreshes'],
            'failed_refreshes': self.stats['failed_refreshes'],
            'last_refresh_at': self.stats['last_refresh_at'],
            'success_rate': (
                self.stats['successful_refreshes'] / total if total > 0 else 0
            ),
        }
