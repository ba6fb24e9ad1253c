"""
Launch Recovery Service
=======================

PURPOSE: Acquire a browser session, recovering from a missing engine package
         or missing browser binaries when auto-install is enabled
PATTERN: launch -> classify failure -> install -> retry launch exactly once
SCOPE: One recovery per launch; a failure after the retry is fatal
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from browser_keepalive.tracking import t

from ..engines import launch_engine
from ..session import BrowserSession
from .classifier import classify_launch_error
from .installer import EngineInstaller
from .types import LaunchFailure, RecoveryAttempt

Launcher = Callable[..., Awaitable[BrowserSession]]


class LaunchRecoveryService:
    """Wrap engine launch with the auto-install recovery flow."""

    def __init__(
        self,
        *,
        launcher: Launcher = launch_engine,
        installer: Optional[EngineInstaller] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('automation.browser.recovery.service.LaunchRecoveryService.__init__')
        self._launcher = launcher
        self.installer = installer or EngineInstaller()
        self.logger = logger or logging.getLogger('LaunchRecovery')
        self.attempts: List[RecoveryAttempt] = []

    async def acquire_session(
        self,
        engine: str,
        launch_options: Optional[Dict[str, Any]] = None,
        auto_install: bool = False,
    ) -> BrowserSession:
        """Launch ``engine``; on a recoverable failure install and retry once.

        Without ``auto_install`` every failure propagates unchanged, as do
        failures that are neither a missing package nor a missing browser.
        """
        t('automation.browser.recovery.service.LaunchRecoveryService.acquire_session')
        options = dict(launch_options or {})

        try:
            return await self._launcher(engine, **options)
        except Exception as exc:
            if not auto_install:
                raise
            failure = classify_launch_error(exc, engine)
            if not failure.recoverable:
                raise
            self.logger.warning("Launch of %s failed (%s): %s", engine, failure.value, exc)
            attempt = RecoveryAttempt(engine=engine, failure=failure, timestamp=datetime.now())
            self.attempts.append(attempt)
            await self._recover(engine, failure, attempt)

        try:
            session = await self._launcher(engine, **options)
        except Exception as exc:
            attempt.error_message = str(exc)
            self._finish(attempt)
            self.logger.error("Launch of %s failed again after recovery: %s", engine, exc)
            raise

        attempt.success = True
        self._finish(attempt)
        self.logger.info("✅ %s launched after recovering from %s", engine, failure.value)
        return session

    async def _recover(self, engine: str, failure: LaunchFailure, attempt: RecoveryAttempt) -> None:
        t('automation.browser.recovery.service.LaunchRecoveryService._recover')
        if failure is LaunchFailure.MISSING_PACKAGE:
            install = self.installer.ensure_engine_installed
        else:
            install = self.installer.ensure_browser_installed
        # Prompts and package managers block, so they run in a worker thread.
        try:
            await asyncio.to_thread(install, engine)
        except Exception as exc:
            attempt.error_message = str(exc)
            self._finish(attempt)
            raise

    def _finish(self, attempt: RecoveryAttempt) -> None:
        attempt.duration_seconds = (datetime.now() - attempt.timestamp).total_seconds()
