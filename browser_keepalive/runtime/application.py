"""Lifecycle orchestration for the keepalive runtime."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from typing import Awaitable, Callable, Optional

from browser_keepalive.automation.browser.cdp import describe_cdp_endpoints
from browser_keepalive.automation.browser.network_recorder import NetworkRecorder
from browser_keepalive.automation.browser.recovery import LaunchRecoveryService
from browser_keepalive.automation.browser.recovery.installer import EngineInstaller
from browser_keepalive.automation.keepalive import (
    ActivityClock,
    RefreshScheduler,
    RunState,
    register_activity_tracking,
)
from browser_keepalive.infrastructure.errors import ConfigurationError
from browser_keepalive.infrastructure.settings import KeepaliveConfig
from browser_keepalive.tracking import t

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def ensure_dir(path: str) -> None:
    """Create ``path`` (and parents); an empty path is ignored."""
    t('runtime.application.ensure_dir')
    if not path:
        return
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(f"Failed to create user data dir '{path}': {exc}") from exc


class KeepaliveApplication:
    """Manage startup, the refresh loop and shutdown for one session."""

    def __init__(
        self,
        config: KeepaliveConfig,
        *,
        recovery: Optional[LaunchRecoveryService] = None,
        describe_cdp: Callable[[int], Awaitable[Optional[str]]] = describe_cdp_endpoints,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('runtime.application.KeepaliveApplication.__init__')
        self.config = config
        self.recovery = recovery or LaunchRecoveryService(
            installer=EngineInstaller(assume_yes=config.yes),
        )
        self._describe_cdp = describe_cdp
        self.logger = logger or logging.getLogger('KeepaliveApplication')

        self.run_state = RunState()
        self.session = None
        self.scheduler: Optional[RefreshScheduler] = None
        self.recorder: Optional[NetworkRecorder] = None
        self._installed_signals: list = []
        self._shutdown_started = False

    async def run(self) -> int:
        """Launch the browser and refresh until stopped. Returns the exit code."""
        t('runtime.application.KeepaliveApplication.run')
        config = self.config

        ensure_dir(config.user_data_dir)
        self.session = await self.recovery.acquire_session(
            config.engine,
            {
                "headless": config.headless,
                "cdp_port": config.cdp_port,
                "user_data_dir": config.user_data_dir or None,
            },
            config.auto_install,
        )

        try:
            if config.cdp_port:
                await self._describe_cdp(config.cdp_port)

            activity = ActivityClock()
            register_activity_tracking(self.session, activity, logger=self.logger)

            if config.record_network_path:
                self.recorder = NetworkRecorder(
                    self.session,
                    config.record_network_path,
                    includes=config.record_includes,
                    record_body=config.record_body,
                    max_bytes=config.record_max_bytes,
                ).start()

            self.scheduler = RefreshScheduler(
                self.session,
                config,
                activity=activity,
                run_state=self.run_state,
            )
            self.install_signal_handlers()

            self.logger.info(config.describe())
            await self.scheduler.start()
            await self.scheduler.run()
        finally:
            self.remove_signal_handlers()
            await self.shutdown(self.run_state.reason or "finished")

        return 0

    def request_stop(self, reason: str) -> bool:
        """Handle a termination request; only the first one has any effect."""
        t('runtime.application.KeepaliveApplication.request_stop')
        if self.scheduler is not None:
            first = self.scheduler.stop(reason)
        else:
            first = self.run_state.request_stop(reason)
        if first:
            self.logger.info("stopping (%s)...", reason)
        return first

    def install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in STOP_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request_stop, sig.name)
            except (NotImplementedError, RuntimeError):
                signal.signal(
                    sig,
                    lambda signum, _frame: loop.call_soon_threadsafe(
                        self.request_stop, signal.Signals(signum).name
                    ),
                )
            self._installed_signals.append(sig)

    def remove_signal_handlers(self) -> None:
        if not self._installed_signals:
            return
        loop = asyncio.get_running_loop()
        for sig in self._installed_signals:
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                signal.signal(sig, signal.SIG_DFL)
        self._installed_signals = []

    async def shutdown(self, reason: str = "finished") -> None:
        """Stop the recorder and close the session exactly once."""
        t('runtime.application.KeepaliveApplication.shutdown')
        if self._shutdown_started:
            return
        self._shutdown_started = True
        self.run_state.request_stop(reason)

        if self.recorder is not None:
            try:
                self.recorder.stop()
            except Exception as exc:
                self.logger.warning("Error stopping network recorder: %s", exc)
            self.recorder = None

        if self.session is not None:
            try:
                await self.session.close()
                self.logger.info("✅ Browser closed")
            except Exception as exc:
                self.logger.warning("Error closing browser session: %s", exc)
