"""Shared fakes and utilities for unit tests."""

from __future__ import annotations
from browser_keepalive.tracking import t

import inspect
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Tuple

from browser_keepalive.automation.browser.session import BrowserSession
from browser_keepalive.infrastructure.constants import BLANK_PAGE_URL


class DummyLogger:
    """Lightweight stand-in for ``logging.Logger`` that records calls."""

    def __init__(self) -> None:
        t('tests.helpers.DummyLogger.__init__')
        self.records: List[Tuple[str, Tuple[Any, ...], Dict[str, Any]]] = []

    def _record(self, level: str, *args: Any, **kwargs: Any) -> None:
        self.records.append((level, args, kwargs))

    def debug(self, *args: Any, **kwargs: Any) -> None:
        self._record("debug", *args, **kwargs)

    def info(self, *args: Any, **kwargs: Any) -> None:
        self._record("info", *args, **kwargs)

    def warning(self, *args: Any, **kwargs: Any) -> None:
        self._record("warning", *args, **kwargs)

    def error(self, *args: Any, **kwargs: Any) -> None:
        self._record("error", *args, **kwargs)

    def exception(self, *args: Any, **kwargs: Any) -> None:
        self._record("exception", *args, **kwargs)

    @property
    def messages(self) -> List[Tuple[str, Any]]:
        """Return formatted messages for quick assertions."""
        t('tests.helpers.DummyLogger.messages')

        formatted: List[Tuple[str, Any]] = []
        for level, args, kwargs in self.records:
            message: Any = kwargs.get("msg")
            if args:
                template = args[0]
                if isinstance(template, str) and len(args) > 1:
                    try:
                        message = template % args[1:]
                    except (TypeError, ValueError):
                        message = template
                else:
                    message = template
            formatted.append((level, message))
        return formatted

    def texts(self, level: Optional[str] = None) -> List[str]:
        return [str(message) for lvl, message in self.messages if level is None or lvl == level]

    def clear(self) -> None:
        self.records.clear()

    def last(self, level: str | None = None) -> Tuple[str, Tuple[Any, ...], Dict[str, Any]] | None:
        """Return the most recent record, optionally filtered by level."""
        if not self.records:
            return None
        if level is None:
            return self.records[-1]
        for entry in reversed(self.records):
            if entry[0] == level:
                return entry
        return None


class FakeClock:
    """Manually advanced monotonic clock whose ``sleep`` moves time forward."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeSession(BrowserSession):
    """In-memory session recording every browser call.

    ``failures`` holds exceptions raised by upcoming ``goto``/``reload`` calls
    in order (``None`` means succeed). ``on_navigate`` runs after each
    successful call and may be a coroutine function.
    """

    engine = "fake"

    def __init__(
        self,
        url: str = BLANK_PAGE_URL,
        *,
        failures: Optional[List[Optional[BaseException]]] = None,
        on_navigate: Optional[Callable[["FakeSession", str], Any]] = None,
        close_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(page=None)
        self.url = url
        self.calls: List[Tuple[str, Any]] = []
        self.listeners: Dict[str, List[Callable[..., Any]]] = defaultdict(list)
        self.failures = list(failures or [])
        self.on_navigate = on_navigate
        self.close_error = close_error
        self.close_calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def _navigate(self, kind: str, url: Optional[str], wait_until: str) -> None:
        self.calls.append((kind, url, wait_until))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            failure = self.failures.pop(0) if self.failures else None
            if failure is not None:
                raise failure
            if url is not None:
                self.url = url
            if self.on_navigate is not None:
                result = self.on_navigate(self, kind)
                if inspect.isawaitable(result):
                    await result
        finally:
            self.in_flight -= 1

    async def goto(self, url: str, wait_until: str = "domcontentloaded") -> None:
        await self._navigate("goto", url, wait_until)

    async def reload(self, wait_until: str = "domcontentloaded") -> None:
        await self._navigate("reload", None, wait_until)

    async def current_url(self) -> str:
        self.calls.append(("current_url", None, None))
        return self.url

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        self.listeners[event].append(callback)

    def off(self, event: str, callback: Callable[..., Any]) -> None:
        if callback in self.listeners[event]:
            self.listeners[event].remove(callback)

    def emit(self, event: str, payload: Any = None) -> List[Any]:
        return [callback(payload) for callback in list(self.listeners[event])]

    async def _close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error

    @property
    def navigations(self) -> List[Tuple[str, Any]]:
        return [(kind, url) for kind, url, _ in self.calls if kind != "current_url"]
