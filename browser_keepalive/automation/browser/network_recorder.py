"""NDJSON recording of network responses seen by the session.

The recorder is an independent ``response`` subscriber; enabling it never
changes idle detection.
"""

from __future__ import annotations

import inspect
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, IO, Iterable, Optional, Tuple

from browser_keepalive.infrastructure.constants import (
    ActivityEvents,
    DEFAULT_RECORD_MAX_BYTES,
    TEXTUAL_CONTENT_MARKERS,
)
from browser_keepalive.tracking import t

logger = logging.getLogger('NetworkRecorder')


def should_record_body(content_type: Optional[str]) -> bool:
    """Only textual responses get their body stored; unknown types count as text."""
    if not content_type:
        return True
    lowered = content_type.lower()
    return any(marker in lowered for marker in TEXTUAL_CONTENT_MARKERS)


def get_header(headers: Optional[Dict[str, Any]], name: str) -> str:
    if not headers:
        return ""
    value = headers.get(name.lower())
    if value is None:
        value = headers.get(name)
    return "" if value is None else str(value)


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _attr(obj: Any, name: str) -> Any:
    """Read ``name`` whether the backend exposes it as attribute or method."""
    value = getattr(obj, name, None)
    if callable(value):
        return value()
    return value


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class NetworkRecorder:
    """Append one JSON line per matching response to ``path``."""

    def __init__(
        self,
        session,
        path: str,
        *,
        includes: Iterable[str] = (),
        record_body: bool = True,
        max_bytes: int = DEFAULT_RECORD_MAX_BYTES,
    ) -> None:
        t('automation.browser.network_recorder.NetworkRecorder.__init__')
        self.session = session
        self.path = path
        self.includes: Tuple[str, ...] = tuple(value for value in includes if value)
        self.record_body = record_body
        self.max_bytes = max_bytes
        self._stream: Optional[IO[str]] = None

    def start(self) -> "NetworkRecorder":
        t('automation.browser.network_recorder.NetworkRecorder.start')
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._stream = open(self.path, "a", encoding="utf-8")
        self.session.on(ActivityEvents.RESPONSE, self.on_response)
        include_label = ",".join(self.includes) if self.includes else "all"
        logger.info(
            "network log: %s (include=%s body=%s maxBytes=%s)",
            self.path, include_label, self.record_body, self.max_bytes,
        )
        return self

    def stop(self) -> None:
        t('automation.browser.network_recorder.NetworkRecorder.stop')
        try:
            self.session.off(ActivityEvents.RESPONSE, self.on_response)
        except Exception as exc:
            logger.debug("Could not unsubscribe network recorder: %s", exc)
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def should_include_url(self, url: str) -> bool:
        return not self.includes or any(needle in url for needle in self.includes)

    def write_entry(self, entry: Dict[str, Any]) -> None:
        if self._stream is None:
            return
        try:
            self._stream.write(json.dumps(entry) + "\n")
            self._stream.flush()
        except (OSError, TypeError, ValueError) as exc:
            logger.debug("Could not write network log entry: %s", exc)

    def _truncate(self, text: Optional[str]) -> Tuple[Optional[str], bool]:
        if isinstance(text, str) and self.max_bytes and len(text) > self.max_bytes:
            return text[: self.max_bytes], True
        return text, False

    async def on_response(self, response: Any) -> None:
        t('automation.browser.network_recorder.NetworkRecorder.on_response')
        try:
            url = _attr(response, "url")
            if not url:
                return
            url = str(url)
            if not self.should_include_url(url):
                return

            request = _attr(response, "request")
            method = _attr(request, "method") if request is not None else None
            status = _attr(response, "status")
            headers = await _resolve(_attr(response, "headers"))
            content_type = get_header(headers, "content-type")

            body = None
            body_truncated = False
            body_error = None
            if self.record_body and should_record_body(content_type):
                try:
                    text = await _resolve(response.text())
                    if not isinstance(text, str):
                        text = str(text) if text else ""
                    body, body_truncated = self._truncate(text)
                except Exception as exc:
                    body_error = str(exc)

            post_data = None
            if request is not None:
                try:
                    post_data = _attr(request, "post_data")
                except Exception:
                    post_data = None
            post_data, _ = self._truncate(post_data)

            self.write_entry({
                "ts": _timestamp(),
                "url": url,
                "method": method or "GET",
                "status": status,
                "contentType": content_type,
                "body": body,
                "bodyTruncated": body_truncated,
                "bodyError": body_error,
                "requestPostData": post_data,
            })
        except Exception as exc:
            self.write_entry({"ts": _timestamp(), "error": str(exc)})
