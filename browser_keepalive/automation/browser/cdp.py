"""Discovery of the Chrome DevTools Protocol endpoint."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

import httpx

from browser_keepalive.infrastructure.constants import (
    CDP_DISCOVERY_TIMEOUT_SECONDS,
    CDP_HOST,
    CDP_POLL_INTERVAL_SECONDS,
    CDP_VERSION_PATH,
)
from browser_keepalive.tracking import t

logger = logging.getLogger('CdpDiscovery')


def cdp_base_url(port: int, host: str = CDP_HOST) -> str:
    return f"http://{host}:{port}"


async def wait_for_json(
    url: str,
    timeout: float = CDP_DISCOVERY_TIMEOUT_SECONDS,
    *,
    poll_interval: float = CDP_POLL_INTERVAL_SECONDS,
    client: Optional[httpx.AsyncClient] = None,
) -> Any:
    """Poll ``url`` until it returns a JSON document or ``timeout`` elapses.

    Raises the last error seen when the deadline passes.
    """
    t('automation.browser.cdp.wait_for_json')
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=httpx.Timeout(2.0))
    deadline = time.monotonic() + timeout
    last_error: Optional[Exception] = None

    try:
        while time.monotonic() < deadline:
            try:
                response = await http.get(url, headers={"accept": "application/json"})
                response.raise_for_status()
                return response.json()
            except (httpx.HTTPError, ValueError) as exc:
                last_error = exc
                await asyncio.sleep(poll_interval)
    finally:
        if owns_client:
            await http.aclose()

    raise last_error or TimeoutError(f"Timed out fetching {url}")


async def describe_cdp_endpoints(
    port: int,
    *,
    timeout: float = CDP_DISCOVERY_TIMEOUT_SECONDS,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[str]:
    """Log the CDP base URL and websocket URL; returns the websocket URL.

    Failure to read ``/json/version`` is only a warning.
    """
    t('automation.browser.cdp.describe_cdp_endpoints')
    base = cdp_base_url(port)
    logger.info("CDP enabled: %s", base)

    try:
        version = await wait_for_json(f"{base}{CDP_VERSION_PATH}", timeout, client=client)
    except Exception as exc:
        logger.warning("CDP: could not read %s: %s", CDP_VERSION_PATH, exc)
        return None

    websocket_url = version.get("webSocketDebuggerUrl") if isinstance(version, dict) else None
    if websocket_url:
        logger.info("CDP websocket: %s", websocket_url)
    return websocket_url
