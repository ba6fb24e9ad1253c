"""Navigation target policy for each refresh cycle.

The cache-bust marker is a single reserved query parameter (``_cb``) whose
value is the current time in base 36 followed by four random base-36
characters. Stripping removes only that parameter and keeps the rest of the
query string byte-for-byte in its original order.
"""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
from urllib.parse import SplitResult, unquote_plus, urlsplit, urlunsplit

from browser_keepalive.infrastructure.constants import (
    BLANK_PAGE_URL,
    CACHE_BUST_PARAM,
    CACHE_BUST_RANDOM_CHARS,
)
from browser_keepalive.tracking import t

_BASE36_DIGITS = string.digits + string.ascii_lowercase


class RefreshKind(Enum):
    """How a refresh cycle drives the browser."""

    GOTO = "goto"
    RELOAD = "reload"


@dataclass(frozen=True)
class RefreshAction:
    kind: RefreshKind
    url: Optional[str] = None

    def describe(self) -> str:
        if self.kind is RefreshKind.RELOAD:
            return "reload"
        return f"goto: {self.url}"


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 conversion requires a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_cache_buster_token(
    now: Optional[Callable[[], float]] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """Return ``base36(epoch ms)`` plus four random base-36 characters."""
    t('automation.keepalive.url_policy.generate_cache_buster_token')

    clock = now or time.time
    chooser = rng or random
    millis = int(clock() * 1000)
    suffix = "".join(chooser.choice(_BASE36_DIGITS) for _ in range(CACHE_BUST_RANDOM_CHARS))
    return f"{to_base36(millis)}{suffix}"


def _split(url: str) -> Optional[SplitResult]:
    """Parse ``url`` or return ``None`` when it is not an absolute URL."""
    if not isinstance(url, str):
        return None
    try:
        parts = urlsplit(url)
        parts.port
    except ValueError:
        return None
    if not parts.scheme:
        return None
    if parts.scheme.lower() in {"http", "https"} and not parts.netloc:
        return None
    return parts


def _without_param(query: str, param: str) -> str:
    if not query:
        return query
    kept = [
        pair for pair in query.split("&")
        if unquote_plus(pair.split("=", 1)[0]) != param
    ]
    return "&".join(kept)


def strip_cache_buster(url: str, param: str = CACHE_BUST_PARAM) -> str:
    """Remove the reserved query parameter, leaving everything else untouched.

    Strings that do not parse as absolute URLs are returned unchanged.
    """
    t('automation.keepalive.url_policy.strip_cache_buster')

    parts = _split(url)
    if parts is None:
        return url
    return urlunsplit(parts._replace(query=_without_param(parts.query, param)))


def with_cache_buster(
    url: str,
    param: str = CACHE_BUST_PARAM,
    *,
    token_factory: Callable[[], str] = generate_cache_buster_token,
) -> str:
    """Replace any existing marker with a freshly generated one."""
    t('automation.keepalive.url_policy.with_cache_buster')

    parts = _split(url)
    if parts is None:
        return url
    query = _without_param(parts.query, param)
    marker = f"{param}={token_factory()}"
    query = f"{query}&{marker}" if query else marker
    return urlunsplit(parts._replace(query=query))


def compute_base_url(url: str, cache_bust: bool) -> str:
    """Original address with the marker removed when cache-busting is on."""
    t('automation.keepalive.url_policy.compute_base_url')
    return strip_cache_buster(url) if cache_bust else url


def initial_target(base_url: str, cache_bust: bool) -> str:
    """First navigation target; there is no current page yet."""
    t('automation.keepalive.url_policy.initial_target')
    return with_cache_buster(base_url) if cache_bust else base_url


def needs_current_url(*, cache_bust: bool, always_reset: bool) -> bool:
    """Whether :func:`plan_refresh` needs the session's live URL."""
    return cache_bust and not always_reset


def plan_refresh(
    base_url: str,
    current_url: Optional[str],
    *,
    cache_bust: bool,
    always_reset: bool,
) -> RefreshAction:
    """Decide the single browser call for one refresh cycle.

    ``always_reset`` returns to the original address and discards in-page
    navigation. Otherwise with ``cache_bust`` the live URL gets a fresh
    marker (falling back to ``base_url`` on a blank page). With neither flag
    the current page is simply reloaded.
    """
    t('automation.keepalive.url_policy.plan_refresh')

    if always_reset:
        return RefreshAction(RefreshKind.GOTO, initial_target(base_url, cache_bust))

    if cache_bust:
        if current_url and current_url != BLANK_PAGE_URL:
            current_base = strip_cache_buster(current_url)
        else:
            current_base = base_url
        return RefreshAction(RefreshKind.GOTO, with_cache_buster(current_base))

    return RefreshAction(RefreshKind.RELOAD)
