"""Command line entrypoint for browser-keepalive.

Parses the flags, validates them into a :class:`KeepaliveConfig` and runs
the keepalive application until it is stopped.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import List, Optional

from browser_keepalive import __version__
from browser_keepalive.infrastructure import constants
from browser_keepalive.infrastructure.errors import ConfigurationError, KeepaliveError
from browser_keepalive.infrastructure.logging_config import get_logger, setup_logging
from browser_keepalive.infrastructure.settings import (
    EnvironmentDefaults,
    KeepaliveConfig,
    get_settings,
    normalize_port,
    parse_interval,
    parse_positive_int,
    validate_engine,
    validate_url,
)
from browser_keepalive.runtime import KeepaliveApplication
from browser_keepalive.tracking import t

EXAMPLES = """\
Examples:
  $ browser-keepalive https://example.com
  $ browser-keepalive https://example.com -i 300
  $ browser-keepalive https://example.com --headless --no-cache-bust
  $ browser-keepalive https://example.com -p 9222    # enable CDP
  $ browser-keepalive https://example.com --auto-install -y
"""


def build_parser(defaults: Optional[EnvironmentDefaults] = None) -> argparse.ArgumentParser:
    """Build the argument parser; ``defaults`` supplies environment-backed defaults."""
    t('cli.build_parser')
    defaults = defaults or EnvironmentDefaults()

    parser = argparse.ArgumentParser(
        prog="browser-keepalive",
        description="Keep a browser page alive by refreshing it on an interval.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}",
                        help="Show version number")
    parser.add_argument("url", help="URL to load")
    parser.add_argument("-i", "--interval", default=defaults.interval,
                        help="Refresh interval in seconds (default: %(default)s)")

    parser.add_argument("--cache-bust", "--add-fragment", dest="cache_bust", action="store_true",
                        default=True,
                        help="Add cache-busting query param on each refresh (default: on)")
    parser.add_argument("--no-cache-bust", dest="cache_bust", action="store_false",
                        help="Disable cache-busting query param")
    parser.add_argument("--always-reset", "--reset-url", dest="always_reset", action="store_true",
                        help="Always navigate to the original URL instead of refreshing the current page")

    parser.add_argument("--engine", default=defaults.engine,
                        help="Browser engine: playwright or selenium (default: %(default)s)")
    parser.add_argument("--headless", dest="headless", action="store_true", default=defaults.headless,
                        help="Run browser without visible window")
    parser.add_argument("--headed", dest="headless", action="store_false",
                        help="Run browser with a visible window")
    parser.add_argument("--auto-install", "--ensure-engine", dest="auto_install", action="store_true",
                        help="Prompt to install missing engine or browser binaries")
    parser.add_argument("--user-data-dir", default=defaults.user_data_dir,
                        help="Persist browser profile/cookies in this directory "
                             "(default: %(default)s, empty to disable)")
    parser.add_argument("-p", "--cdp-port", default=None,
                        help="Enable Chrome DevTools Protocol on this port")
    parser.add_argument("--only-if-idle", "--idle-refresh", dest="only_if_idle", action="store_true",
                        help="Only refresh when the browser has been idle for the full interval")

    parser.add_argument("--record-network", metavar="PATH", default=None,
                        help="Write NDJSON network log to this path")
    parser.add_argument("--record-include", metavar="SUBSTR", action="append", default=[],
                        help="Only record responses whose URL includes this substring (repeatable)")
    parser.add_argument("--record-max-bytes", default=str(constants.DEFAULT_RECORD_MAX_BYTES),
                        help="Max response body bytes to store per entry (default: %(default)s)")
    parser.add_argument("--no-record-body", dest="record_body", action="store_false",
                        help="Do not include response bodies in network log")

    parser.add_argument("-y", "--yes", action="store_true",
                        help="Auto-confirm all prompts (for scripts)")
    parser.add_argument("--log-level", default=defaults.log_level,
                        help="Logging level (default: %(default)s)")
    parser.add_argument("--log-dir", default=defaults.log_dir,
                        help="Also write rotating log files to this directory")
    return parser


def build_config(args: argparse.Namespace) -> KeepaliveConfig:
    """Validate parsed arguments. Raises :class:`ConfigurationError`."""
    t('cli.build_config')
    user_data_dir = str(args.user_data_dir or "").strip()
    if user_data_dir:
        user_data_dir = os.path.expanduser(user_data_dir)

    record_path = str(args.record_network).strip() if args.record_network else None
    max_bytes = parse_positive_int(args.record_max_bytes, "--record-max-bytes")

    return KeepaliveConfig(
        url=validate_url(args.url),
        interval_seconds=parse_interval(args.interval),
        cache_bust=args.cache_bust,
        always_reset=args.always_reset,
        only_if_idle=args.only_if_idle,
        engine=validate_engine(args.engine),
        headless=args.headless,
        cdp_port=normalize_port(args.cdp_port),
        auto_install=args.auto_install,
        yes=args.yes,
        user_data_dir=user_data_dir,
        record_network_path=record_path or None,
        record_includes=tuple(str(value) for value in args.record_include if value),
        record_max_bytes=max_bytes or constants.DEFAULT_RECORD_MAX_BYTES,
        record_body=args.record_body,
        log_level=str(args.log_level).upper(),
        log_dir=args.log_dir or None,
    )


def main(argv: Optional[List[str]] = None) -> int:
    t('cli.main')
    parser = build_parser(get_settings())
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    setup_logging(config.log_level, config.log_dir)
    logger = get_logger('KeepaliveApplication')

    app = KeepaliveApplication(config)
    try:
        return asyncio.run(app.run())
    except KeyboardInterrupt:
        logger.info("Stopped by user")
        return 0
    except KeepaliveError as exc:
        logger.error("%s", exc)
        return 1
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=True)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
