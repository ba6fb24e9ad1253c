"""Allow ``python -m browser_keepalive``."""

from browser_keepalive.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
