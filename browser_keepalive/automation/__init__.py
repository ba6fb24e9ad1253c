"""Browser automation for browser-keepalive."""
