"""Keep a browser page alive by refreshing it on a timer."""

__version__ = "0.1.0"
