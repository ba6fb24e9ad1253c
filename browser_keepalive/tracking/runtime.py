"""Runtime helpers for tracking how often functions execute in production."""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Dict, Optional

_LOCK = threading.RLock()
_TRACKING_ENV = "KEEPALIVE_TRACKING_FILE"
_COUNTS: Dict[str, int] = {}


def tracking_file() -> Optional[Path]:
    """Return the counts file, or ``None`` when persistence is disabled."""
    raw = os.getenv(_TRACKING_ENV, "").strip()
    if not raw:
        return None
    return Path(raw).expanduser()


def _load_counts() -> None:
    path = tracking_file()
    if path is None or not path.exists():
        return

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, ValueError, TypeError):
        return

    if not isinstance(data, dict):
        return

    for name, raw_count in data.items():
        if not name:
            continue
        try:
            count = int(raw_count)
        except (TypeError, ValueError):
            continue
        _COUNTS[str(name)] = max(count, 0)


def _persist_counts_locked(path: Path) -> None:
    """Persist the in-memory counts to disk. Caller must hold ``_LOCK``."""
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Optional[Path] = None
    try:
        with NamedTemporaryFile(
            "w", encoding="utf-8", dir=path.parent, delete=False
        ) as handle:
            json.dump(_COUNTS, handle, sort_keys=True)
            handle.write("\n")
            handle.flush()
            tmp_path = Path(handle.name)

        if tmp_path is not None:
            tmp_path.replace(path)
    except OSError:
        if tmp_path is not None:
            try:
                tmp_path.unlink()
            except OSError:
                pass


def t(func_name: str) -> None:
    """Record the provided function name each time it runs."""
    if not func_name:
        return

    with _LOCK:
        _COUNTS[func_name] = _COUNTS.get(func_name, 0) + 1
        path = tracking_file()
        if path is not None:
            _persist_counts_locked(path)


def get_counts() -> Dict[str, int]:
    """Return a snapshot of the recorded call counts."""
    with _LOCK:
        return dict(_COUNTS)


def reset_counts() -> None:
    with _LOCK:
        _COUNTS.clear()


_load_counts()
