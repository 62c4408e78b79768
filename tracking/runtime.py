"""Runtime helpers for counting how often booking-flow functions execute."""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Dict, Optional

_LOCK = threading.RLock()
_DEFAULT_TRACKING_FILE = Path(__file__).resolve().parents[1] / "logs" / "function_call_counts.json"
_COUNTS: Dict[str, int] = {}
_STATE = {"enabled": None, "path": None}


def _persistence_enabled() -> bool:
    if _STATE["enabled"] is None:
        raw = os.getenv("FUNCTION_TRACKING_ENABLED", "false")
        _STATE["enabled"] = raw.strip().lower() in {"1", "true", "yes", "on"}
    return bool(_STATE["enabled"])


def _tracking_file() -> Path:
    if _STATE["path"] is None:
        override = os.getenv("FUNCTION_TRACKING_FILE")
        _STATE["path"] = Path(override) if override else _DEFAULT_TRACKING_FILE
    return _STATE["path"]


def configure(*, enabled: Optional[bool] = None, path: Optional[Path] = None) -> None:
    """Override the environment driven persistence settings."""
    with _LOCK:
        if enabled is not None:
            _STATE["enabled"] = enabled
        if path is not None:
            _STATE["path"] = Path(path)


def _persist_counts_locked() -> None:
    """Write the in-memory counts to disk. Caller must hold ``_LOCK``."""
    target = _tracking_file()
    target.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Optional[Path] = None
    try:
        with NamedTemporaryFile(
            "w", encoding="utf-8", dir=target.parent, delete=False
        ) as handle:
            json.dump(_COUNTS, handle, sort_keys=True)
            handle.write("\n")
            handle.flush()
            tmp_path = Path(handle.name)

        if tmp_path is not None:
            tmp_path.replace(target)
    except OSError:
        if tmp_path is not None:
            try:
                tmp_path.unlink()
            except OSError:
                pass


def t(func_name: str) -> None:
    """Record one execution of ``func_name``."""
    if not func_name:
        return

    with _LOCK:
        _COUNTS[func_name] = _COUNTS.get(func_name, 0) + 1
        if _persistence_enabled():
            _persist_counts_locked()


def snapshot() -> Dict[str, int]:
    """Return a copy of the current call counts."""
    with _LOCK:
        return dict(_COUNTS)


def reset() -> None:
    with _LOCK:
        _COUNTS.clear()
