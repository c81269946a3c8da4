"""
JSONL event logger.

Rules:
- Write one record per line
- Output to stdout
- No buffering, no batching
- No side effects beyond logging
"""

from __future__ import annotations

import json
import sys
from typing import Any, Mapping, Callable


_LEVELS: dict[str, int] = {
    "debug": 10,
    "info": 20,
    "warning": 30,
    "error": 40,
}


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

_min_level: int = _LEVELS["info"]
_json_lines: bool = True


def configure_logging(level: str = "INFO", *, json_lines: bool = True) -> None:
    """
    Set the minimum level and output format.

    Unknown level names fall back to INFO.
    """
    global _min_level, _json_lines  # pylint: disable=global-statement
    _min_level = _LEVELS.get(level.lower(), _LEVELS["info"])
    _json_lines = json_lines


def _render_plain(event: Mapping[str, Any]) -> str:
    return " ".join(f"{k}={event[k]!r}" for k in event)


def log_event(event: Mapping[str, Any], *, level: str = "info") -> None:
    """
    Write a single structured event.

    The caller is responsible for:
    - Supplying a fully-formed event dict
    - Including ts_ms, session_id, state, etc.

    This function:
    - Drops events below the configured level
    - Serializes to JSON (or key=value when JSON logs are disabled)
    - Writes exactly one line
    - Never raises
    """
    if _LEVELS.get(level, _LEVELS["info"]) < _min_level:
        return

    if not _json_lines:
        _print(_render_plain({"level": level, **event}))
        return

    try:
        line = json.dumps(event, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Logging must never crash the runtime
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
