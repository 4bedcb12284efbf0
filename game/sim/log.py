"""
Tiny prefixed console logging for the simulation systems.

Debug lines are gated by DEBUG_SIM (config / env) and can be throttled per key;
warnings always print.
"""

from __future__ import annotations

import sys
from typing import Optional

from config import DEBUG_SIM

# Flip at runtime (tests, headless runner --debug).
DEBUG = DEBUG_SIM

_last_log: dict[str, int] = {}


def set_debug(enabled: bool) -> None:
    global DEBUG
    DEBUG = bool(enabled)


def debug_log(tag: str, msg: str, throttle_key: Optional[str] = None, now_hours: Optional[int] = None) -> None:
    if not DEBUG:
        return
    # Throttle repeated messages to once per sim hour (sim-time only, no wall clock).
    if throttle_key is not None and now_hours is not None:
        if _last_log.get(throttle_key) == int(now_hours):
            return
        _last_log[throttle_key] = int(now_hours)
    print(f"[{tag}] {msg}")


def info_log(tag: str, msg: str) -> None:
    if DEBUG:
        print(f"[{tag}] {msg}")


def warn_log(tag: str, msg: str) -> None:
    print(f"[{tag}] WARN: {msg}", file=sys.stderr)
