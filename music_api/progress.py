"""Cosmetic progress estimate for tasks whose status carries no progress."""
from __future__ import annotations

import math

_FAST_PHASE_SECONDS = 30.0
_SLOW_PHASE_SECONDS = 60.0
_FAST_RATE = 2.5
_SLOW_RATE = 0.3
_FAST_CEILING = 85
_SLOW_CEILING = 95
_PLATEAU = 98


def estimate_progress(attempt: int, interval: float) -> str:
    """Return a percentage string that grows quickly, then slows, then plateaus.

    ``attempt`` is the zero-based poll iteration and ``interval`` the poll
    interval in seconds. The value never reaches 100%; completion is reported
    separately once tracks are available.
    """

    elapsed = max(0, attempt) * max(0.0, interval)
    if elapsed < _FAST_PHASE_SECONDS:
        value = min(_FAST_CEILING, math.floor(elapsed * _FAST_RATE))
    elif elapsed < _SLOW_PHASE_SECONDS:
        value = min(_SLOW_CEILING, _FAST_CEILING + math.floor((elapsed - _FAST_PHASE_SECONDS) * _SLOW_RATE))
    else:
        value = _PLATEAU
    return f"{value}%"


__all__ = ["estimate_progress"]
