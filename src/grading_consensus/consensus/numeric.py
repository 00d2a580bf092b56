"""Numeric coercion shared by every component that reads untrusted scores."""

import math

from grading_consensus.policy import SCORE_MAX, SCORE_MIN


def coerce_number(value: object) -> float | None:
    """Return *value* as a finite float, or ``None`` if it is not numeric.

    Accepts ints, floats and numeric strings (``"82"``, ``" 82.5 "``).
    Booleans are rejected even though ``bool`` subclasses ``int``.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Python's ``round`` uses banker's rounding (``round(72.5) == 72``); scores
    are rounded the conventional way instead.
    """
    return math.floor(value + 0.5)


def clamp_score(value: float, low: int = SCORE_MIN, high: int = SCORE_MAX) -> int:
    """Round *value* and clamp it into ``[low, high]``."""
    return int(clamp(round_half_up(value), low, high))
