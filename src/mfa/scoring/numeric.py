"""Rounding helpers shared by the scoring modules.

Scores and contributions are displayed with one decimal and weights as whole
percentages. Both use round-half-up on the exact binary value of the float,
so 2.25 rounds to 2.3 while 0.15 (stored as 0.1499...) rounds to 0.1.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float, places: int = 1) -> float:
    """Round a float to ``places`` decimals, ties away from zero.

    Args:
        value: Value to round.
        places: Number of decimal places (0 or more).

    Returns:
        Rounded value as float.
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def round_to_int(value: float) -> int:
    """Round a float to the nearest integer, ties away from zero."""
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))
