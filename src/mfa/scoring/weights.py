"""Attribute weight derivation and manual weight handling.

Derived weights come from a PairwiseMatrix by row geometric means
(a simplified Analytic Hierarchy Process step), normalised to whole
percentages that always total exactly 100.

Manual weights are edited one attribute at a time; an edit may never push
the total above 100 or any weight outside 0-100.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Final

from mfa.scoring.numeric import round_to_int
from mfa.scoring.pairwise import PairwiseMatrix

logger = logging.getLogger(__name__)

WEIGHT_TOTAL: Final[int] = 100
MIN_WEIGHT: Final[int] = 0
MAX_WEIGHT: Final[int] = 100
EQUAL_JUDGMENT_THRESHOLD: Final[float] = 0.1


class WeightBoundsError(ValueError):
    """Raised when a weight vector violates the 0-100 / sum-100 bounds."""

    def __init__(self, message: str, weights: Sequence[int]) -> None:
        self.weights = list(weights)
        super().__init__(message)


def derive_weights(matrix: PairwiseMatrix) -> list[int]:
    """Derive integer percentage weights from a pairwise matrix.

    Near-equal judgments are repaired first (mutating ``matrix``), then each
    row's geometric mean is normalised to a percentage. Rounding drift is
    absorbed by the first largest weight so the vector sums to exactly 100.

    Args:
        matrix: Pairwise matrix; modified in place by the equal-judgment repair.

    Returns:
        One weight per attribute, in attribute order.
    """
    repaired = matrix.repair_equal_judgments(EQUAL_JUDGMENT_THRESHOLD)
    if repaired:
        logger.debug("Repaired %d equal-importance judgments: %s", len(repaired), repaired)

    n = matrix.size
    if n == 0:
        return []

    rows = matrix.rows()
    geometric_means = [math.prod(row) ** (1 / n) for row in rows]
    total = sum(geometric_means)
    weights = [round_to_int(WEIGHT_TOTAL * g / total) for g in geometric_means]

    drift = WEIGHT_TOTAL - sum(weights)
    if drift:
        largest = weights.index(max(weights))
        weights[largest] += drift

    return weights


def weights_total(weights: Sequence[int]) -> int:
    return sum(weights)


def validate_manual_weights(weights: Sequence[int]) -> None:
    """Check a manual weight vector is complete.

    Args:
        weights: Attribute weights.

    Raises:
        WeightBoundsError: If any weight is outside 0-100 or the total is not 100.
    """
    for index, weight in enumerate(weights):
        if not MIN_WEIGHT <= weight <= MAX_WEIGHT:
            raise WeightBoundsError(
                f"Weight at position {index} is {weight}, expected {MIN_WEIGHT}-{MAX_WEIGHT}",
                weights,
            )
    total = weights_total(weights)
    if total != WEIGHT_TOTAL:
        raise WeightBoundsError(
            f"Manual weights must total {WEIGHT_TOTAL}, got {total}",
            weights,
        )


def clamp_weight_edit(weights: Sequence[int], index: int, new_weight: int) -> list[int]:
    """Apply one manual weight edit, clamped to the remaining headroom.

    A decrease is always accepted (down to 0). An increase is limited so the
    total never exceeds 100; if the total is already at or above 100 the
    weight is left unchanged.

    Args:
        weights: Current weight vector.
        index: Position of the edited attribute.
        new_weight: Requested weight.

    Returns:
        New weight vector.

    Raises:
        IndexError: If ``index`` is out of range.
    """
    updated = list(weights)
    current = updated[index]
    requested = min(max(new_weight, MIN_WEIGHT), MAX_WEIGHT)
    delta = requested - current

    if delta > 0:
        headroom = max(WEIGHT_TOTAL - weights_total(updated), 0)
        if delta > headroom:
            logger.debug(
                "Clamped weight edit at position %d from %d to %d",
                index,
                requested,
                current + headroom,
            )
            requested = current + headroom

    updated[index] = requested
    return updated
