"""Ranking of scored scenarios."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

from mfa.models.analysis import ScenarioResult

RATING_BANDS: Final[tuple[tuple[int, str], ...]] = (
    (90, "Excellent"),
    (75, "Good"),
    (60, "Above Average"),
    (50, "Average"),
    (40, "Below Average"),
)
LOWEST_RATING_LABEL: Final[str] = "Poor"


def rank_results(results: Sequence[ScenarioResult]) -> list[ScenarioResult]:
    """Assign dense ranks 1..N, best score first.

    Equal scores are ordered by ascending scenario id, so the ranking does not
    depend on input order.

    Args:
        results: Scored results in any order.

    Returns:
        New result objects sorted by rank.
    """
    ordered = sorted(results, key=lambda r: (-r.weighted_score, r.id))
    return [
        result.model_copy(update={"rank": position + 1})
        for position, result in enumerate(ordered)
    ]


def order_by_scenario(results: Sequence[ScenarioResult]) -> list[ScenarioResult]:
    """Re-sort ranked results by scenario id, keeping each assigned rank."""
    return sorted(results, key=lambda r: r.id)


def top_recommendation(results: Sequence[ScenarioResult]) -> ScenarioResult | None:
    """Return the rank-1 result, or None when there is nothing ranked."""
    for result in results:
        if result.rank == 1:
            return result
    return None


def rating_label(rating: int) -> str:
    """Qualitative label for a 0-100 rating."""
    for threshold, label in RATING_BANDS:
        if rating >= threshold:
            return label
    return LOWEST_RATING_LABEL
