"""Weighted scoring of scenarios.

Pure functions: no I/O and no mutation of inputs, so they are safe to call
after every edit. For each scenario and attribute position k:

    contribution_k = rating_k * weight_k / 100
    weighted_score = round(sum(contribution_k), 1)

Contributions and the score are rounded independently, so the displayed
contributions may not add up to the displayed score in the last decimal.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from mfa.models.analysis import Attribute, Scenario, ScenarioResult
from mfa.scoring.numeric import round_half_up
from mfa.scoring.ranker import rank_results

logger = logging.getLogger(__name__)

SCORE_DECIMALS = 1


class ShapeMismatchError(ValueError):
    """Raised when ratings or weights do not line up with the attribute list.

    Scoring never truncates or pads; a mismatch aborts the whole computation.
    """

    def __init__(self, expected: int, actual: int, scenario_id: int | None = None) -> None:
        self.expected = expected
        self.actual = actual
        self.scenario_id = scenario_id
        if scenario_id is None:
            message = f"Expected {expected} weights, got {actual}"
        else:
            message = f"Scenario {scenario_id} has {actual} ratings, expected {expected}"
        super().__init__(message)


def score_scenario(
    attributes: Sequence[Attribute],
    scenario: Scenario,
    active_weights: Sequence[int],
) -> ScenarioResult:
    """Score one scenario. Rank is left at 0 for the ranker to assign.

    Raises:
        ShapeMismatchError: If the rating count differs from the attribute count.
    """
    if len(scenario.ratings) != len(attributes):
        raise ShapeMismatchError(len(attributes), len(scenario.ratings), scenario.id)

    total = 0.0
    contributions: dict[str, float] = {}
    for attribute, rating, weight in zip(attributes, scenario.ratings, active_weights, strict=True):
        contribution = rating * (weight / 100)
        total += contribution
        contributions[attribute.name] = round_half_up(contribution, SCORE_DECIMALS)

    return ScenarioResult(
        id=scenario.id,
        name=scenario.name,
        description=scenario.description,
        ratings=list(scenario.ratings),
        weighted_score=round_half_up(total, SCORE_DECIMALS),
        contribution_by_attr=contributions,
    )


def compute_results(
    attributes: Sequence[Attribute],
    scenarios: Sequence[Scenario],
    active_weights: Sequence[int],
) -> list[ScenarioResult]:
    """Score and rank every scenario.

    Args:
        attributes: Attribute list; positions align ratings and weights.
        scenarios: Scenarios to score.
        active_weights: Manual or derived weights, one per attribute.

    Returns:
        Ranked results, best first.

    Raises:
        ShapeMismatchError: If any scenario or the weight vector does not
            match the attribute count. No partial results are returned.
    """
    if len(active_weights) != len(attributes):
        raise ShapeMismatchError(len(attributes), len(active_weights))

    scored = [score_scenario(attributes, scenario, active_weights) for scenario in scenarios]
    ranked = rank_results(scored)
    logger.debug("Computed %d results with weights %s", len(ranked), list(active_weights))
    return ranked
