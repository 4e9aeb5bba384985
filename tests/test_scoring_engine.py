"""Tests for weighted scenario scoring.

Tests cover:
1. Weighted score and per-attribute contributions
2. Independent rounding of contributions and score
3. Shape mismatches abort the whole computation
4. Determinism: repeated runs are identical
"""

from __future__ import annotations

import pytest

from mfa.analysis.defaults import default_analysis_template
from mfa.models.analysis import Attribute, Scenario
from mfa.scoring.engine import ShapeMismatchError, compute_results, score_scenario


def _attributes(*weights: int) -> list[Attribute]:
    return [Attribute(id=i + 1, name=f"A{i + 1}", weight=w) for i, w in enumerate(weights)]


class TestScoreScenario:
    """Scoring a single scenario."""

    def test_equal_weights_average(self) -> None:
        """Weights 25/25/25/25 and ratings 80/60/40/20 score 50.0."""
        attributes = _attributes(25, 25, 25, 25)
        scenario = Scenario(id=1, name="S1", ratings=[80, 60, 40, 20])

        result = score_scenario(attributes, scenario, [25, 25, 25, 25])

        assert result.weighted_score == 50.0
        assert result.contribution_by_attr == {"A1": 20.0, "A2": 15.0, "A3": 10.0, "A4": 5.0}
        assert result.rank == 0

    def test_contributions_round_half_up(self) -> None:
        """Each contribution is rating * weight / 100 rounded half up, not to even."""
        attributes = _attributes(25, 25)
        scenario = Scenario(id=1, name="S1", ratings=[1, 3])

        result = score_scenario(attributes, scenario, [25, 25])

        assert result.contribution_by_attr == {"A1": 0.3, "A2": 0.8}
        assert result.weighted_score == 1.0

    def test_score_uses_unrounded_sum(self) -> None:
        """The score rounds the exact sum, not the sum of rounded contributions."""
        attributes = _attributes(50, 50)
        scenario = Scenario(id=1, name="S1", ratings=[45, 45])

        result = score_scenario(attributes, scenario, [15, 15])

        # contributions 6.75 each -> 6.8 displayed, score 13.5 not 13.6
        assert result.contribution_by_attr == {"A1": 6.8, "A2": 6.8}
        assert result.weighted_score == 13.5

    def test_result_keeps_scenario_fields(self) -> None:
        """Id, name, description and ratings are copied to the result."""
        attributes = _attributes(100)
        scenario = Scenario(id=7, name="Only", description="desc", ratings=[90])

        result = score_scenario(attributes, scenario, [100])

        assert (result.id, result.name, result.description, result.ratings) == (
            7,
            "Only",
            "desc",
            [90],
        )

    def test_ratings_shape_mismatch(self) -> None:
        """A scenario with the wrong number of ratings raises ShapeMismatchError."""
        attributes = _attributes(50, 50)
        scenario = Scenario(id=3, name="S3", ratings=[10])

        with pytest.raises(ShapeMismatchError) as exc_info:
            score_scenario(attributes, scenario, [50, 50])

        assert exc_info.value.scenario_id == 3
        assert exc_info.value.expected == 2
        assert exc_info.value.actual == 1


class TestComputeResults:
    """Scoring and ranking all scenarios."""

    def test_results_are_ranked(self) -> None:
        """Results come back best first with ranks 1..N."""
        attributes = _attributes(50, 50)
        scenarios = [
            Scenario(id=1, name="low", ratings=[10, 10]),
            Scenario(id=2, name="high", ratings=[90, 90]),
            Scenario(id=3, name="mid", ratings=[50, 50]),
        ]

        results = compute_results(attributes, scenarios, [50, 50])

        assert [r.id for r in results] == [2, 3, 1]
        assert [r.rank for r in results] == [1, 2, 3]

    def test_weights_shape_mismatch(self) -> None:
        """A weight vector of the wrong length raises ShapeMismatchError."""
        attributes = _attributes(50, 50)
        scenarios = [Scenario(id=1, name="S1", ratings=[10, 10])]

        with pytest.raises(ShapeMismatchError) as exc_info:
            compute_results(attributes, scenarios, [100])

        assert exc_info.value.scenario_id is None

    def test_no_partial_results(self) -> None:
        """One malformed scenario aborts the computation."""
        attributes = _attributes(50, 50)
        scenarios = [
            Scenario(id=1, name="ok", ratings=[10, 10]),
            Scenario(id=2, name="bad", ratings=[10, 10, 10]),
        ]

        with pytest.raises(ShapeMismatchError):
            compute_results(attributes, scenarios, [50, 50])

    def test_no_scenarios(self) -> None:
        """No scenarios yields no results."""
        assert compute_results(_attributes(100), [], [100]) == []

    def test_idempotent(self) -> None:
        """Repeated computation yields identical results."""
        template = default_analysis_template()
        weights = [a.weight for a in template.attributes]

        first = compute_results(template.attributes, template.scenarios, weights)
        second = compute_results(template.attributes, template.scenarios, weights)

        assert first == second
        assert [r.to_document() for r in first] == [r.to_document() for r in second]

    def test_default_template_ranking(self) -> None:
        """The seeded analysis recommends High-Interface Package Consolidation."""
        template = default_analysis_template()
        weights = [a.weight for a in template.attributes]

        results = compute_results(template.attributes, template.scenarios, weights)

        assert results[0].id == 2
        assert results[0].weighted_score == 77.9
        assert [r.id for r in results] == [2, 4, 3, 5, 1, 6]

    def test_inputs_not_mutated(self) -> None:
        """Scoring leaves scenarios untouched."""
        attributes = _attributes(50, 50)
        scenario = Scenario(id=1, name="S1", ratings=[10, 20])

        compute_results(attributes, [scenario], [50, 50])

        assert scenario.ratings == [10, 20]


class TestResultDocument:
    """Serialised result shape."""

    def test_camel_case_keys(self) -> None:
        """Stored results use weightedScore and contributionByAttr."""
        attributes = _attributes(100)
        result = compute_results(attributes, [Scenario(id=1, name="S", ratings=[40])], [100])[0]

        document = result.to_document()

        assert document["weightedScore"] == 40.0
        assert document["contributionByAttr"] == {"A1": 40.0}
        assert document["rank"] == 1
        assert "weighted_score" not in document
