"""Seed data for new analyses.

default_analysis_template() is the only source of seed attributes,
scenarios and matrix. Each call returns fresh objects, so callers may mutate
what they receive.
"""

from __future__ import annotations

from dataclasses import dataclass

from mfa.models.analysis import Attribute, Scenario
from mfa.scoring.pairwise import PairwiseMatrix

_SEED_ATTRIBUTES: tuple[tuple[int, str, int], ...] = (
    (1, "Contractor Diversification", 8),
    (2, "Interface & Coordination", 11),
    (3, "Market Resource Availability", 21),
    (4, "Schedule & Delivery Confidence", 30),
    (5, "Financial Certainty", 24),
    (6, "Stakeholder Impact", 6),
)

_SEED_SCENARIOS: tuple[tuple[int, str, str, tuple[int, ...]], ...] = (
    (
        1,
        "Maximum Diversification (Baseline)",
        "Renewal A, Renewal B, DJT, Regional Stands, ITR West (5 contractors total)",
        (85, 40, 55, 45, 50, 60),
    ),
    (
        2,
        "High-Interface Package Consolidation",
        "DJT + ITR West (highest integration requirement), Renewal A, Renewal B, "
        "Regional Stands (4 contractors total)",
        (75, 85, 75, 80, 75, 80),
    ),
    (
        3,
        "Limited Interface Package Consolidation",
        "DJT, ITR West + Regional Stands (limited integration requirement), Renewal A, "
        "Renewal B (4 contractors total)",
        (75, 60, 65, 60, 60, 65),
    ),
    (
        4,
        "Operational Grouping",
        "DJT + Regional Stands (operational coordination), ITR West, Renewal A, "
        "Renewal B (4 contractors total)",
        (75, 65, 70, 65, 65, 70),
    ),
    (
        5,
        "High Concentration",
        "DJT + ITR West + Regional Stands (all major new works), Renewal A, "
        "Renewal B (3 contractors total)",
        (60, 70, 60, 55, 50, 60),
    ),
    (
        6,
        "Maximum Concentration",
        "DJT + ITR West + Regional Stands + Renewal A (mega contractor), "
        "Renewal B (2 contractors total)",
        (35, 60, 45, 45, 35, 40),
    ),
)


@dataclass
class AnalysisTemplate:
    """Seed inputs for a new analysis."""

    attributes: list[Attribute]
    scenarios: list[Scenario]
    matrix: PairwiseMatrix


def default_attributes() -> list[Attribute]:
    return [Attribute(id=i, name=name, weight=weight) for i, name, weight in _SEED_ATTRIBUTES]


def default_scenarios() -> list[Scenario]:
    return [
        Scenario(id=i, name=name, description=description, ratings=list(ratings))
        for i, name, description, ratings in _SEED_SCENARIOS
    ]


def default_analysis_template() -> AnalysisTemplate:
    """Build the seeded attribute set, scenario set and default matrix."""
    attributes = default_attributes()
    return AnalysisTemplate(
        attributes=attributes,
        scenarios=default_scenarios(),
        matrix=PairwiseMatrix(len(attributes)),
    )
