"""MFA domain models."""

from mfa.models.analysis import (
    Attribute,
    DerivedWeights,
    ManualWeights,
    Rating,
    Scenario,
    ScenarioResult,
    Weight,
    WeightSource,
)

__all__ = [
    "Attribute",
    "DerivedWeights",
    "ManualWeights",
    "Rating",
    "Scenario",
    "ScenarioResult",
    "Weight",
    "WeightSource",
]
