"""MFA Scoring Engine.

Deterministic decision scoring:
- PairwiseMatrix: reciprocal importance judgments between attributes
- derive_weights: geometric-mean weights that total exactly 100
- compute_results: weighted scores and per-attribute contributions
- rank_results: dense ranks with an explicit id tie-break
"""

from mfa.scoring.engine import ShapeMismatchError, compute_results, score_scenario
from mfa.scoring.pairwise import (
    SLIDER_POSITIONS,
    SLIDER_TO_RATIO,
    InvalidJudgmentError,
    PairwiseMatrix,
    ratio_for_slider,
    slider_for_ratio,
)
from mfa.scoring.ranker import order_by_scenario, rank_results, rating_label, top_recommendation
from mfa.scoring.weights import (
    WEIGHT_TOTAL,
    WeightBoundsError,
    clamp_weight_edit,
    derive_weights,
    validate_manual_weights,
)

__all__ = [
    "SLIDER_POSITIONS",
    "SLIDER_TO_RATIO",
    "WEIGHT_TOTAL",
    "InvalidJudgmentError",
    "PairwiseMatrix",
    "ShapeMismatchError",
    "WeightBoundsError",
    "clamp_weight_edit",
    "compute_results",
    "derive_weights",
    "order_by_scenario",
    "rank_results",
    "rating_label",
    "ratio_for_slider",
    "score_scenario",
    "slider_for_ratio",
    "top_recommendation",
    "validate_manual_weights",
]
