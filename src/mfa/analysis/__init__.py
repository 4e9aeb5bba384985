"""MFA Analysis Module.

The AnalysisRecord aggregate, its lifecycle states and errors, and the
default template new analyses are seeded from.
"""

from mfa.analysis.defaults import (
    AnalysisTemplate,
    default_analysis_template,
    default_attributes,
    default_scenarios,
)
from mfa.analysis.record import (
    AnalysisRecord,
    InvalidNameError,
    MalformedRecordError,
    RatingBoundsError,
    RecordState,
    RecordStateError,
    UnknownEntityError,
)

__all__ = [
    "AnalysisRecord",
    "AnalysisTemplate",
    "InvalidNameError",
    "MalformedRecordError",
    "RatingBoundsError",
    "RecordState",
    "RecordStateError",
    "UnknownEntityError",
    "default_analysis_template",
    "default_attributes",
    "default_scenarios",
]
