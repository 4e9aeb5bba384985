"""Analysis domain models.

Defines the persisted building blocks of a multi-factor analysis:
- Attribute: decision criterion with a 0-100 manual weight
- Scenario: candidate option with one 0-100 rating per attribute
- ScenarioResult: scored scenario with rank and per-attribute contributions
- WeightSource: explicit manual vs derived weight precedence

Results serialise with the camelCase keys of the stored document
(weightedScore, contributionByAttr); Python code uses snake_case.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

Rating = Annotated[int, Field(ge=0, le=100)]
Weight = Annotated[int, Field(ge=0, le=100)]


class Attribute(BaseModel):
    """Decision criterion with a relative importance weight."""

    model_config = ConfigDict(frozen=True, strict=True)

    id: int = Field(..., description="Unique attribute identifier")
    name: str = Field(..., min_length=1, description="Unique display label")
    weight: Weight = Field(..., description="Manual weight, 0-100")


class Scenario(BaseModel):
    """Candidate option rated against every attribute.

    ``ratings`` is positionally aligned with the analysis attribute list.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    id: int = Field(..., description="Unique scenario identifier")
    name: str = Field(..., description="Scenario name")
    description: str = Field(default="", description="Free-text description")
    ratings: list[Rating] = Field(..., description="One 0-100 rating per attribute")


class ScenarioResult(Scenario):
    """Scenario with its weighted score, dense rank and contribution breakdown."""

    model_config = ConfigDict(frozen=True, strict=True, populate_by_name=True)

    weighted_score: float = Field(..., alias="weightedScore", ge=0.0)
    rank: int = Field(default=0, ge=0, description="Dense rank 1..N; 0 before ranking")
    contribution_by_attr: dict[str, float] = Field(
        default_factory=dict,
        alias="contributionByAttr",
        description="Attribute name to rounded contribution",
    )

    def to_document(self) -> dict[str, object]:
        """Serialise with the stored camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")


class ManualWeights(BaseModel):
    """Weights taken from each attribute's manual weight field."""

    model_config = ConfigDict(frozen=True, strict=True)

    kind: Literal["manual"] = "manual"
    weights: list[Weight] = Field(default_factory=list)


class DerivedWeights(BaseModel):
    """Weights derived from the pairwise matrix; override manual weights."""

    model_config = ConfigDict(frozen=True, strict=True)

    kind: Literal["derived"] = "derived"
    weights: list[Weight] = Field(default_factory=list)


WeightSource = Annotated[ManualWeights | DerivedWeights, Field(discriminator="kind")]
