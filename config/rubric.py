"""Default evaluation rubric for free-text answers."""
from __future__ import annotations

from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field

from .routes import RubricWeights

CriterionName = Literal["correctness", "depth", "clarity"]
LEVELS = ("excellent", "good", "satisfactory", "needs_improvement", "incorrect")


class RubricCriterion(BaseModel):
    """One weighted criterion with per-level descriptions."""

    weight: float = Field(ge=0.0, le=1.0)
    description: str
    levels: Dict[str, str] = Field(default_factory=dict)


class Rubric(BaseModel):
    """Weighted correctness/depth/clarity rubric."""

    correctness: RubricCriterion
    depth: RubricCriterion
    clarity: RubricCriterion

    def criteria(self) -> Dict[str, RubricCriterion]:
        return {"correctness": self.correctness, "depth": self.depth, "clarity": self.clarity}

    def with_weights(self, weights: RubricWeights) -> "Rubric":
        return Rubric(
            correctness=self.correctness.model_copy(update={"weight": weights.correctness}),
            depth=self.depth.model_copy(update={"weight": weights.depth}),
            clarity=self.clarity.model_copy(update={"weight": weights.clarity}),
        )


DEFAULT_RUBRIC = Rubric(
    correctness=RubricCriterion(
        weight=0.5,
        description="Technical accuracy of the answer",
        levels={
            "excellent": "Completely accurate with no errors",
            "good": "Mostly accurate with minor inaccuracies",
            "satisfactory": "Generally correct but missing important details",
            "needs_improvement": "Partially correct with significant errors",
            "incorrect": "Fundamentally wrong or off-topic",
        },
    ),
    depth=RubricCriterion(
        weight=0.3,
        description="Level of detail, examples and edge cases covered",
        levels={
            "excellent": "Thorough explanation with examples and edge cases",
            "good": "Good detail with at least one concrete example",
            "satisfactory": "Adequate detail but few examples",
            "needs_improvement": "Superficial treatment of the topic",
            "incorrect": "No meaningful detail",
        },
    ),
    clarity=RubricCriterion(
        weight=0.2,
        description="Structure and ease of following the explanation",
        levels={
            "excellent": "Well structured and easy to follow",
            "good": "Clear with minor structural issues",
            "satisfactory": "Understandable but somewhat disorganized",
            "needs_improvement": "Hard to follow",
            "incorrect": "Incoherent",
        },
    ),
)


def build_rubric(weights: Optional[RubricWeights] = None) -> Rubric:
    """Return the default rubric, optionally re-weighted."""
    if weights is None:
        return DEFAULT_RUBRIC
    return DEFAULT_RUBRIC.with_weights(weights)


__all__ = ["CriterionName", "LEVELS", "RubricCriterion", "Rubric", "DEFAULT_RUBRIC", "build_rubric"]
