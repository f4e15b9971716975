"""
admission_leads/scoring/schemas.py — Input and output types of the scoring engine.

ScoringInput is the validation layer in front of the engine: callers may hand
the engine a plain dict (camelCase or snake_case keys) and it is checked here.
ScoringResult / ScoreBreakdown are plain dataclasses returned per call.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ── Input ─────────────────────────────────────────────────────────────────────

class ScoringInput(BaseModel):
    """One lead submission to be scored."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    form_type: str = Field(..., min_length=1, description="Originating form, e.g. 'admission'")
    form_data: dict[str, Any] = Field(..., description="Everything the lead submitted")
    submission_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: str = Field(..., min_length=1, description="Acquisition channel, e.g. 'walk_in'")
    course_interest: str | None = None
    budget: str | None = None
    response_time: float | None = Field(
        default=None,
        description="Minutes between lead creation and first contact",
    )


# ── Output ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ScoreBreakdown:
    form_type: int
    completeness: int
    response_time: int
    source: int
    course_interest: int
    budget: int

    @property
    def total(self) -> int:
        return (
            self.form_type
            + self.completeness
            + self.response_time
            + self.source
            + self.course_interest
            + self.budget
        )

    def to_dict(self) -> dict[str, int]:
        return {to_camel(key): value for key, value in asdict(self).items()}


@dataclass
class ScoringResult:
    score: int
    max_score: int
    percentage: int                 # 0 – 100 for most configs, see calculate_max_score
    breakdown: ScoreBreakdown
    factors: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """camelCase dict in the shape the dashboards read."""
        return {
            "score": self.score,
            "maxScore": self.max_score,
            "percentage": self.percentage,
            "breakdown": self.breakdown.to_dict(),
            "factors": list(self.factors),
            "recommendations": list(self.recommendations),
        }
