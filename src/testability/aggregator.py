"""Overall score and letter grade from a complete set of principle scores."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from testability.config import ScoringProfile
from testability.errors import ConfigurationError
from testability.profiles import default_profile
from testability.rules import round_half_up
from testability.scorer import PrincipleScore

GRADE_BOUNDARIES: tuple[tuple[int, str], ...] = (
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)
FAILING_GRADE = "F"

GRADE_DESCRIPTIONS = {
    "A": "Excellent",
    "B": "Good",
    "C": "Average",
    "D": "Below Average",
    "F": "Poor",
}


def grade_for(overall_score: int) -> str:
    """Map an overall score to a letter grade (>=90 A, >=80 B, >=70 C, >=60 D, else F)."""
    for lower_bound, grade in GRADE_BOUNDARIES:
        if overall_score >= lower_bound:
            return grade
    return FAILING_GRADE


def grade_description(grade: str) -> str:
    return GRADE_DESCRIPTIONS.get(grade, "")


@dataclass(frozen=True)
class AssessmentResult:
    """Principle scores of one subject plus the derived overall score and grade."""

    subject: str
    principle_scores: dict[str, int]
    overall_score: int
    grade: str
    details: dict[str, PrincipleScore] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "overallScore": self.overall_score,
            "grade": self.grade,
            "principleScores": dict(self.principle_scores),
        }


def aggregate(
    principle_scores: Mapping[str, PrincipleScore | int],
    profile: ScoringProfile | None = None,
    subject: str = "",
) -> AssessmentResult:
    """Average every required principle score (unweighted) and grade the result.

    Scores are taken in the profile's declaration order; names the profile
    does not declare are ignored.

    Raises:
        ConfigurationError: a principle required by the profile is missing, or
            a plain integer score lies outside [0, 100].
    """
    profile = profile or default_profile()
    required = profile.principle_names

    missing = [name for name in required if name not in principle_scores]
    if missing:
        raise ConfigurationError(
            f"Cannot aggregate: missing score for principle(s) {', '.join(missing)}"
        )

    scores: dict[str, int] = {}
    details: dict[str, PrincipleScore] = {}
    for name in required:
        value = principle_scores[name]
        if isinstance(value, PrincipleScore):
            details[name] = value
            scores[name] = value.score
        else:
            if not 0 <= value <= 100:
                raise ConfigurationError(
                    f"Cannot aggregate: score for '{name}' must be between 0 and 100, got {value}"
                )
            scores[name] = int(value)

    overall = round_half_up(sum(scores.values()) / len(scores))
    return AssessmentResult(
        subject=subject,
        principle_scores=scores,
        overall_score=overall,
        grade=grade_for(overall),
        details=details,
    )
