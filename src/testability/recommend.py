"""Prioritized improvement advice for principles scoring below the acceptable line."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from testability.aggregator import AssessmentResult
from testability.config import Priority, ScoringProfile
from testability.errors import ConfigurationError
from testability.profiles import default_profile

RATIONALE_TEMPLATE = "{label} is scoring {score}/100, indicating need for improvement"


@dataclass(frozen=True)
class Recommendation:
    principle: str
    priority: Priority
    advice: str
    rationale: str
    score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "principle": self.principle,
            "priority": self.priority.value,
            "advice": self.advice,
            "rationale": self.rationale,
        }


def priority_for(principle_score: int, profile: ScoringProfile) -> Priority:
    """Walk the profile's ladder; anything not caught by a step is medium."""
    for step in profile.priority_ladder:
        if principle_score < step.below:
            return step.priority
    return Priority.MEDIUM


def recommend(
    result: AssessmentResult, profile: ScoringProfile | None = None
) -> list[Recommendation]:
    """One recommendation per principle below ``acceptable_score``.

    Sorted by severity (critical, high, medium); ties keep the profile's
    principle declaration order.

    Raises:
        ConfigurationError: a principle of the profile has no advice entry, or
            the result lacks a score for one of the profile's principles.
    """
    profile = profile or default_profile()

    missing = [name for name in profile.principle_names if not profile.advice.get(name)]
    if missing:
        raise ConfigurationError(
            f"Profile '{profile.name}' has no advice for principle(s) {', '.join(missing)}"
        )

    unscored = [n for n in profile.principle_names if n not in result.principle_scores]
    if unscored:
        raise ConfigurationError(
            f"Assessment of '{result.subject}' has no score for principle(s) {', '.join(unscored)}"
        )

    recommendations: list[Recommendation] = []
    for principle in profile.principles:
        value = result.principle_scores[principle.name]
        if value >= profile.acceptable_score:
            continue
        recommendations.append(
            Recommendation(
                principle=principle.name,
                priority=priority_for(value, profile),
                advice=profile.advice[principle.name],
                rationale=RATIONALE_TEMPLATE.format(
                    label=principle.display_name, score=value
                ),
                score=value,
            )
        )

    # sorted() is stable, so declaration order survives within a priority
    return sorted(recommendations, key=lambda r: -r.priority.severity)
