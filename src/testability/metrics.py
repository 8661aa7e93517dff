from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any

import numpy as np

from testability.assessment import Assessment
from testability.config import Priority, ScoringProfile
from testability.recommend import Recommendation
from testability.rules import round_half_up

CRITICAL_ISSUE_BELOW = 40
HIGH_ISSUE_BELOW = 60
TOP_RECOMMENDATIONS = 10


@dataclass
class MetricStatistics:
    """Statistics for a single score across subjects."""

    avg: float | None
    min: float | None
    max: float | None
    stddev: float | None

    def to_dict(self) -> dict[str, float | None]:
        return asdict(self)


@dataclass
class PrincipleIssue:
    """A principle whose average score across subjects is weak."""

    principle: str
    average_score: int
    severity: Priority

    def to_dict(self) -> dict[str, Any]:
        return {
            "principle": self.principle,
            "averageScore": self.average_score,
            "severity": self.severity.value,
        }


@dataclass
class SuiteSummary:
    """Cross-subject summary of an assessment run."""

    count: int
    average_score: int | None
    best_subject: str | None
    worst_subject: str | None
    spread: int | None
    readiness: str
    principle_stats: dict[str, MetricStatistics]
    critical_issues: list[PrincipleIssue]
    top_recommendations: list[Recommendation]

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "averageScore": self.average_score,
            "bestSubject": self.best_subject,
            "worstSubject": self.worst_subject,
            "spread": self.spread,
            "readiness": self.readiness,
            "principleStats": {k: v.to_dict() for k, v in self.principle_stats.items()},
            "criticalIssues": [i.to_dict() for i in self.critical_issues],
            "topRecommendations": [r.to_dict() for r in self.top_recommendations],
        }


def compute_stats(values: list[float | int | None]) -> MetricStatistics:
    """Compute avg, min, max, stddev for a list of numeric values."""
    nums = [v for v in values if v is not None]
    if not nums:
        return MetricStatistics(avg=None, min=None, max=None, stddev=None)

    arr = np.array(nums, dtype=float)
    return MetricStatistics(
        avg=round(float(np.mean(arr)), 4),
        min=round(float(np.min(arr)), 4),
        max=round(float(np.max(arr)), 4),
        stddev=round(float(np.std(arr)), 4),
    )


def readiness_for(average_score: int | None) -> str:
    if average_score is None:
        return "no data"
    if average_score > 75:
        return "ready"
    if average_score > 60:
        return "needs work"
    return "not ready"


def _issue_for(principle: str, average: float) -> PrincipleIssue | None:
    rounded = round_half_up(average)
    if average < CRITICAL_ISSUE_BELOW:
        return PrincipleIssue(principle, rounded, Priority.CRITICAL)
    if average < HIGH_ISSUE_BELOW:
        return PrincipleIssue(principle, rounded, Priority.HIGH)
    return None


def top_recommendations(
    assessments: list[Assessment], profile: ScoringProfile, limit: int = TOP_RECOMMENDATIONS
) -> list[Recommendation]:
    """First recommendation per (principle, priority) across subjects, most severe first."""
    seen: dict[tuple[str, Priority], Recommendation] = {}
    for assessment in assessments:
        for rec in assessment.recommendations:
            seen.setdefault((rec.principle, rec.priority), rec)

    order = {name: i for i, name in enumerate(profile.principle_names)}
    ranked = sorted(
        seen.values(),
        key=lambda r: (-r.priority.severity, order.get(r.principle, len(order))),
    )
    return ranked[:limit]


def summarize(assessments: list[Assessment], profile: ScoringProfile) -> SuiteSummary:
    """Aggregate several subjects' assessments into a single summary."""
    count = len(assessments)
    principle_stats: dict[str, MetricStatistics] = {}
    issues: list[PrincipleIssue] = []

    for name in profile.principle_names:
        values = [a.result.principle_scores.get(name) for a in assessments]
        stats = compute_stats(values)
        principle_stats[name] = stats
        if stats.avg is not None:
            issue = _issue_for(name, stats.avg)
            if issue is not None:
                issues.append(issue)

    if count == 0:
        return SuiteSummary(
            count=0,
            average_score=None,
            best_subject=None,
            worst_subject=None,
            spread=None,
            readiness=readiness_for(None),
            principle_stats=principle_stats,
            critical_issues=issues,
            top_recommendations=[],
        )

    overall = [a.result.overall_score for a in assessments]
    average = round_half_up(float(np.mean(overall)))
    # argmax/argmin return the first occurrence, so ties favour declaration order
    best = assessments[int(np.argmax(overall))]
    worst = assessments[int(np.argmin(overall))]

    return SuiteSummary(
        count=count,
        average_score=average,
        best_subject=best.subject,
        worst_subject=worst.subject,
        spread=best.result.overall_score - worst.result.overall_score,
        readiness=readiness_for(average),
        principle_stats=principle_stats,
        critical_issues=issues,
        top_recommendations=top_recommendations(assessments, profile),
    )
