from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from testability.aggregator import AssessmentResult, aggregate
from testability.config import ScoringProfile
from testability.observations import Observations
from testability.profiles import default_profile
from testability.recommend import Recommendation, recommend
from testability.scorer import score_all

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Assessment:
    """Scores and recommendations for one subject."""

    result: AssessmentResult
    recommendations: list[Recommendation]

    @property
    def subject(self) -> str:
        return self.result.subject

    def to_dict(self, detailed: bool = False) -> dict[str, Any]:
        data = self.result.to_dict()
        data["recommendations"] = [r.to_dict() for r in self.recommendations]
        if detailed:
            data["subMetrics"] = {
                name: ps.to_dict()["subMetrics"]
                for name, ps in self.result.details.items()
            }
        return data


def assess(
    subject: str,
    observations: Observations,
    profile: ScoringProfile | None = None,
    logger: logging.Logger | None = None,
) -> Assessment:
    """Run the full scoring pipeline for one subject's observation bag."""
    logger = logger or _logger
    profile = profile or default_profile()

    principle_scores = score_all(observations, profile=profile, logger=logger)
    result = aggregate(principle_scores, profile=profile, subject=subject)
    recommendations = recommend(result, profile=profile)

    degraded = [name for name, ps in principle_scores.items() if ps.degraded]
    if degraded:
        logger.debug(f"{subject}: missing observations degraded {', '.join(degraded)}")
    logger.debug(
        f"{subject}: overall {result.overall_score}/100 grade {result.grade}, "
        f"{len(recommendations)} recommendation(s)"
    )
    return Assessment(result=result, recommendations=recommendations)
