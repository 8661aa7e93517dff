"""Principle scoring: one rule table per principle, summed into a 0-100 score."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from testability.config import PrincipleConfig, ScoringProfile
from testability.errors import ConfigurationError
from testability.observations import Observations
from testability.profiles import default_profile
from testability.rules import SubMetricResult, evaluate_rule

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrincipleScore:
    """Score of one principle for one observation bag.

    ``score`` is exactly the sum of ``sub_metrics`` points. Since every
    principle's budgets add up to 100, it always lies in [0, 100].
    """

    name: str
    label: str
    score: int
    sub_metrics: tuple[SubMetricResult, ...] = ()

    @property
    def degraded(self) -> bool:
        return any(m.degraded for m in self.sub_metrics)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "label": self.label,
            "score": self.score,
            "subMetrics": [
                {
                    "name": m.name,
                    "points": m.points,
                    "budget": m.budget,
                    "message": m.message,
                    "degraded": m.degraded,
                }
                for m in self.sub_metrics
            ],
        }


def score_principle(
    principle: PrincipleConfig,
    observations: Observations,
    logger: logging.Logger | None = None,
) -> PrincipleScore:
    """Evaluate every rule of *principle* in declaration order and sum the points."""
    logger = logger or _logger

    results = tuple(
        evaluate_rule(rule, observations, logger=logger) for rule in principle.rules
    )
    total = sum(r.points for r in results)

    breakdown = ", ".join(f"{r.name}: {r.points}/{r.budget}" for r in results)
    logger.debug(f"{principle.display_name}: {total}/100 ({breakdown})")

    return PrincipleScore(
        name=principle.name,
        label=principle.display_name,
        score=total,
        sub_metrics=results,
    )


def score(
    principle: str,
    observations: Observations,
    profile: ScoringProfile | None = None,
    logger: logging.Logger | None = None,
) -> PrincipleScore:
    """Score a single principle by name.

    Raises:
        ConfigurationError: *principle* is not declared by the profile.
    """
    profile = profile or default_profile()
    config = profile.get_principle(principle)
    if config is None:
        raise ConfigurationError(
            f"Profile '{profile.name}' has no principle '{principle}'. "
            f"Known principles: {', '.join(profile.principle_names)}"
        )
    return score_principle(config, observations, logger=logger)


def score_all(
    observations: Observations,
    profile: ScoringProfile | None = None,
    logger: logging.Logger | None = None,
) -> dict[str, PrincipleScore]:
    """Score every principle of the profile, keyed by name in declaration order."""
    profile = profile or default_profile()
    return {
        p.name: score_principle(p, observations, logger=logger)
        for p in profile.principles
    }
