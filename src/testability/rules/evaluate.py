"""Evaluation of the five sub-metric rule shapes.

Every check computes its raw formula first and clamps to ``[0, budget]``
afterwards. A missing observation never raises; the rule falls back to its
worst case and marks the result as degraded.
"""

from __future__ import annotations

import logging

from testability.config import (
    BandRule,
    InversePenaltyRule,
    LinearCountRule,
    PresenceRule,
    RatioRule,
    SubMetricRule,
)
from testability.observations import Observations, read_count, read_flag
from testability.rules.base import SubMetricResult, clamp, round_half_up

_logger = logging.getLogger(__name__)


def _read_all(
    observations: Observations, names: list[str]
) -> tuple[list[float], list[str]]:
    values: list[float] = []
    missing: list[str] = []
    for name in names:
        value = read_count(observations, name)
        if value is None:
            missing.append(name)
        else:
            values.append(value)
    return values, missing


def _degraded(
    rule: SubMetricRule, points: int, missing: list[str], logger: logging.Logger
) -> SubMetricResult:
    logger.debug(
        f"Rule '{rule.name}' missing observation(s) {', '.join(missing)}; "
        f"using worst case {points}/{rule.budget}"
    )
    return SubMetricResult(
        name=rule.name,
        points=points,
        budget=rule.budget,
        message=f"missing {', '.join(missing)}",
        degraded=True,
    )


def check_linear(
    rule: LinearCountRule, observations: Observations, logger: logging.Logger
) -> SubMetricResult:
    raw = 0.0
    missing: list[str] = []
    for name, unit in rule.linear.items():
        count = read_count(observations, name)
        if count is None:
            missing.append(name)
            continue
        raw += count * unit

    points = clamp(round_half_up(raw), rule.budget)
    if missing:
        logger.debug(f"Rule '{rule.name}' treating missing {', '.join(missing)} as 0")
    message = f"raw {raw:g}"
    if missing:
        message += f", missing {', '.join(missing)}"
    return SubMetricResult(
        name=rule.name,
        points=points,
        budget=rule.budget,
        message=message,
        degraded=bool(missing),
    )


def check_presence(
    rule: PresenceRule, observations: Observations, logger: logging.Logger
) -> SubMetricResult:
    flag = read_flag(observations, rule.presence)
    if flag is None:
        return _degraded(rule, rule.absent_points, [rule.presence], logger)

    points = rule.points if flag else rule.absent_points
    return SubMetricResult(
        name=rule.name,
        points=points,
        budget=rule.budget,
        message=f"{rule.presence}={'present' if flag else 'absent'}",
    )


def check_inverse_penalty(
    rule: InversePenaltyRule, observations: Observations, logger: logging.Logger
) -> SubMetricResult:
    counts, missing = _read_all(observations, list(rule.inverse_penalty))
    if missing:
        return _degraded(rule, 0, missing, logger)

    penalty = sum(
        count * per_unit
        for count, per_unit in zip(counts, rule.inverse_penalty.values())
    )
    points = clamp(rule.budget - round_half_up(penalty), rule.budget)
    return SubMetricResult(
        name=rule.name,
        points=points,
        budget=rule.budget,
        message=f"penalty {penalty:g}",
    )


def check_bands(
    rule: BandRule, observations: Observations, logger: logging.Logger
) -> SubMetricResult:
    values, missing = _read_all(observations, rule.bands.observations)
    if missing:
        return _degraded(rule, rule.floor, missing, logger)

    total = sum(values)
    points = rule.budget
    for threshold, band_points in rule.bands.over.items():
        if total > threshold:
            points = band_points
    return SubMetricResult(
        name=rule.name,
        points=clamp(points, rule.budget),
        budget=rule.budget,
        message=f"value {total:g}",
    )


def check_ratio(
    rule: RatioRule, observations: Observations, logger: logging.Logger
) -> SubMetricResult:
    values, missing = _read_all(
        observations, [rule.ratio.numerator, rule.ratio.denominator]
    )
    if missing:
        return _degraded(rule, 0, missing, logger)

    numerator, denominator = values
    if denominator <= 0:
        return SubMetricResult(
            name=rule.name,
            points=0,
            budget=rule.budget,
            message=f"{rule.ratio.denominator} is {denominator:g}",
        )

    ratio = numerator / denominator
    return SubMetricResult(
        name=rule.name,
        points=clamp(round_half_up(rule.budget * ratio), rule.budget),
        budget=rule.budget,
        message=f"ratio {ratio:.2f}",
    )


def evaluate_rule(
    rule: SubMetricRule,
    observations: Observations,
    logger: logging.Logger | None = None,
) -> SubMetricResult:
    """Dispatch a rule to its check and return the clamped result."""
    logger = logger or _logger

    if isinstance(rule, LinearCountRule):
        return check_linear(rule, observations, logger)
    if isinstance(rule, PresenceRule):
        return check_presence(rule, observations, logger)
    if isinstance(rule, InversePenaltyRule):
        return check_inverse_penalty(rule, observations, logger)
    if isinstance(rule, BandRule):
        return check_bands(rule, observations, logger)
    if isinstance(rule, RatioRule):
        return check_ratio(rule, observations, logger)

    raise TypeError(f"Unknown rule type: {type(rule).__name__}")
