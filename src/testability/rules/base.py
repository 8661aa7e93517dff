"""Base data structures for sub-metric rule evaluation."""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class SubMetricResult:
    """Outcome of evaluating one sub-metric rule against an observation bag.

    Attributes:
        name: Rule identifier within its principle (e.g. "data_test_attributes").
        points: Awarded points, always within [0, budget].
        budget: Maximum points the rule can award.
        message: Human-readable detail about how the points were derived.
        degraded: True when an observation the rule reads was missing and the
            rule fell back to its worst-case value.
    """

    name: str
    points: int
    budget: int
    message: str = ""
    degraded: bool = False


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def clamp(value: int, budget: int) -> int:
    return max(0, min(budget, value))
