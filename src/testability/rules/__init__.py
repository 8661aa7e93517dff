"""Sub-metric rules: the building blocks of a principle score."""

from testability.rules.base import SubMetricResult, clamp, round_half_up
from testability.rules.evaluate import evaluate_rule

__all__ = ["SubMetricResult", "clamp", "evaluate_rule", "round_half_up"]
