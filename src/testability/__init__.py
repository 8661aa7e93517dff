"""Deterministic testability scoring for web pages."""

from testability.aggregator import aggregate, grade_for
from testability.assessment import Assessment, assess
from testability.errors import ConfigurationError
from testability.profiles import load_profile
from testability.recommend import Priority, Recommendation, recommend
from testability.scorer import PrincipleScore, score, score_all

__all__ = [
    "Assessment",
    "ConfigurationError",
    "PrincipleScore",
    "Priority",
    "Recommendation",
    "aggregate",
    "assess",
    "grade_for",
    "load_profile",
    "recommend",
    "score",
    "score_all",
]
