from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from expandvars import expandvars
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from testability.observations import ObservationValue

PRINCIPLE_BUDGET = 100


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {Priority.CRITICAL: 3, Priority.HIGH: 2, Priority.MEDIUM: 1}


def _check_budget(budget: int) -> int:
    if not 0 < budget <= PRINCIPLE_BUDGET:
        raise ValueError(f"budget must be between 1 and {PRINCIPLE_BUDGET}, got {budget}")
    return budget


def _check_weights(weights: dict[str, float], what: str) -> dict[str, float]:
    if not weights:
        raise ValueError(f"{what} must name at least one observation")
    for observation, weight in weights.items():
        if weight <= 0:
            raise ValueError(f"{what} for '{observation}' must be positive, got {weight}")
    return weights


class LinearCountRule(BaseModel):
    """``min(budget, round(sum(count * unit)))``; each observation adds a fixed number of points."""

    model_config = ConfigDict(extra="forbid")
    name: str
    budget: int
    linear: dict[str, float]

    @field_validator("budget")
    @classmethod
    def budget_in_range(cls, v: int) -> int:
        return _check_budget(v)

    @field_validator("linear")
    @classmethod
    def units_must_be_positive(cls, v: dict[str, float]) -> dict[str, float]:
        return _check_weights(v, "unit value")

    @property
    def observed(self) -> list[str]:
        return list(self.linear)


class PresenceRule(BaseModel):
    """``points`` when the observation is true, ``absent_points`` otherwise."""

    model_config = ConfigDict(extra="forbid")
    name: str
    presence: str
    points: int
    absent_points: int

    @model_validator(mode="after")
    def absent_branch_is_smaller_but_not_zero(self) -> "PresenceRule":
        _check_budget(self.points)
        if not 0 < self.absent_points < self.points:
            raise ValueError(
                f"rule '{self.name}': absent_points must be above 0 and below points "
                f"({self.points}), got {self.absent_points}"
            )
        return self

    @property
    def budget(self) -> int:
        return self.points

    @property
    def observed(self) -> list[str]:
        return [self.presence]


class InversePenaltyRule(BaseModel):
    """``max(0, budget - round(sum(count * penalty)))``; defects subtract from a ceiling."""

    model_config = ConfigDict(extra="forbid")
    name: str
    budget: int
    inverse_penalty: dict[str, float]

    @field_validator("budget")
    @classmethod
    def budget_in_range(cls, v: int) -> int:
        return _check_budget(v)

    @field_validator("inverse_penalty")
    @classmethod
    def penalties_must_be_positive(cls, v: dict[str, float]) -> dict[str, float]:
        return _check_weights(v, "penalty")

    @property
    def observed(self) -> list[str]:
        return list(self.inverse_penalty)


class BandSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")
    observation: str | list[str]
    over: dict[float, int]

    @field_validator("over")
    @classmethod
    def over_must_not_be_empty(cls, v: dict[float, int]) -> dict[float, int]:
        if not v:
            raise ValueError("bands.over must list at least one threshold")
        return dict(sorted(v.items()))

    @property
    def observations(self) -> list[str]:
        if isinstance(self.observation, str):
            return [self.observation]
        return list(self.observation)


class BandRule(BaseModel):
    """Step function: full budget at or below every threshold, else the points of
    the highest threshold the (summed) observation exceeds."""

    model_config = ConfigDict(extra="forbid")
    name: str
    budget: int
    bands: BandSpec

    @field_validator("budget")
    @classmethod
    def budget_in_range(cls, v: int) -> int:
        return _check_budget(v)

    @model_validator(mode="after")
    def band_points_within_budget(self) -> "BandRule":
        for threshold, points in self.bands.over.items():
            if not 0 <= points <= self.budget:
                raise ValueError(
                    f"rule '{self.name}': band over {threshold:g} awards {points} points, "
                    f"outside [0, {self.budget}]"
                )
        return self

    @property
    def floor(self) -> int:
        return min(self.bands.over.values())

    @property
    def observed(self) -> list[str]:
        return self.bands.observations


class RatioSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")
    numerator: str
    denominator: str


class RatioRule(BaseModel):
    """``round(budget * numerator / denominator)``; 0 when the denominator is not positive."""

    model_config = ConfigDict(extra="forbid")
    name: str
    budget: int
    ratio: RatioSpec

    @field_validator("budget")
    @classmethod
    def budget_in_range(cls, v: int) -> int:
        return _check_budget(v)

    @property
    def observed(self) -> list[str]:
        return [self.ratio.numerator, self.ratio.denominator]


SubMetricRule = LinearCountRule | PresenceRule | InversePenaltyRule | BandRule | RatioRule


class PrincipleConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    label: str | None = None
    description: str = ""
    rules: list[SubMetricRule]

    @field_validator("name")
    @classmethod
    def name_is_identifier_like(cls, v: str) -> str:
        if not v or any(ch in v for ch in " /,"):
            raise ValueError(f"Principle name '{v}' must be non-empty without spaces, commas or slashes")
        return v

    @model_validator(mode="after")
    def budgets_sum_to_100(self) -> "PrincipleConfig":
        if not self.rules:
            raise ValueError(f"principle '{self.name}' must declare at least one rule")
        names = [r.name for r in self.rules]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"principle '{self.name}' has duplicate rule names: {', '.join(duplicates)}")
        total = sum(r.budget for r in self.rules)
        if total != PRINCIPLE_BUDGET:
            raise ValueError(
                f"principle '{self.name}' rule budgets sum to {total}, expected {PRINCIPLE_BUDGET}"
            )
        return self

    @property
    def display_name(self) -> str:
        return self.label or self.name

    @property
    def observed(self) -> list[str]:
        seen: dict[str, None] = {}
        for rule in self.rules:
            for name in rule.observed:
                seen.setdefault(name)
        return list(seen)


class PriorityStep(BaseModel):
    model_config = ConfigDict(extra="forbid")
    below: int
    priority: Priority


def _default_ladder() -> list[PriorityStep]:
    return [
        PriorityStep(below=40, priority=Priority.CRITICAL),
        PriorityStep(below=50, priority=Priority.HIGH),
    ]


class ScoringProfile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    description: str = ""
    acceptable_score: int = 70
    priority_ladder: list[PriorityStep] = []
    principles: list[PrincipleConfig]
    advice: dict[str, str] = {}

    @field_validator("acceptable_score")
    @classmethod
    def acceptable_score_in_range(cls, v: int) -> int:
        if not 0 <= v <= PRINCIPLE_BUDGET:
            raise ValueError(f"acceptable_score must be between 0 and 100, got {v}")
        return v

    @model_validator(mode="after")
    def check_principles_and_ladder(self) -> "ScoringProfile":
        if not self.principles:
            raise ValueError("principles must not be empty")
        names = self.principle_names
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate principle names: {', '.join(duplicates)}")

        if not self.priority_ladder:
            self.priority_ladder = _default_ladder()
        thresholds = [step.below for step in self.priority_ladder]
        if thresholds != sorted(set(thresholds)):
            raise ValueError("priority_ladder thresholds must be strictly ascending")
        if thresholds[-1] > self.acceptable_score:
            raise ValueError(
                f"priority_ladder threshold {thresholds[-1]} is above acceptable_score "
                f"{self.acceptable_score}"
            )
        return self

    @property
    def principle_names(self) -> list[str]:
        return [p.name for p in self.principles]

    def get_principle(self, name: str) -> PrincipleConfig | None:
        for principle in self.principles:
            if principle.name == name:
                return principle
        return None


class SubjectConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    observations: str | dict[str, ObservationValue]

    @field_validator("name")
    @classmethod
    def name_is_path_safe(cls, v: str) -> str:
        if not v or "/" in v or "\\" in v:
            raise ValueError(f"Subject name '{v}' must be non-empty and must not contain slashes")
        return v

    @model_validator(mode="after")
    def validate_env_variables(self) -> "SubjectConfig":
        """Reject ${VAR} references in an observations path that are unset and have no default."""
        if isinstance(self.observations, str):
            try:
                expandvars(self.observations, nounset=True)
            except Exception:
                raise ValueError(
                    f"Subject '{self.name}' observations path has missing environment "
                    f"variables: {self.observations}"
                )
        return self


class SuiteConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    profile: str = "full"
    acceptable_score: int | None = None
    subjects: list[SubjectConfig]

    @field_validator("acceptable_score")
    @classmethod
    def acceptable_score_in_range(cls, v: int | None) -> int | None:
        if v is not None and not 0 <= v <= PRINCIPLE_BUDGET:
            raise ValueError(f"acceptable_score must be between 0 and 100, got {v}")
        return v

    @model_validator(mode="after")
    def subjects_must_be_unique(self) -> "SuiteConfig":
        if not self.subjects:
            raise ValueError("subjects must not be empty")
        names = [s.name for s in self.subjects]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate subject names: {', '.join(duplicates)}")
        return self


def _read_yaml(path: Path) -> dict[str, Any]:
    """Parse a YAML document that must hold a mapping.

    Raises:
        ValueError: the file is not valid YAML or its top level is not a mapping.
    """
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"{path}: invalid YAML: {e}") from e
    if not isinstance(data, dict):
        kind = "empty" if data is None else type(data).__name__
        raise ValueError(f"{path}: expected a mapping at the top level, got {kind}")
    return data


def load_profile_file(path: Path) -> ScoringProfile:
    """Load and validate a scoring profile from a YAML file."""
    return ScoringProfile(**_read_yaml(path))


def load_suite(path: Path) -> SuiteConfig:
    """Load and validate an assessment suite from a YAML file."""
    suite_dir = path.parent.resolve()
    suite = SuiteConfig(**_read_yaml(path))

    # Resolve relative observation paths relative to the suite file location
    for subject in suite.subjects:
        if isinstance(subject.observations, str):
            obs_path = Path(expandvars(subject.observations))
            if not obs_path.is_absolute():
                obs_path = (suite_dir / obs_path).resolve()
            subject.observations = str(obs_path)

    # A profile given as a relative file path is also suite-relative
    if suite.profile.endswith((".yaml", ".yml")):
        profile_path = Path(expandvars(suite.profile))
        if not profile_path.is_absolute():
            suite.profile = str((suite_dir / profile_path).resolve())

    return suite
