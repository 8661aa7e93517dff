"""Reading observation bags collected from a page under test.

An observation bag is a flat mapping of names to numbers or booleans, e.g.
``{"dataTestAttributeCount": 12, "hasLocalStorageData": True}``. The engine
never fails on a missing name: callers get ``None`` back and each rule
decides what its worst case is.
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

ObservationValue = Union[bool, int, float]
Observations = Mapping[str, Any]


def read_count(observations: Observations, name: str) -> float | None:
    """Return the observation as a number, or None when absent or not numeric.

    Booleans count as 1/0. NaN and infinities are treated as absent.
    """
    value = observations.get(name)
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        if math.isfinite(number):
            return number
    return None


def read_flag(observations: Observations, name: str) -> bool | None:
    """Return the observation as a boolean, or None when absent or unusable."""
    value = observations.get(name)
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and math.isfinite(value):
        return value > 0
    return None


def load_observations(path: Path) -> dict[str, ObservationValue]:
    """Load an observation bag from a JSON or YAML file.

    Raises:
        FileNotFoundError: the file does not exist.
        ValueError: the file cannot be parsed or does not hold a flat mapping
            of scalars.
    """
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        raw = json.loads(text)
    else:
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"{path}: invalid YAML: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: observations must be a mapping, got {type(raw).__name__}")

    bag: dict[str, ObservationValue] = {}
    for key, value in raw.items():
        if not isinstance(value, (bool, int, float)):
            raise ValueError(
                f"{path}: observation '{key}' must be a number or boolean, got {type(value).__name__}"
            )
        bag[str(key)] = value
    return bag
