"""Bundled scoring profiles and profile lookup."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from testability.config import ScoringProfile, load_profile_file
from testability.errors import ConfigurationError

PROFILE_DIR = Path(__file__).parent
DEFAULT_PROFILE = "full"


def bundled_profiles() -> list[str]:
    """Names of the profiles shipped with the package."""
    return sorted(p.stem for p in PROFILE_DIR.glob("*.yaml"))


@lru_cache(maxsize=None)
def _load_bundled(name: str) -> ScoringProfile:
    return load_profile_file(PROFILE_DIR / f"{name}.yaml")


def load_profile(name_or_path: str | Path | None = None) -> ScoringProfile:
    """Return a bundled profile by name, or load one from a YAML file path.

    Bundled profiles are parsed once and shared; treat them as read-only.

    Raises:
        ConfigurationError: the name is neither a bundled profile nor an existing file.
    """
    if name_or_path is None:
        name_or_path = DEFAULT_PROFILE

    if isinstance(name_or_path, str) and name_or_path in bundled_profiles():
        return _load_bundled(name_or_path)

    path = Path(name_or_path)
    if path.suffix in (".yaml", ".yml") and path.is_file():
        return load_profile_file(path)

    raise ConfigurationError(
        f"Unknown profile '{name_or_path}'. Bundled profiles: {', '.join(bundled_profiles())}"
    )


def default_profile() -> ScoringProfile:
    return load_profile(DEFAULT_PROFILE)
