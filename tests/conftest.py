"""Pytest configuration and fixtures."""

import json
import logging
import textwrap
from pathlib import Path

import pytest

from testability.config import ScoringProfile


@pytest.fixture(autouse=True)
def cleanup_loggers():
    """Clean up testability loggers after each test to prevent name collisions."""
    yield

    # Remove all testability loggers from registry
    loggers_to_remove = [
        name
        for name in logging.Logger.manager.loggerDict.keys()
        if name.startswith("testability")
    ]

    for name in loggers_to_remove:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()
        del logging.Logger.manager.loggerDict[name]


@pytest.fixture
def tiny_profile() -> ScoringProfile:
    """Three principles with one rule shape each, small enough to reason about by hand."""
    return ScoringProfile(
        name="tiny",
        acceptable_score=70,
        principles=[
            {
                "name": "alpha",
                "label": "Alpha",
                "rules": [
                    {"name": "hooks", "budget": 60, "linear": {"hookCount": 10}},
                    {"name": "ready", "presence": "isReady", "points": 40, "absent_points": 10},
                ],
            },
            {
                "name": "beta",
                "label": "Beta",
                "rules": [
                    {"name": "errors", "budget": 100, "inverse_penalty": {"errorCount": 20}},
                ],
            },
            {
                "name": "gamma",
                "rules": [
                    {
                        "name": "size",
                        "budget": 50,
                        "bands": {"observation": "nodeCount", "over": {100: 30, 500: 10}},
                    },
                    {
                        "name": "alt",
                        "budget": 50,
                        "ratio": {"numerator": "altCount", "denominator": "imageCount"},
                    },
                ],
            },
        ],
        advice={
            "alpha": "Add more hooks",
            "beta": "Fix the errors",
            "gamma": "Shrink the page",
        },
    )


@pytest.fixture
def suite_file(tmp_path) -> Path:
    """A suite with two subjects whose observations live in JSON files."""
    obs_dir = tmp_path / "observations"
    obs_dir.mkdir()
    (obs_dir / "good.json").write_text(
        json.dumps({"hookCount": 6, "isReady": True, "errorCount": 0,
                    "nodeCount": 50, "altCount": 4, "imageCount": 4})
    )
    (obs_dir / "bad.json").write_text(
        json.dumps({"hookCount": 1, "isReady": False, "errorCount": 4,
                    "nodeCount": 800, "altCount": 0, "imageCount": 4})
    )
    profile_file = tmp_path / "tiny.yaml"
    profile_file.write_text(textwrap.dedent("""\
        name: tiny
        principles:
          - name: alpha
            label: Alpha
            rules:
              - name: hooks
                budget: 60
                linear: {hookCount: 10}
              - name: ready
                presence: isReady
                points: 40
                absent_points: 10
          - name: beta
            label: Beta
            rules:
              - name: errors
                budget: 100
                inverse_penalty: {errorCount: 20}
          - name: gamma
            rules:
              - name: size
                budget: 50
                bands:
                  observation: nodeCount
                  over: {100: 30, 500: 10}
              - name: alt
                budget: 50
                ratio: {numerator: altCount, denominator: imageCount}
        advice:
          alpha: Add more hooks
          beta: Fix the errors
          gamma: Shrink the page
    """))
    suite = tmp_path / "suite.yaml"
    suite.write_text(textwrap.dedent("""\
        profile: tiny.yaml
        subjects:
          - name: good
            observations: observations/good.json
          - name: bad
            observations: observations/bad.json
    """))
    return suite
