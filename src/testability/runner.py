from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from testability.assessment import Assessment, assess
from testability.config import ScoringProfile, SubjectConfig, SuiteConfig
from testability.metrics import summarize
from testability.observations import ObservationValue, load_observations
from testability.profiles import load_profile
from testability.verbose import close_logger, setup_logger


@dataclass
class SubjectError:
    subject: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"subject": self.subject, "error": self.error}


def resolve_profile(suite: SuiteConfig) -> ScoringProfile:
    """Load the suite's profile, applying its acceptable_score override.

    The override is validated like a profile field, so it cannot drop below
    the top step of the priority ladder.
    """
    profile = load_profile(suite.profile)
    if suite.acceptable_score is not None:
        profile = ScoringProfile.model_validate(
            {**profile.model_dump(), "acceptable_score": suite.acceptable_score}
        )
    return profile


def subject_observations(subject: SubjectConfig) -> dict[str, ObservationValue]:
    if isinstance(subject.observations, dict):
        return dict(subject.observations)
    return load_observations(Path(subject.observations))


class Runner:
    """Assesses every subject of a suite and writes a run directory."""

    def __init__(
        self,
        suite: SuiteConfig,
        output_dir: Path,
        subject_filter: str | None = None,
        verbose: bool = False,
        parallel: int = 1,
    ):
        self.suite = suite
        self.output_dir = output_dir
        self.subject_filter = subject_filter
        self.verbose = verbose
        self.parallel = parallel
        self.interrupted = False
        self.assessments: list[Assessment] = []
        self.errors: list[SubjectError] = []

    def execute(self) -> Path:
        """Assess all subjects. Returns the run directory."""
        subjects = self.suite.subjects
        if self.subject_filter:
            subjects = [s for s in subjects if s.name == self.subject_filter]
            if not subjects:
                raise ValueError(f"No subject named '{self.subject_filter}' in suite")

        profile = resolve_profile(self.suite)

        run_id = datetime.now(timezone.utc).strftime("%Y-%m-%d_%H%M%S")
        run_dir = self.output_dir / run_id
        run_dir.mkdir(parents=True, exist_ok=True)

        logger = setup_logger(
            run_dir / "debug.log", verbose=self.verbose, logger_name="testability_main"
        )
        try:
            logger.debug(
                f"Starting assessment run with profile '{profile.name}' "
                f"({len(profile.principles)} principles)"
            )
            print(
                f"Assessing {len(subjects)} subject(s) with parallelism {self.parallel}..."
            )
            by_subject = self._assess_all(subjects, profile, run_dir, logger)

            # Keep suite declaration order regardless of completion order
            self.assessments = [by_subject[s.name] for s in subjects if s.name in by_subject]
            order = {s.name: i for i, s in enumerate(subjects)}
            self.errors.sort(key=lambda e: order.get(e.subject, len(order)))

            self._write_results(run_dir, profile)
            logger.debug(
                f"Run finished: {len(self.assessments)} assessed, {len(self.errors)} failed"
            )
        finally:
            close_logger(logger)

        return run_dir

    def _assess_all(
        self,
        subjects: list[SubjectConfig],
        profile: ScoringProfile,
        run_dir: Path,
        logger: logging.Logger,
    ) -> dict[str, Assessment]:
        results: dict[str, Assessment] = {}

        with ThreadPoolExecutor(max_workers=self.parallel) as executor:
            future_to_subject = {
                executor.submit(
                    self._assess_subject, subject, profile, run_dir
                ): subject.name
                for subject in subjects
            }

            completed_count = 0
            try:
                for future in as_completed(future_to_subject):
                    name = future_to_subject[future]
                    completed_count += 1
                    progress = f"[{completed_count}/{len(future_to_subject)}]"
                    try:
                        assessment = future.result()
                    except (OSError, ValueError) as e:
                        self.errors.append(SubjectError(subject=name, error=str(e)))
                        print(f"  {progress} ERROR  {name}: {e}")
                        logger.error(f"Subject '{name}' could not be assessed: {e}")
                        continue

                    results[name] = assessment
                    result = assessment.result
                    status = "FAIL" if result.grade == "F" else "PASS"
                    print(
                        f"  {progress} {status}  {name} ({result.overall_score}/100, "
                        f"grade {result.grade}, {len(assessment.recommendations)} recommendation(s))"
                    )
            except KeyboardInterrupt:
                self.interrupted = True
                logger.warning(
                    "Run interrupted by user (Ctrl+C). Cancelling pending subjects, and saving partial results..."
                )
                cancelled_count = sum(1 for f in future_to_subject if f.cancel())
                logger.info(f"Cancelled {cancelled_count} pending subject(s).")

                for future, name in future_to_subject.items():
                    if name in results or not future.done() or future.cancelled():
                        continue
                    try:
                        results[name] = future.result(timeout=0)
                    except (OSError, ValueError) as e:
                        logger.debug(f"Failed to collect result for {name}: {e}")

        return results

    def _assess_subject(
        self, subject: SubjectConfig, profile: ScoringProfile, run_dir: Path
    ) -> Assessment:
        subject_dir = run_dir / subject.name
        subject_logger = setup_logger(
            subject_dir / "debug.log",
            verbose=self.verbose,
            logger_name=f"testability_{run_dir.name}_{subject.name}",
        )
        try:
            observations = subject_observations(subject)
            subject_logger.debug(
                f"Loaded {len(observations)} observation(s) for '{subject.name}'"
            )
            expected = {n for p in profile.principles for n in p.observed}
            absent = sorted(expected - set(observations))
            if absent:
                subject_logger.debug(
                    f"{len(absent)} observation(s) not supplied, scoring worst case: "
                    f"{', '.join(absent)}"
                )

            (subject_dir / "observations.json").write_text(
                json.dumps(observations, indent=2, sort_keys=True)
            )
            return assess(subject.name, observations, profile=profile, logger=subject_logger)
        finally:
            close_logger(subject_logger)

    def _write_results(self, run_dir: Path, profile: ScoringProfile) -> None:
        """Write results.json, junit.xml, report.txt and meta.yaml to the run directory."""
        from testability.reporting.junit import write_junit
        from testability.reporting.text import write_text_report

        summary = summarize(self.assessments, profile)
        results: dict[str, Any] = {
            "profile": profile.name,
            "acceptableScore": profile.acceptable_score,
            "principles": {p.name: p.display_name for p in profile.principles},
            "assessments": [a.to_dict(detailed=True) for a in self.assessments],
            "errors": [e.to_dict() for e in self.errors],
            "summary": summary.to_dict(),
        }
        (run_dir / "results.json").write_text(json.dumps(results, indent=2))

        write_junit(run_dir, self.assessments, profile)
        write_text_report(run_dir, self.assessments, summary, profile, errors=self.errors)

        try:
            import importlib.metadata

            version = importlib.metadata.version("testability-scorer")
        except Exception:
            version = "unknown"

        meta: dict[str, Any] = {
            "run_id": run_dir.name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "profile": profile.name,
            "acceptable_score": profile.acceptable_score,
            "subjects": [a.subject for a in self.assessments],
            "failed_subjects": [e.subject for e in self.errors],
            "testability_version": version,
            "parallel": self.parallel,
        }
        if self.interrupted:
            meta["interrupted"] = True

        (run_dir / "meta.yaml").write_text(yaml.dump(meta, default_flow_style=False))
