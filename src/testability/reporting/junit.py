from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from junitparser import Failure, JUnitXml, TestCase, TestSuite

from testability.assessment import Assessment
from testability.config import ScoringProfile


def write_junit(
    run_dir: Path, assessments: list[Assessment], profile: ScoringProfile
) -> Path:
    """Write junit.xml with one suite per subject and one case per principle, return path."""
    xml = JUnitXml()

    for assessment in assessments:
        result = assessment.result
        suite = TestSuite(assessment.subject)
        suite.add_property("overall_score", str(result.overall_score))
        suite.add_property("grade", result.grade)
        suite.add_property("profile", profile.name)
        suite.add_property("acceptable_score", str(profile.acceptable_score))
        for name, value in result.principle_scores.items():
            suite.add_property(f"score_{name}", str(value))

        recs = {r.principle: r for r in assessment.recommendations}
        for principle in profile.principles:
            case = TestCase(principle.name)
            case.classname = assessment.subject
            rec = recs.get(principle.name)
            if rec is not None:
                failure = Failure(f"{rec.rationale}. {rec.advice}")
                failure.type = rec.priority.value
                case.result = [failure]
            suite.add_testcase(case)

        # Use append (not +=) to preserve properties
        xml.append(suite)

    junit_path = run_dir / "junit.xml"
    xml.write(str(junit_path), pretty=True)
    return junit_path


def _load_json(path: Path) -> Any:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError:
        return None


def generate_report(run_dir: Path) -> Path:
    """Render junit.xml + results.json -> report.html using a Jinja2 template, return path."""
    import yaml
    from jinja2 import Environment, FileSystemLoader

    junit_path = run_dir / "junit.xml"
    report_path = run_dir / "report.html"

    meta: dict = {}
    meta_path = run_dir / "meta.yaml"
    if meta_path.exists():
        try:
            meta = yaml.safe_load(meta_path.read_text()) or {}
        except yaml.YAMLError:
            meta = {}

    results = _load_json(run_dir / "results.json") or {}
    labels: dict[str, str] = results.get("principles", {})
    details = {a["subject"]: a for a in results.get("assessments", [])}

    xml = JUnitXml.fromfile(str(junit_path))

    suites = []
    for suite in xml:
        props = {p.name: p.value for p in suite.properties()}
        detail = details.get(suite.name, {})
        sub_metrics = detail.get("subMetrics", {})

        cases = []
        for case in suite:
            result = None
            if case.result:
                result = {
                    "priority": case.result[0].type or "",
                    "message": case.result[0].message or "",
                }
            cases.append(
                {
                    "name": case.name,
                    "label": labels.get(case.name, case.name),
                    "score": _int_or_none(props.get(f"score_{case.name}")),
                    "result": result,
                    "sub_metrics": sub_metrics.get(case.name, []),
                }
            )

        observations = _load_json(run_dir / suite.name / "observations.json") or {}

        suites.append(
            {
                "name": suite.name,
                "tests": suite.tests,
                "failures": suite.failures,
                "overall_score": _int_or_none(props.get("overall_score")),
                "grade": props.get("grade", ""),
                "cases": cases,
                "recommendations": detail.get("recommendations", []),
                "observations": observations,
            }
        )

    # Highest overall score first
    suites.sort(key=lambda s: s["overall_score"] if s["overall_score"] is not None else -1, reverse=True)

    tmpl_dir = Path(__file__).parent / "templates"
    env = Environment(loader=FileSystemLoader(str(tmpl_dir)), autoescape=True)
    template = env.get_template("report.html.j2")

    html = template.render(
        suites=suites,
        summary=results.get("summary", {}),
        errors=results.get("errors", []),
        labels=labels,
        run_dir=str(run_dir),
        meta=meta,
    )
    report_path.write_text(html, encoding="utf-8")
    return report_path


def _int_or_none(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None
