"""Plain-text comparison report for a run."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from testability.assessment import Assessment
from testability.config import Priority, ScoringProfile
from testability.metrics import SuiteSummary
from testability.rules import round_half_up

if TYPE_CHECKING:
    from testability.runner import SubjectError

RULE_WIDE = "=" * 100
RULE_NARROW = "-" * 60
STRONG_AT = 80
MODERATE_AT = 60


def _abbreviate(names: list[str]) -> dict[str, str]:
    """Three-letter column headers, e.g. algorithmicStability -> AST."""
    headers: dict[str, str] = {}
    for name in names:
        words = re.findall(r"[a-z]+|[A-Z][a-z]*", name) or [name]
        if len(words) == 1:
            short = words[0][:3]
        else:
            short = words[0][0] + words[-1][:2]
        short = short.upper()
        if short in headers.values():
            short = f"{short[:2]}{len(headers)}"
        headers[name] = short
    return headers


def strength_label(average: int) -> str:
    if average >= STRONG_AT:
        return "Strong"
    if average >= MODERATE_AT:
        return "Moderate"
    return "Weak"


def render_text_report(
    assessments: list[Assessment],
    summary: SuiteSummary,
    profile: ScoringProfile,
    errors: list[SubjectError] | None = None,
    generated: datetime | None = None,
) -> str:
    errors = errors or []
    generated = generated or datetime.now(timezone.utc)
    names = profile.principle_names
    headers = _abbreviate(names)
    width = max([len("SUBJECT")] + [len(a.subject) for a in assessments])

    lines = [
        f"TESTABILITY REPORT ({profile.name} profile, {len(names)} principles)",
        f"Generated: {generated.isoformat()}",
        RULE_WIDE,
        "",
    ]

    if not assessments:
        lines.append("No subjects were assessed.")
    else:
        head = " | ".join(
            ["SUBJECT".ljust(width), "OVERALL"] + [headers[n] for n in names] + ["GRADE"]
        )
        lines += [head, "-" * len(head)]
        for a in assessments:
            scores = a.result.principle_scores
            cells = [a.subject.ljust(width), str(a.result.overall_score).rjust(7)]
            cells += [str(scores[n]).rjust(3) for n in names]
            cells.append(a.result.grade)
            lines.append(" | ".join(cells))

        lines += ["", "Legend: " + ", ".join(f"{headers[n]}={n}" for n in names)]

        lines += [
            "",
            "SUMMARY",
            RULE_NARROW,
            f"Average Testability Score: {summary.average_score}/100",
            f"Best Performance: {summary.best_subject} "
            f"({_overall_of(assessments, summary.best_subject)}/100)",
            f"Needs Improvement: {summary.worst_subject} "
            f"({_overall_of(assessments, summary.worst_subject)}/100)",
            f"Score Spread: {summary.spread} points",
            f"Readiness: {summary.readiness}",
            "",
            "PRINCIPLE STRENGTH (average scores)",
            RULE_NARROW,
        ]

        averages = {
            name: round_half_up(stats.avg)
            for name, stats in summary.principle_stats.items()
            if stats.avg is not None
        }
        for name, avg in sorted(averages.items(), key=lambda kv: kv[1], reverse=True):
            lines.append(f"{name.ljust(25)}: {str(avg).rjust(3)}/100 {strength_label(avg)}")

        lines += ["", "RECOMMENDATIONS", RULE_NARROW]
        if not summary.top_recommendations:
            lines.append("Every principle meets the acceptable score.")
        for priority in Priority:
            group = [r for r in summary.top_recommendations if r.priority is priority]
            if not group:
                continue
            lines += ["", f"{priority.value.upper()} PRIORITY:"]
            for rec in group:
                lines.append(f"* {rec.principle.upper()}: {rec.advice}")
                lines.append(f"  Reason: {rec.rationale}")

    if errors:
        lines += ["", "FAILED SUBJECTS", RULE_NARROW]
        lines += [f"{e.subject}: {e.error}" for e in errors]

    return "\n".join(lines) + "\n"


def _overall_of(assessments: list[Assessment], subject: str | None) -> int | None:
    for a in assessments:
        if a.subject == subject:
            return a.result.overall_score
    return None


def write_text_report(
    run_dir: Path,
    assessments: list[Assessment],
    summary: SuiteSummary,
    profile: ScoringProfile,
    errors: list[SubjectError] | None = None,
) -> Path:
    """Write report.txt into the run directory, return path."""
    report_path = run_dir / "report.txt"
    report_path.write_text(
        render_text_report(assessments, summary, profile, errors=errors),
        encoding="utf-8",
    )
    return report_path
