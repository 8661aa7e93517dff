from __future__ import annotations

import json
from pathlib import Path

import typer

app = typer.Typer(name="testability", help="Score web pages against testability principles")
schema_app = typer.Typer(name="schema", help="Generate schema tooling")
app.add_typer(schema_app, name="schema")


@app.command()
def run(
    suite: str = typer.Argument(help="Path to suite YAML"),
    subject: str | None = typer.Option(None, help="Assess only this subject"),
    output_dir: str = typer.Option("runs", help="Output directory for run results"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output to terminal"
    ),
    parallel: int = typer.Option(
        1, "--parallel", "-p", min=1, max=100, help="Number of subjects to assess in parallel"
    ),
    no_open: bool = typer.Option(
        False, "--no-open", help="Do not open report.html in browser after run"
    ),
):
    """Assess every subject of a suite and write a run directory."""
    from testability.config import load_suite
    from testability.runner import Runner
    from testability.reporting.junit import generate_report

    suite_path = Path(suite)
    if not suite_path.exists():
        typer.echo(f"Error: suite file not found: {suite}", err=True)
        raise typer.Exit(1)

    try:
        suite_config = load_suite(suite_path)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    runner = Runner(
        suite=suite_config,
        output_dir=Path(output_dir),
        subject_filter=subject,
        verbose=verbose,
        parallel=parallel,
    )

    try:
        run_dir = runner.execute()
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if runner.interrupted:
        typer.echo("Run interrupted. Saving partial results...")

    typer.echo("Generating report...")
    report_path = generate_report(run_dir)

    if runner.interrupted:
        typer.echo(f"Partial run saved: {run_dir}")
    else:
        typer.echo(f"Run complete: {run_dir}")
    typer.echo(f"Summary: {run_dir / 'report.txt'}")
    typer.echo(f"Report: {report_path}")
    if not verbose:
        typer.echo(f"Debug log: {run_dir / 'debug.log'}")

    if not no_open:
        import webbrowser

        webbrowser.open(report_path.resolve().as_uri())

    # Non-zero exit on interruption, unloadable subjects or any failing grade
    if runner.interrupted or runner.errors:
        raise typer.Exit(1)
    if any(a.result.grade == "F" for a in runner.assessments):
        raise typer.Exit(1)


@app.command()
def score(
    observations: str = typer.Argument(help="Path to an observations JSON or YAML file"),
    profile: str = typer.Option("full", help="Bundled profile name or profile YAML path"),
    subject: str | None = typer.Option(
        None, help="Subject name in the output (defaults to the file name)"
    ),
    detailed: bool = typer.Option(
        False, "--detailed", help="Include the per sub-metric breakdown"
    ),
):
    """Score one observation file and print the assessment as JSON."""
    from testability.assessment import assess
    from testability.observations import load_observations
    from testability.profiles import load_profile

    obs_path = Path(observations)
    if not obs_path.exists():
        typer.echo(f"Error: observations file not found: {observations}", err=True)
        raise typer.Exit(1)

    try:
        scoring_profile = load_profile(profile)
        bag = load_observations(obs_path)
        assessment = assess(subject or obs_path.stem, bag, profile=scoring_profile)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(json.dumps(assessment.to_dict(detailed=detailed), indent=2))


@app.command()
def report(
    run_dir: str = typer.Argument(help="Path to run output directory"),
    open_report: bool = typer.Option(
        False, "--open", help="Open report.html in browser after generating"
    ),
):
    """Regenerate HTML report from a previous run."""
    from testability.reporting.junit import generate_report

    run_path = Path(run_dir)
    if not run_path.exists() or not (run_path / "junit.xml").exists():
        typer.echo(f"Error: not a valid run directory: {run_dir}", err=True)
        raise typer.Exit(1)

    report_path = generate_report(run_path)
    typer.echo(f"Report generated: {report_path}")

    if open_report:
        import webbrowser

        webbrowser.open(report_path.resolve().as_uri())


def _describe_rule(rule) -> str:
    from testability.config import (
        BandRule,
        InversePenaltyRule,
        LinearCountRule,
        PresenceRule,
        RatioRule,
    )

    if isinstance(rule, LinearCountRule):
        terms = " + ".join(f"{obs} x {unit:g}" for obs, unit in rule.linear.items())
        return f"linear: {terms}"
    if isinstance(rule, PresenceRule):
        return f"presence: {rule.presence} ({rule.points} if present, {rule.absent_points} if not)"
    if isinstance(rule, InversePenaltyRule):
        terms = " + ".join(f"{obs} x {p:g}" for obs, p in rule.inverse_penalty.items())
        return f"inverse penalty: {rule.budget} - ({terms})"
    if isinstance(rule, BandRule):
        steps = ", ".join(f">{t:g}: {p}" for t, p in rule.bands.over.items())
        return f"bands on {' + '.join(rule.bands.observations)} ({steps})"
    if isinstance(rule, RatioRule):
        return f"ratio: {rule.ratio.numerator} / {rule.ratio.denominator}"
    return type(rule).__name__


@app.command()
def principles(
    profile: str = typer.Option("full", help="Bundled profile name or profile YAML path"),
):
    """List the principles of a profile with their rules and budgets."""
    from testability.profiles import load_profile

    try:
        scoring_profile = load_profile(profile)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(
        f"Profile '{scoring_profile.name}': {len(scoring_profile.principles)} principles, "
        f"acceptable score {scoring_profile.acceptable_score}"
    )
    for principle in scoring_profile.principles:
        typer.echo("")
        typer.echo(f"{principle.display_name} ({principle.name})")
        if principle.description:
            typer.echo(f"  {principle.description}")
        for rule in principle.rules:
            typer.echo(f"  {rule.budget:>3}  {rule.name}: {_describe_rule(rule)}")


EXAMPLE_SUITE = """\
profile: full
acceptable_score: 70

subjects:
  - name: standard_user
    observations: ./observations/standard_user.json
  - name: problem_user
    observations: ./observations/problem_user.json
"""

EXAMPLE_OBSERVATIONS = {
    "standard_user": {
        "dataTestAttributeCount": 18,
        "hasLocalStorageData": True,
        "hasSessionStorageData": False,
        "hasCookies": True,
        "pageReadyStateComplete": True,
        "hasErrorElements": True,
        "visualElementCount": 12,
        "interactiveElementCount": 14,
        "buttonCount": 8,
        "linkCount": 6,
        "totalElementCount": 240,
        "consoleErrorCount": 0,
        "jsErrorCount": 0,
        "imageCount": 6,
        "imagesWithAltCount": 6,
    },
    "problem_user": {
        "dataTestAttributeCount": 4,
        "hasLocalStorageData": False,
        "pageReadyStateComplete": True,
        "interactiveElementCount": 14,
        "totalElementCount": 240,
        "consoleErrorCount": 3,
        "jsErrorCount": 2,
        "brokenImageCount": 6,
        "imageCount": 6,
        "imagesWithAltCount": 1,
    },
}


@app.command()
def init(
    dir: str = typer.Option(
        "testability", "--dir", help="Directory to initialize the suite in"
    ),
):
    """Initialize a new assessment suite with example observations."""
    project_dir = Path(dir)

    if not project_dir.exists():
        project_dir.mkdir(parents=True, exist_ok=True)

    example = project_dir / "suite.yaml"
    if example.exists():
        typer.echo(f"suite.yaml already exists in {dir}, skipping.")
        return

    example.write_text(EXAMPLE_SUITE)

    obs_dir = project_dir / "observations"
    obs_dir.mkdir(parents=True, exist_ok=True)
    for name, bag in EXAMPLE_OBSERVATIONS.items():
        (obs_dir / f"{name}.json").write_text(json.dumps(bag, indent=2) + "\n")

    typer.echo(f"Initialized assessment suite in {dir}:")
    typer.echo("  suite.yaml     - example suite")
    typer.echo("  observations/  - example observation files")


@schema_app.command("generate")
def schema_generate(
    dir: str = typer.Option(
        "testability", "--dir", help="Project directory for default schema/doc outputs"
    ),
    kind: str = typer.Option("profile", help="Which file format: profile or suite"),
    out: str | None = typer.Option(
        None,
        help="Output path for JSON Schema (defaults to <dir>/schemas/testability-<kind>.schema.json)",
    ),
    doc: str | None = typer.Option(
        None, help="Output path for schema docs (defaults to <dir>/docs/schema.md)"
    ),
):
    """Generate JSON Schema and docs for the profile and suite YAML formats."""
    from testability.schema import write_json_schema, write_schema_doc

    project_dir = Path(dir)
    out_path = (
        Path(out)
        if out is not None
        else project_dir / "schemas" / f"testability-{kind}.schema.json"
    )
    doc_path = Path(doc) if doc is not None else project_dir / "docs" / "schema.md"
    try:
        write_json_schema(out_path, kind=kind)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    write_schema_doc(doc_path)
    typer.echo(f"Wrote schema: {out_path}")
    typer.echo(f"Wrote docs: {doc_path}")
