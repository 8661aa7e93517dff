import json

from typer.testing import CliRunner

from testability.cli import app

runner = CliRunner()


def test_init_creates_example_files(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0
    assert (tmp_path / "testability" / "suite.yaml").exists()
    assert (tmp_path / "testability" / "observations" / "standard_user.json").exists()
    assert (tmp_path / "testability" / "observations" / "problem_user.json").exists()


def test_init_with_custom_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["init", "--dir", "my-custom-dir"])
    assert result.exit_code == 0
    assert (tmp_path / "my-custom-dir" / "suite.yaml").exists()


def test_init_skips_existing_suite(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "testability").mkdir()
    (tmp_path / "testability" / "suite.yaml").write_text("keep: me\n")
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0
    assert "already exists" in result.output
    assert (tmp_path / "testability" / "suite.yaml").read_text() == "keep: me\n"


def test_init_then_run(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert runner.invoke(app, ["init"]).exit_code == 0
    result = runner.invoke(
        app, ["run", "testability/suite.yaml", "--output-dir", "runs", "--no-open"]
    )
    assert "Run complete" in result.output
    run_dirs = list((tmp_path / "runs").iterdir())
    assert len(run_dirs) == 1
    assert (run_dirs[0] / "report.html").exists()
    assert (run_dirs[0] / "report.txt").exists()


def test_run_missing_suite():
    result = runner.invoke(app, ["run", "nonexistent.yaml"])
    assert result.exit_code != 0


def test_run_invalid_suite(tmp_path):
    suite = tmp_path / "suite.yaml"
    suite.write_text("subjects: []\n")
    result = runner.invoke(app, ["run", str(suite), "--no-open"])
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_run_suite_with_malformed_yaml(tmp_path):
    suite = tmp_path / "suite.yaml"
    suite.write_text("subjects: [\n")
    result = runner.invoke(app, ["run", str(suite), "--no-open"])
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "invalid YAML" in result.output


def test_run_empty_suite_file(tmp_path):
    suite = tmp_path / "suite.yaml"
    suite.write_text("")
    result = runner.invoke(app, ["run", str(suite), "--no-open"])
    assert result.exit_code == 1
    assert "expected a mapping" in result.output


def test_run_suite_pointing_at_malformed_profile(tmp_path):
    (tmp_path / "bad.yaml").write_text("name: [unclosed\n")
    suite = tmp_path / "suite.yaml"
    suite.write_text("profile: ./bad.yaml\nsubjects:\n  - name: s\n    observations: {}\n")
    result = runner.invoke(
        app, ["run", str(suite), "--output-dir", str(tmp_path / "runs"), "--no-open"]
    )
    assert result.exit_code == 1
    assert "invalid YAML" in result.output


def test_run_override_below_priority_ladder(tmp_path):
    suite = tmp_path / "suite.yaml"
    suite.write_text("acceptable_score: 45\nsubjects:\n  - name: s\n    observations: {}\n")
    result = runner.invoke(
        app, ["run", str(suite), "--output-dir", str(tmp_path / "runs"), "--no-open"]
    )
    assert result.exit_code == 1
    assert "above acceptable_score" in result.output


def test_run_exits_nonzero_on_failing_grade(tmp_path, suite_file):
    result = runner.invoke(
        app, ["run", str(suite_file), "--output-dir", str(tmp_path / "runs"), "--no-open"]
    )
    assert result.exit_code == 1
    assert "FAIL  bad" in result.output
    assert "PASS  good" in result.output


def test_run_exits_zero_when_every_subject_passes(tmp_path, suite_file):
    result = runner.invoke(
        app,
        ["run", str(suite_file), "--subject", "good",
         "--output-dir", str(tmp_path / "runs"), "--no-open"],
    )
    assert result.exit_code == 0


def test_run_unknown_subject(tmp_path, suite_file):
    result = runner.invoke(
        app,
        ["run", str(suite_file), "--subject", "nobody",
         "--output-dir", str(tmp_path / "runs"), "--no-open"],
    )
    assert result.exit_code == 1
    assert "No subject named 'nobody'" in result.output


def test_run_opens_report_unless_disabled(mocker, tmp_path, suite_file):
    opened = mocker.patch("webbrowser.open")
    runner.invoke(
        app, ["run", str(suite_file), "--subject", "good", "--output-dir", str(tmp_path / "runs")]
    )
    opened.assert_called_once()
    assert opened.call_args[0][0].endswith("report.html")


def test_score_prints_engine_json(tmp_path):
    obs = tmp_path / "home.json"
    obs.write_text(json.dumps({}))
    result = runner.invoke(app, ["score", str(obs)])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["subject"] == "home"
    assert data["overallScore"] == 15
    assert data["grade"] == "F"
    assert len(data["principleScores"]) == 10
    assert len(data["recommendations"]) == 10
    assert "subMetrics" not in data


def test_score_detailed_with_subject_and_profile(tmp_path):
    obs = tmp_path / "home.yaml"
    obs.write_text("dataTestAttributeCount: 50\n")
    result = runner.invoke(
        app, ["score", str(obs), "--profile", "core", "--subject", "landing", "--detailed"]
    )
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["subject"] == "landing"
    assert list(data["principleScores"]) == [
        "observability",
        "controllability",
        "algorithmicSimplicity",
        "explainability",
        "decomposability",
    ]
    quantity = data["subMetrics"]["observability"][0]
    assert quantity["name"] == "data_test_quantity"
    assert quantity["points"] == 15


def test_score_unknown_profile(tmp_path):
    obs = tmp_path / "home.json"
    obs.write_text("{}")
    result = runner.invoke(app, ["score", str(obs), "--profile", "nope"])
    assert result.exit_code == 1
    assert "Unknown profile" in result.output


def test_score_malformed_profile_yaml(tmp_path):
    obs = tmp_path / "o.json"
    obs.write_text("{}")
    profile = tmp_path / "bad.yaml"
    profile.write_text("name: [unclosed\n")
    result = runner.invoke(app, ["score", str(obs), "--profile", str(profile)])
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "invalid YAML" in result.output


def test_score_empty_profile_file(tmp_path):
    obs = tmp_path / "o.json"
    obs.write_text("{}")
    profile = tmp_path / "empty.yaml"
    profile.write_text("")
    result = runner.invoke(app, ["score", str(obs), "--profile", str(profile)])
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "expected a mapping" in result.output


def test_principles_malformed_profile_yaml(tmp_path):
    profile = tmp_path / "bad.yaml"
    profile.write_text("name: [unclosed\n")
    result = runner.invoke(app, ["principles", "--profile", str(profile)])
    assert result.exit_code == 1
    assert "invalid YAML" in result.output


def test_score_missing_file():
    result = runner.invoke(app, ["score", "/tmp/nonexistent-observations.json"])
    assert result.exit_code == 1


def test_principles_lists_rules():
    result = runner.invoke(app, ["principles"])
    assert result.exit_code == 0
    assert "Profile 'full': 10 principles, acceptable score 70" in result.output
    assert "Observability (observability)" in result.output
    assert " 25  data_test_attributes: linear: dataTestAttributeCount x 2.5" in result.output
    assert "ratio: imagesWithAltCount / imageCount" in result.output
    assert "bands on totalElementCount (>200: 30, >500: 25, >1000: 15)" in result.output


def test_report_missing_dir():
    result = runner.invoke(app, ["report", "/tmp/nonexistent-run-dir"])
    assert result.exit_code != 0


def test_report_regenerates_html(tmp_path, suite_file):
    runner.invoke(
        app, ["run", str(suite_file), "--output-dir", str(tmp_path / "runs"), "--no-open"]
    )
    run_dir = next((tmp_path / "runs").iterdir())
    (run_dir / "report.html").unlink()
    result = runner.invoke(app, ["report", str(run_dir)])
    assert result.exit_code == 0
    assert (run_dir / "report.html").exists()


def test_schema_generate_command_writes_files(tmp_path):
    out = tmp_path / "schema.json"
    doc = tmp_path / "schema.md"
    result = runner.invoke(
        app, ["schema", "generate", "--out", str(out), "--doc", str(doc)]
    )
    assert result.exit_code == 0
    assert out.exists()
    assert doc.exists()


def test_schema_generate_defaults_to_init_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["schema", "generate", "--kind", "suite"])
    assert result.exit_code == 0
    assert (tmp_path / "testability" / "schemas" / "testability-suite.schema.json").exists()
    assert (tmp_path / "testability" / "docs" / "schema.md").exists()


def test_schema_generate_unknown_kind(tmp_path):
    result = runner.invoke(
        app, ["schema", "generate", "--kind", "bogus", "--out", str(tmp_path / "s.json"),
              "--doc", str(tmp_path / "s.md")]
    )
    assert result.exit_code == 1
