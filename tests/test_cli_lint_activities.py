import json

import yaml
from typer.testing import CliRunner

from practice_planner.cli import app
from practice_planner.core.io.load_activities import load_activities

runner = CliRunner()


def _seed(tmp_path, source):
    p = tmp_path / "store.yaml"
    p.write_text(yaml.safe_dump({"activities": load_activities(source)}), encoding="utf-8")
    return str(p)


def test_cli_lint_passes_on_clean_store(tmp_path):
    store = _seed(tmp_path, "examples/activities.yaml")
    r = runner.invoke(app, ["--store", store, "lint"])
    assert r.exit_code == 0, r.output
    assert "OK: 9 activities, lint passed" in r.stdout


def test_cli_lint_text_reports_findings(tmp_path):
    store = _seed(tmp_path, "examples/activities-messy.yaml")
    r = runner.invoke(app, ["--store", store, "lint"])
    assert r.exit_code == 2
    assert "L_CYCLE_DETECTED" in r.output
    assert "records[6]" in r.output


def test_cli_lint_json(tmp_path):
    store = _seed(tmp_path, "examples/activities-messy.yaml")
    r = runner.invoke(app, ["--store", store, "lint", "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["command"] == "lint"
    assert payload["ok"] is False
    assert payload["error_count"] == 7
    codes = {e["code"] for e in payload["errors"]}
    assert codes == {
        "L_INVALID_WEIGHT",
        "L_DANGLING_PARENT",
        "L_CYCLE_DETECTED",
        "L_MISSING_DOCUMENT_ID",
        "L_NEGATIVE_WEIGHT",
        "L_DUPLICATE_ID",
        "L_INVALID_RECORD",
    }
    assert all(e["severity"] == "warning" and e["file"] == store for e in payload["errors"])


def test_cli_lint_messy_store_still_renders_tree(tmp_path):
    store = _seed(tmp_path, "examples/activities-messy.yaml")
    r = runner.invoke(app, ["--store", store, "tree", "--format", "json"])
    assert r.exit_code == 0, r.output
    names = [n["name"] for n in json.loads(r.stdout)["tree"]]
    # Dangling B becomes a root and the C/D cycle never reaches one.
    assert names == ["A", "B", "E", "A again"]


def test_cli_lint_exported_file():
    r = runner.invoke(app, ["lint", "--file", "examples/activities-messy.yaml", "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["error_count"] == 7
    assert all(e["file"] == "examples/activities-messy.yaml" for e in payload["errors"])


def test_cli_lint_exported_file_clean():
    r = runner.invoke(app, ["lint", "--file", "examples/activities.json"])
    assert r.exit_code == 0, r.output
    assert "OK: 3 activities, lint passed" in r.stdout


def test_cli_lint_exported_file_missing(tmp_path):
    r = runner.invoke(app, ["lint", "--file", str(tmp_path / "nope.yaml")])
    assert r.exit_code == 1
    assert "E_FILE_NOT_FOUND" in r.output
