import json

import yaml
from typer.testing import CliRunner

from practice_planner.cli import app
from practice_planner.core.io.load_activities import load_activities

runner = CliRunner()


def _seed(tmp_path, source="examples/activities.yaml"):
    p = tmp_path / "store.yaml"
    p.write_text(yaml.safe_dump({"activities": load_activities(source)}), encoding="utf-8")
    return str(p)


def test_cli_plan_json(tmp_path):
    store = _seed(tmp_path)
    r = runner.invoke(app, ["--store", store, "plan", "--minutes", "60", "--format", "json"])
    assert r.exit_code == 0, r.output
    payload = json.loads(r.stdout)
    assert payload["command"] == "plan"
    assert payload["totalMinutes"] == 60
    assert payload["allocated"] == 60
    assert [(p["activityId"], p["path"], p["suggestedMinutes"]) for p in payload["planned"]] == [
        (2, ["Guitar", "Scales"], 15),
        (4, ["Guitar", "Songs", "Blackbird"], 30),
        (6, ["Piano"], 15),
    ]
    assert [a["actualMinutes"] for a in payload["actual"]] == [15, 30, 15]


def test_cli_plan_default_names_and_half_up(tmp_path):
    store = _seed(tmp_path, "examples/activities.json")
    r = runner.invoke(app, ["--store", store, "plan", "-m", "10", "--format", "json"])
    assert r.exit_code == 0, r.output
    payload = json.loads(r.stdout)
    assert [(p["path"], p["suggestedMinutes"]) for p in payload["planned"]] == [
        (["Reading"], 3),
        (["Writing", "Untitled activity"], 7),
    ]


def test_cli_plan_subtree(tmp_path):
    store = _seed(tmp_path)
    r = runner.invoke(app, ["--store", store, "plan", "-m", "30", "--at", "1", "--format", "json"])
    assert r.exit_code == 0, r.output
    payload = json.loads(r.stdout)
    assert [p["path"] for p in payload["planned"]] == [["Scales"], ["Songs", "Blackbird"]]
    assert payload["allocated"] == 30


def test_cli_plan_text_and_draft(tmp_path):
    store = _seed(tmp_path)
    out = tmp_path / "drafts" / "today.yaml"
    r = runner.invoke(app, ["--store", store, "plan", "-m", "60", "--out", str(out)])
    assert r.exit_code == 0, r.output
    assert "Total" in r.stdout
    assert "OK: wrote session draft" in r.stdout

    draft = yaml.safe_load(out.read_text(encoding="utf-8"))
    assert draft["totalMinutes"] == 60
    assert [e["activityId"] for e in draft["entries"]] == [2, 4, 6]


def test_cli_plan_fractional_minutes(tmp_path):
    store = _seed(tmp_path)
    r = runner.invoke(app, ["--store", store, "plan", "-m", "59.6", "--format", "json"])
    assert r.exit_code == 0, r.output
    assert json.loads(r.stdout)["allocated"] == 60


def test_cli_plan_nothing_active(tmp_path):
    p = tmp_path / "store.yaml"
    p.write_text(yaml.safe_dump({"activities": [{"id": 1, "documentId": "d", "name": "Off", "weight": 0}]}), encoding="utf-8")
    r = runner.invoke(app, ["--store", str(p), "plan", "-m", "60"])
    assert r.exit_code == 0, r.output
    assert "No active activities" in r.stdout


def test_cli_plan_negative_minutes(tmp_path):
    store = _seed(tmp_path)
    r = runner.invoke(app, ["--store", store, "plan", "--minutes=-5"])
    assert r.exit_code == 2
    assert "E_PLAN_NEGATIVE_BUDGET" in r.output


def test_cli_plan_non_finite_minutes(tmp_path):
    store = _seed(tmp_path)
    for value in ("inf", "nan"):
        r = runner.invoke(app, ["--store", store, "plan", "--minutes", value])
        assert r.exit_code == 2
        assert "E_PLAN_INVALID_BUDGET" in r.output
