from practice_planner.core.io.load_activities import load_activities
from practice_planner.core.lint.lint_activities import lint_activities


def test_lint_clean_activities():
    assert lint_activities(load_activities("examples/activities.yaml")) == []


def test_lint_reports_every_messy_record():
    errors = lint_activities(
        load_activities("examples/activities-messy.yaml"), file="examples/activities-messy.yaml"
    )
    found = {(e.code, e.path) for e in errors}
    assert found == {
        ("L_INVALID_WEIGHT", "records[1].weight"),
        ("L_DANGLING_PARENT", "records[1].parent_activity"),
        ("L_CYCLE_DETECTED", "records[2].parent_activity"),
        ("L_MISSING_DOCUMENT_ID", "records[4].documentId"),
        ("L_NEGATIVE_WEIGHT", "records[4].weight"),
        ("L_DUPLICATE_ID", "records[5].id"),
        ("L_INVALID_RECORD", "records[6]"),
    }
    assert all(e.file == "examples/activities-messy.yaml" for e in errors)


def test_lint_cycle_message_lists_the_loop():
    errors = lint_activities(
        [
            {"id": 3, "documentId": "c", "parent_activity": 4},
            {"id": 4, "documentId": "d", "parent_activity": {"data": {"id": 3}}},
        ]
    )
    assert [e.code for e in errors] == ["L_CYCLE_DETECTED"]
    assert "3 -> 4 -> 3" in errors[0].message


def test_lint_self_parent_is_a_cycle():
    errors = lint_activities([{"id": 7, "documentId": "x", "parent_activity": 7}])
    assert [e.code for e in errors] == ["L_CYCLE_DETECTED"]
    assert "7 -> 7" in errors[0].message


def test_lint_errors_are_sorted_by_path_then_code():
    errors = lint_activities(load_activities("examples/activities-messy.yaml"))
    keys = [(e.path or "", e.code) for e in errors]
    assert keys == sorted(keys)


def test_lint_missing_weight_is_not_reported():
    errors = lint_activities([{"id": 1, "documentId": "a", "name": "A"}])
    assert errors == []


def test_lint_non_finite_weight_is_reported():
    errors = lint_activities([{"id": 1, "documentId": "a", "weight": float("inf")}])
    assert [(e.code, e.path) for e in errors] == [("L_INVALID_WEIGHT", "records[0].weight")]
