import pytest

from practice_planner.core.errors import ActivityLoadError
from practice_planner.core.io.load_activities import extract_records, load_activities


def test_load_content_store_yaml():
    records = load_activities("examples/activities.yaml")
    assert len(records) == 9
    assert records[0]["name"] == "Guitar"


def test_load_bare_json_list():
    records = load_activities("examples/activities.json")
    assert [r["id"] for r in records] == [10, 11, 12]


def test_load_missing_file():
    with pytest.raises(ActivityLoadError) as exc:
        load_activities("examples/does-not-exist.yaml")
    assert exc.value.code == "E_FILE_NOT_FOUND"


def test_load_unsupported_format(tmp_path):
    p = tmp_path / "activities.txt"
    p.write_text("hello", encoding="utf-8")
    with pytest.raises(ActivityLoadError) as exc:
        load_activities(str(p))
    assert exc.value.code == "E_UNSUPPORTED_FORMAT"


def test_load_bad_json(tmp_path):
    p = tmp_path / "activities.json"
    p.write_text("[{", encoding="utf-8")
    with pytest.raises(ActivityLoadError) as exc:
        load_activities(str(p))
    assert exc.value.code == "E_JSON_PARSE"


def test_extract_records_shapes():
    assert extract_records(None) == []
    assert extract_records({"data": None}) == []
    assert extract_records({"activities": [{"id": 1}]}) == [{"id": 1}]
    with pytest.raises(ActivityLoadError) as exc:
        extract_records({"data": {"id": 1}})
    assert exc.value.code == "E_INVALID_TOP_LEVEL"
    with pytest.raises(ActivityLoadError):
        extract_records("nope")
