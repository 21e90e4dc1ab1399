from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from practice_planner.core.errors import ActivityLoadError


RECORD_KEYS = ("data", "activities")


def load_document(path: str | Path) -> Any:
    """Load a YAML/JSON document. Does not check shape."""

    p = Path(path)
    if not p.exists():
        raise ActivityLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            file=str(p),
        )

    suffix = p.suffix.lower()
    try:
        raw_text = p.read_text(encoding="utf-8")
    except Exception as e:  # pragma: no cover
        raise ActivityLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        if suffix in {".yaml", ".yml"}:
            return yaml.safe_load(raw_text)
        if suffix == ".json":
            return json.loads(raw_text)
        raise ActivityLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message="supported formats are .yaml/.yml and .json",
            file=str(p),
        )
    except ActivityLoadError:
        raise
    except Exception as e:
        code = "E_YAML_PARSE" if suffix in {".yaml", ".yml"} else "E_JSON_PARSE"
        raise ActivityLoadError(code=code, message=str(e), file=str(p)) from e


def load_activities(path: str | Path) -> list[Any]:
    """Load flat activity records from a YAML/JSON file.

    Accepts a bare list, a content-store response (``{"data": [...]}``) or a
    file-store document (``{"activities": [...]}``). Records are returned as-is;
    the tree builder owns normalization.
    """

    data = load_document(path)
    return extract_records(data, file=str(path))


def extract_records(data: Any, *, file: str | None = None) -> list[Any]:
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in RECORD_KEYS:
            if key in data:
                records = data.get(key)
                if records is None:
                    return []
                if not isinstance(records, list):
                    raise ActivityLoadError(
                        code="E_INVALID_TOP_LEVEL",
                        message=f"{key} must be an array of activity records",
                        file=file,
                        path=key,
                    )
                return records
    raise ActivityLoadError(
        code="E_INVALID_TOP_LEVEL",
        message="document must be an array of records or a mapping with data/activities",
        file=file,
    )


def dump_yaml(data: Any, path: str | Path) -> None:
    p = Path(path)
    if str(p.parent) not in (".", ""):
        p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False, allow_unicode=True)
