from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence

from practice_planner.core.allocate.allocate_plan import allocate_plan, find_entries, round_half_up
from practice_planner.core.errors import SessionError
from practice_planner.core.io.load_activities import dump_yaml, load_document
from practice_planner.core.model import ActivityNode, PlanEntry, RelationId
from practice_planner.core.store.contracts import ActivityStore
from practice_planner.core.tree.build_tree import children_at_path, is_relation_id


@dataclass
class SessionDraft:
    total_minutes: float
    entries: list[PlanEntry]
    created_at: str
    path_ids: list[int] = field(default_factory=list)


def build_session(
    forest: Sequence[ActivityNode],
    total_minutes: float,
    path_ids: Sequence[int] = (),
    *,
    created_at: Optional[str] = None,
) -> SessionDraft:
    """Allocate ``total_minutes`` over the tree (or the subtree at ``path_ids``).

    Actual minutes start out equal to the suggestions. A new draft always
    replaces the previous one; nothing is carried over.
    """
    nodes = children_at_path(forest, path_ids) if path_ids else list(forest)
    entries = allocate_plan(nodes, total_minutes)
    return SessionDraft(
        total_minutes=total_minutes,
        entries=entries,
        created_at=created_at or datetime.now(timezone.utc).isoformat(),
        path_ids=list(path_ids),
    )


def set_actual(draft: SessionDraft, relation_id: int, minutes: Any) -> list[PlanEntry]:
    """Record actual minutes for an activity.

    Actuals are keyed by activity id, so when duplicate records put the same id
    in the plan twice every matching entry gets the value.
    """
    entries = find_entries(draft.entries, relation_id)
    if not entries:
        raise SessionError(
            code="E_UNKNOWN_PLAN_ENTRY",
            message=f"activity {relation_id} is not part of this plan",
            path="actual",
        )
    actual = coerce_minutes(minutes)
    for entry in entries:
        entry.actual_minutes = actual
    return entries


def coerce_minutes(value: Any) -> int:
    """Whole minutes from user input; anything unparseable counts as 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0
    return round_half_up(value)


def session_payload(draft: SessionDraft) -> dict[str, Any]:
    return {
        "totalMinutes": draft.total_minutes,
        "planned": [
            {
                "activityId": e.activity_relation_id,
                "path": list(e.path),
                "suggestedMinutes": e.suggested_minutes,
            }
            for e in draft.entries
        ],
        "actual": [
            {
                "activityId": e.activity_relation_id,
                "path": list(e.path),
                "actualMinutes": e.actual_minutes if e.actual_minutes is not None else 0,
            }
            for e in draft.entries
        ],
        "createdAt": draft.created_at,
    }


def save_session(store: ActivityStore, draft: SessionDraft) -> dict[str, Any]:
    if not draft.entries:
        raise SessionError(
            code="E_EMPTY_PLAN",
            message="nothing to save: the plan has no entries",
            path="entries",
        )
    return store.create_session(session_payload(draft))


def dump_session(draft: SessionDraft, path: str | Path) -> None:
    dump_yaml(
        {
            "totalMinutes": draft.total_minutes,
            "createdAt": draft.created_at,
            "at": list(draft.path_ids),
            "entries": [
                {
                    "activityId": e.activity_relation_id,
                    "path": list(e.path),
                    "suggestedMinutes": e.suggested_minutes,
                    "actualMinutes": e.actual_minutes,
                }
                for e in draft.entries
            ],
        },
        path,
    )


def load_session(path: str | Path) -> SessionDraft:
    data = load_document(path)

    file = str(path)
    if not isinstance(data, dict):
        raise SessionError(
            code="E_SESSION_INVALID",
            message="session draft must be a mapping",
            file=file,
        )

    total = data.get("totalMinutes")
    if isinstance(total, bool) or not isinstance(total, (int, float)):
        raise SessionError(
            code="E_SESSION_INVALID",
            message="totalMinutes must be a number",
            file=file,
            path="totalMinutes",
        )

    raw_entries = data.get("entries")
    if not isinstance(raw_entries, list):
        raise SessionError(
            code="E_SESSION_INVALID",
            message="entries must be an array",
            file=file,
            path="entries",
        )

    entries: list[PlanEntry] = []
    for i, raw in enumerate(raw_entries):
        entry_path = f"entries[{i}]"
        if not isinstance(raw, dict) or not is_relation_id(raw.get("activityId")):
            raise SessionError(
                code="E_SESSION_INVALID",
                message="entry must be an object with an integer activityId",
                file=file,
                path=entry_path,
            )
        names = raw.get("path")
        if not isinstance(names, list) or not all(isinstance(x, str) for x in names):
            raise SessionError(
                code="E_SESSION_INVALID",
                message="path must be an array of strings",
                file=file,
                path=f"{entry_path}.path",
            )
        suggested = raw.get("suggestedMinutes")
        if isinstance(suggested, bool) or not isinstance(suggested, int):
            raise SessionError(
                code="E_SESSION_INVALID",
                message="suggestedMinutes must be an integer",
                file=file,
                path=f"{entry_path}.suggestedMinutes",
            )
        actual = raw.get("actualMinutes")
        entries.append(
            PlanEntry(
                activity_relation_id=RelationId(raw["activityId"]),
                path=names,
                suggested_minutes=suggested,
                actual_minutes=None if actual is None else coerce_minutes(actual),
            )
        )

    at = data.get("at") or []
    created_at = data.get("createdAt")
    if isinstance(created_at, datetime):
        # Unquoted timestamps come back from YAML as datetimes.
        created_at = created_at.isoformat()
    return SessionDraft(
        total_minutes=total,
        entries=entries,
        created_at=created_at if isinstance(created_at, str) else datetime.now(timezone.utc).isoformat(),
        path_ids=[x for x in at if is_relation_id(x)] if isinstance(at, list) else [],
    )
