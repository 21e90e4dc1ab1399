from __future__ import annotations

from collections import Counter
from typing import Any, Optional

from practice_planner.core.errors import ActivityValidationError
from practice_planner.core.tree.build_tree import is_relation_id, is_valid_weight, resolve_parent_id


# Activity lint rules. The tree builder accepts all of these silently; lint
# surfaces them so upstream data problems do not hide behind the defaults.
# - L_INVALID_RECORD: record is not a mapping or has no integer id
# - L_DUPLICATE_ID: relation id used more than once (last one wins in the tree)
# - L_DANGLING_PARENT: parent_activity does not match any record (node becomes a root)
# - L_CYCLE_DETECTED: parent references loop back on themselves
# - L_MISSING_DOCUMENT_ID: record cannot be updated or deleted
# - L_INVALID_WEIGHT: weight is present but not a finite number (defaults to 1)
# - L_NEGATIVE_WEIGHT: weight below zero (treated as inactive)


def lint_activities(
    records: list[Any], *, file: Optional[str] = None
) -> list[ActivityValidationError]:
    errors: list[ActivityValidationError] = []

    id_to_index: dict[int, int] = {}
    id_to_parent: dict[int, Optional[int]] = {}
    ids: list[int] = []

    for i, raw in enumerate(records):
        path = f"records[{i}]"
        if not isinstance(raw, dict) or not is_relation_id(raw.get("id")):
            errors.append(
                ActivityValidationError(
                    code="L_INVALID_RECORD",
                    message="record must be an object with an integer id",
                    file=file,
                    path=path,
                )
            )
            continue

        rid = raw["id"]
        attrs = raw.get("attributes")
        if not isinstance(attrs, dict):
            attrs = raw

        ids.append(rid)
        id_to_index.setdefault(rid, i)
        # Last one wins, as in the tree builder.
        id_to_parent[rid] = resolve_parent_id(attrs.get("parent_activity"))

        document_id = raw.get("documentId")
        if document_id is None:
            document_id = attrs.get("documentId")
        if document_id in (None, ""):
            errors.append(
                ActivityValidationError(
                    code="L_MISSING_DOCUMENT_ID",
                    message=f"activity {rid} has no documentId and cannot be edited",
                    file=file,
                    path=f"{path}.documentId",
                )
            )

        weight = attrs.get("weight")
        # A missing weight is the ordinary default case.
        if weight is not None and not is_valid_weight(weight):
            errors.append(
                ActivityValidationError(
                    code="L_INVALID_WEIGHT",
                    message=f"weight must be a finite number, got {weight!r} (defaults to 1)",
                    file=file,
                    path=f"{path}.weight",
                )
            )
        elif is_valid_weight(weight) and weight < 0:
            errors.append(
                ActivityValidationError(
                    code="L_NEGATIVE_WEIGHT",
                    message=f"weight must not be negative, got {weight!r}",
                    file=file,
                    path=f"{path}.weight",
                )
            )

    # Rule: duplicate ids (report every occurrence after the first)
    counts = Counter(ids)
    seen: set[int] = set()
    for i, raw in enumerate(records):
        if not isinstance(raw, dict) or not is_relation_id(raw.get("id")):
            continue
        rid = raw["id"]
        if counts[rid] < 2:
            continue
        if rid not in seen:
            seen.add(rid)
            continue
        errors.append(
            ActivityValidationError(
                code="L_DUPLICATE_ID",
                message=f"duplicate activity id: {rid} (count={counts[rid]})",
                file=file,
                path=f"records[{i}].id",
            )
        )

    # Rule: dangling parents
    for i, raw in enumerate(records):
        if not isinstance(raw, dict) or not is_relation_id(raw.get("id")):
            continue
        attrs = raw.get("attributes")
        if not isinstance(attrs, dict):
            attrs = raw
        parent = resolve_parent_id(attrs.get("parent_activity"))
        if parent is not None and parent not in id_to_parent:
            errors.append(
                ActivityValidationError(
                    code="L_DANGLING_PARENT",
                    message=f"parent_activity references unknown id: {parent}",
                    file=file,
                    path=f"records[{i}].parent_activity",
                )
            )

    # Rule: cycles in parent links
    for rid, msg in _detect_cycles(id_to_parent):
        errors.append(
            ActivityValidationError(
                code="L_CYCLE_DETECTED",
                message=msg,
                file=file,
                path=f"records[{id_to_index.get(rid, 0)}].parent_activity",
            )
        )

    return _sorted(errors)


def _detect_cycles(id_to_parent: dict[int, Optional[int]]) -> list[tuple[int, str]]:
    # Each node has at most one parent, so following parent links from every
    # node finds each cycle; report it once, from its smallest id.
    out: list[tuple[int, str]] = []
    emitted: set[frozenset[int]] = set()

    for start in sorted(id_to_parent):
        chain: list[int] = []
        on_chain: set[int] = set()
        cur: Optional[int] = start
        while cur is not None and cur in id_to_parent and cur not in on_chain:
            chain.append(cur)
            on_chain.add(cur)
            cur = id_to_parent[cur]
        if cur is None or cur not in on_chain:
            continue
        cycle = chain[chain.index(cur):]
        key = frozenset(cycle)
        if key in emitted:
            continue
        emitted.add(key)
        first = min(cycle)
        k = cycle.index(first)
        ordered = cycle[k:] + cycle[:k] + [first]
        out.append((first, "parent cycle detected: " + " -> ".join(str(x) for x in ordered)))
    return out


def _sorted(errors: list[ActivityValidationError]) -> list[ActivityValidationError]:
    return sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
