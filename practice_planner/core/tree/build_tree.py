from __future__ import annotations

import logging
import math
from copy import deepcopy
from typing import Any, Iterable, Optional, Sequence

from practice_planner.core.model import (
    DEFAULT_ACTIVITY_NAME,
    DEFAULT_WEIGHT,
    ActivityNode,
    DocumentId,
    RelationId,
)

logger = logging.getLogger(__name__)


def build_activity_tree(records: Iterable[Any]) -> list[ActivityNode]:
    """Build a forest of ActivityNode from flat activity records.

    Records may be flat (``{"id", "documentId", "name", ...}``) or carry their
    fields under ``attributes``. A parent that does not resolve demotes the node
    to a root; duplicate relation ids resolve to the last record seen.

    Records that are not mappings or have no integer id are skipped.
    """

    nodes: list[ActivityNode] = []
    for i, raw in enumerate(records):
        node = normalize_record(raw)
        if node is None:
            logger.debug("skipping activity record %d: no usable relation id", i)
            continue
        nodes.append(node)

    by_id: dict[int, ActivityNode] = {n.relation_id: n for n in nodes}

    roots: list[ActivityNode] = []
    for node in nodes:
        if node.parent_relation_id is None:
            roots.append(node)
            continue
        parent = by_id.get(node.parent_relation_id)
        if parent is None:
            logger.debug(
                "activity %s references unknown parent %s; treating as root",
                node.relation_id,
                node.parent_relation_id,
            )
            roots.append(node)
        else:
            parent.children.append(node)
    return roots


def normalize_record(raw: Any) -> Optional[ActivityNode]:
    if not isinstance(raw, dict):
        return None

    attrs = raw.get("attributes")
    if not isinstance(attrs, dict):
        attrs = raw

    relation_id = raw.get("id")
    if not is_relation_id(relation_id):
        return None

    document_id = raw.get("documentId")
    if document_id is None:
        document_id = attrs.get("documentId")

    name = attrs.get("name")
    return ActivityNode(
        relation_id=RelationId(relation_id),
        document_id=DocumentId(str(document_id)) if document_id not in (None, "") else None,
        name=name if isinstance(name, str) else DEFAULT_ACTIVITY_NAME,
        weight=coerce_weight(attrs.get("weight")),
        parent_relation_id=resolve_parent_id(attrs.get("parent_activity")),
    )


def resolve_parent_id(rel: Any) -> Optional[RelationId]:
    """Normalize a parent reference to a relation id.

    Accepted shapes: a bare id, ``{"id": ...}``, ``{"data": {"id": ...}}``, and a
    list of any of these (first element wins).
    """

    if rel is None:
        return None
    if isinstance(rel, list):
        return resolve_parent_id(rel[0]) if rel else None
    if is_relation_id(rel):
        return RelationId(rel)
    if isinstance(rel, dict):
        if "data" in rel:
            return resolve_parent_id(rel.get("data"))
        rid = rel.get("id")
        if is_relation_id(rid):
            return RelationId(rid)
    return None


def coerce_weight(value: Any) -> float:
    if not is_valid_weight(value):
        return DEFAULT_WEIGHT
    return value


def is_valid_weight(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def is_relation_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# Navigation helpers


def find_node_by_id(nodes: Sequence[ActivityNode], relation_id: int) -> Optional[ActivityNode]:
    for n in nodes:
        if n.relation_id == relation_id:
            return n
        if n.children:
            match = find_node_by_id(n.children, relation_id)
            if match is not None:
                return match
    return None


def find_node_by_path(
    nodes: Sequence[ActivityNode], path_ids: Sequence[int]
) -> Optional[ActivityNode]:
    current: Optional[ActivityNode] = None
    level: Sequence[ActivityNode] = nodes
    for rid in path_ids:
        current = next((n for n in level if n.relation_id == rid), None)
        if current is None:
            return None
        level = current.children
    return current


def children_at_path(
    nodes: Sequence[ActivityNode], path_ids: Sequence[int]
) -> list[ActivityNode]:
    node = find_node_by_path(nodes, path_ids)
    if node is None:
        return list(nodes)
    return list(node.children)


def breadcrumb(nodes: Sequence[ActivityNode], path_ids: Sequence[int]) -> list[str]:
    names: list[str] = []
    level: Sequence[ActivityNode] = nodes
    for rid in path_ids:
        n = next((x for x in level if x.relation_id == rid), None)
        if n is None:
            break
        names.append(n.name)
        level = n.children
    return names


def with_weight(
    nodes: Sequence[ActivityNode], relation_id: int, weight: float
) -> list[ActivityNode]:
    """Return a copy of the forest with one node's weight replaced (optimistic edit)."""
    cloned = deepcopy(list(nodes))

    def walk(level: list[ActivityNode]) -> None:
        for n in level:
            if n.relation_id == relation_id:
                n.weight = weight
            if n.children:
                walk(n.children)

    walk(cloned)
    return cloned


def forest_to_dicts(nodes: Sequence[ActivityNode]) -> list[dict[str, Any]]:
    return [
        {
            "id": n.relation_id,
            "documentId": n.document_id,
            "name": n.name,
            "weight": n.weight,
            "parentId": n.parent_relation_id,
            "children": forest_to_dicts(n.children),
        }
        for n in nodes
    ]
