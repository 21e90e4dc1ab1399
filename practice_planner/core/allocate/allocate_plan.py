from __future__ import annotations

import math
from typing import Sequence

from practice_planner.core.model import ActivityNode, PlanEntry


def round_half_up(x: float) -> int:
    """Round to the nearest integer, ties toward +infinity (``floor(x + 0.5)``).

    Python's ``round`` uses banker's rounding; plans must not depend on it.
    """
    return math.floor(x + 0.5)


def allocate_plan(
    nodes: Sequence[ActivityNode],
    total_minutes: float,
    parent_path: Sequence[str] = (),
) -> list[PlanEntry]:
    """Distribute ``total_minutes`` across active siblings by weight.

    Every sibling except the last active one gets its rounded proportional share;
    the last one takes whatever is left, so a call always hands out exactly
    ``round_half_up(total_minutes)``. The remainder is tracked on rounded values
    and may go negative when earlier shares overshoot; that is left as is.

    Nodes with at least one active child delegate their share to their children.
    Everything else that is active becomes one PlanEntry. Output is depth-first,
    in stored sibling order.
    """
    return _allocate(nodes, total_minutes, list(parent_path), ancestors=frozenset())


def _allocate(
    nodes: Sequence[ActivityNode],
    total_minutes: float,
    parent_path: list[str],
    *,
    ancestors: frozenset[int],
) -> list[PlanEntry]:
    active = [n for n in nodes if n.is_active]
    if not active or not math.isfinite(total_minutes) or total_minutes <= 0:
        return []

    total_weight = sum(n.weight for n in active)
    remaining = round_half_up(total_minutes)

    out: list[PlanEntry] = []
    last = len(active) - 1
    for i, node in enumerate(active):
        if i == last:
            allocated = remaining
        else:
            allocated = round_half_up(node.weight / total_weight * total_minutes)
            remaining -= allocated

        path = parent_path + [node.name]

        # A node already on the ancestor chain only comes from cyclic parent data.
        if node.relation_id not in ancestors and node.has_active_children():
            out.extend(
                _allocate(
                    node.children,
                    allocated,
                    path,
                    ancestors=ancestors | {node.relation_id},
                )
            )
        else:
            out.append(
                PlanEntry(
                    activity_relation_id=node.relation_id,
                    path=path,
                    suggested_minutes=allocated,
                )
            )
    return out


def plan_total(entries: Sequence[PlanEntry], *, actual: bool = False) -> int:
    if actual:
        return sum(e.actual_minutes or 0 for e in entries)
    return sum(e.suggested_minutes for e in entries)


def find_entries(entries: Sequence[PlanEntry], relation_id: int) -> list[PlanEntry]:
    return [e for e in entries if e.activity_relation_id == relation_id]
