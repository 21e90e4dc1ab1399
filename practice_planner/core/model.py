from __future__ import annotations

from dataclasses import dataclass, field
from typing import NewType, Optional


# Two identity domains from the content store; never interchangeable.
RelationId = NewType("RelationId", int)
DocumentId = NewType("DocumentId", str)

DEFAULT_ACTIVITY_NAME = "Untitled activity"
DEFAULT_WEIGHT = 1


@dataclass
class ActivityNode:
    relation_id: RelationId
    document_id: Optional[DocumentId]
    name: str
    weight: float
    parent_relation_id: Optional[RelationId] = None
    children: list[ActivityNode] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.weight > 0

    def has_active_children(self) -> bool:
        return any(c.is_active for c in self.children)


@dataclass
class PlanEntry:
    activity_relation_id: RelationId
    path: list[str]
    suggested_minutes: int
    actual_minutes: Optional[int] = None

    def __post_init__(self) -> None:
        if self.actual_minutes is None:
            self.actual_minutes = self.suggested_minutes
