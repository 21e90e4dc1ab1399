from __future__ import annotations

import logging
from typing import Optional, Sequence

from practice_planner.core.config import StoreConfig
from practice_planner.core.errors import ActivityValidationError, StoreError
from practice_planner.core.model import ActivityNode, DocumentId
from practice_planner.core.store.contracts import ActivityStore
from practice_planner.core.store.file_store import FileActivityStore
from practice_planner.core.store.rest_store import RestActivityStore
from practice_planner.core.tree.build_tree import build_activity_tree, find_node_by_id

logger = logging.getLogger(__name__)

MISC_CHILD_NAME = "Misc"


# Every mutation ends with a full re-fetch. Callers replace their local tree
# with the returned forest and never merge.


def fetch_tree(store: ActivityStore) -> list[ActivityNode]:
    return build_activity_tree(store.list_records())


def add_activity(
    store: ActivityStore,
    name: str,
    weight: float = 1,
    parent_relation_id: Optional[int] = None,
) -> list[ActivityNode]:
    """Create an activity plus its default "Misc" child."""
    clean = name.strip()
    if not clean:
        raise ActivityValidationError(
            code="E_ACTIVITY_NAME_REQUIRED",
            message="activity name must be a non-empty string",
            path="name",
        )
    new_id = store.create_activity(clean, weight, parent_relation_id)
    store.create_activity(MISC_CHILD_NAME, 1, new_id)
    logger.info("added activity %s (%s) under %s", new_id, clean, parent_relation_id)
    return fetch_tree(store)


def update_activity(
    store: ActivityStore,
    forest: Sequence[ActivityNode],
    relation_id: int,
    *,
    name: Optional[str] = None,
    weight: Optional[float] = None,
) -> list[ActivityNode]:
    document_id = document_id_for(forest, relation_id)
    store.update_activity(document_id, name=name, weight=weight)
    return fetch_tree(store)


def delete_activity(
    store: ActivityStore, forest: Sequence[ActivityNode], relation_id: int
) -> list[ActivityNode]:
    document_id = document_id_for(forest, relation_id)
    store.delete_activity(document_id)
    return fetch_tree(store)


def document_id_for(forest: Sequence[ActivityNode], relation_id: int) -> DocumentId:
    node = find_node_by_id(forest, relation_id)
    if node is None:
        raise StoreError(
            code="E_UNKNOWN_ACTIVITY",
            message=f"no activity with id {relation_id}",
            path="id",
        )
    if node.document_id is None:
        raise StoreError(
            code="E_MISSING_DOCUMENT_ID",
            message=f"activity {relation_id} has no documentId and cannot be changed",
            path="id",
        )
    return node.document_id


def open_store(config: StoreConfig) -> ActivityStore:
    if config.store_file:
        return FileActivityStore(config.store_file)
    return RestActivityStore.from_config(config)
