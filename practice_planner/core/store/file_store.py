from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any, Optional

from practice_planner.core.errors import StoreError
from practice_planner.core.io.load_activities import dump_yaml, extract_records, load_document
from practice_planner.core.tree.build_tree import is_relation_id

logger = logging.getLogger(__name__)


class FileActivityStore:
    """Activities and sessions kept in one local YAML file.

    Layout:
      activities: [{id, documentId, name, weight, parent_activity}, ...]
      sessions:   [{id, totalMinutes, plannedItems, actualItems, createdAt}, ...]

    A missing file reads as an empty store and is created on first write.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def list_records(self) -> list[dict[str, Any]]:
        return list(self._read()["activities"])

    def create_activity(
        self, name: str, weight: float, parent_relation_id: Optional[int]
    ) -> int:
        doc = self._read()
        activities = doc["activities"]
        new_id = _next_id(activities)
        activities.append(
            {
                "id": new_id,
                "documentId": uuid.uuid4().hex,
                "name": name,
                "weight": weight,
                "parent_activity": parent_relation_id,
            }
        )
        self._write(doc)
        logger.debug("created activity %s (%s) in %s", new_id, name, self.path)
        return new_id

    def update_activity(
        self,
        document_id: str,
        *,
        name: Optional[str] = None,
        weight: Optional[float] = None,
    ) -> None:
        doc = self._read()
        record = _find_by_document_id(doc["activities"], document_id)
        if record is None:
            raise StoreError(
                code="E_STORE_NOT_FOUND",
                message=f"no activity with documentId {document_id}",
                file=str(self.path),
                path="activities",
            )
        fields = record.get("attributes") if isinstance(record.get("attributes"), dict) else record
        if name is not None:
            fields["name"] = name
        if weight is not None:
            fields["weight"] = weight
        self._write(doc)

    def delete_activity(self, document_id: str) -> None:
        doc = self._read()
        activities = doc["activities"]
        record = _find_by_document_id(activities, document_id)
        if record is None:
            raise StoreError(
                code="E_STORE_NOT_FOUND",
                message=f"no activity with documentId {document_id}",
                file=str(self.path),
                path="activities",
            )
        activities.remove(record)
        self._write(doc)

    def create_session(self, payload: dict[str, Any]) -> dict[str, Any]:
        doc = self._read()
        sessions = doc["sessions"]
        record = {
            "id": _next_id(sessions),
            "totalMinutes": payload.get("totalMinutes"),
            "plannedItems": payload.get("planned"),
            "actualItems": payload.get("actual"),
            "createdAt": payload.get("createdAt"),
        }
        sessions.append(record)
        self._write(doc)
        return {"data": record}

    def list_sessions(self) -> list[dict[str, Any]]:
        return list(self._read()["sessions"])

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"activities": [], "sessions": []}
        data = load_document(self.path)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise StoreError(
                code="E_STORE_INVALID_FILE",
                message="store file must be a mapping with activities/sessions",
                file=str(self.path),
            )
        sessions = data.get("sessions") or []
        if not isinstance(sessions, list):
            raise StoreError(
                code="E_STORE_INVALID_FILE",
                message="sessions must be an array",
                file=str(self.path),
                path="sessions",
            )
        return {
            "activities": extract_records(data.get("activities") or [], file=str(self.path)),
            "sessions": sessions,
        }

    def _write(self, doc: dict[str, Any]) -> None:
        dump_yaml(doc, self.path)


def _next_id(records: list[Any]) -> int:
    ids = [r.get("id") for r in records if isinstance(r, dict) and is_relation_id(r.get("id"))]
    return max(ids, default=0) + 1


def _find_by_document_id(records: list[Any], document_id: str) -> Optional[dict[str, Any]]:
    for r in records:
        if not isinstance(r, dict):
            continue
        attrs = r.get("attributes") if isinstance(r.get("attributes"), dict) else {}
        if r.get("documentId", attrs.get("documentId")) == document_id:
            return r
    return None
