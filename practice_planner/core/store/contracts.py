from __future__ import annotations

from typing import Any, Optional, Protocol


class ActivityStore(Protocol):
    """Where activity records and practice sessions are kept.

    Mutations are keyed by document id; relations use relation ids.
    """

    def list_records(self) -> list[dict[str, Any]]: ...

    def create_activity(
        self, name: str, weight: float, parent_relation_id: Optional[int]
    ) -> int: ...

    def update_activity(
        self,
        document_id: str,
        *,
        name: Optional[str] = None,
        weight: Optional[float] = None,
    ) -> None: ...

    def delete_activity(self, document_id: str) -> None: ...

    def create_session(self, payload: dict[str, Any]) -> dict[str, Any]: ...
