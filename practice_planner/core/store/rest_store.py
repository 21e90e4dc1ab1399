"""Client for a Strapi-style REST content store."""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from practice_planner.core.config import DEFAULT_TIMEOUT_SECONDS, StoreConfig
from practice_planner.core.errors import StoreError
from practice_planner.core.tree.build_tree import is_relation_id, resolve_parent_id

logger = logging.getLogger(__name__)

ACTIVITIES_PATH = "/api/practice-activities"
SESSIONS_PATH = "/api/deliberate-sessions"
PAGE_SIZE = 1000


class RestActivityStore:
    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls, config: StoreConfig) -> "RestActivityStore":
        if not config.is_remote_configured():
            raise StoreError(
                code="E_STORE_NOT_CONFIGURED",
                message="set PRACTICE_STORE_URL and PRACTICE_STORE_TOKEN, or pass --store FILE",
                path="PRACTICE_STORE_URL",
            )
        return cls(config.api_url or "", config.api_token or "", timeout=config.timeout)

    def list_records(self) -> list[dict[str, Any]]:
        res = self._request(
            "GET",
            f"{ACTIVITIES_PATH}?populate[parent_activity]=true&pagination[pageSize]={PAGE_SIZE}",
        )
        data = res.get("data") if isinstance(res, dict) else None
        return data if isinstance(data, list) else []

    def create_activity(
        self, name: str, weight: float, parent_relation_id: Optional[int]
    ) -> int:
        res = self._request(
            "POST",
            ACTIVITIES_PATH,
            payload={
                "data": {
                    "name": name,
                    "weight": weight,
                    "parent_activity": parent_relation_id,
                }
            },
        )
        new_id = (res.get("data") or {}).get("id") if isinstance(res, dict) else None
        if not is_relation_id(new_id):
            raise StoreError(
                code="E_STORE_BAD_RESPONSE",
                message="create returned no activity id",
                path=ACTIVITIES_PATH,
            )
        return new_id

    def update_activity(
        self,
        document_id: str,
        *,
        name: Optional[str] = None,
        weight: Optional[float] = None,
    ) -> None:
        """Update scalars on one activity.

        The store replaces relations it is not sent, so the current parent and
        children are read first and written back unchanged.
        """
        path = f"{ACTIVITIES_PATH}/{document_id}"
        existing = self._request(
            "GET",
            f"{path}?populate[children_activities]=true&populate[parent_activity]=true",
        )
        data = existing.get("data") if isinstance(existing, dict) else None
        if not isinstance(data, dict):
            data = {}
        attrs = data.get("attributes") if isinstance(data.get("attributes"), dict) else data

        payload: dict[str, Any] = {}
        if weight is not None:
            payload["weight"] = weight
        if name is not None:
            payload["name"] = name
        payload.update(preserved_relations(attrs))

        logger.debug("updating activity %s with %s", document_id, payload)
        res = self._request("PUT", path, payload={"data": payload})
        if not isinstance(res, dict) or not res.get("data"):
            raise StoreError(
                code="E_STORE_BAD_RESPONSE",
                message="update returned no data",
                path=path,
            )

    def delete_activity(self, document_id: str) -> None:
        self._request("DELETE", f"{ACTIVITIES_PATH}/{document_id}")

    def create_session(self, payload: dict[str, Any]) -> dict[str, Any]:
        body = {
            "data": {
                "totalMinutes": payload.get("totalMinutes"),
                "plannedItems": payload.get("planned"),
                "actualItems": payload.get("actual"),
            }
        }
        return self._request("POST", SESSIONS_PATH, payload=body)

    def _request(
        self, method: str, path: str, *, payload: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(
                method,
                url,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self._token}",
                },
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error("store request %s %s failed: %s", method, url, e)
            raise StoreError(
                code="E_STORE_UNREACHABLE", message=str(e), file=self.base_url, path=path
            ) from e

        if not response.ok:
            logger.error("store error %s %s: %s %s", method, url, response.status_code, response.text)
            raise StoreError(
                code="E_STORE_HTTP",
                message=f"store request failed: {response.status_code}",
                file=self.base_url,
                path=path,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise StoreError(
                code="E_STORE_BAD_RESPONSE",
                message=f"response is not JSON: {e}",
                file=self.base_url,
                path=path,
            ) from e


def preserved_relations(attrs: dict[str, Any]) -> dict[str, Any]:
    """Current relations of an activity, as ids, in the shape the store accepts on write.

    children_activities may be a list of ids, a list of objects, or ``{"data": [...]}``.
    parent_activity takes the same shapes the tree builder accepts.
    """
    relations: dict[str, Any] = {}

    children = attrs.get("children_activities")
    if isinstance(children, dict):
        children = children.get("data")
    if isinstance(children, list):
        ids: list[int] = []
        for child in children:
            cid = child.get("id") if isinstance(child, dict) else child
            if is_relation_id(cid):
                ids.append(cid)
        relations["children_activities"] = ids

    parent = resolve_parent_id(attrs.get("parent_activity"))
    if parent is not None:
        relations["parent_activity"] = parent

    return relations
