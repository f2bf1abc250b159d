"""Work item tracking operations."""

import logging
from typing import Any
from urllib.parse import quote

logger = logging.getLogger(__name__)

# The work items batch endpoint accepts at most 200 IDs per request.
MAX_BATCH_SIZE = 200

CLASSIFICATION_GROUPS = ("iterations", "areas")


class WorkItemOperations:
    """Azure DevOps work item tracking operations."""

    def __init__(self, client_core):
        """Initialize with reference to core client."""
        self._client = client_core

    def _project_url(self, project: str) -> str:
        return f"{self._client.collection_url}/{quote(project)}/_apis/wit"

    def query_by_wiql(self, project: str, wiql: str, top: int | None = None) -> list[int]:
        """
        Run a WIQL query.

        Args:
            project (str): Project the query is scoped to.
            wiql (str): The query text.
            top (int, optional): Maximum number of results.

        Returns:
            list[int]: Matching work item IDs, in query order.
        """
        url = f"{self._project_url(project)}/wiql"
        result = self._client.post(url, {"query": wiql}, {"$top": top}) or {}
        return [item["id"] for item in result.get("workItems", []) if item.get("id") is not None]

    def get_work_items(self, project: str, ids: list[int]) -> list[dict[str, Any]]:
        """Fetch work items by ID, batching requests as the server requires."""
        url = f"{self._project_url(project)}/workitems"
        work_items: list[dict[str, Any]] = []
        for start in range(0, len(ids), MAX_BATCH_SIZE):
            batch = ids[start:start + MAX_BATCH_SIZE]
            work_items.extend(
                self._client.get_list(url, {"ids": ",".join(str(i) for i in batch)})
            )
        logger.debug(f"Fetched {len(work_items)} work items in batches of {MAX_BATCH_SIZE}")
        return work_items

    def get_work_item(self, work_item_id: int, expand: bool = True) -> dict[str, Any]:
        url = f"{self._client.collection_url}/_apis/wit/workitems/{work_item_id}"
        return self._client.get(url, {"$expand": "all" if expand else None})

    def get_classification_node(self, project: str, group: str, depth: int = 2) -> dict[str, Any]:
        """
        Get the root of the iteration or area tree.

        Args:
            project (str): Project name or ID.
            group (str): ``iterations`` or ``areas``.
            depth (int): Levels of children to include.
        """
        if group not in CLASSIFICATION_GROUPS:
            raise ValueError(f"Unknown classification group: {group}")
        url = f"{self._project_url(project)}/classificationnodes/{group}"
        return self._client.get(url, {"$depth": depth}) or {}

    def list_work_item_types(self, project: str) -> list[dict[str, Any]]:
        return self._client.get_list(f"{self._project_url(project)}/workitemtypes")
