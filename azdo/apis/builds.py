"""Build, build log and build definition operations."""

import logging
from typing import Any
from urllib.parse import quote

logger = logging.getLogger(__name__)


class BuildOperations:
    """Azure DevOps build operations."""

    def __init__(self, client_core):
        """Initialize with reference to core client."""
        self._client = client_core

    def _build_url(self, project: str) -> str:
        return f"{self._client.collection_url}/{quote(project)}/_apis/build"

    def list_builds(
        self,
        project: str,
        definitions: list[int] | None = None,
        branch_name: str | None = None,
        status_filter: str | None = None,
        result_filter: str | None = None,
        requested_for: str | None = None,
        top: int = 25,
        query_order: str | None = "finishTimeDescending",
    ) -> list[dict[str, Any]]:
        """
        List builds, most recently finished first by default.

        Args:
            project (str): Project name or ID.
            definitions (list[int], optional): Definition IDs to include.
            branch_name (str, optional): Source branch, e.g. ``refs/heads/main``.
            status_filter (str, optional): BuildStatus name.
            result_filter (str, optional): BuildResult name.
            requested_for (str, optional): User the build was requested for.
            top (int): Maximum number of builds.
            query_order (str, optional): BuildQueryOrder name.
        """
        params = {
            "definitions": ",".join(str(d) for d in definitions) if definitions else None,
            "branchName": branch_name,
            "statusFilter": status_filter,
            "resultFilter": result_filter,
            "requestedFor": requested_for,
            "$top": top,
            "queryOrder": query_order,
        }
        return self._client.get_list(f"{self._build_url(project)}/builds", params)

    def get_build(self, project: str, build_id: int) -> dict[str, Any]:
        return self._client.get(f"{self._build_url(project)}/builds/{build_id}")

    def list_build_logs(self, project: str, build_id: int) -> list[dict[str, Any]]:
        return self._client.get_list(f"{self._build_url(project)}/builds/{build_id}/logs")

    def get_build_log_lines(self, project: str, build_id: int, log_id: int) -> list[str]:
        """
        Get the lines of one build log.

        Returns:
            list[str]: Log lines, without line terminators.
        """
        url = f"{self._build_url(project)}/builds/{build_id}/logs/{log_id}"
        return self._client.get_list(url)

    def list_definitions(
        self,
        project: str,
        name: str | None = None,
        path: str | None = None,
        top: int | None = None,
    ) -> list[dict[str, Any]]:
        params = {"name": name, "path": path, "$top": top}
        return self._client.get_list(f"{self._build_url(project)}/definitions", params)

    def get_definition(self, project: str, definition_id: int) -> dict[str, Any]:
        return self._client.get(f"{self._build_url(project)}/definitions/{definition_id}")
