"""Project (core area) operations."""

import logging
from typing import Any
from urllib.parse import quote

logger = logging.getLogger(__name__)


class CoreOperations:
    """Azure DevOps project operations."""

    def __init__(self, client_core):
        """Initialize with reference to core client."""
        self._client = client_core

    def list_projects(self) -> list[dict[str, Any]]:
        """
        List all projects in the collection.

        Returns:
            list[dict]: Raw TeamProjectReference documents.
        """
        url = f"{self._client.collection_url}/_apis/projects"
        projects = self._client.get_list(url)
        logger.info(f"Found {len(projects)} projects")
        return projects

    def get_project(self, project: str) -> dict[str, Any]:
        """
        Get one project, including its capabilities and default team.

        Args:
            project (str): Project name or ID.
        """
        url = f"{self._client.collection_url}/_apis/projects/{quote(project)}"
        return self._client.get(url, {"includeCapabilities": "true", "includeHistory": "true"})
