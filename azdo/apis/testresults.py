"""Test run and test result operations."""

import logging
from typing import Any
from urllib.parse import quote

logger = logging.getLogger(__name__)


class TestResultOperations:
    """Azure DevOps test management operations."""

    # Not a pytest test class despite the name.
    __test__ = False

    def __init__(self, client_core):
        """Initialize with reference to core client."""
        self._client = client_core

    def _test_url(self, project: str) -> str:
        return f"{self._client.collection_url}/{quote(project)}/_apis/test"

    def list_runs(self, project: str, build_uri: str | None = None) -> list[dict[str, Any]]:
        """
        List test runs, optionally only those published by one build.

        Args:
            project (str): Project name or ID.
            build_uri (str, optional): ``vstfs:///Build/Build/<id>`` URI.
        """
        params = {"buildUri": build_uri, "includeRunDetails": "true"}
        return self._client.get_list(f"{self._test_url(project)}/runs", params)

    def get_run(self, project: str, run_id: int) -> dict[str, Any]:
        return self._client.get(f"{self._test_url(project)}/runs/{run_id}")

    def list_results(self, project: str, run_id: int, top: int | None = None) -> list[dict[str, Any]]:
        url = f"{self._test_url(project)}/runs/{run_id}/results"
        return self._client.get_list(url, {"$top": top})
