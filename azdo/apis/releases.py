"""Classic release pipeline operations."""

import logging
from typing import Any
from urllib.parse import quote

logger = logging.getLogger(__name__)

RELEASE_STATUSES = ("active", "draft", "abandoned", "undefined")


class ReleaseOperations:
    """
    Azure DevOps release operations.

    Release endpoints live on the release host, which differs from the
    collection URL on Azure DevOps Services (``vsrm.dev.azure.com``).
    """

    def __init__(self, client_core):
        """Initialize with reference to core client."""
        self._client = client_core

    def _release_url(self, project: str) -> str:
        return f"{self._client.release_url}/{quote(project)}/_apis/release"

    def list_releases(
        self,
        project: str,
        definition_id: int | None = None,
        status_filter: str | None = None,
        environment_status_filter: int | None = None,
        top: int = 25,
    ) -> list[dict[str, Any]]:
        if status_filter is not None and status_filter not in RELEASE_STATUSES:
            raise ValueError(f"Unsupported release status: {status_filter}")
        params = {
            "definitionId": definition_id,
            "statusFilter": status_filter,
            "environmentStatusFilter": environment_status_filter,
            "$top": top,
            "$expand": "environments",
        }
        return self._client.get_list(f"{self._release_url(project)}/releases", params)

    def get_release(self, project: str, release_id: int) -> dict[str, Any]:
        return self._client.get(f"{self._release_url(project)}/releases/{release_id}")

    def list_definitions(
        self, project: str, search_text: str | None = None, path: str | None = None
    ) -> list[dict[str, Any]]:
        params = {"searchText": search_text, "path": path, "$expand": "environments"}
        return self._client.get_list(f"{self._release_url(project)}/definitions", params)

    def get_environment_tasks(self, project: str, release_id: int, environment_id: int) -> list[dict[str, Any]]:
        """
        Collect the deployment tasks of one release environment.

        Tasks are read from the latest deployment attempt of the environment,
        across all of its phases and jobs.

        Returns:
            list[dict]: ReleaseTask documents, in execution order.
        """
        url = f"{self._release_url(project)}/releases/{release_id}/environments/{environment_id}"
        environment = self._client.get(url) or {}
        deploy_steps = environment.get("deploySteps") or []
        if not deploy_steps:
            return []

        latest = max(deploy_steps, key=lambda step: step.get("attempt", 0))
        tasks: list[dict[str, Any]] = []
        for phase in latest.get("releaseDeployPhases") or []:
            for job in phase.get("deploymentJobs") or []:
                tasks.extend(job.get("tasks") or [])
        logger.debug(
            f"Release {release_id} environment {environment_id}: {len(tasks)} tasks "
            f"in attempt {latest.get('attempt')}"
        )
        return tasks
