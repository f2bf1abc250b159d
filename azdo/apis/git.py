"""Git repository, commit and pull request operations."""

import logging
from typing import Any
from urllib.parse import quote

logger = logging.getLogger(__name__)

BRANCH_PREFIX = "refs/heads/"

# GitPullRequestSearchCriteria.status accepts these names.
PULL_REQUEST_STATUSES = ("active", "abandoned", "completed", "all")


def strip_branch_prefix(ref: str | None) -> str | None:
    """Turn ``refs/heads/main`` into ``main``; other values pass through."""
    if ref and ref.startswith(BRANCH_PREFIX):
        return ref[len(BRANCH_PREFIX):]
    return ref


class GitOperations:
    """Azure DevOps Git operations."""

    def __init__(self, client_core):
        """Initialize with reference to core client."""
        self._client = client_core

    def _repo_url(self, project: str, repository: str) -> str:
        return (
            f"{self._client.collection_url}/{quote(project)}"
            f"/_apis/git/repositories/{quote(repository, safe='')}"
        )

    def list_repositories(self, project: str) -> list[dict[str, Any]]:
        url = f"{self._client.collection_url}/{quote(project)}/_apis/git/repositories"
        return self._client.get_list(url)

    def get_repository(self, project: str, repository: str) -> dict[str, Any]:
        return self._client.get(self._repo_url(project, repository))

    def list_branches(self, project: str, repository: str) -> list[dict[str, Any]]:
        """
        List branches with ahead/behind counts against the default branch.

        Args:
            project (str): Project name or ID.
            repository (str): Repository name or ID.
        """
        url = f"{self._repo_url(project, repository)}/stats/branches"
        return self._client.get_list(url)

    def list_commits(
        self,
        project: str,
        repository: str,
        branch: str | None = None,
        author: str | None = None,
        from_date: str | None = None,
        to_date: str | None = None,
        top: int = 50,
    ) -> list[dict[str, Any]]:
        """
        Get commit history, newest first.

        Args:
            project (str): Project name or ID.
            repository (str): Repository name or ID.
            branch (str, optional): Branch name, with or without ``refs/heads/``.
            author (str, optional): Author name or email.
            from_date (str, optional): ISO date lower bound.
            to_date (str, optional): ISO date upper bound.
            top (int): Maximum number of commits.
        """
        params = {
            "searchCriteria.itemVersion.version": strip_branch_prefix(branch),
            "searchCriteria.author": author,
            "searchCriteria.fromDate": from_date,
            "searchCriteria.toDate": to_date,
            "searchCriteria.$top": top,
        }
        url = f"{self._repo_url(project, repository)}/commits"
        return self._client.get_list(url, params)

    def get_commit(
        self, project: str, repository: str, commit_id: str, change_count: int = 0
    ) -> dict[str, Any]:
        url = f"{self._repo_url(project, repository)}/commits/{commit_id}"
        return self._client.get(url, {"changeCount": change_count or None})

    def get_item_content(
        self,
        project: str,
        repository: str,
        path: str,
        version: str | None = None,
        version_type: str = "branch",
    ) -> str | None:
        """
        Read a file's text content.

        Args:
            project (str): Project name or ID.
            repository (str): Repository name or ID.
            path (str): File path in the repository.
            version (str, optional): Commit SHA or branch name. Defaults to the
                repository's default branch.
            version_type (str): ``commit`` or ``branch``.

        Returns:
            str | None: The file content, or None if the server returned none.

        Raises:
            AdoNotFoundError: If the file does not exist at that version.
        """
        params = {
            "path": path,
            "includeContent": "true",
            "$format": "json",
        }
        if version:
            params["versionDescriptor.version"] = version
            params["versionDescriptor.versionType"] = version_type
        url = f"{self._repo_url(project, repository)}/items"
        item = self._client.get(url, params) or {}
        return item.get("content")

    def list_items(self, project: str, repository: str, scope_path: str = "/") -> list[dict[str, Any]]:
        """List the direct children of ``scope_path`` (one folder level)."""
        params = {
            "scopePath": scope_path,
            "recursionLevel": "OneLevel",
            "includeContentMetadata": "true",
        }
        url = f"{self._repo_url(project, repository)}/items"
        return self._client.get_list(url, params)

    def list_pull_requests(
        self,
        project: str,
        repository: str,
        status: str = "active",
        creator_id: str | None = None,
        reviewer_id: str | None = None,
        top: int | None = None,
    ) -> list[dict[str, Any]]:
        if status not in PULL_REQUEST_STATUSES:
            raise ValueError(f"Unsupported pull request status: {status}")
        params = {
            "searchCriteria.status": status,
            "searchCriteria.creatorId": creator_id,
            "searchCriteria.reviewerId": reviewer_id,
            "$top": top,
        }
        url = f"{self._repo_url(project, repository)}/pullrequests"
        return self._client.get_list(url, params)

    def get_pull_request(self, project: str, repository: str, pull_request_id: int) -> dict[str, Any]:
        url = f"{self._repo_url(project, repository)}/pullrequests/{pull_request_id}"
        return self._client.get(url)

    def get_pull_request_threads(
        self, project: str, repository: str, pull_request_id: int
    ) -> list[dict[str, Any]]:
        url = f"{self._repo_url(project, repository)}/pullRequests/{pull_request_id}/threads"
        return self._client.get_list(url)

    def get_commit_diffs(
        self, project: str, repository: str, base_branch: str, target_branch: str, top: int = 50
    ) -> dict[str, Any]:
        """
        Compare two branches.

        Returns:
            dict: GitCommitDiffs with ``aheadCount``, ``behindCount``,
            ``commonCommit`` and ``changes``.
        """
        params = {
            "$top": top,
            "baseVersion": strip_branch_prefix(base_branch),
            "baseVersionType": "branch",
            "targetVersion": strip_branch_prefix(target_branch),
            "targetVersionType": "branch",
        }
        url = f"{self._repo_url(project, repository)}/diffs/commits"
        return self._client.get(url, params) or {}
