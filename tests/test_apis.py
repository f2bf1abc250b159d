"""Tests for the REST sub-clients: URLs, query parameters and response shaping."""

from unittest.mock import Mock, call

import pytest

from azdo.apis import (
    BuildOperations,
    CoreOperations,
    GitOperations,
    ReleaseOperations,
    TestResultOperations,
    WorkItemOperations,
)
from azdo.apis.git import strip_branch_prefix

BASE = "https://ado.example.com/tfs/DefaultCollection"
RELEASE_BASE = "https://vsrm.example.com/DefaultCollection"


@pytest.fixture
def core():
    core = Mock()
    core.collection_url = BASE
    core.release_url = RELEASE_BASE
    core.get_list.return_value = []
    core.get.return_value = {}
    return core


class TestCoreOperations:
    def test_get_project_includes_capabilities(self, core):
        CoreOperations(core).get_project("My Project")
        url, params = core.get.call_args.args
        assert url == f"{BASE}/_apis/projects/My%20Project"
        assert params["includeCapabilities"] == "true"


class TestGitOperations:
    def test_list_commits_search_criteria(self, core):
        GitOperations(core).list_commits("Demo", "web", branch="refs/heads/main", author="a@b.c", top=10)
        url, params = core.get_list.call_args.args
        assert url == f"{BASE}/Demo/_apis/git/repositories/web/commits"
        assert params["searchCriteria.itemVersion.version"] == "main"
        assert params["searchCriteria.author"] == "a@b.c"
        assert params["searchCriteria.$top"] == 10

    def test_item_content_by_commit(self, core):
        core.get.return_value = {"path": "/README.md", "content": "hello"}
        content = GitOperations(core).get_item_content(
            "Demo", "web", "/README.md", version="abc123", version_type="commit"
        )
        assert content == "hello"
        params = core.get.call_args.args[1]
        assert params["versionDescriptor.version"] == "abc123"
        assert params["versionDescriptor.versionType"] == "commit"
        assert params["includeContent"] == "true"

    def test_pull_request_status_is_checked(self, core):
        with pytest.raises(ValueError):
            GitOperations(core).list_pull_requests("Demo", "web", status="merged")

    def test_commit_diffs_use_branch_names(self, core):
        GitOperations(core).get_commit_diffs("Demo", "web", "refs/heads/main", "refs/heads/develop", top=5)
        url, params = core.get.call_args.args
        assert url.endswith("/diffs/commits")
        assert params["baseVersion"] == "main"
        assert params["targetVersion"] == "develop"
        assert params["baseVersionType"] == params["targetVersionType"] == "branch"

    def test_strip_branch_prefix(self):
        assert strip_branch_prefix("refs/heads/feature/x") == "feature/x"
        assert strip_branch_prefix("main") == "main"
        assert strip_branch_prefix(None) is None


class TestWorkItemOperations:
    def test_wiql_returns_ids(self, core):
        core.post.return_value = {"workItems": [{"id": 3}, {"id": 1}]}
        ids = WorkItemOperations(core).query_by_wiql("Demo", "SELECT [System.Id] FROM WorkItems", top=10)
        assert ids == [3, 1]
        url, body, params = core.post.call_args.args
        assert url == f"{BASE}/Demo/_apis/wit/wiql"
        assert body == {"query": "SELECT [System.Id] FROM WorkItems"}
        assert params == {"$top": 10}

    def test_work_items_are_fetched_in_batches_of_200(self, core):
        core.get_list.side_effect = lambda url, params: [{"id": i} for i in params["ids"].split(",")]
        items = WorkItemOperations(core).get_work_items("Demo", list(range(450)))
        assert len(items) == 450
        assert core.get_list.call_count == 3
        last_batch = core.get_list.call_args_list[-1].args[1]["ids"].split(",")
        assert len(last_batch) == 50

    def test_classification_group_is_checked(self, core):
        with pytest.raises(ValueError):
            WorkItemOperations(core).get_classification_node("Demo", "teams")

    def test_work_item_expand(self, core):
        WorkItemOperations(core).get_work_item(42)
        assert core.get.call_args == call(f"{BASE}/_apis/wit/workitems/42", {"$expand": "all"})


class TestBuildOperations:
    def test_list_builds_joins_definitions(self, core):
        BuildOperations(core).list_builds("Demo", definitions=[1, 2], status_filter="completed")
        params = core.get_list.call_args.args[1]
        assert params["definitions"] == "1,2"
        assert params["statusFilter"] == "completed"
        assert params["queryOrder"] == "finishTimeDescending"
        assert params["$top"] == 25


class TestReleaseOperations:
    def test_uses_release_host(self, core):
        ReleaseOperations(core).list_releases("Demo", status_filter="active")
        url, params = core.get_list.call_args.args
        assert url == f"{RELEASE_BASE}/Demo/_apis/release/releases"
        assert params["$expand"] == "environments"

    def test_environment_tasks_come_from_latest_attempt(self, core):
        core.get.return_value = {
            "deploySteps": [
                {"attempt": 1, "releaseDeployPhases": [{"deploymentJobs": [{"tasks": [{"id": 1}]}]}]},
                {
                    "attempt": 2,
                    "releaseDeployPhases": [
                        {"deploymentJobs": [{"tasks": [{"id": 10}, {"id": 11}]}]},
                        {"deploymentJobs": [{"tasks": [{"id": 12}]}]},
                    ],
                },
            ]
        }
        tasks = ReleaseOperations(core).get_environment_tasks("Demo", 5, 7)
        assert [t["id"] for t in tasks] == [10, 11, 12]
        assert core.get.call_args.args[0] == f"{RELEASE_BASE}/Demo/_apis/release/releases/5/environments/7"

    def test_environment_without_deployments(self, core):
        core.get.return_value = {"deploySteps": []}
        assert ReleaseOperations(core).get_environment_tasks("Demo", 5, 7) == []


class TestTestResultOperations:
    def test_runs_filtered_by_build_uri(self, core):
        TestResultOperations(core).list_runs("Demo", build_uri="vstfs:///Build/Build/9")
        url, params = core.get_list.call_args.args
        assert url == f"{BASE}/Demo/_apis/test/runs"
        assert params["buildUri"] == "vstfs:///Build/Build/9"
