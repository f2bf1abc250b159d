"""Tests for the classic release tools."""

import pytest

pytestmark = pytest.mark.asyncio


def _release():
    return {
        "id": 31,
        "name": "Release-31",
        "status": "active",
        "releaseDefinition": {"id": 4, "name": "web-cd", "url": "x"},
        "createdBy": {"displayName": "Jane"},
        "environments": [
            {
                "id": 100,
                "name": "QA",
                "status": "succeeded",
                "deploySteps": [{"id": 1, "status": "succeeded", "reason": "automated", "attempt": 1}],
            },
            {"id": 101, "name": "Prod", "status": "rejected"},
        ],
    }


class TestListReleases:
    async def test_optional_filters_are_omitted(self, call_tool, mock_client):
        mock_client.release_api.list_releases.return_value = [_release()]
        envelope = await call_tool("list_releases")

        kwargs = mock_client.release_api.list_releases.call_args.kwargs
        assert kwargs["definition_id"] is None
        assert kwargs["environment_status_filter"] is None
        assert kwargs["top"] == 25

        release = envelope.payload[0]
        assert release["createdBy"] == "Jane"
        assert release["releaseDefinition"] == {"id": 4, "name": "web-cd"}
        assert release["environments"][0]["deploySteps"] == [
            {"status": "succeeded", "reason": "automated", "lastModifiedOn": None}
        ]
        assert release["environments"][1]["deploySteps"] == []

    async def test_definition_filter(self, call_tool, mock_client):
        mock_client.release_api.list_releases.return_value = []
        await call_tool("list_releases", {"definitionId": 4, "statusFilter": "abandoned"})
        kwargs = mock_client.release_api.list_releases.call_args.kwargs
        assert kwargs["definition_id"] == 4
        assert kwargs["status_filter"] == "abandoned"


class TestReleaseLogs:
    async def test_tasks_for_environment(self, call_tool, mock_client):
        release_api = mock_client.release_api
        release_api.get_release.return_value = _release()
        release_api.get_environment_tasks.return_value = [
            {
                "id": 5,
                "name": "Deploy web app",
                "status": "succeeded",
                "startTime": "2024-01-01T10:00:00Z",
                "finishTime": "2024-01-01T10:05:00Z",
                "logUrl": "https://vsrm/logs/5",
                "issues": [],
            }
        ]

        envelope = await call_tool("get_release_logs", {"releaseId": 31, "environmentId": 100})

        release_api.get_environment_tasks.assert_called_once_with("Demo", 31, 100)
        payload = envelope.payload
        assert payload["environmentName"] == "QA"
        assert payload["status"] == "succeeded"
        assert payload["tasks"] == [
            {
                "id": 5,
                "name": "Deploy web app",
                "status": "succeeded",
                "dateStarted": "2024-01-01T10:00:00Z",
                "dateEnded": "2024-01-01T10:05:00Z",
                "logUrl": "https://vsrm/logs/5",
                "issues": [],
            }
        ]

    async def test_unknown_environment(self, call_tool, mock_client):
        mock_client.release_api.get_release.return_value = _release()
        envelope = await call_tool("get_release_logs", {"releaseId": 31, "environmentId": 999})

        assert envelope.error_message == "Error executing get_release_logs: Environment 999 not found in release 31"
        mock_client.release_api.get_environment_tasks.assert_not_called()


async def test_get_release_shapes_phases(call_tool, mock_client):
    release = _release()
    release["environments"][0]["deploySteps"][0]["releaseDeployPhases"] = [
        {"name": "Agent job", "status": "succeeded", "rank": 1, "deploymentJobs": []}
    ]
    release["artifacts"] = [{"sourceId": "s", "type": "Build", "alias": "_web", "isPrimary": True}]
    mock_client.release_api.get_release.return_value = release

    envelope = await call_tool("get_release", {"releaseId": 31})

    step = envelope.payload["environments"][0]["deploySteps"][0]
    assert step["releaseDeployPhases"] == [{"name": "Agent job", "status": "succeeded", "rank": 1}]
    assert envelope.payload["artifacts"] == [
        {"sourceId": "s", "type": "Build", "alias": "_web", "definitionReference": None}
    ]


async def test_list_release_definitions(call_tool, mock_client):
    mock_client.release_api.list_definitions.return_value = [
        {"id": 4, "name": "web-cd", "environments": [{"id": 1, "name": "QA", "rank": 1, "conditions": []}]}
    ]
    envelope = await call_tool("list_release_definitions", {"searchText": "web"})

    mock_client.release_api.list_definitions.assert_called_once_with("Demo", search_text="web", path=None)
    assert envelope.payload[0]["environments"] == [{"id": 1, "name": "QA", "rank": 1}]
