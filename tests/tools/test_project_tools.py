"""Tests for the project tools."""

import pytest

from azdo.errors import AdoNotFoundError

pytestmark = pytest.mark.asyncio


class TestProjectTools:
    async def test_list_projects(self, call_tool, mock_client):
        """Projects are reduced to their summary fields."""
        mock_client.core_api.list_projects.return_value = [
            {"id": "p1", "name": "Demo", "state": "wellFormed", "revision": 12, "visibility": "private"}
        ]
        envelope = await call_tool("list_projects")

        assert envelope.ok
        assert envelope.payload == [
            {
                "id": "p1",
                "name": "Demo",
                "description": None,
                "state": "wellFormed",
                "url": None,
                "lastUpdateTime": None,
            }
        ]

    async def test_list_projects_empty(self, call_tool, mock_client):
        mock_client.core_api.list_projects.return_value = []
        envelope = await call_tool("list_projects")
        assert envelope.payload == []

    async def test_get_project_requires_name(self, call_tool, mock_client):
        """The default project does not stand in for get_project."""
        envelope = await call_tool("get_project")
        assert not envelope.ok
        assert "arguments.project" in envelope.error_message
        mock_client.core_api.get_project.assert_not_called()

    async def test_get_project_capabilities(self, call_tool, mock_client):
        mock_client.core_api.get_project.return_value = {
            "id": "p1",
            "name": "Demo",
            "capabilities": {"versioncontrol": {"sourceControlType": "Git"}},
            "defaultTeam": {"name": "Demo Team"},
        }
        envelope = await call_tool("get_project", {"project": "Demo"})

        mock_client.core_api.get_project.assert_called_once_with("Demo")
        assert envelope.payload["capabilities"]["versioncontrol"]["sourceControlType"] == "Git"
        assert envelope.payload["defaultTeam"] == {"name": "Demo Team"}

    async def test_get_project_not_found(self, call_tool, mock_client):
        mock_client.core_api.get_project.side_effect = AdoNotFoundError("Project Nope does not exist")
        envelope = await call_tool("get_project", {"project": "Nope"})
        assert envelope.error_message == "Error executing get_project: Project Nope does not exist"
