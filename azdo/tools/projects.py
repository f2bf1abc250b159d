"""Project tools."""

from ..registry import ToolTable
from ..schema import string

project_tools = ToolTable("projects")


@project_tools.operation()
def list_projects(client, args):
    """List all projects in the Azure DevOps organization/collection"""
    projects = client.get_core_api().list_projects()
    return [
        {
            "id": p.get("id"),
            "name": p.get("name"),
            "description": p.get("description"),
            "state": p.get("state"),
            "url": p.get("url"),
            "lastUpdateTime": p.get("lastUpdateTime"),
        }
        for p in projects
    ]


@project_tools.operation(project=string("Project name or ID"))
def get_project(client, args):
    """Get detailed information about a specific project"""
    project = client.get_core_api().get_project(args["project"]) or {}
    return {
        "id": project.get("id"),
        "name": project.get("name"),
        "description": project.get("description"),
        "state": project.get("state"),
        "url": project.get("url"),
        "capabilities": project.get("capabilities"),
        "defaultTeam": project.get("defaultTeam"),
        "lastUpdateTime": project.get("lastUpdateTime"),
    }
