"""Classic release tools."""

from ..apis.releases import RELEASE_STATUSES
from ..errors import AdoNotFoundError
from ..registry import ToolTable
from ..schema import enum, number, string, whole_number

release_tools = ToolTable("releases")

PROJECT = string("Project name", optional=True)


def _display_name(identity):
    return (identity or {}).get("displayName")


@release_tools.operation(
    project=PROJECT,
    definitionId=number("Filter by release definition ID", optional=True),
    statusFilter=enum(RELEASE_STATUSES, "Filter by status", optional=True),
    environmentStatusFilter=number("Filter by environment status", optional=True),
    top=number("Max releases to return", default=25),
)
def list_releases(client, args):
    """List releases with deployment status"""
    project = client.require_project(args.get("project"))
    releases = client.get_release_api().list_releases(
        project,
        definition_id=whole_number(args, "definitionId") if "definitionId" in args else None,
        status_filter=args.get("statusFilter"),
        environment_status_filter=(
            whole_number(args, "environmentStatusFilter") if "environmentStatusFilter" in args else None
        ),
        top=whole_number(args, "top"),
    )
    return [
        {
            "id": r.get("id"),
            "name": r.get("name"),
            "status": r.get("status"),
            "releaseDefinition": {
                "id": (r.get("releaseDefinition") or {}).get("id"),
                "name": (r.get("releaseDefinition") or {}).get("name"),
            },
            "createdOn": r.get("createdOn"),
            "createdBy": _display_name(r.get("createdBy")),
            "description": r.get("description"),
            "environments": [
                {
                    "id": e.get("id"),
                    "name": e.get("name"),
                    "status": e.get("status"),
                    "deploySteps": [
                        {
                            "status": ds.get("status"),
                            "reason": ds.get("reason"),
                            "lastModifiedOn": ds.get("lastModifiedOn"),
                        }
                        for ds in e.get("deploySteps") or []
                    ],
                }
                for e in r.get("environments") or []
            ],
        }
        for r in releases
    ]


@release_tools.operation(project=PROJECT, releaseId=number("Release ID"))
def get_release(client, args):
    """Get detailed information about a specific release"""
    project = client.require_project(args.get("project"))
    release = client.get_release_api().get_release(project, whole_number(args, "releaseId"))
    return {
        "id": release.get("id"),
        "name": release.get("name"),
        "status": release.get("status"),
        "releaseDefinition": release.get("releaseDefinition"),
        "createdOn": release.get("createdOn"),
        "createdBy": release.get("createdBy"),
        "modifiedOn": release.get("modifiedOn"),
        "modifiedBy": release.get("modifiedBy"),
        "description": release.get("description"),
        "reason": release.get("reason"),
        "artifacts": [
            {
                "sourceId": a.get("sourceId"),
                "type": a.get("type"),
                "alias": a.get("alias"),
                "definitionReference": a.get("definitionReference"),
            }
            for a in release.get("artifacts") or []
        ],
        "environments": [
            {
                "id": e.get("id"),
                "name": e.get("name"),
                "status": e.get("status"),
                "rank": e.get("rank"),
                "variables": e.get("variables"),
                "preDeployApprovals": e.get("preDeployApprovals"),
                "postDeployApprovals": e.get("postDeployApprovals"),
                "deploySteps": [
                    {
                        "id": ds.get("id"),
                        "status": ds.get("status"),
                        "operationStatus": ds.get("operationStatus"),
                        "reason": ds.get("reason"),
                        "hasStarted": ds.get("hasStarted"),
                        "releaseDeployPhases": [
                            {"name": p.get("name"), "status": p.get("status"), "rank": p.get("rank")}
                            for p in ds.get("releaseDeployPhases") or []
                        ],
                    }
                    for ds in e.get("deploySteps") or []
                ],
            }
            for e in release.get("environments") or []
        ],
        "variables": release.get("variables"),
    }


@release_tools.operation(
    project=PROJECT,
    searchText=string("Filter by name", optional=True),
    path=string("Filter by folder path", optional=True),
)
def list_release_definitions(client, args):
    """List release/deployment pipeline definitions"""
    project = client.require_project(args.get("project"))
    definitions = client.get_release_api().list_definitions(
        project, search_text=args.get("searchText"), path=args.get("path")
    )
    return [
        {
            "id": d.get("id"),
            "name": d.get("name"),
            "path": d.get("path"),
            "releaseNameFormat": d.get("releaseNameFormat"),
            "description": d.get("description"),
            "createdBy": _display_name(d.get("createdBy")),
            "createdOn": d.get("createdOn"),
            "modifiedBy": _display_name(d.get("modifiedBy")),
            "modifiedOn": d.get("modifiedOn"),
            "environments": [
                {"id": e.get("id"), "name": e.get("name"), "rank": e.get("rank")}
                for e in d.get("environments") or []
            ],
        }
        for d in definitions
    ]


@release_tools.operation(
    project=PROJECT,
    releaseId=number("Release ID"),
    environmentId=number("Environment ID"),
)
def get_release_logs(client, args):
    """Get deployment logs for a release environment"""
    release_api = client.get_release_api()
    project = client.require_project(args.get("project"))
    release_id, environment_id = whole_number(args, "releaseId"), whole_number(args, "environmentId")

    release = release_api.get_release(project, release_id)
    environment = next(
        (e for e in release.get("environments") or [] if e.get("id") == environment_id), None
    )
    if environment is None:
        raise AdoNotFoundError(
            f"Environment {environment_id} not found in release {release_id}",
            context={"release_id": release_id, "environment_id": environment_id},
        )

    tasks = release_api.get_environment_tasks(project, release_id, environment_id)
    return {
        "releaseId": release_id,
        "environmentId": environment_id,
        "environmentName": environment.get("name"),
        "status": environment.get("status"),
        "tasks": [
            {
                "id": t.get("id"),
                "name": t.get("name"),
                "status": t.get("status"),
                "dateStarted": t.get("startTime") or t.get("dateStarted"),
                "dateEnded": t.get("finishTime") or t.get("dateEnded"),
                "logUrl": t.get("logUrl"),
                "issues": t.get("issues"),
            }
            for t in tasks
        ],
    }
