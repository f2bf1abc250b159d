"""Pipeline definition tools: runs, YAML source and variables."""

from ..apis.git import strip_branch_prefix
from ..errors import AdoApiError
from ..registry import ToolTable
from ..schema import number, string, whole_number
from .builds import web_url

pipeline_tools = ToolTable("pipelines")

PROJECT = string("Project name", optional=True)
PIPELINE_ID = number("Pipeline/definition ID")

# BuildDefinition.process.type for YAML pipelines; 1 is the classic designer.
YAML_PROCESS_TYPE = 2
SECRET_MASK = "***"


@pipeline_tools.operation(
    project=PROJECT,
    name=string("Filter by name (supports * wildcard)", optional=True),
    path=string("Filter by folder path", optional=True),
    top=number("Max pipelines to return", default=50),
)
def list_pipelines(client, args):
    """List pipeline definitions in a project"""
    project = client.require_project(args.get("project"))
    definitions = client.get_build_api().list_definitions(
        project, name=args.get("name"), path=args.get("path"), top=whole_number(args, "top")
    )
    return [
        {
            "id": d.get("id"),
            "name": d.get("name"),
            "path": d.get("path"),
            "revision": d.get("revision"),
            "queueStatus": d.get("queueStatus"),
            "url": web_url(d),
        }
        for d in definitions
    ]


@pipeline_tools.operation(
    project=PROJECT,
    pipelineId=PIPELINE_ID,
    branch=string("Filter by branch", optional=True),
    top=number("Max runs to return", default=25),
)
def get_pipeline_runs(client, args):
    """Get recent runs for a pipeline"""
    project = client.require_project(args.get("project"))
    runs = client.get_build_api().list_builds(
        project,
        definitions=[whole_number(args, "pipelineId")],
        branch_name=args.get("branch"),
        top=whole_number(args, "top"),
        query_order=None,
    )
    return [
        {
            "id": r.get("id"),
            "buildNumber": r.get("buildNumber"),
            "state": r.get("status"),
            "result": r.get("result"),
            "sourceBranch": r.get("sourceBranch"),
            "sourceVersion": r.get("sourceVersion"),
            "triggerInfo": r.get("triggerInfo"),
            "requestedBy": (r.get("requestedBy") or {}).get("displayName"),
            "requestedFor": (r.get("requestedFor") or {}).get("displayName"),
            "queueTime": r.get("queueTime"),
            "startTime": r.get("startTime"),
            "finishTime": r.get("finishTime"),
            "url": web_url(r),
        }
        for r in runs
    ]


@pipeline_tools.operation(project=PROJECT, pipelineId=PIPELINE_ID)
def get_pipeline_yaml(client, args):
    """Get the YAML configuration for a pipeline"""
    project = client.require_project(args.get("project"))
    pipeline_id = whole_number(args, "pipelineId")
    definition = client.get_build_api().get_definition(project, pipeline_id)

    process = definition.get("process") or {}
    if process.get("type") != YAML_PROCESS_TYPE:
        raise AdoApiError("This is not a YAML pipeline", context={"pipeline_id": pipeline_id})

    repository = definition.get("repository") or {}
    yaml_path = process.get("yamlFilename")
    if not yaml_path or not repository.get("id"):
        raise AdoApiError(
            "Cannot find YAML file path or repository", context={"pipeline_id": pipeline_id}
        )

    content = client.get_git_api().get_item_content(
        project,
        repository["id"],
        yaml_path,
        version=strip_branch_prefix(repository.get("defaultBranch")),
    )

    return {
        "pipelineId": pipeline_id,
        "pipelineName": definition.get("name"),
        "yamlPath": yaml_path,
        "repository": repository.get("name"),
        "branch": repository.get("defaultBranch"),
        "content": content,
    }


@pipeline_tools.operation(project=PROJECT, pipelineId=PIPELINE_ID)
def get_pipeline_variables(client, args):
    """Get variables defined for a pipeline"""
    project = client.require_project(args.get("project"))
    pipeline_id = whole_number(args, "pipelineId")
    definition = client.get_build_api().get_definition(project, pipeline_id)

    variables = [
        {
            "name": name,
            "value": SECRET_MASK if variable.get("isSecret") else variable.get("value"),
            "isSecret": bool(variable.get("isSecret")),
            "allowOverride": bool(variable.get("allowOverride")),
        }
        for name, variable in (definition.get("variables") or {}).items()
    ]
    groups = definition.get("variableGroups")

    return {
        "pipelineId": pipeline_id,
        "pipelineName": definition.get("name"),
        "variables": variables,
        "variableGroups": [
            {"id": g.get("id"), "name": g.get("name"), "description": g.get("description")}
            for g in groups
        ]
        if groups is not None
        else None,
    }
