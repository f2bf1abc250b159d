"""Work item tools: WIQL queries, single items and classification trees."""

from ..registry import ToolTable
from ..schema import boolean, number, string, whole_number

work_item_tools = ToolTable("work_items")

PROJECT = string("Project name", optional=True)

WIQL_COLUMNS = "[System.Id], [System.Title], [System.State], [System.AssignedTo], [System.WorkItemType]"

# (argument, field reference, WIQL operator)
FILTERS = (
    ("workItemType", "System.WorkItemType", "="),
    ("state", "System.State", "="),
    ("assignedTo", "System.AssignedTo", "="),
    ("areaPath", "System.AreaPath", "UNDER"),
    ("iterationPath", "System.IterationPath", "UNDER"),
    ("tags", "System.Tags", "CONTAINS"),
)


def wiql_literal(value):
    """Quote ``value`` as a WIQL string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def build_wiql(project, args):
    """Assemble a WIQL query from the simple filter arguments."""
    conditions = [f"[System.TeamProject] = {wiql_literal(project)}"]
    for argument, field, operator in FILTERS:
        if args.get(argument):
            conditions.append(f"[{field}] {operator} {wiql_literal(args[argument])}")
    return (
        f"SELECT {WIQL_COLUMNS} FROM WorkItems "
        f"WHERE {' AND '.join(conditions)} "
        "ORDER BY [System.ChangedDate] DESC"
    )


def _display_name(identity):
    if isinstance(identity, dict):
        return identity.get("displayName")
    return identity


def flatten_classification(node, parent_path="", with_dates=False):
    """
    Flatten an iteration or area tree depth-first.

    Paths are joined with a backslash, as Azure DevOps writes them.
    """
    name = node.get("name") or ""
    path = f"{parent_path}\\{name}" if parent_path else name
    children = node.get("children") or []

    entry = {
        "id": node.get("id"),
        "name": node.get("name"),
        "path": path,
        "hasChildren": len(children) > 0,
    }
    if with_dates:
        attributes = node.get("attributes")
        entry["attributes"] = (
            {"startDate": attributes.get("startDate"), "finishDate": attributes.get("finishDate")}
            if attributes
            else None
        )

    entries = [entry]
    for child in children:
        entries.extend(flatten_classification(child, path, with_dates))
    return entries


@work_item_tools.operation(
    project=PROJECT,
    wiql=string("WIQL query string (if provided, other filters are ignored)", optional=True),
    workItemType=string("Filter by type (Bug, Task, User Story, etc.)", optional=True),
    state=string("Filter by state (Active, Closed, etc.)", optional=True),
    assignedTo=string('Filter by assigned user (use "@Me" for current user)', optional=True),
    areaPath=string("Filter by area path", optional=True),
    iterationPath=string("Filter by iteration path", optional=True),
    tags=string("Filter by tag", optional=True),
    top=number("Max items to return", default=50),
)
def query_work_items(client, args):
    """Query work items using WIQL (Work Item Query Language) or simple filters"""
    wit_api = client.get_work_item_api()
    project = client.require_project(args.get("project"))

    wiql = args.get("wiql") or build_wiql(project, args)
    ids = wit_api.query_by_wiql(project, wiql, top=whole_number(args, "top"))
    if not ids:
        return []

    work_items = wit_api.get_work_items(project, ids)
    results = []
    for wi in work_items:
        fields = wi.get("fields") or {}
        results.append(
            {
                "id": wi.get("id"),
                "rev": wi.get("rev"),
                "url": wi.get("url"),
                "fields": {
                    "title": fields.get("System.Title"),
                    "state": fields.get("System.State"),
                    "workItemType": fields.get("System.WorkItemType"),
                    "assignedTo": _display_name(fields.get("System.AssignedTo")),
                    "createdBy": _display_name(fields.get("System.CreatedBy")),
                    "createdDate": fields.get("System.CreatedDate"),
                    "changedDate": fields.get("System.ChangedDate"),
                    "areaPath": fields.get("System.AreaPath"),
                    "iterationPath": fields.get("System.IterationPath"),
                    "tags": fields.get("System.Tags"),
                    "priority": fields.get("Microsoft.VSTS.Common.Priority"),
                    "severity": fields.get("Microsoft.VSTS.Common.Severity"),
                },
            }
        )
    return results


@work_item_tools.operation(
    id=number("Work item ID"),
    expand=boolean("Include all fields and relations", default=True),
)
def get_work_item(client, args):
    """Get detailed information about a specific work item"""
    work_item = client.get_work_item_api().get_work_item(whole_number(args, "id"), expand=args["expand"])
    relations = work_item.get("relations")
    return {
        "id": work_item.get("id"),
        "rev": work_item.get("rev"),
        "url": work_item.get("url"),
        "fields": work_item.get("fields"),
        "relations": [
            {"rel": r.get("rel"), "url": r.get("url"), "attributes": r.get("attributes")}
            for r in relations
        ]
        if relations is not None
        else None,
        "_links": work_item.get("_links"),
    }


@work_item_tools.operation(
    project=PROJECT,
    depth=number("Depth of child iterations to return", default=2),
)
def list_iterations(client, args):
    """List iterations (sprints) in a project - useful for sprint planning and filtering work items"""
    project = client.require_project(args.get("project"))
    root = client.get_work_item_api().get_classification_node(
        project, "iterations", depth=whole_number(args, "depth")
    )
    return {"project": project, "iterations": flatten_classification(root, with_dates=True)}


@work_item_tools.operation(
    project=PROJECT,
    depth=number("Depth of child areas to return", default=2),
)
def list_areas(client, args):
    """List area paths in a project - useful for organizing and filtering work items by team or component"""
    project = client.require_project(args.get("project"))
    root = client.get_work_item_api().get_classification_node(project, "areas", depth=whole_number(args, "depth"))
    return {"project": project, "areas": flatten_classification(root)}


@work_item_tools.operation(project=PROJECT)
def list_work_item_types(client, args):
    """List available work item types in a project"""
    project = client.require_project(args.get("project"))
    return [
        {
            "name": t.get("name"),
            "description": t.get("description"),
            "referenceName": t.get("referenceName"),
            "color": t.get("color"),
            "icon": t.get("icon"),
            "isDisabled": t.get("isDisabled"),
        }
        for t in client.get_work_item_api().list_work_item_types(project)
    ]
