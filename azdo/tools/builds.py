"""Build tools, including log-based error analysis."""

import logging
import re

from ..errors import AdoError
from ..registry import ToolTable
from ..schema import array, enum, number, string, to_whole_number, whole_number

logger = logging.getLogger(__name__)

build_tools = ToolTable("builds")

PROJECT = string("Project name", optional=True)

BUILD_STATUSES = ("all", "inProgress", "completed", "cancelling", "postponed", "notStarted", "none")
BUILD_RESULTS = ("succeeded", "partiallySucceeded", "failed", "canceled", "none")

MAX_FINDINGS = 50

_ERROR = re.compile(r"\berror\b", re.IGNORECASE)
_ZERO_ERRORS = re.compile(r"\b0 error", re.IGNORECASE)
_WARNING = re.compile(r"\bwarning\b", re.IGNORECASE)
_ZERO_WARNINGS = re.compile(r"\b0 warning", re.IGNORECASE)
_LOG_ISSUE = re.compile(r"##vso\[task\.logissue\s+type=(\w+)[^\]]*\](.*)")


def web_url(document):
    return ((document.get("_links") or {}).get("web") or {}).get("href")


def scan_log_lines(lines, log_id, errors, warnings, issues):
    """
    Collect error lines, warning lines and ``##vso[task.logissue]`` issues.

    Summary lines such as ``0 error(s)`` and ``0 warning(s)`` are not findings.
    """
    for line in lines:
        if _ERROR.search(line) and not _ZERO_ERRORS.search(line):
            errors.append(line.strip())
        if _WARNING.search(line) and not _ZERO_WARNINGS.search(line):
            warnings.append(line.strip())
        issue = _LOG_ISSUE.search(line)
        if issue:
            issues.append({"type": issue.group(1), "message": issue.group(2).strip(), "logId": log_id})


@build_tools.operation(
    project=PROJECT,
    definitions=array(number(), "Filter by build definition IDs", optional=True),
    branchName=string('Filter by branch (e.g., "refs/heads/main")', optional=True),
    statusFilter=enum(BUILD_STATUSES, "Filter by status", optional=True),
    resultFilter=enum(BUILD_RESULTS, "Filter by result", optional=True),
    requestedFor=string("Filter by user who requested the build", optional=True),
    top=number("Max builds to return", default=25),
)
def list_builds(client, args):
    """List recent builds with status and results"""
    project = client.require_project(args.get("project"))
    builds = client.get_build_api().list_builds(
        project,
        definitions=[
            to_whole_number(d, f"arguments.definitions[{i}]")
            for i, d in enumerate(args.get("definitions") or [])
        ],
        branch_name=args.get("branchName"),
        status_filter=args.get("statusFilter"),
        result_filter=args.get("resultFilter"),
        requested_for=args.get("requestedFor"),
        top=whole_number(args, "top"),
    )
    return [
        {
            "id": b.get("id"),
            "buildNumber": b.get("buildNumber"),
            "status": b.get("status"),
            "result": b.get("result"),
            "definition": {
                "id": (b.get("definition") or {}).get("id"),
                "name": (b.get("definition") or {}).get("name"),
            },
            "sourceBranch": b.get("sourceBranch"),
            "sourceVersion": b.get("sourceVersion"),
            "requestedBy": (b.get("requestedBy") or {}).get("displayName"),
            "requestedFor": (b.get("requestedFor") or {}).get("displayName"),
            "queueTime": b.get("queueTime"),
            "startTime": b.get("startTime"),
            "finishTime": b.get("finishTime"),
            "url": web_url(b),
        }
        for b in builds
    ]


@build_tools.operation(project=PROJECT, buildId=number("Build ID"))
def get_build(client, args):
    """Get detailed information about a specific build"""
    project = client.require_project(args.get("project"))
    build = client.get_build_api().get_build(project, whole_number(args, "buildId"))
    return {
        "id": build.get("id"),
        "buildNumber": build.get("buildNumber"),
        "status": build.get("status"),
        "result": build.get("result"),
        "definition": build.get("definition"),
        "sourceBranch": build.get("sourceBranch"),
        "sourceVersion": build.get("sourceVersion"),
        "requestedBy": build.get("requestedBy"),
        "requestedFor": build.get("requestedFor"),
        "queueTime": build.get("queueTime"),
        "startTime": build.get("startTime"),
        "finishTime": build.get("finishTime"),
        "repository": build.get("repository"),
        "triggerInfo": build.get("triggerInfo"),
        "logs": build.get("logs"),
        "url": web_url(build),
    }


@build_tools.operation(
    project=PROJECT,
    buildId=number("Build ID"),
    logId=number("Specific log ID (omit to get log list first)", optional=True),
)
def get_build_logs(client, args):
    """Get build logs - useful for analyzing build errors and failures"""
    build_api = client.get_build_api()
    project = client.require_project(args.get("project"))
    build_id = whole_number(args, "buildId")

    if "logId" in args:
        log_id = whole_number(args, "logId")
        lines = build_api.get_build_log_lines(project, build_id, log_id)
        return {"logId": log_id, "content": "\n".join(lines)}

    return [
        {
            "id": log.get("id"),
            "type": log.get("type"),
            "url": log.get("url"),
            "lineCount": log.get("lineCount"),
        }
        for log in build_api.list_build_logs(project, build_id)
    ]


@build_tools.operation(
    project=PROJECT,
    name=string("Filter by definition name (supports wildcards *)", optional=True),
    path=string("Filter by folder path", optional=True),
)
def list_build_definitions(client, args):
    """List build/pipeline definitions"""
    project = client.require_project(args.get("project"))
    definitions = client.get_build_api().list_definitions(
        project, name=args.get("name"), path=args.get("path")
    )
    return [
        {
            "id": d.get("id"),
            "name": d.get("name"),
            "path": d.get("path"),
            "type": d.get("type"),
            "queueStatus": d.get("queueStatus"),
            "revision": d.get("revision"),
            "url": web_url(d),
        }
        for d in definitions
    ]


@build_tools.operation(project=PROJECT, buildId=number("Build ID to analyze"))
def analyze_build_errors(client, args):
    """Analyze a failed build and extract errors, warnings, and issues from logs"""
    build_api = client.get_build_api()
    project = client.require_project(args.get("project"))
    build_id = whole_number(args, "buildId")

    build = build_api.get_build(project, build_id)
    logs = build_api.list_build_logs(project, build_id)

    errors, warnings, issues = [], [], []
    for log in logs:
        log_id = log.get("id")
        if not log_id:
            continue
        try:
            lines = build_api.get_build_log_lines(project, build_id, log_id)
        except AdoError as e:
            logger.warning(f"Skipping unreadable log {log_id} of build {build_id}: {e}")
            continue
        scan_log_lines(lines, log_id, errors, warnings, issues)

    return {
        "buildId": build.get("id"),
        "buildNumber": build.get("buildNumber"),
        "status": build.get("status"),
        "result": build.get("result"),
        "summary": {
            "errorCount": len(errors),
            "warningCount": len(warnings),
            "issueCount": len(issues),
        },
        "errors": errors[:MAX_FINDINGS],
        "warnings": warnings[:MAX_FINDINGS],
        "issues": issues[:MAX_FINDINGS],
    }
