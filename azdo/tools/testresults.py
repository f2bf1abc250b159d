"""Test run and test result tools, including failure grouping for a build."""

from ..registry import ToolTable
from ..schema import number, string, whole_number

test_result_tools = ToolTable("test_results")

PROJECT = string("Project name", optional=True)

FAILED = "Failed"
MAX_STACK_TRACE = 1000
ERROR_KEY_LENGTH = 100
TESTS_PER_GROUP = 5
MAX_GROUPS = 20


def _reference(document):
    if not document:
        return None
    return {"id": document.get("id"), "name": document.get("name")}


def _run_summary(run):
    # Azure DevOps reports failed tests as "unanalyzed" until someone triages them.
    return {
        "id": run.get("id"),
        "name": run.get("name"),
        "state": run.get("state"),
        "totalTests": run.get("totalTests"),
        "passedTests": run.get("passedTests"),
        "failedTests": run.get("unanalyzedTests"),
    }


def group_failures(failures):
    """
    Group failures by the first characters of their error message.

    Returns the largest groups first, each listing a few affected test names.
    """
    groups = {}
    for failure in failures:
        key = (failure.get("errorMessage") or "")[:ERROR_KEY_LENGTH] or "Unknown error"
        group = groups.setdefault(key, {"count": 0, "tests": []})
        group["count"] += 1
        if len(group["tests"]) < TESTS_PER_GROUP:
            group["tests"].append(failure["testName"])

    ranked = sorted(groups.items(), key=lambda item: item[1]["count"], reverse=True)
    return [
        {"errorMessage": error, "count": data["count"], "affectedTests": data["tests"]}
        for error, data in ranked[:MAX_GROUPS]
    ]


@test_result_tools.operation(
    project=PROJECT,
    buildUri=string("Filter by build URI", optional=True),
    top=number("Max runs to return", default=25),
)
def list_test_runs(client, args):
    """List test runs for a project - useful for finding test execution history"""
    project = client.require_project(args.get("project"))
    top = whole_number(args, "top")
    runs = client.get_test_api().list_runs(project, build_uri=args.get("buildUri"))
    return [
        {
            **_run_summary(r),
            "incompleteTests": r.get("incompleteTests"),
            "notApplicableTests": r.get("notApplicableTests"),
            "startedDate": r.get("startedDate"),
            "completedDate": r.get("completedDate"),
            "build": _reference(r.get("build")),
            "release": _reference(r.get("release")),
            "url": r.get("webAccessUrl"),
        }
        for r in runs[:top]
    ]


@test_result_tools.operation(project=PROJECT, runId=number("Test run ID"))
def get_test_run(client, args):
    """Get detailed information about a specific test run"""
    project = client.require_project(args.get("project"))
    run = client.get_test_api().get_run(project, whole_number(args, "runId"))
    return {
        **_run_summary(run),
        "incompleteTests": run.get("incompleteTests"),
        "notApplicableTests": run.get("notApplicableTests"),
        "startedDate": run.get("startedDate"),
        "completedDate": run.get("completedDate"),
        "build": run.get("build"),
        "release": run.get("release"),
        "releaseEnvironmentUri": run.get("releaseEnvironmentUri"),
        "comment": run.get("comment"),
        "errorMessage": run.get("errorMessage"),
        "url": run.get("webAccessUrl"),
    }


@test_result_tools.operation(
    project=PROJECT,
    runId=number("Test run ID"),
    top=number("Max results to return", default=100),
)
def get_test_results(client, args):
    """Get test results from a test run - shows which tests passed/failed"""
    project = client.require_project(args.get("project"))
    top = whole_number(args, "top")
    results = client.get_test_api().list_results(project, whole_number(args, "runId"))
    return [
        {
            "id": r.get("id"),
            "testCaseTitle": r.get("testCaseTitle"),
            "automatedTestName": r.get("automatedTestName"),
            "outcome": r.get("outcome"),
            "state": r.get("state"),
            "durationInMs": r.get("durationInMs"),
            "errorMessage": r.get("errorMessage"),
            "stackTrace": r.get("stackTrace"),
            "failureType": r.get("failureType"),
            "computerName": r.get("computerName"),
            "startedDate": r.get("startedDate"),
            "completedDate": r.get("completedDate"),
            "testCase": _reference(r.get("testCase")),
            "build": _reference(r.get("build")),
        }
        for r in results[:top]
    ]


@test_result_tools.operation(project=PROJECT, runId=number("Test run ID"))
def get_failed_tests(client, args):
    """Get failed tests from a test run - useful for investigating failures"""
    project = client.require_project(args.get("project"))
    run_id = whole_number(args, "runId")
    results = client.get_test_api().list_results(project, run_id)
    failed = [r for r in results if r.get("outcome") == FAILED]
    return {
        "runId": run_id,
        "totalTests": len(results),
        "failedCount": len(failed),
        "failedTests": [
            {
                "id": r.get("id"),
                "testCaseTitle": r.get("testCaseTitle"),
                "automatedTestName": r.get("automatedTestName"),
                "durationInMs": r.get("durationInMs"),
                "errorMessage": r.get("errorMessage"),
                "stackTrace": r["stackTrace"][:MAX_STACK_TRACE] if r.get("stackTrace") else r.get("stackTrace"),
                "failureType": r.get("failureType"),
                "startedDate": r.get("startedDate"),
            }
            for r in failed
        ],
    }


@test_result_tools.operation(project=PROJECT, buildId=number("Build ID"))
def get_test_runs_for_build(client, args):
    """Get test runs associated with a specific build"""
    project = client.require_project(args.get("project"))
    build_id = whole_number(args, "buildId")
    build = client.get_build_api().get_build(project, build_id)
    runs = client.get_test_api().list_runs(project, build_uri=build.get("uri"))

    return {
        "buildId": build_id,
        "buildNumber": build.get("buildNumber"),
        "testRunCount": len(runs),
        "testRuns": [
            {
                **_run_summary(r),
                "startedDate": r.get("startedDate"),
                "completedDate": r.get("completedDate"),
            }
            for r in runs
        ],
        "summary": {
            "totalTests": sum(r.get("totalTests") or 0 for r in runs),
            "passedTests": sum(r.get("passedTests") or 0 for r in runs),
            "failedTests": sum(r.get("unanalyzedTests") or 0 for r in runs),
        },
    }


@test_result_tools.operation(project=PROJECT, buildId=number("Build ID to analyze"))
def analyze_test_failures(client, args):
    """Analyze test failures in a build - groups failures by error type"""
    test_api = client.get_test_api()
    project = client.require_project(args.get("project"))
    build_id = whole_number(args, "buildId")

    build = client.get_build_api().get_build(project, build_id)
    runs = test_api.list_runs(project, build_uri=build.get("uri"))

    failures = []
    for run in runs:
        run_id = run.get("id")
        if not run_id:
            continue
        for result in test_api.list_results(project, run_id):
            if result.get("outcome") == FAILED:
                failures.append(
                    {
                        "testName": result.get("automatedTestName") or result.get("testCaseTitle") or "Unknown",
                        "errorMessage": result.get("errorMessage"),
                        "failureType": result.get("failureType"),
                        "runId": run_id,
                    }
                )

    return {
        "buildId": build_id,
        "buildNumber": build.get("buildNumber"),
        "totalFailures": len(failures),
        "failureGroups": group_failures(failures),
    }
