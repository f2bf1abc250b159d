"""Tests for the test run and test result tools."""

from azdo.tools.testresults import MAX_STACK_TRACE, group_failures

BUILD_URI = "vstfs:///Build/Build/42"


def _run(run_id, total=10, passed=8, unanalyzed=2):
    return {
        "id": run_id,
        "name": f"Run {run_id}",
        "state": "Completed",
        "totalTests": total,
        "passedTests": passed,
        "unanalyzedTests": unanalyzed,
        "build": {"id": "42", "name": "20240101.1", "url": "x"},
        "webAccessUrl": f"https://ado/runs/{run_id}",
    }


class TestRuns:
    async def test_list_runs_reports_unanalyzed_as_failed(self, call_tool, mock_client):
        mock_client.test_api.list_runs.return_value = [_run(1), _run(2)]
        envelope = await call_tool("list_test_runs", {"buildUri": BUILD_URI, "top": 1})

        mock_client.test_api.list_runs.assert_called_once_with("Demo", build_uri=BUILD_URI)
        assert len(envelope.payload) == 1
        run = envelope.payload[0]
        assert run["failedTests"] == 2
        assert run["build"] == {"id": "42", "name": "20240101.1"}
        assert run["release"] is None
        assert run["url"] == "https://ado/runs/1"

    async def test_runs_for_build_are_summed(self, call_tool, mock_client):
        mock_client.build_api.get_build.return_value = {"id": 42, "buildNumber": "20240101.1", "uri": BUILD_URI}
        mock_client.test_api.list_runs.return_value = [_run(1), _run(2, total=5, passed=5, unanalyzed=None)]

        envelope = await call_tool("get_test_runs_for_build", {"buildId": 42})

        mock_client.test_api.list_runs.assert_called_once_with("Demo", build_uri=BUILD_URI)
        assert envelope.payload["testRunCount"] == 2
        assert envelope.payload["summary"] == {"totalTests": 15, "passedTests": 13, "failedTests": 2}


class TestFailedTests:
    async def test_only_failed_outcomes_with_trimmed_stack(self, call_tool, mock_client):
        mock_client.test_api.list_results.return_value = [
            {"id": 1, "outcome": "Passed", "automatedTestName": "Tests.Ok"},
            {
                "id": 2,
                "outcome": "Failed",
                "automatedTestName": "Tests.Login",
                "errorMessage": "Expected 200 but was 500",
                "stackTrace": "at Tests.Login()\n" * 200,
            },
            {"id": 3, "outcome": "Failed", "automatedTestName": "Tests.Logout"},
        ]

        envelope = await call_tool("get_failed_tests", {"runId": 7})

        payload = envelope.payload
        assert payload["runId"] == 7
        assert payload["totalTests"] == 3
        assert payload["failedCount"] == 2
        assert len(payload["failedTests"][0]["stackTrace"]) == MAX_STACK_TRACE
        assert payload["failedTests"][1]["stackTrace"] is None

    async def test_results_are_limited(self, call_tool, mock_client):
        mock_client.test_api.list_results.return_value = [{"id": i, "outcome": "Passed"} for i in range(150)]
        envelope = await call_tool("get_test_results", {"runId": 7})
        assert len(envelope.payload) == 100


class TestAnalyzeTestFailures:
    async def test_failures_are_grouped_across_runs(self, call_tool, mock_client):
        mock_client.build_api.get_build.return_value = {"id": 42, "buildNumber": "20240101.1", "uri": BUILD_URI}
        mock_client.test_api.list_runs.return_value = [_run(1), _run(2), {"name": "no id"}]
        results = {
            1: [
                {"outcome": "Failed", "automatedTestName": "A", "errorMessage": "Timeout after 30s"},
                {"outcome": "Failed", "automatedTestName": "B", "errorMessage": "Timeout after 30s"},
                {"outcome": "Passed", "automatedTestName": "C"},
            ],
            2: [
                {"outcome": "Failed", "testCaseTitle": "D", "errorMessage": "NullReferenceException"},
                {"outcome": "Failed", "automatedTestName": "E", "errorMessage": "Timeout after 30s"},
            ],
        }
        mock_client.test_api.list_results.side_effect = lambda project, run_id: results[run_id]

        envelope = await call_tool("analyze_test_failures", {"buildId": 42})

        assert mock_client.test_api.list_results.call_count == 2
        payload = envelope.payload
        assert payload["totalFailures"] == 4
        assert payload["failureGroups"] == [
            {"errorMessage": "Timeout after 30s", "count": 3, "affectedTests": ["A", "B", "E"]},
            {"errorMessage": "NullReferenceException", "count": 1, "affectedTests": ["D"]},
        ]


class TestGroupFailures:
    def test_key_is_first_hundred_characters(self):
        prefix = "x" * 100
        groups = group_failures(
            [
                {"testName": "A", "errorMessage": prefix + " first"},
                {"testName": "B", "errorMessage": prefix + " second"},
            ]
        )
        assert groups == [{"errorMessage": prefix, "count": 2, "affectedTests": ["A", "B"]}]

    def test_missing_message(self):
        groups = group_failures([{"testName": "A", "errorMessage": None}, {"testName": "B", "errorMessage": ""}])
        assert groups == [{"errorMessage": "Unknown error", "count": 2, "affectedTests": ["A", "B"]}]

    def test_affected_tests_are_capped(self):
        groups = group_failures([{"testName": f"T{i}", "errorMessage": "boom"} for i in range(8)])
        assert groups[0]["count"] == 8
        assert groups[0]["affectedTests"] == ["T0", "T1", "T2", "T3", "T4"]

    def test_at_most_twenty_groups(self):
        groups = group_failures([{"testName": "T", "errorMessage": f"error {i}"} for i in range(30)])
        assert len(groups) == 20
