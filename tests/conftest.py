"""Shared fixtures: a configuration that never touches the environment and a mocked client facade."""

from unittest.mock import Mock

import pytest

from azdo.config import AdoMcpConfig
from azdo.dispatcher import Dispatcher
from azdo.tools import build_registry

DEFAULT_PROJECT = "Demo"

AZDO_ENV_VARS = (
    "AZURE_DEVOPS_URL",
    "AZURE_DEVOPS_PAT",
    "AZURE_DEVOPS_COLLECTION",
    "AZURE_DEVOPS_PROJECT",
    "AZURE_DEVOPS_RELEASE_URL",
    "AZURE_DEVOPS_VERIFY_ON_START",
    "ADO_REQUEST_TIMEOUT",
    "ADO_CONNECTION_POOL_MAX_CONNECTIONS",
    "ADO_CONNECTION_POOL_MAX_SIZE",
    "ADO_TELEMETRY_ENABLED",
    "ADO_TELEMETRY_SERVICE_NAME",
    "ADO_TELEMETRY_TRACE_SAMPLING_RATE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep a developer's .env from leaking into unit tests."""
    for name in AZDO_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config():
    return AdoMcpConfig(
        server_url="https://ado.example.com/tfs",
        pat="test-pat",
        collection="DefaultCollection",
        default_project=DEFAULT_PROJECT,
        request_timeout_seconds=5,
    )


def _require_project(project=None):
    return project or DEFAULT_PROJECT


@pytest.fixture
def mock_client():
    """
    A stand-in for AdoClient.

    Each ``get_*_api()`` returns the same Mock every time, so tests configure
    ``mock_client.git_api`` and friends directly.
    """
    client = Mock()
    client.require_project.side_effect = _require_project
    client.get_default_project.return_value = DEFAULT_PROJECT

    client.core_api = Mock()
    client.git_api = Mock()
    client.build_api = Mock()
    client.work_item_api = Mock()
    client.release_api = Mock()
    client.test_api = Mock()

    client.get_core_api.return_value = client.core_api
    client.get_git_api.return_value = client.git_api
    client.get_build_api.return_value = client.build_api
    client.get_work_item_api.return_value = client.work_item_api
    client.get_release_api.return_value = client.release_api
    client.get_test_api.return_value = client.test_api
    return client


@pytest.fixture
def call_tool(mock_client):
    """Call a built-in tool through the dispatcher against ``mock_client``."""
    dispatcher = Dispatcher(build_registry(), mock_client)

    async def call(name, arguments=None):
        return await dispatcher.call(name, arguments or {})

    return call
