"""Azure DevOps client facade with lazily created per-domain sub-clients."""

import logging
import threading
import uuid
from base64 import b64encode
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from .apis import (
    BuildOperations,
    CoreOperations,
    GitOperations,
    ReleaseOperations,
    TestResultOperations,
    WorkItemOperations,
)
from .config import AdoMcpConfig
from .errors import (
    AdoApiError,
    AdoAuthenticationError,
    AdoConfigurationError,
    AdoNetworkError,
    AdoNotFoundError,
    AdoTimeoutError,
)

logger = logging.getLogger(__name__)

API_VERSION = "6.0"


class AdoClient:
    """
    A client for the Azure DevOps Server REST API.

    Authenticates with a Personal Access Token and hands out one sub-client per
    domain area (core, git, build, work items, release, test). Sub-clients are
    created on first use and cached for the lifetime of the facade.

    Args:
        config (AdoMcpConfig): Validated configuration. Defaults to one read
            from the environment.
        session (requests.Session, optional): Session to send requests with.
    """

    def __init__(self, config: AdoMcpConfig | None = None, session: requests.Session | None = None):
        """Initialize the Azure DevOps client."""
        self.config = config or AdoMcpConfig.from_env()
        self.collection_url = self.config.collection_url
        self.release_url = self.config.release_collection_url
        self.session = session or self._create_session()

        # Generate correlation ID for this client instance
        self.correlation_id = str(uuid.uuid4())

        encoded_pat = b64encode(f":{self.config.pat}".encode("utf-8")).decode("ascii")
        self.headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Basic {encoded_pat}",
        }

        self._core_api: CoreOperations | None = None
        self._git_api: GitOperations | None = None
        self._build_api: BuildOperations | None = None
        self._work_item_api: WorkItemOperations | None = None
        self._release_api: ReleaseOperations | None = None
        self._test_api: TestResultOperations | None = None
        self._api_lock = threading.Lock()

        logger.info(
            f"AdoClient initialized for {self.collection_url} with correlation_id={self.correlation_id}"
        )

    def _create_session(self) -> requests.Session:
        """
        Create a requests session with connection pooling.

        Returns:
            requests.Session: Configured session with pooling
        """
        session = requests.Session()
        adapter = HTTPAdapter(
            pool_connections=self.config.connection_pool.max_pool_connections,
            pool_maxsize=self.config.connection_pool.max_pool_size,
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def close(self):
        """Close the underlying HTTP session."""
        logger.info("Closing connection pool session")
        self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit with cleanup."""
        self.close()

    # Project resolution

    def get_default_project(self) -> str | None:
        return self.config.default_project

    def require_project(self, project: str | None = None) -> str:
        """
        Resolve the project a tool should run against.

        Args:
            project: Explicit project name or ID, if the caller gave one.

        Returns:
            str: ``project`` if given, otherwise the configured default.

        Raises:
            AdoConfigurationError: If neither is available.
        """
        resolved = project or self.config.default_project
        if not resolved:
            raise AdoConfigurationError(
                "Project is required. Specify project parameter or set "
                "AZURE_DEVOPS_PROJECT environment variable."
            )
        return resolved

    # Sub-client accessors

    def _lazy(self, attr: str, factory):
        """Create the sub-client stored in ``attr`` once, even under concurrent calls."""
        with self._api_lock:
            api = getattr(self, attr)
            if api is None:
                api = factory(self)
                setattr(self, attr, api)
            return api

    def get_core_api(self) -> CoreOperations:
        return self._lazy("_core_api", CoreOperations)

    def get_git_api(self) -> GitOperations:
        return self._lazy("_git_api", GitOperations)

    def get_build_api(self) -> BuildOperations:
        return self._lazy("_build_api", BuildOperations)

    def get_work_item_api(self) -> WorkItemOperations:
        return self._lazy("_work_item_api", WorkItemOperations)

    def get_release_api(self) -> ReleaseOperations:
        return self._lazy("_release_api", ReleaseOperations)

    def get_test_api(self) -> TestResultOperations:
        return self._lazy("_test_api", TestResultOperations)

    # HTTP

    def _validate_response(self, response: requests.Response) -> None:
        """
        Check if the response indicates an authentication failure.

        Azure DevOps Server answers some unauthenticated requests with an HTML
        sign-in page and a 200 status instead of a 401.

        Raises:
            AdoAuthenticationError: If the response indicates authentication failure.
        """
        content_type = response.headers.get("Content-Type", "")
        if response.status_code in (401, 403) or (
            "text/html" in content_type and "Sign In" in response.text
        ):
            logger.error(
                f"Authentication failed for {response.url} (status {response.status_code})"
            )
            raise AdoAuthenticationError(
                "Authentication failed. The Personal Access Token (PAT) is likely invalid, "
                "expired, or lacks the required scopes.",
                context={
                    "correlation_id": self.correlation_id,
                    "url": str(response.url),
                    "status_code": response.status_code,
                },
            )

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        """Pull the server's own error message out of a failed response."""
        try:
            body = response.json()
        except ValueError:
            return (response.text or "").strip()[:200]
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return ""

    def _send_request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """
        Send an authenticated request to the Azure DevOps API.

        ``api-version`` is added to the query string unless the caller set it.
        ``None`` values in ``params`` are dropped.

        Args:
            method (str): The HTTP method (e.g., 'GET', 'POST').
            url (str): The full URL for the API endpoint.
            params (dict, optional): Query string parameters.
            json (Any, optional): JSON request body.

        Returns:
            The parsed JSON response, or None if the response has no content.

        Raises:
            AdoAuthenticationError: For 401/403 responses or a sign-in page.
            AdoNotFoundError: For 404 responses.
            AdoApiError: For other HTTP errors.
            AdoTimeoutError: If the request times out.
            AdoNetworkError: For connection failures.
        """
        query = {key: value for key, value in (params or {}).items() if value is not None}
        query.setdefault("api-version", API_VERSION)
        context = {"correlation_id": self.correlation_id, "method": method, "url": url}

        logger.debug(f"{method} {url} params={query}")
        try:
            response = self.session.request(
                method,
                url,
                params=query,
                json=json,
                headers=self.headers,
                timeout=self.config.request_timeout_seconds,
            )
        except requests.exceptions.Timeout as e:
            raise AdoTimeoutError(
                f"Request timeout for {method} {url}",
                timeout_seconds=self.config.request_timeout_seconds,
                context=context,
                original_exception=e,
            ) from e
        except requests.exceptions.RequestException as e:
            raise AdoNetworkError(
                f"Network error for {method} {url}: {e}",
                context={**context, "error_type": type(e).__name__},
                original_exception=e,
            ) from e

        self._validate_response(response)

        if response.status_code == 404:
            detail = self._error_detail(response)
            raise AdoNotFoundError(
                detail or f"Resource not found: {url}",
                context=context,
            )

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            detail = self._error_detail(response)
            logger.error(f"HTTP Error: {e} - Response Body: {detail or 'No response'}")
            message = f"{response.status_code} {response.reason}"
            if detail:
                message = f"{message}: {detail}"
            raise AdoApiError(
                message,
                status_code=response.status_code,
                context=context,
                original_exception=e,
            ) from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise AdoApiError(
                f"Malformed response from {method} {url}: expected JSON",
                status_code=response.status_code,
                context=context,
                original_exception=e,
            ) from e

    def get(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET ``url`` with ``params`` as the query string."""
        return self._send_request("GET", url, params=params)

    def get_list(self, url: str, params: dict[str, Any] | None = None) -> list[Any]:
        """GET a collection endpoint and unwrap its ``value`` array."""
        response = self._send_request("GET", url, params=params)
        if isinstance(response, dict):
            return response.get("value", [])
        return response or []

    def post(self, url: str, body: Any, params: dict[str, Any] | None = None) -> Any:
        return self._send_request("POST", url, params=params, json=body)

    def check_connection(self) -> dict[str, Any]:
        """
        Verify that the server is reachable and the credentials are valid.

        Returns:
            dict: The connectionData document for the authenticated user.

        Raises:
            AdoAuthenticationError: If the server reports an anonymous user.
        """
        url = f"{self.collection_url}/_apis/connectionData"
        data = self._send_request("GET", url, params={"api-version": "6.0-preview"}) or {}
        user = data.get("authenticatedUser", {})
        if user.get("providerDisplayName") == "Anonymous":
            raise AdoAuthenticationError(
                "Authentication failed. The server treated the request as anonymous.",
                context={"correlation_id": self.correlation_id, "url": url},
            )
        logger.info(f"✅ Connected to {self.collection_url} as {user.get('providerDisplayName')}")
        return data
