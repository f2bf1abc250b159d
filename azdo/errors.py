from typing import Any


class AdoError(Exception):
    """Base exception class for ADO-related errors with structured error information."""

    def __init__(
        self,
        message: str,
        error_code: str,
        context: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        """
        Initialize structured ADO error.

        Args:
            message: Human-readable error message
            error_code: Structured error code for programmatic handling
            context: Additional context information about the error
            original_exception: The original exception that caused this error
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.original_exception = original_exception


class AdoAuthenticationError(AdoError):
    """Custom exception for ADO authentication failures."""

    def __init__(
        self,
        message: str = "Authentication failed",
        context: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            error_code="ADO_AUTH_FAILED",
            context=context,
            original_exception=original_exception,
        )


class AdoApiError(AdoError):
    """Exception for failed upstream calls that are not covered by a narrower class."""

    def __init__(
        self,
        message: str = "Azure DevOps request failed",
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
        error_code: str = "ADO_API_ERROR",
    ):
        context = context or {}
        if status_code:
            context["status_code"] = status_code

        super().__init__(
            message=message,
            error_code=error_code,
            context=context,
            original_exception=original_exception,
        )
        self.status_code = status_code


class AdoNotFoundError(AdoApiError):
    """Exception for resources that do not exist upstream (404 errors)."""

    def __init__(
        self,
        message: str = "Resource not found",
        context: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            status_code=404,
            context=context,
            original_exception=original_exception,
            error_code="ADO_NOT_FOUND",
        )


class AdoTimeoutError(AdoError):
    """Exception for ADO operation timeouts."""

    def __init__(
        self,
        message: str = "Operation timed out",
        timeout_seconds: int | None = None,
        context: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        context = context or {}
        if timeout_seconds:
            context["timeout_seconds"] = timeout_seconds

        super().__init__(
            message=message,
            error_code="ADO_TIMEOUT",
            context=context,
            original_exception=original_exception,
        )
        self.timeout_seconds = timeout_seconds


class AdoNetworkError(AdoError):
    """Exception for network-related failures."""

    def __init__(
        self,
        message: str = "Network error occurred",
        context: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            error_code="ADO_NETWORK_ERROR",
            context=context,
            original_exception=original_exception,
        )


class AdoConfigurationError(AdoError):
    """Exception for configuration-related errors."""

    def __init__(
        self,
        message: str = "Configuration error",
        context: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            error_code="ADO_CONFIG_ERROR",
            context=context,
            original_exception=original_exception,
        )


class ToolValidationError(AdoError):
    """Raised when tool arguments do not match the declared parameter schema."""

    def __init__(self, path: str, reason: str, context: dict[str, Any] | None = None):
        context = context or {}
        context["path"] = path

        super().__init__(
            message=f"{path}: {reason}",
            error_code="TOOL_INVALID_ARGUMENTS",
            context=context,
        )
        self.path = path
        self.reason = reason


class UnknownOperationError(AdoError):
    """Raised when a tool name is not present in the registry."""

    def __init__(self, name: str):
        super().__init__(
            message=f"Unknown tool: {name}",
            error_code="TOOL_UNKNOWN",
            context={"name": name},
        )
        self.name = name


class DuplicateOperationError(AdoError):
    """Raised at startup when two tool tables declare the same tool name."""

    def __init__(self, name: str, context: dict[str, Any] | None = None):
        super().__init__(
            message=f"Tool '{name}' is declared more than once",
            error_code="TOOL_DUPLICATE",
            context={"name": name, **(context or {})},
        )
        self.name = name


class SchemaDefinitionError(AdoError):
    """Raised when a parameter schema itself is malformed."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code="TOOL_BAD_SCHEMA",
            context=context,
        )
