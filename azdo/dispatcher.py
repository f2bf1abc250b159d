"""Uniform entry point that turns a named tool call into a CallEnvelope."""

import asyncio
import inspect
import logging
from typing import Any

import pydantic_core
from pydantic import BaseModel, Field

from .errors import AdoError, ToolValidationError, UnknownOperationError
from .registry import OperationDescriptor, ToolRegistry
from .telemetry import TelemetryManager, get_telemetry_manager

logger = logging.getLogger(__name__)


class CallEnvelope(BaseModel):
    """
    Result of one dispatch: either a payload or an error message, never both.

    The transport renders it as a single text block plus an error flag.
    """

    ok: bool = Field(..., description="True when the tool ran to completion")
    payload: Any = Field(None, description="Handler return value on success")
    error_message: str | None = Field(None, description="Readable failure reason")

    @classmethod
    def success(cls, payload: Any) -> "CallEnvelope":
        return cls(ok=True, payload=payload)

    @classmethod
    def failure(cls, message: str) -> "CallEnvelope":
        return cls(ok=False, error_message=message)

    def to_text(self) -> str:
        """Pretty-printed JSON of the payload, or the error message."""
        if not self.ok:
            return self.error_message or ""
        return pydantic_core.to_json(self.payload, indent=2, fallback=str).decode("utf-8")


def error_message_of(exc: BaseException) -> str:
    """Extract a human-readable message from any exception."""
    message = str(exc).strip()
    return message or type(exc).__name__


class Dispatcher:
    """
    Looks up, validates and runs tools, wrapping every outcome in a CallEnvelope.

    Each call is independent: the dispatcher keeps no per-call state, so a failed
    call never affects the next one.

    Args:
        registry: The tools that can be called.
        client: The upstream client facade handed to every handler.
        telemetry: Optional telemetry manager. Defaults to the global one.
    """

    def __init__(self, registry: ToolRegistry, client: Any, telemetry: TelemetryManager | None = None):
        self.registry = registry
        self.client = client
        self.telemetry = telemetry or get_telemetry_manager()

    def list_operations(self) -> list[OperationDescriptor]:
        return self.registry.list_all()

    async def call(self, name: str, arguments: Any = None, client: Any = None) -> CallEnvelope:
        """
        Run tool ``name`` with raw ``arguments``.

        Never raises for tool failures; ``asyncio.CancelledError`` is the only
        exception allowed through.
        """
        spec = self.registry.lookup(name)
        if spec is None:
            logger.warning(f"Call to unknown tool: {name}")
            return CallEnvelope.failure(str(UnknownOperationError(name)))

        try:
            validated = spec.parameters.validate(arguments)
        except ToolValidationError as e:
            logger.warning(f"Invalid arguments for {name}: {e}")
            return CallEnvelope.failure(f"Invalid arguments: {e}")

        facade = client if client is not None else self.client
        logger.info(f"Executing tool {name}")
        try:
            if self.telemetry and self.telemetry.initialized:
                with self.telemetry.trace_tool_call(name):
                    result = await self._invoke(spec.handler, facade, validated)
            else:
                result = await self._invoke(spec.handler, facade, validated)
        except ToolValidationError as e:
            logger.warning(f"Invalid arguments for {name}: {e}")
            return CallEnvelope.failure(f"Invalid arguments: {e}")
        except AdoError as e:
            logger.error(f"Error executing {name}: [{e.error_code}] {e}")
            return CallEnvelope.failure(f"Error executing {name}: {error_message_of(e)}")
        except Exception as e:
            logger.exception(f"Error executing {name}")
            return CallEnvelope.failure(f"Error executing {name}: {error_message_of(e)}")

        return CallEnvelope.success(result)

    @staticmethod
    async def _invoke(handler, facade: Any, arguments: dict[str, Any]) -> Any:
        if inspect.iscoroutinefunction(handler):
            return await handler(facade, arguments)
        # Blocking HTTP handlers run off the event loop.
        result = await asyncio.to_thread(handler, facade, arguments)
        if inspect.isawaitable(result):
            result = await result
        return result
