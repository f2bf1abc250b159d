import logging
import os
import sys
from typing import Any

from fastmcp import FastMCP
from fastmcp.tools import Tool, ToolResult
from mcp.types import TextContent
from pydantic import Field

from azdo import __version__
from azdo.client import AdoClient
from azdo.config import REQUIRED_ENV_VARS, AdoMcpConfig
from azdo.dispatcher import Dispatcher
from azdo.errors import AdoError, AdoConfigurationError
from azdo.registry import ToolRegistry
from azdo.telemetry import initialize_telemetry, shutdown_telemetry
from azdo.tools import build_registry

# stdout carries the MCP protocol, so logs go to stderr.
logging.basicConfig(
    level=os.environ.get("ADO_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


class OperationTool(Tool):
    """An MCP tool backed by one registry entry; every call goes through the dispatcher."""

    dispatcher: Any = Field(default=None, exclude=True)

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        envelope = await self.dispatcher.call(self.name, arguments or {})
        return ToolResult(
            content=[TextContent(type="text", text=envelope.to_text())],
            is_error=not envelope.ok,
        )


def create_server(client: AdoClient, registry: ToolRegistry | None = None) -> FastMCP:
    """
    Build the MCP server for ``client``.

    Args:
        client: The Azure DevOps client facade shared by all tools.
        registry: Tools to expose. Defaults to every built-in tool.
    """
    registry = registry or build_registry()
    dispatcher = Dispatcher(registry, client)

    mcp = FastMCP(name="azdo-mcp", version=__version__)
    for descriptor in dispatcher.list_operations():
        mcp.add_tool(
            OperationTool(
                name=descriptor.name,
                description=descriptor.description,
                parameters=descriptor.input_schema,
                dispatcher=dispatcher,
            )
        )
    logger.info(f"Registered {len(registry)} tools")
    return mcp


def main():
    """Main entry point for the azdo-mcp server."""
    try:
        config = AdoMcpConfig.from_env()
    except (AdoConfigurationError, ValueError) as e:
        logger.error(f"❌ {e}")
        logger.error("Required environment variables:")
        for name, description in REQUIRED_ENV_VARS.items():
            logger.error(f"  {name}: {description}")
        sys.exit(1)

    initialize_telemetry(config.telemetry)
    client = AdoClient(config)

    if config.verify_on_start:
        try:
            client.check_connection()
        except AdoError as e:
            logger.error(f"❌ Could not connect to {config.collection_url}: {e}")
            client.close()
            sys.exit(1)

    logger.info(f"Azure DevOps MCP server starting for {config.collection_url}")
    try:
        create_server(client).run()
    finally:
        client.close()
        shutdown_telemetry()


if __name__ == "__main__":  # pragma: no cover
    main()
