"""Azure DevOps MCP Server - expose team-board scoped work items to AI assistants."""
import asyncio
import logging
import sys
import traceback
from typing import Any, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import EmbeddedResource, ImageContent, TextContent, Tool
from pydantic import ValidationError

from ado_core.access_control import TeamBoardPolicy
from ado_core.auth import PatAuthProvider
from ado_core.client import AzureDevOpsClient
from ado_core.config import Settings, get_settings
from ado_core.errors import AzureDevOpsError, AzureDevOpsValidationError, UpstreamFailure
from ado_core.team_resolver import TeamResolver

from . import handlers
from . import tools

logger = logging.getLogger("ado-mcp")


def configure_logging(level: str = "INFO") -> None:
    """Log to stderr; stdout carries the MCP protocol."""
    logging.basicConfig(
        level=level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
        force=True
    )


def build_policy(settings: Settings, client: AzureDevOpsClient) -> Optional[TeamBoardPolicy]:
    """Team-board policy for this process, or None in open mode."""
    if not settings.enforce_team_boards:
        logger.warning("Team board restrictions are DISABLED (AZURE_DEVOPS_ENFORCE_TEAM_BOARDS=false)")
        return None

    policy = TeamBoardPolicy(settings.allowed_team_boards, TeamResolver(client))
    if policy.allowed_teams:
        logger.info(f"Team board access limited to: {', '.join(policy.allowed_teams)}")
    else:
        logger.warning("No allowed team boards configured; all work item access will be denied")
    return policy


def create_server(
    settings: Settings,
    client: AzureDevOpsClient,
    policy: Optional[TeamBoardPolicy] = None,
) -> Server:
    """Create the MCP server around one client and one policy (and so one team cache)."""
    app = Server("ado-mcp")

    @app.list_tools()
    async def list_tools() -> list[Tool]:
        """List available work item tools."""
        return tools.get_tools()

    @app.call_tool()
    async def call_tool(name: str, arguments: Any) -> list[TextContent | ImageContent | EmbeddedResource]:
        """Handle MCP tool calls by delegating to the work item handlers."""
        logger.info(f"Tool call: {name} with arguments: {arguments}")
        return await handle_tool_call(name, arguments, client, policy, settings)

    return app


class ToolCallError(Exception):
    """A failed tool call.

    Raised out of ``call_tool`` so the MCP server reports the message as a
    result with ``isError`` set.
    """


async def handle_tool_call(
    name: str,
    arguments: Any,
    client: AzureDevOpsClient,
    policy: Optional[TeamBoardPolicy],
    settings: Settings,
) -> list[TextContent]:
    """Run a tool; any failure becomes a ToolCallError carrying the message for the caller."""
    try:
        return await handlers.dispatch(name, arguments, client, policy, settings)

    except ValidationError as e:
        logger.warning(f"Invalid arguments for {name}: {e}")
        raise ToolCallError(f"Error: Invalid arguments for {name}: {e}") from e

    except AzureDevOpsValidationError as e:
        # Policy denials and rejected requests
        logger.warning(f"{name} rejected: {type(e).__name__}: {e}")
        raise ToolCallError(f"Error: {e}") from e

    except UpstreamFailure as e:
        logger.error(f"Azure DevOps call failed during {name}:")
        logger.error(f"  Error type: {type(e).__name__}")
        logger.error(f"  Status: {e.status_code}")
        logger.error(f"  Retryable: {e.retryable}")
        logger.error(f"  Error message: {str(e)}")
        hint = " (transient, retry later)" if e.retryable else ""
        raise ToolCallError(f"Error: {e}{hint}") from e

    except AzureDevOpsError as e:
        logger.error(f"Error during {name} call: {type(e).__name__}: {e}")
        raise ToolCallError(f"Error: {e}") from e

    except Exception as e:
        # Catch-all for unexpected errors
        logger.error(f"Unexpected error during {name} call:")
        logger.error(f"  Error type: {type(e).__name__}")
        logger.error(f"  Error message: {str(e)}")
        logger.error(f"  Arguments: {arguments}")
        logger.error(f"  Traceback:\n{traceback.format_exc()}")
        raise ToolCallError(f"Error: {type(e).__name__}: {str(e)}") from e


async def main():
    """Run the MCP server over stdio."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(f"MCP Server starting for organization: {settings.organization_url}")

    auth = PatAuthProvider(settings.personal_access_token)
    async with AzureDevOpsClient.from_settings(settings, auth) as client:
        app = create_server(settings, client, build_policy(settings, client))
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
