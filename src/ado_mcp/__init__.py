"""Azure DevOps MCP Server - Model Context Protocol integration.

This package exposes Azure DevOps work items to AI assistants, restricted to
the team boards allowed by configuration.

Modules:
- server: stdio MCP server implementation
- formatters: Response formatting utilities
- tools: MCP tool definitions
- handlers: Tool implementation handlers and dispatch
"""

__version__ = "1.0.0"

from . import formatters
from . import tools
from . import handlers

__all__ = ["formatters", "tools", "handlers", "__version__"]
