"""Azure DevOps MCP Server - Model Context Protocol integration.

This package exposes the Azure DevOps REST API as MCP tools, enabling AI
assistants to work with projects, work items, repositories, builds, test
plans, releases and wikis.

Modules:
- server: stdio MCP server implementation and tool dispatch
- client: rate-limited HTTP client for the Azure DevOps REST API
- config: startup settings (organization, PAT, endpoints)
- rate_limit: fixed-window rate limiter
- validation: input validation and WIQL escaping
- formatters: Response formatting utilities
- tools: MCP tool definitions
- handlers: Tool implementation handlers
"""

__version__ = "1.0.0"

from . import formatters
from . import tools
from . import handlers

__all__ = ["formatters", "tools", "handlers", "__version__"]
