"""Azure DevOps MCP Server - Expose Azure DevOps to AI assistants."""
import sys
import asyncio
import logging
import traceback
from typing import Any, Awaitable, Callable, Optional, Sequence

import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from . import handlers
from . import tools
from .client import AzureDevOpsClient, describe_http_error
from .config import ConfigurationError, Settings, get_settings
from .rate_limit import RateLimitExceeded
from .validation import ValidationError

logger = logging.getLogger("ado-mcp")

Handler = Callable[[dict, AzureDevOpsClient], Awaitable[list[TextContent]]]


# Map tool names to handler functions
HANDLERS: dict[str, Handler] = {
    # Project handlers
    "list_projects": handlers.handle_list_projects,
    "get_project": handlers.handle_get_project,
    # Work item handlers
    "list_work_items": handlers.handle_list_work_items,
    "wit_my_work_items": handlers.handle_wit_my_work_items,
    "wit_get_work_item": handlers.handle_wit_get_work_item,
    "wit_create_work_item": handlers.handle_wit_create_work_item,
    "wit_update_work_item": handlers.handle_wit_update_work_item,
    "wit_list_work_item_comments": handlers.handle_wit_list_work_item_comments,
    "wit_get_work_items_for_iteration": handlers.handle_wit_get_work_items_for_iteration,
    "wit_add_work_item_comment": handlers.handle_wit_add_work_item_comment,
    "wit_work_items_link": handlers.handle_wit_work_items_link,
    "wit_run_query": handlers.handle_wit_run_query,
    "wit_search_work_items": handlers.handle_wit_search_work_items,
    # Work tracking handlers
    "work_list_iterations": handlers.handle_list_iterations,
    "work_list_areas": handlers.handle_list_areas,
    "work_create_iteration": handlers.handle_create_iteration,
    "work_create_area": handlers.handle_create_area,
    # Legacy names, not advertised by list_tools
    "list_iterations": handlers.handle_list_iterations,
    "list_areas": handlers.handle_list_areas,
    "create_iteration": handlers.handle_create_iteration,
    "create_area": handlers.handle_create_area,
    # Repository handlers
    "repo_list_repos_by_project": handlers.handle_list_repositories,
    "repo_get_repo_by_name_or_id": handlers.handle_get_repository,
    "repo_list_branches_by_repo": handlers.handle_list_branches,
    "repo_get_branch_by_name": handlers.handle_get_branch,
    "repo_list_pull_requests_by_repo": handlers.handle_list_pull_requests,
    "repo_list_pull_requests_by_project": handlers.handle_list_pull_requests_by_project,
    "repo_get_pull_request_by_id": handlers.handle_get_pull_request,
    "repo_create_pull_request": handlers.handle_create_pull_request,
    "repo_update_pull_request_status": handlers.handle_update_pull_request_status,
    "repo_list_pull_request_threads": handlers.handle_list_pull_request_threads,
    "repo_list_pull_request_thread_comments": handlers.handle_list_pull_request_thread_comments,
    "repo_reply_to_comment": handlers.handle_reply_to_comment,
    "repo_resolve_comment": handlers.handle_resolve_comment,
    # Build handlers
    "list_build_definitions": handlers.handle_list_build_definitions,
    "run_build": handlers.handle_run_build,
    "get_build_status": handlers.handle_get_build_status,
    "list_builds": handlers.handle_list_builds,
    "get_build_logs": handlers.handle_get_build_logs,
    "get_build_log_content": handlers.handle_get_build_log_content,
    "get_build_changes": handlers.handle_get_build_changes,
    # Search handlers
    "search_code": handlers.handle_search_code,
    # Test plan handlers
    "create_test_plan": handlers.handle_create_test_plan,
    "list_test_plans": handlers.handle_list_test_plans,
    "create_test_suite": handlers.handle_create_test_suite,
    "create_test_case": handlers.handle_create_test_case,
    "add_test_cases_to_suite": handlers.handle_add_test_cases_to_suite,
    "list_test_cases": handlers.handle_list_test_cases,
    "run_test_case": handlers.handle_run_test_case,
    "get_test_results": handlers.handle_get_test_results,
    "get_test_results_by_build": handlers.handle_get_test_results_by_build,
    # Release handlers
    "list_release_definitions": handlers.handle_list_release_definitions,
    "list_releases": handlers.handle_list_releases,
    "create_release": handlers.handle_create_release,
    "deploy_release": handlers.handle_deploy_release,
    # Wiki handlers
    "list_wikis": handlers.handle_list_wikis,
    "get_wiki_page": handlers.handle_get_wiki_page,
    "create_wiki_page": handlers.handle_create_wiki_page,
    "update_wiki_page": handlers.handle_update_wiki_page,
}


def configure_logging(level: str = "INFO") -> None:
    """Configure logging to stderr (stdout carries the MCP stream)."""
    logging.basicConfig(
        level=level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
        force=True
    )


def _error(name: str, reason: str) -> list[TextContent]:
    return [TextContent(type="text", text=f"Error in {name}: {reason}")]


async def dispatch(name: str, arguments: Optional[dict], client: AzureDevOpsClient) -> list[TextContent]:
    """Run the handler registered for a tool and turn failures into error text.

    Handlers raise; this is the only place exceptions become tool output.
    """
    logger.info(f"Tool call: {name} with arguments: {arguments}")

    handler = HANDLERS.get(name)
    if not handler:
        logger.warning(f"Unknown tool requested: {name}")
        return [TextContent(type="text", text=f"Unknown tool: {name}")]

    try:
        return await handler(arguments or {}, client)

    except (ValidationError, RateLimitExceeded) as e:
        logger.warning(f"{name} rejected: {e}")
        return _error(name, str(e))

    except httpx.HTTPStatusError as e:
        # Log detailed HTTP error information
        logger.error(f"HTTP error during {name} call:")
        logger.error(f"  Status: {e.response.status_code}")
        logger.error(f"  URL: {e.request.url}")
        logger.error(f"  Request body: {e.request.content}")
        logger.error(f"  Response text: {e.response.text}")
        return _error(name, describe_http_error(e))

    except httpx.RequestError as e:
        # Network/connection errors
        logger.error(f"Request error during {name} call:")
        logger.error(f"  Error type: {type(e).__name__}")
        logger.error(f"  Error message: {str(e)}")
        return _error(name, describe_http_error(e))

    except Exception as e:
        # Catch-all for unexpected errors
        logger.error(f"Unexpected error during {name} call:")
        logger.error(f"  Error type: {type(e).__name__}")
        logger.error(f"  Error message: {str(e)}")
        logger.error(f"  Traceback:\n{traceback.format_exc()}")
        return _error(name, f"{type(e).__name__}: {str(e)}")


def create_server(client: AzureDevOpsClient) -> Server:
    """Build the MCP server bound to one Azure DevOps client."""
    app = Server("ado-mcp")

    @app.list_tools()
    async def list_tools() -> list[Tool]:
        """List available MCP tools for Azure DevOps."""
        return tools.get_tools()

    @app.call_tool()
    async def call_tool(name: str, arguments: Any) -> list[TextContent]:
        """Handle MCP tool calls by delegating to the handlers."""
        return await dispatch(name, arguments, client)

    return app


async def serve(settings: Settings) -> None:
    """Run the MCP server over stdio until the client disconnects."""
    async with AzureDevOpsClient(settings) as client:
        app = create_server(client)
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Console entry point: ado-mcp [organization]."""
    configure_logging()
    if argv is None:
        argv = sys.argv[1:]

    try:
        settings = get_settings(argv)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    configure_logging(settings.log_level)
    logger.info(f"MCP Server starting for organization: {settings.organization}")
    logger.info(f"API base URL: {settings.organization_url} (api-version {settings.api_version})")
    asyncio.run(serve(settings))


if __name__ == "__main__":
    main()
