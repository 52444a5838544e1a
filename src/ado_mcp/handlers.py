"""MCP tool handlers for Azure DevOps.

All handlers follow a consistent pattern:
- Accept: arguments dict and an AzureDevOpsClient
- Validate every argument that reaches a URL, query or body before the first request
- Issue one or more requests through the client (each one is rate-limited)
- Call raise_for_status() and let errors propagate to the dispatcher
- Return: list[TextContent] built with the formatters module
"""
from datetime import date
from typing import Optional
import logging

from mcp.types import TextContent

from . import formatters
from .client import JSON_PATCH_HEADERS, AzureDevOpsClient
from .validation import (
    MAX_IDENTIFIER_LENGTH,
    MAX_LARGE_TEXT_LENGTH,
    ValidationError,
    escape_query_literal,
    validate_branch_name,
    validate_id,
    validate_path_segment,
    validate_project_name,
    validate_string_input,
    validate_work_item_id,
)

logger = logging.getLogger("ado-mcp.handlers")


# Work item batch endpoint accepts at most 200 IDs per call
WORK_ITEM_BATCH_SIZE = 200
DEFAULT_LIST_LIMIT = 20

COMMENTS_API_VERSION = "7.0-preview.3"
RELEASE_DEPLOY_API_VERSION = "7.0-preview.7"

LINK_TYPES = {
    "Related": "System.LinkTypes.Related",
    "Parent": "System.LinkTypes.Hierarchy-Reverse",
    "Child": "System.LinkTypes.Hierarchy-Forward",
    "Predecessor": "System.LinkTypes.Dependency-Reverse",
    "Successor": "System.LinkTypes.Dependency-Forward",
}

PULL_REQUEST_STATUSES = ("active", "abandoned", "completed")
THREAD_STATUSES = ("active", "fixed", "wontFix", "closed", "byDesign", "pending")
TEST_OUTCOMES = ("Passed", "Failed", "Blocked", "NotApplicable", "None")
SUITE_TYPES = ("staticTestSuite", "dynamicTestSuite", "requirementTestSuite")


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def _optional_top(arguments: dict, default: int = DEFAULT_LIST_LIMIT) -> int:
    top = arguments.get("top")
    if top is None:
        return default
    return validate_id(top, "top")


def _validate_choice(value: str, choices: tuple, field_name: str) -> None:
    if value not in choices:
        raise ValidationError(f"{field_name} must be one of: {', '.join(choices)}")


def _parse_date(value: str, field_name: str) -> date:
    validate_string_input(value, field_name, 32)
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise ValidationError(f"{field_name} must be a date in YYYY-MM-DD format")


async def _fetch_work_items(client: AzureDevOpsClient, ids: list[int]) -> list[dict]:
    """Fetch full work items for a list of IDs, batching by WORK_ITEM_BATCH_SIZE."""
    items = []
    for start in range(0, len(ids), WORK_ITEM_BATCH_SIZE):
        batch = ids[start:start + WORK_ITEM_BATCH_SIZE]
        response = await client.get(
            "/_apis/wit/workitems",
            params={"ids": ",".join(str(i) for i in batch)},
        )
        response.raise_for_status()
        items.extend(response.json().get("value", []))
    return items


async def _run_wiql(
    client: AzureDevOpsClient,
    query: str,
    project: Optional[str] = None,
    top: Optional[int] = None,
) -> list[dict]:
    """Run a WIQL query and return the matching work items (full objects)."""
    path = f"/{project}/_apis/wit/wiql" if project else "/_apis/wit/wiql"
    params = {"$top": top} if top else None
    response = await client.post(path, json={"query": query}, params=params)
    response.raise_for_status()
    ids = [wi["id"] for wi in response.json().get("workItems", [])]
    if top:
        ids = ids[:top]
    if not ids:
        return []
    return await _fetch_work_items(client, ids)


def _comments_path(work_item_id: int, project: Optional[str]) -> str:
    prefix = f"/{project}" if project else ""
    return f"{prefix}/_apis/wit/workItems/{work_item_id}/comments"


def _validate_repository_args(arguments: dict) -> tuple[str, str]:
    project = arguments.get("project")
    repository = arguments.get("repository")
    validate_project_name(project)
    validate_path_segment(repository, "Repository name")
    return project, repository


# ============================================================================
# Project Handlers
# ============================================================================

async def handle_list_projects(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List all projects in the organization."""
    params = {}
    if arguments.get("top") is not None:
        params["$top"] = validate_id(arguments["top"], "top")
    response = await client.get("/_apis/projects", params=params)
    response.raise_for_status()
    projects = response.json().get("value", [])
    logger.info(f"Successfully listed {len(projects)} projects")

    items_text = "\n".join(formatters.format_project_summary(p) for p in projects)
    return _text(f"Found {len(projects)} projects:\n{items_text}")


async def handle_get_project(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Get project details by name or ID."""
    project_id = arguments.get("project_id")
    validate_project_name(project_id)
    response = await client.get(f"/_apis/projects/{project_id}")
    response.raise_for_status()
    result = response.json()
    logger.info(f"Successfully retrieved project {result['name']}")

    return _text(formatters.format_project(result))


# ============================================================================
# Work Item Handlers
# ============================================================================

async def handle_list_work_items(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List work items in a project.

    With a WIQL query, runs it as given. Without one, returns the 20 most
    recently changed work items in the project.
    """
    project = arguments.get("project")
    query = arguments.get("query")
    validate_project_name(project)

    if query:
        validate_string_input(query, "WIQL query", MAX_LARGE_TEXT_LENGTH)
        work_items = await _run_wiql(client, query, project)
    else:
        # WIQL has no parameter binding; the literal must be escaped
        default_query = (
            "SELECT [System.Id], [System.Title], [System.State] "
            "FROM WorkItems "
            f"WHERE [System.TeamProject] = '{escape_query_literal(project)}' "
            "ORDER BY [System.ChangedDate] DESC"
        )
        work_items = await _run_wiql(client, default_query, project, top=DEFAULT_LIST_LIMIT)

    logger.info(f"Successfully listed {len(work_items)} work items in {project}")
    items_text = "\n".join(formatters.format_work_item_summary(wi) for wi in work_items)
    return _text(f"Found {len(work_items)} work items:\n{items_text}")


async def handle_wit_my_work_items(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List open work items assigned to the authenticated user."""
    project = arguments.get("project")
    validate_project_name(project)
    include_closed = bool(arguments.get("include_closed", False))
    top = _optional_top(arguments, 50)

    state_filter = "" if include_closed else \
        "AND [System.State] NOT IN ('Closed', 'Removed', 'Done') "
    query = (
        "SELECT [System.Id] FROM WorkItems "
        f"WHERE [System.TeamProject] = '{escape_query_literal(project)}' "
        "AND [System.AssignedTo] = @Me "
        f"{state_filter}"
        "ORDER BY [System.ChangedDate] DESC"
    )
    work_items = await _run_wiql(client, query, project, top=top)
    logger.info(f"Successfully listed {len(work_items)} work items assigned to current user")

    if not work_items:
        return _text("No work items are assigned to you in this project.")
    items_text = "\n".join(formatters.format_work_item_summary(wi) for wi in work_items)
    return _text(f"Found {len(work_items)} work items assigned to you:\n{items_text}")


async def handle_wit_get_work_item(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Get a single work item with all fields."""
    work_item_id = validate_work_item_id(arguments.get("id"))
    response = await client.get(f"/_apis/wit/workitems/{work_item_id}", params={"$expand": "all"})
    response.raise_for_status()
    result = response.json()
    logger.info(f"Successfully retrieved work item {work_item_id}")

    return _text(formatters.format_work_item(result))


async def handle_wit_create_work_item(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Create a work item from a map of field reference names to values.

    Example fields: {"System.Title": "Fix login", "System.Description": "...",
    "System.AssignedTo": "user@example.com", "Microsoft.VSTS.Common.Priority": 2}
    """
    project = arguments.get("project")
    wi_type = arguments.get("type")
    fields = arguments.get("fields")
    validate_project_name(project)
    validate_path_segment(wi_type, "Work item type")

    if not isinstance(fields, dict) or not fields:
        raise ValidationError("fields must be a non-empty object")
    if not fields.get("System.Title"):
        raise ValidationError("fields must include System.Title")

    operations = []
    for field_name, value in fields.items():
        validate_string_input(field_name, "Field name", MAX_IDENTIFIER_LENGTH)
        # Field names become a JSON-Patch path segment
        if not field_name or "/" in field_name or "~" in field_name:
            raise ValidationError(f"Invalid field name: {field_name!r}")
        if isinstance(value, str):
            validate_string_input(value, field_name, MAX_LARGE_TEXT_LENGTH)
        operations.append({"op": "add", "path": f"/fields/{field_name}", "value": value})

    response = await client.post(
        f"/{project}/_apis/wit/workitems/${wi_type}",
        json=operations,
        headers=JSON_PATCH_HEADERS,
    )
    response.raise_for_status()
    result = response.json()
    logger.info(f"Successfully created {wi_type} #{result['id']} in {project}")

    return _text(f"Created work item #{result['id']}: {result['fields'].get('System.Title')}")


async def handle_wit_update_work_item(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Update title, description, state or assignee of a work item."""
    work_item_id = validate_work_item_id(arguments.get("id"))

    updates = [
        ("title", "System.Title", "Title", MAX_IDENTIFIER_LENGTH),
        ("description", "System.Description", "Description", MAX_LARGE_TEXT_LENGTH),
        ("state", "System.State", "State", MAX_IDENTIFIER_LENGTH),
        ("assigned_to", "System.AssignedTo", "Assigned to", MAX_IDENTIFIER_LENGTH),
    ]
    operations = []
    for arg_name, field_name, label, max_length in updates:
        value = arguments.get(arg_name)
        if value:
            validate_string_input(value, label, max_length)
            operations.append({"op": "replace", "path": f"/fields/{field_name}", "value": value})

    if not operations:
        return _text("No updates provided")

    response = await client.patch(
        f"/_apis/wit/workitems/{work_item_id}",
        json=operations,
        headers=JSON_PATCH_HEADERS,
    )
    response.raise_for_status()
    result = response.json()
    logger.info(f"Successfully updated work item {work_item_id} ({len(operations)} fields)")

    return _text(f"Updated work item #{result['id']}: {result['fields'].get('System.Title')}")


async def handle_wit_list_work_item_comments(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List comments on a work item."""
    work_item_id = validate_work_item_id(arguments.get("id"))
    project = arguments.get("project")
    if project is not None:
        validate_project_name(project)

    response = await client.get(_comments_path(work_item_id, project), api_version=COMMENTS_API_VERSION)
    response.raise_for_status()
    comments = response.json().get("comments", [])
    logger.info(f"Successfully listed {len(comments)} comments for work item {work_item_id}")

    if not comments:
        return _text(f"No comments found for work item #{work_item_id}.")
    comments_text = "\n".join(formatters.format_work_item_comment(c) for c in comments)
    return _text(f"Comments on work item #{work_item_id} ({len(comments)}):\n{comments_text}")


async def handle_wit_get_work_items_for_iteration(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List work items under an iteration path."""
    project = arguments.get("project")
    iteration_path = arguments.get("iteration_path")
    validate_project_name(project)
    validate_string_input(iteration_path, "Iteration path", MAX_IDENTIFIER_LENGTH)

    query = (
        "SELECT [System.Id] FROM WorkItems "
        f"WHERE [System.TeamProject] = '{escape_query_literal(project)}' "
        f"AND [System.IterationPath] UNDER '{escape_query_literal(iteration_path)}' "
        "ORDER BY [Microsoft.VSTS.Common.BacklogPriority] ASC, [System.Id] ASC"
    )
    work_items = await _run_wiql(client, query, project)
    logger.info(f"Successfully listed {len(work_items)} work items for iteration {iteration_path}")

    if not work_items:
        return _text(f"No work items found in iteration '{iteration_path}'.")
    items_text = "\n".join(formatters.format_work_item_summary(wi) for wi in work_items)
    return _text(f"Found {len(work_items)} work items in '{iteration_path}':\n{items_text}")


async def handle_wit_add_work_item_comment(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Add a comment to a work item."""
    work_item_id = validate_work_item_id(arguments.get("id"))
    comment = arguments.get("comment")
    project = arguments.get("project")
    validate_string_input(comment, "Comment", MAX_LARGE_TEXT_LENGTH)
    if not comment:
        raise ValidationError("Comment is required")
    if project is not None:
        validate_project_name(project)

    response = await client.post(
        _comments_path(work_item_id, project),
        json={"text": comment},
        api_version=COMMENTS_API_VERSION,
    )
    response.raise_for_status()
    logger.info(f"Successfully added comment to work item {work_item_id}")

    return _text(f"Comment added to work item #{work_item_id}")


async def handle_wit_work_items_link(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Link two work items (Related, Parent, Child, Predecessor, Successor)."""
    source_id = validate_work_item_id(arguments.get("source_id"))
    target_id = validate_work_item_id(arguments.get("target_id"))
    link_type = arguments.get("link_type", "Related")
    _validate_choice(link_type, tuple(LINK_TYPES), "link_type")
    if source_id == target_id:
        raise ValidationError("A work item cannot be linked to itself")

    relation = {"rel": LINK_TYPES[link_type], "url": client.work_item_url(target_id)}
    comment = arguments.get("comment")
    if comment:
        validate_string_input(comment, "Comment")
        relation["attributes"] = {"comment": comment}

    response = await client.patch(
        f"/_apis/wit/workitems/{source_id}",
        json=[{"op": "add", "path": "/relations/-", "value": relation}],
        headers=JSON_PATCH_HEADERS,
    )
    response.raise_for_status()
    logger.info(f"Successfully linked work item {source_id} -> {target_id} ({link_type})")

    return _text(f"Linked work item #{source_id} to #{target_id} with {link_type} relationship")


async def handle_wit_run_query(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Run a WIQL query and list the matching work items."""
    query = arguments.get("query")
    project = arguments.get("project")
    validate_string_input(query, "WIQL query", MAX_LARGE_TEXT_LENGTH)
    if not query.strip():
        raise ValidationError("WIQL query is required")
    if project is not None:
        validate_project_name(project)

    work_items = await _run_wiql(client, query, project)
    logger.info(f"WIQL query returned {len(work_items)} work items")

    if not work_items:
        return _text("Query returned no results")
    items_text = "\n".join(formatters.format_work_item_summary(wi) for wi in work_items)
    return _text(f"Query returned {len(work_items)} items:\n{items_text}")


async def handle_wit_search_work_items(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Full-text search over work items."""
    search_text = arguments.get("search_text")
    project = arguments.get("project")
    validate_string_input(search_text, "Search text")
    top = _optional_top(arguments, 50)

    body = {"searchText": search_text, "$skip": 0, "$top": top}
    if project:
        validate_project_name(project)
        body["filters"] = {"System.TeamProject": [project]}

    response = await client.post(client.search_url("/_apis/search/workitemsearchresults"), json=body)
    response.raise_for_status()
    results = response.json().get("results") or []
    logger.info(f"Work item search returned {len(results)} results")

    if not results:
        return _text("No work items found matching the search criteria")
    items_text = "\n".join(formatters.format_work_item_search_hit(r) for r in results)
    return _text(f"Found {len(results)} work items:\n{items_text}")


# ============================================================================
# Work Tracking Handlers (iterations, areas)
# ============================================================================

async def handle_list_iterations(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List the team iterations of a project (default team)."""
    project = arguments.get("project")
    validate_project_name(project)
    team = arguments.get("team")
    if team is not None:
        validate_path_segment(team, "Team name")
        path = f"/{project}/{team}/_apis/work/teamsettings/iterations"
    else:
        path = f"/{project}/_apis/work/teamsettings/iterations"

    response = await client.get(path)
    response.raise_for_status()
    iterations = response.json().get("value", [])
    logger.info(f"Successfully listed {len(iterations)} iterations for {project}")

    items_text = "\n".join(formatters.format_iteration(i) for i in iterations)
    return _text(f"Found {len(iterations)} iterations:\n{items_text}")


async def handle_list_areas(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List the area path tree of a project."""
    project = arguments.get("project")
    validate_project_name(project)
    depth = validate_id(arguments.get("depth", 10), "depth")

    response = await client.get(
        f"/{project}/_apis/wit/classificationnodes/areas",
        params={"$depth": depth},
    )
    response.raise_for_status()
    areas = formatters.flatten_area_paths(response.json())
    logger.info(f"Successfully listed {len(areas)} areas for {project}")

    areas_text = "\n".join(f"- {a}" for a in areas)
    return _text(f"Found {len(areas)} areas:\n{areas_text}")


async def handle_create_iteration(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Create an iteration, optionally under a parent path and with dates."""
    project = arguments.get("project")
    name = arguments.get("name")
    parent_path = arguments.get("path")
    validate_project_name(project)
    validate_path_segment(name, "Iteration name")
    if parent_path:
        validate_path_segment(parent_path, "Parent path")

    body = {"name": name}
    start_date = arguments.get("start_date")
    finish_date = arguments.get("finish_date")
    if bool(start_date) != bool(finish_date):
        raise ValidationError("start_date and finish_date must be provided together")
    if start_date:
        start = _parse_date(start_date, "start_date")
        finish = _parse_date(finish_date, "finish_date")
        if finish < start:
            raise ValidationError("finish_date must not be before start_date")
        body["attributes"] = {
            "startDate": f"{start.isoformat()}T00:00:00Z",
            "finishDate": f"{finish.isoformat()}T00:00:00Z",
        }

    response = await client.post(
        f"/{project}/_apis/wit/classificationnodes/iterations/{parent_path or ''}",
        json=body,
    )
    response.raise_for_status()
    result = response.json()
    logger.info(f"Successfully created iteration {result['name']} in {project}")

    dates = f" ({start_date} to {finish_date})" if start_date else ""
    return _text(f"Created iteration: {result['name']}{dates}\nPath: {result.get('path', 'N/A')}")


async def handle_create_area(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Create an area, optionally under a parent path."""
    project = arguments.get("project")
    name = arguments.get("name")
    parent_path = arguments.get("path")
    validate_project_name(project)
    validate_path_segment(name, "Area name")
    if parent_path:
        validate_path_segment(parent_path, "Parent path")

    response = await client.post(
        f"/{project}/_apis/wit/classificationnodes/areas/{parent_path or ''}",
        json={"name": name},
    )
    response.raise_for_status()
    result = response.json()
    logger.info(f"Successfully created area {result['name']} in {project}")

    return _text(f"Created area: {result['name']} at path: {result.get('path', 'N/A')}")


# ============================================================================
# Repository Handlers
# ============================================================================

async def handle_list_repositories(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List Git repositories in a project."""
    project = arguments.get("project")
    validate_project_name(project)
    response = await client.get(f"/{project}/_apis/git/repositories")
    response.raise_for_status()
    repos = response.json().get("value") or []
    logger.info(f"Successfully listed {len(repos)} repositories in {project}")

    repos_text = "\n".join(formatters.format_repository_summary(r) for r in repos)
    return _text(f"Found {len(repos)} repositories in project '{project}':\n{repos_text}")


async def handle_get_repository(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Get a repository by name or ID."""
    project, repository = _validate_repository_args(arguments)
    response = await client.get(f"/{project}/_apis/git/repositories/{repository}")
    response.raise_for_status()
    result = response.json()
    logger.info(f"Successfully retrieved repository {result['name']}")

    return _text(formatters.format_repository(result))


async def handle_list_branches(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List branches of a repository."""
    project, repository = _validate_repository_args(arguments)
    response = await client.get(
        f"/{project}/_apis/git/repositories/{repository}/refs",
        params={"filter": "heads"},
    )
    response.raise_for_status()
    refs = response.json().get("value", [])
    logger.info(f"Successfully listed {len(refs)} branches in {repository}")

    branches_text = "\n".join(formatters.format_branch(r) for r in refs)
    return _text(f"Found {len(refs)} branches:\n{branches_text}")


async def handle_get_branch(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Get a single branch by name (with or without the refs/heads/ prefix)."""
    project, repository = _validate_repository_args(arguments)
    branch = arguments.get("branch")
    validate_string_input(branch, "Branch name", MAX_IDENTIFIER_LENGTH)
    branch = formatters.strip_ref_prefix(branch)
    validate_branch_name(branch)

    response = await client.get(
        f"/{project}/_apis/git/repositories/{repository}/refs",
        params={"filter": f"heads/{branch}"},
    )
    response.raise_for_status()
    # The filter is a prefix match; pick the exact ref
    refs = response.json().get("value", [])
    match = next((r for r in refs if r["name"] == f"refs/heads/{branch}"), None)
    if match is None:
        return _text(f"Branch '{branch}' not found.")

    creator = (match.get("creator") or {}).get("displayName", "Unknown")
    return _text(f"Branch: {branch}\nRef: {match['name']}\nCommit: {match['objectId']}\nCreator: {creator}")


async def handle_list_pull_requests(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List pull requests in a repository, optionally filtered by status."""
    project, repository = _validate_repository_args(arguments)
    params = {"$top": _optional_top(arguments, 50)}
    status = arguments.get("status")
    if status:
        _validate_choice(status, PULL_REQUEST_STATUSES + ("all",), "status")
        params["searchCriteria.status"] = status

    response = await client.get(
        f"/{project}/_apis/git/repositories/{repository}/pullrequests",
        params=params,
    )
    response.raise_for_status()
    prs = response.json().get("value", [])
    logger.info(f"Successfully listed {len(prs)} pull requests in {repository}")

    prs_text = "\n".join(formatters.format_pull_request_summary(pr) for pr in prs)
    return _text(f"Found {len(prs)} pull requests:\n{prs_text}")


async def handle_list_pull_requests_by_project(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List pull requests across all repositories of a project."""
    project = arguments.get("project")
    validate_project_name(project)
    params = {"$top": _optional_top(arguments, 50)}
    status = arguments.get("status")
    if status:
        _validate_choice(status, PULL_REQUEST_STATUSES + ("all",), "status")
        params["searchCriteria.status"] = status

    response = await client.get(f"/{project}/_apis/git/pullrequests", params=params)
    response.raise_for_status()
    prs = response.json().get("value") or []
    logger.info(f"Successfully listed {len(prs)} pull requests in project {project}")

    prs_text = "\n".join(
        f"- #{pr['pullRequestId']}: {pr['title']} (in {(pr.get('repository') or {}).get('name', '?')})"
        for pr in prs
    )
    return _text(f"Found {len(prs)} pull requests in project '{project}':\n{prs_text}")


async def handle_get_pull_request(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Get pull request details including reviewers."""
    project, repository = _validate_repository_args(arguments)
    pr_id = validate_id(arguments.get("pull_request_id"), "pull request")

    response = await client.get(f"/{project}/_apis/git/repositories/{repository}/pullrequests/{pr_id}")
    response.raise_for_status()
    result = response.json()
    logger.info(f"Successfully retrieved pull request {pr_id}")

    return _text(formatters.format_pull_request(result))


async def handle_create_pull_request(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Create a pull request between two branches."""
    project, repository = _validate_repository_args(arguments)
    source_branch = arguments.get("source_branch")
    target_branch = arguments.get("target_branch")
    title = arguments.get("title")
    description = arguments.get("description")
    validate_branch_name(source_branch, "Source branch")
    validate_branch_name(target_branch, "Target branch")
    validate_string_input(title, "PR title", 500)
    if description:
        validate_string_input(description, "PR description", 4000)

    body = {
        "sourceRefName": f"refs/heads/{formatters.strip_ref_prefix(source_branch)}",
        "targetRefName": f"refs/heads/{formatters.strip_ref_prefix(target_branch)}",
        "title": title,
        "description": description or "",
        "isDraft": bool(arguments.get("is_draft", False)),
    }
    response = await client.post(f"/{project}/_apis/git/repositories/{repository}/pullrequests", json=body)
    response.raise_for_status()
    pr = response.json()
    logger.info(f"Successfully created pull request {pr['pullRequestId']} in {repository}")

    return _text(f"Created PR #{pr['pullRequestId']}: {pr['title']}\n"
                 f"Source: {source_branch} → Target: {target_branch}\n"
                 f"Status: {pr.get('status', 'active')}\n"
                 f"URL: {pr.get('url', 'N/A')}")


async def handle_update_pull_request_status(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Complete, abandon or reactivate a pull request.

    Completing requires the PR's last merge source commit, so the PR is read
    first in that case.
    """
    project, repository = _validate_repository_args(arguments)
    pr_id = validate_id(arguments.get("pull_request_id"), "pull request")
    status = arguments.get("status")
    _validate_choice(status, PULL_REQUEST_STATUSES, "status")

    pr_path = f"/{project}/_apis/git/repositories/{repository}/pullrequests/{pr_id}"
    body = {"status": status}
    if status == "completed":
        current = await client.get(pr_path)
        current.raise_for_status()
        body["lastMergeSourceCommit"] = current.json().get("lastMergeSourceCommit")

    response = await client.patch(pr_path, json=body)
    response.raise_for_status()
    pr = response.json()
    logger.info(f"Successfully set pull request {pr_id} status to {pr.get('status')}")

    return _text(f"Updated PR #{pr['pullRequestId']} status to: {pr.get('status', status)}")


async def handle_list_pull_request_threads(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List comment threads of a pull request."""
    project, repository = _validate_repository_args(arguments)
    pr_id = validate_id(arguments.get("pull_request_id"), "pull request")

    response = await client.get(f"/{project}/_apis/git/repositories/{repository}/pullrequests/{pr_id}/threads")
    response.raise_for_status()
    threads = response.json().get("value") or []
    # Deleted threads are still returned, flagged with isDeleted
    threads = [t for t in threads if not t.get("isDeleted")]
    logger.info(f"Successfully listed {len(threads)} threads for pull request {pr_id}")

    threads_text = "\n".join(formatters.format_thread(t) for t in threads)
    return _text(f"Found {len(threads)} threads in PR #{pr_id}:\n{threads_text}")


async def handle_list_pull_request_thread_comments(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List comments of one pull request thread."""
    project, repository = _validate_repository_args(arguments)
    pr_id = validate_id(arguments.get("pull_request_id"), "pull request")
    thread_id = validate_id(arguments.get("thread_id"), "thread")

    response = await client.get(
        f"/{project}/_apis/git/repositories/{repository}/pullrequests/{pr_id}/threads/{thread_id}/comments"
    )
    response.raise_for_status()
    comments = response.json().get("value") or []
    logger.info(f"Successfully listed {len(comments)} comments in thread {thread_id}")

    comments_text = "\n".join(formatters.format_thread_comment(c) for c in comments)
    return _text(f"Found {len(comments)} comments in thread #{thread_id}:\n{comments_text}")


async def handle_reply_to_comment(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Reply to a pull request thread."""
    project, repository = _validate_repository_args(arguments)
    pr_id = validate_id(arguments.get("pull_request_id"), "pull request")
    thread_id = validate_id(arguments.get("thread_id"), "thread")
    content = arguments.get("content")
    validate_string_input(content, "Comment", MAX_LARGE_TEXT_LENGTH)
    if not content:
        raise ValidationError("Comment is required")

    # commentType 1 = text
    response = await client.post(
        f"/{project}/_apis/git/repositories/{repository}/pullrequests/{pr_id}/threads/{thread_id}/comments",
        json={"content": content, "parentCommentId": 1, "commentType": 1},
    )
    response.raise_for_status()
    logger.info(f"Successfully replied to thread {thread_id} on pull request {pr_id}")

    return _text(f"Successfully replied to thread #{thread_id}.")


async def handle_resolve_comment(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Set the status of a pull request thread (default: closed)."""
    project, repository = _validate_repository_args(arguments)
    pr_id = validate_id(arguments.get("pull_request_id"), "pull request")
    thread_id = validate_id(arguments.get("thread_id"), "thread")
    status = arguments.get("status", "closed")
    _validate_choice(status, THREAD_STATUSES, "status")

    response = await client.patch(
        f"/{project}/_apis/git/repositories/{repository}/pullrequests/{pr_id}/threads/{thread_id}",
        json={"status": status},
    )
    response.raise_for_status()
    logger.info(f"Successfully set thread {thread_id} on pull request {pr_id} to {status}")

    return _text(f"Successfully resolved thread #{thread_id} (status: {status}).")


# ============================================================================
# Build Handlers
# ============================================================================

async def handle_list_build_definitions(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List build (pipeline) definitions of a project."""
    project = arguments.get("project")
    validate_project_name(project)
    params = {}
    if arguments.get("name"):
        validate_string_input(arguments["name"], "Definition name", MAX_IDENTIFIER_LENGTH)
        params["name"] = arguments["name"]

    response = await client.get(f"/{project}/_apis/build/definitions", params=params)
    response.raise_for_status()
    definitions = response.json().get("value", [])
    logger.info(f"Successfully listed {len(definitions)} build definitions in {project}")

    defs_text = "\n".join(formatters.format_build_definition(d) for d in definitions)
    return _text(f"Found {len(definitions)} build definitions:\n{defs_text}")


async def handle_run_build(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Queue a build for a definition, optionally on a specific branch."""
    project = arguments.get("project")
    validate_project_name(project)
    definition_id = validate_id(arguments.get("definition_id"), "build definition")
    source_branch = arguments.get("source_branch")

    body = {"definition": {"id": definition_id}}
    if source_branch:
        validate_branch_name(source_branch, "Source branch")
        body["sourceBranch"] = f"refs/heads/{formatters.strip_ref_prefix(source_branch)}"

    response = await client.post(f"/{project}/_apis/build/builds", json=body)
    response.raise_for_status()
    build = response.json()
    logger.info(f"Successfully queued build {build['id']} for definition {definition_id}")

    web_url = ((build.get("_links") or {}).get("web") or {}).get("href", "N/A")
    return _text(f"Started build #{build['id']}\n"
                 f"Definition: {(build.get('definition') or {}).get('name', definition_id)}\n"
                 f"Status: {build.get('status', 'unknown')}\n"
                 f"Queue Time: {formatters.format_timestamp(build.get('queueTime'))}\n"
                 f"URL: {web_url}")


async def handle_get_build_status(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Get the status and result of a build."""
    project = arguments.get("project")
    validate_project_name(project)
    build_id = validate_id(arguments.get("build_id"), "build")

    response = await client.get(f"/{project}/_apis/build/builds/{build_id}")
    response.raise_for_status()
    build = response.json()
    logger.info(f"Successfully retrieved build {build_id}")

    return _text(formatters.format_build(build))


async def handle_list_builds(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List recent builds with optional definition, branch and status filters."""
    project = arguments.get("project")
    validate_project_name(project)
    params = {"$top": _optional_top(arguments)}

    if arguments.get("definition_id") is not None:
        params["definitions"] = validate_id(arguments["definition_id"], "build definition")
    if arguments.get("branch_name"):
        validate_branch_name(arguments["branch_name"])
        params["branchName"] = f"refs/heads/{formatters.strip_ref_prefix(arguments['branch_name'])}"
    if arguments.get("status_filter"):
        _validate_choice(
            arguments["status_filter"],
            ("all", "cancelling", "completed", "inProgress", "none", "notStarted", "postponed"),
            "status_filter",
        )
        params["statusFilter"] = arguments["status_filter"]

    response = await client.get(f"/{project}/_apis/build/builds", params=params)
    response.raise_for_status()
    builds = response.json().get("value", [])
    logger.info(f"Successfully listed {len(builds)} builds in {project}")

    builds_text = "\n".join(formatters.format_build_summary(b) for b in builds)
    return _text(f"Found {len(builds)} builds:\n{builds_text}")


async def handle_get_build_logs(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List the logs of a build."""
    project = arguments.get("project")
    validate_project_name(project)
    build_id = validate_id(arguments.get("build_id"), "build")

    response = await client.get(f"/{project}/_apis/build/builds/{build_id}/logs")
    response.raise_for_status()
    logs = response.json().get("value", [])
    logger.info(f"Successfully listed {len(logs)} logs for build {build_id}")

    logs_text = "\n".join(formatters.format_build_log(log) for log in logs)
    return _text(f"Found {len(logs)} logs for build #{build_id}:\n{logs_text}")


async def handle_get_build_log_content(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Get the lines of one build log, optionally restricted to a line range."""
    project = arguments.get("project")
    validate_project_name(project)
    build_id = validate_id(arguments.get("build_id"), "build")
    log_id = validate_id(arguments.get("log_id"), "log")

    params = {}
    if arguments.get("start_line") is not None:
        params["startLine"] = validate_id(arguments["start_line"], "start line")
    if arguments.get("end_line") is not None:
        params["endLine"] = validate_id(arguments["end_line"], "end line")
    if "startLine" in params and "endLine" in params and params["endLine"] < params["startLine"]:
        raise ValidationError("end_line must not be before start_line")

    response = await client.get(
        f"/{project}/_apis/build/builds/{build_id}/logs/{log_id}",
        params=params,
        headers={"Accept": "application/json"},
    )
    response.raise_for_status()
    if response.headers.get("content-type", "").startswith("application/json"):
        lines = response.json().get("value", [])
    else:
        lines = response.text.splitlines()
    logger.info(f"Successfully retrieved {len(lines)} lines of log {log_id} for build {build_id}")

    content = "\n".join(lines)
    return _text(f"Log {log_id} for build #{build_id} ({len(lines)} lines):\n\n{content}")


async def handle_get_build_changes(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List the commits associated with a build."""
    project = arguments.get("project")
    validate_project_name(project)
    build_id = validate_id(arguments.get("build_id"), "build")

    response = await client.get(
        f"/{project}/_apis/build/builds/{build_id}/changes",
        params={"$top": _optional_top(arguments)},
    )
    response.raise_for_status()
    changes = response.json().get("value", [])
    logger.info(f"Successfully listed {len(changes)} changes for build {build_id}")

    if not changes:
        return _text(f"No changes associated with build #{build_id}.")
    changes_text = "\n".join(formatters.format_build_change(c) for c in changes)
    return _text(f"Found {len(changes)} changes in build #{build_id}:\n{changes_text}")


# ============================================================================
# Search Handlers
# ============================================================================

async def handle_search_code(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Search code across repositories."""
    search_text = arguments.get("search_text")
    project = arguments.get("project")
    validate_string_input(search_text, "Search text")
    body = {"searchText": search_text, "$skip": 0, "$top": _optional_top(arguments, 25)}
    if project:
        validate_project_name(project)
        body["filters"] = {"Project": [project]}

    response = await client.post(client.search_url("/_apis/search/codesearchresults"), json=body)
    response.raise_for_status()
    results = response.json().get("results") or []
    logger.info(f"Code search returned {len(results)} results")

    if not results:
        return _text("No code results found matching the search criteria")
    items_text = "\n".join(formatters.format_code_search_hit(r) for r in results)
    return _text(f"Found {len(results)} code results:\n{items_text}")


# ============================================================================
# Test Plan Handlers
# ============================================================================

async def handle_create_test_plan(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Create a test plan."""
    project = arguments.get("project")
    name = arguments.get("name")
    validate_project_name(project)
    validate_string_input(name, "Test plan name", MAX_IDENTIFIER_LENGTH)
    area_path = arguments.get("area_path") or project
    iteration = arguments.get("iteration") or project
    validate_string_input(area_path, "Area path", MAX_IDENTIFIER_LENGTH)
    validate_string_input(iteration, "Iteration", MAX_IDENTIFIER_LENGTH)

    response = await client.post(
        f"/{project}/_apis/testplan/plans",
        json={"name": name, "areaPath": area_path, "iteration": iteration},
    )
    response.raise_for_status()
    plan = response.json()
    logger.info(f"Successfully created test plan {plan['id']} in {project}")

    return _text(f"Created test plan: {plan['name']} (ID: {plan['id']})")


async def handle_list_test_plans(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List test plans, optionally only active ones."""
    project = arguments.get("project")
    validate_project_name(project)
    params = {}
    if arguments.get("active_only"):
        params["filterActivePlans"] = "true"

    response = await client.get(f"/{project}/_apis/testplan/plans", params=params)
    response.raise_for_status()
    plans = response.json().get("value", [])
    logger.info(f"Successfully listed {len(plans)} test plans in {project}")

    plans_text = "\n".join(formatters.format_test_plan(p) for p in plans)
    return _text(f"Found {len(plans)} test plans:\n{plans_text}")


async def handle_create_test_suite(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Create a test suite in a plan.

    Without parent_suite_id the suite is created under the plan's root suite.
    Dynamic suites need query_string; requirement suites need requirement_id.
    """
    project = arguments.get("project")
    validate_project_name(project)
    plan_id = validate_id(arguments.get("plan_id"), "test plan")
    name = arguments.get("name")
    validate_string_input(name, "Test suite name", MAX_IDENTIFIER_LENGTH)
    suite_type = arguments.get("suite_type", "staticTestSuite")
    _validate_choice(suite_type, SUITE_TYPES, "suite_type")

    body = {"suiteType": suite_type, "name": name}
    if suite_type == "dynamicTestSuite":
        query_string = arguments.get("query_string")
        validate_string_input(query_string, "Query string", MAX_LARGE_TEXT_LENGTH)
        body["queryString"] = query_string
    elif suite_type == "requirementTestSuite":
        body["requirementId"] = validate_work_item_id(arguments.get("requirement_id"))

    if arguments.get("parent_suite_id") is not None:
        parent_id = validate_id(arguments["parent_suite_id"], "parent suite")
    else:
        plan_response = await client.get(f"/{project}/_apis/testplan/plans/{plan_id}")
        plan_response.raise_for_status()
        parent_id = plan_response.json()["rootSuite"]["id"]
    body["parentSuite"] = {"id": parent_id}

    response = await client.post(f"/{project}/_apis/testplan/Plans/{plan_id}/suites", json=body)
    response.raise_for_status()
    suite = response.json()
    logger.info(f"Successfully created test suite {suite['id']} in plan {plan_id}")

    return _text(f"Created test suite: {suite['name']} (ID: {suite['id']}) in plan {plan_id}")


async def handle_create_test_case(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Create a Test Case work item with a single action/expected-result step."""
    project = arguments.get("project")
    title = arguments.get("title")
    validate_project_name(project)
    validate_string_input(title, "Title", MAX_IDENTIFIER_LENGTH)
    priority = arguments.get("priority", 2)
    if isinstance(priority, bool) or priority not in (1, 2, 3, 4):
        raise ValidationError("priority must be between 1 and 4")

    operations = [
        {"op": "add", "path": "/fields/System.Title", "value": title},
        {"op": "add", "path": "/fields/Microsoft.VSTS.Common.Priority", "value": int(priority)},
    ]
    steps = arguments.get("steps")
    if steps:
        expected = arguments.get("expected_result") or ""
        validate_string_input(steps, "Steps", MAX_LARGE_TEXT_LENGTH)
        validate_string_input(expected, "Expected result", MAX_LARGE_TEXT_LENGTH)
        operations.append({
            "op": "add",
            "path": "/fields/Microsoft.VSTS.TCM.Steps",
            "value": formatters.build_test_steps_xml(steps, expected),
        })
    for arg_name, field_name in (("area_path", "System.AreaPath"), ("iteration_path", "System.IterationPath")):
        if arguments.get(arg_name):
            validate_string_input(arguments[arg_name], arg_name, MAX_IDENTIFIER_LENGTH)
            operations.append({"op": "add", "path": f"/fields/{field_name}", "value": arguments[arg_name]})

    response = await client.post(
        f"/{project}/_apis/wit/workitems/$Test Case",
        json=operations,
        headers=JSON_PATCH_HEADERS,
    )
    response.raise_for_status()
    test_case = response.json()
    logger.info(f"Successfully created test case {test_case['id']} in {project}")

    return _text(f"Created test case #{test_case['id']}: {test_case['fields'].get('System.Title')}")


async def handle_add_test_cases_to_suite(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Add existing test cases to a suite."""
    project = arguments.get("project")
    validate_project_name(project)
    plan_id = validate_id(arguments.get("plan_id"), "test plan")
    suite_id = validate_id(arguments.get("suite_id"), "test suite")
    test_case_ids = arguments.get("test_case_ids")
    if not isinstance(test_case_ids, list) or not test_case_ids:
        raise ValidationError("test_case_ids must be a non-empty list")
    ids = [validate_id(tc_id, "test case") for tc_id in test_case_ids]

    response = await client.post(
        f"/{project}/_apis/testplan/Plans/{plan_id}/Suites/{suite_id}/TestCase",
        json=[{"workItem": {"id": tc_id}} for tc_id in ids],
    )
    response.raise_for_status()
    logger.info(f"Successfully added {len(ids)} test cases to suite {suite_id}")

    return _text(f"Added {len(ids)} test cases to suite {suite_id}")


async def handle_list_test_cases(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List test cases in a suite."""
    project = arguments.get("project")
    validate_project_name(project)
    plan_id = validate_id(arguments.get("plan_id"), "test plan")
    suite_id = validate_id(arguments.get("suite_id"), "test suite")

    response = await client.get(f"/{project}/_apis/testplan/Plans/{plan_id}/Suites/{suite_id}/TestCase")
    response.raise_for_status()
    test_cases = response.json().get("value", [])
    logger.info(f"Successfully listed {len(test_cases)} test cases in suite {suite_id}")

    cases_text = "\n".join(formatters.format_test_case(tc) for tc in test_cases)
    return _text(f"Found {len(test_cases)} test cases in suite:\n{cases_text}")


async def handle_run_test_case(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Record a manual outcome for a test case.

    Resolves the test point for the case in the suite, creates a run for it,
    sets the outcome on the run's result and completes the run.
    """
    project = arguments.get("project")
    validate_project_name(project)
    plan_id = validate_id(arguments.get("plan_id"), "test plan")
    suite_id = validate_id(arguments.get("suite_id"), "test suite")
    test_case_id = validate_id(arguments.get("test_case_id"), "test case")
    outcome = arguments.get("outcome")
    _validate_choice(outcome, TEST_OUTCOMES, "outcome")
    comment = arguments.get("comment") or ""
    validate_string_input(comment, "Comment")

    points_response = await client.get(
        f"/{project}/_apis/testplan/Plans/{plan_id}/Suites/{suite_id}/TestPoint",
        params={"testCaseId": test_case_id},
    )
    points_response.raise_for_status()
    points = points_response.json().get("value", [])
    if not points:
        return _text(f"Test case {test_case_id} has no test point in suite {suite_id}.")

    run_response = await client.post(
        f"/{project}/_apis/test/runs",
        json={
            "name": f"Manual run - test case {test_case_id}",
            "plan": {"id": plan_id},
            "pointIds": [points[0]["id"]],
            "automated": False,
        },
    )
    run_response.raise_for_status()
    run_id = run_response.json()["id"]

    results_response = await client.get(f"/{project}/_apis/test/runs/{run_id}/results")
    results_response.raise_for_status()
    results = results_response.json().get("value", [])
    updates = [{"id": r["id"], "outcome": outcome, "state": "Completed", "comment": comment} for r in results]
    update_response = await client.patch(f"/{project}/_apis/test/runs/{run_id}/results", json=updates)
    update_response.raise_for_status()

    complete_response = await client.patch(f"/{project}/_apis/test/runs/{run_id}", json={"state": "Completed"})
    complete_response.raise_for_status()
    logger.info(f"Recorded outcome {outcome} for test case {test_case_id} in run {run_id}")

    return _text(f"Test case {test_case_id} executed with outcome: {outcome} (run {run_id})")


async def handle_get_test_results(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Get the results of a test run."""
    project = arguments.get("project")
    validate_project_name(project)
    run_id = validate_id(arguments.get("run_id"), "test run")

    response = await client.get(f"/{project}/_apis/test/runs/{run_id}/results")
    response.raise_for_status()
    results = response.json().get("value", [])
    logger.info(f"Successfully retrieved {len(results)} results for run {run_id}")

    results_text = "\n".join(formatters.format_test_result(r) for r in results)
    return _text(f"Test results for run {run_id}:\n{results_text}")


async def handle_get_test_results_by_build(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Summarize test outcomes across all runs of a build."""
    project = arguments.get("project")
    validate_project_name(project)
    build_id = validate_id(arguments.get("build_id"), "build")

    runs_response = await client.get(
        f"/{project}/_apis/test/runs",
        params={"buildUri": f"vstfs:///Build/Build/{build_id}"},
    )
    runs_response.raise_for_status()
    runs = runs_response.json().get("value", [])

    results = []
    for run in runs:
        response = await client.get(f"/{project}/_apis/test/runs/{run['id']}/results")
        response.raise_for_status()
        results.extend(response.json().get("value", []))
    logger.info(f"Collected {len(results)} test results from {len(runs)} runs for build {build_id}")

    passed = sum(1 for r in results if r.get("outcome") == "Passed")
    failed = sum(1 for r in results if r.get("outcome") == "Failed")
    details = "\n".join(formatters.format_test_result(r) for r in results[:10])
    more = f"\n... and {len(results) - 10} more" if len(results) > 10 else ""

    return _text(f"Test results for build {build_id}:\n"
                 f"Runs: {len(runs)}\n"
                 f"Total: {len(results)}\n"
                 f"Passed: {passed}\n"
                 f"Failed: {failed}\n"
                 f"Other: {len(results) - passed - failed}\n\n"
                 f"Details:\n{details}{more}")


# ============================================================================
# Release Handlers (vsrm.dev.azure.com)
# ============================================================================

async def handle_list_release_definitions(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List release definitions of a project."""
    project = arguments.get("project")
    validate_project_name(project)

    response = await client.get(client.release_url(f"/{project}/_apis/release/definitions"))
    response.raise_for_status()
    definitions = response.json().get("value", [])
    logger.info(f"Successfully listed {len(definitions)} release definitions in {project}")

    defs_text = "\n".join(formatters.format_release_definition(d) for d in definitions)
    return _text(f"Found {len(definitions)} release definitions:\n{defs_text}")


async def handle_list_releases(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List releases, optionally for one definition."""
    project = arguments.get("project")
    validate_project_name(project)
    params = {"$top": _optional_top(arguments)}
    if arguments.get("definition_id") is not None:
        params["definitionId"] = validate_id(arguments["definition_id"], "release definition")

    response = await client.get(client.release_url(f"/{project}/_apis/release/releases"), params=params)
    response.raise_for_status()
    releases = response.json().get("value", [])
    logger.info(f"Successfully listed {len(releases)} releases in {project}")

    releases_text = "\n".join(formatters.format_release_summary(r) for r in releases)
    return _text(f"Found {len(releases)} releases:\n{releases_text}")


async def handle_create_release(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Create a release from a release definition."""
    project = arguments.get("project")
    validate_project_name(project)
    definition_id = validate_id(arguments.get("definition_id"), "release definition")
    description = arguments.get("description") or f"Release created at {date.today().isoformat()}"
    validate_string_input(description, "Release description", 4000)

    response = await client.post(
        client.release_url(f"/{project}/_apis/release/releases"),
        json={
            "definitionId": definition_id,
            "description": description,
            "isDraft": False,
            "manualEnvironments": [],
        },
    )
    response.raise_for_status()
    release = response.json()
    logger.info(f"Successfully created release {release['id']} from definition {definition_id}")

    web_url = ((release.get("_links") or {}).get("web") or {}).get("href", "N/A")
    return _text(f"Created release: {release['name']} (ID: {release['id']})\n"
                 f"Status: {release.get('status', 'unknown')}\n"
                 f"URL: {web_url}")


async def handle_deploy_release(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Start deployment of a release to one of its environments."""
    project = arguments.get("project")
    validate_project_name(project)
    release_id = validate_id(arguments.get("release_id"), "release")
    environment_id = validate_id(arguments.get("environment_id"), "environment")
    comment = arguments.get("comment") or "Deployment triggered via MCP"
    validate_string_input(comment, "Comment")

    response = await client.patch(
        client.release_url(f"/{project}/_apis/release/releases/{release_id}/environments/{environment_id}"),
        json={"status": "inProgress", "comment": comment},
        api_version=RELEASE_DEPLOY_API_VERSION,
    )
    response.raise_for_status()
    logger.info(f"Started deployment of release {release_id} to environment {environment_id}")

    return _text(f"Started deployment of release {release_id} to environment {environment_id}")


# ============================================================================
# Wiki Handlers
# ============================================================================

def _validate_wiki_args(arguments: dict) -> tuple[str, str, str]:
    project = arguments.get("project")
    wiki = arguments.get("wiki_identifier")
    path = arguments.get("path")
    validate_project_name(project)
    validate_path_segment(wiki, "Wiki identifier")
    validate_string_input(path, "Page path")
    if not path:
        raise ValidationError("Page path is required")
    return project, wiki, path


async def handle_list_wikis(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """List wikis of a project."""
    project = arguments.get("project")
    validate_project_name(project)

    response = await client.get(f"/{project}/_apis/wiki/wikis")
    response.raise_for_status()
    wikis = response.json().get("value", [])
    logger.info(f"Successfully listed {len(wikis)} wikis in {project}")

    wikis_text = "\n".join(formatters.format_wiki(w) for w in wikis)
    return _text(f"Found {len(wikis)} wikis:\n{wikis_text}")


async def handle_get_wiki_page(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Get wiki page content and its version (ETag) for later updates."""
    project, wiki, path = _validate_wiki_args(arguments)

    response = await client.get(
        f"/{project}/_apis/wiki/wikis/{wiki}/pages",
        params={"path": path, "includeContent": "true"},
    )
    response.raise_for_status()
    page = response.json()
    logger.info(f"Successfully retrieved wiki page {path} from {wiki}")

    return _text(formatters.format_wiki_page(page, response.headers.get("etag")))


async def handle_create_wiki_page(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Create a wiki page (fails if the page already exists)."""
    project, wiki, path = _validate_wiki_args(arguments)
    content = arguments.get("content")
    validate_string_input(content, "Page content", MAX_LARGE_TEXT_LENGTH)

    response = await client.put(
        f"/{project}/_apis/wiki/wikis/{wiki}/pages",
        params={"path": path},
        json={"content": content},
    )
    response.raise_for_status()
    page = response.json()
    logger.info(f"Successfully created wiki page {page.get('path', path)} in {wiki}")

    return _text(f"Created wiki page: {page.get('path', path)}")


async def handle_update_wiki_page(arguments: dict, client: AzureDevOpsClient) -> list[TextContent]:
    """Update a wiki page; version must be the ETag returned by get_wiki_page."""
    project, wiki, path = _validate_wiki_args(arguments)
    content = arguments.get("content")
    version = arguments.get("version")
    validate_string_input(content, "Page content", MAX_LARGE_TEXT_LENGTH)
    validate_string_input(version, "Version", MAX_IDENTIFIER_LENGTH)
    if not version:
        raise ValidationError("Version is required")

    response = await client.put(
        f"/{project}/_apis/wiki/wikis/{wiki}/pages",
        params={"path": path},
        json={"content": content},
        headers={"If-Match": version},
    )
    response.raise_for_status()
    page = response.json()
    logger.info(f"Successfully updated wiki page {page.get('path', path)} in {wiki}")

    return _text(f"Updated wiki page: {page.get('path', path)}")
