"""MCP tool definitions for Azure DevOps.

This module provides the definitive list of tools exposed by the server. Every
name here has a handler registered in server.HANDLERS.
"""

from mcp.types import Tool

# Reused property schemas
PROJECT = {"type": "string", "description": "Project name or ID"}
REPOSITORY = {"type": "string", "description": "Repository name or ID"}
PULL_REQUEST_ID = {"type": "integer", "description": "Pull request ID"}
THREAD_ID = {"type": "integer", "description": "Comment thread ID"}
BUILD_ID = {"type": "integer", "description": "Build ID"}
PLAN_ID = {"type": "integer", "description": "Test plan ID"}
SUITE_ID = {"type": "integer", "description": "Test suite ID"}
WIKI_IDENTIFIER = {"type": "string", "description": "Wiki name or ID"}
PAGE_PATH = {"type": "string", "description": "Page path, e.g. '/Home' or '/Guides/Setup'"}


def _top(default: int) -> dict:
    return {"type": "integer", "description": f"Maximum number of results (default: {default})"}


def get_tools() -> list[Tool]:
    """Get the list of all MCP tools for Azure DevOps."""
    return [
        # ============================================================================
        # Project Tools
        # ============================================================================
        Tool(
            name="list_projects",
            description="List all projects in the Azure DevOps organization. "
                       "Common pattern: list_projects() → pick one → pass its name as 'project' to other tools.",
            inputSchema={
                "type": "object",
                "properties": {
                    "top": {"type": "integer", "description": "Maximum number of projects to return"}
                }
            }
        ),
        Tool(
            name="get_project",
            description="Get details of a project (ID, description, state, visibility).",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": {"type": "string", "description": "Project name or ID"}
                },
                "required": ["project_id"]
            }
        ),

        # ============================================================================
        # Work Item Tools
        # ============================================================================
        Tool(
            name="list_work_items",
            description="List work items in a project. Without 'query', returns the 20 most recently "
                       "changed work items. With 'query', runs the given WIQL.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "query": {
                        "type": "string",
                        "description": "Optional WIQL query, e.g. \"SELECT [System.Id] FROM WorkItems WHERE [System.State] = 'Active'\""
                    }
                },
                "required": ["project"]
            }
        ),
        Tool(
            name="wit_my_work_items",
            description="List work items assigned to you in a project (open items only unless include_closed).",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "include_closed": {
                        "type": "boolean",
                        "description": "Include Closed/Removed/Done items (default: false)"
                    },
                    "top": _top(50)
                },
                "required": ["project"]
            }
        ),
        Tool(
            name="wit_get_work_item",
            description="Get a work item with all of its fields.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "integer", "description": "Work item ID"}
                },
                "required": ["id"]
            }
        ),
        Tool(
            name="wit_create_work_item",
            description="Create a work item. 'fields' maps field reference names to values and must include "
                       "System.Title. Example: {\"System.Title\": \"Fix login\", \"Microsoft.VSTS.Common.Priority\": 2}",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "type": {
                        "type": "string",
                        "description": "Work item type (e.g. Bug, Task, User Story, Epic, Feature)"
                    },
                    "fields": {
                        "type": "object",
                        "description": "Field reference name → value"
                    }
                },
                "required": ["project", "type", "fields"]
            }
        ),
        Tool(
            name="wit_update_work_item",
            description="Update a work item's title, description, state or assignee. Only provided fields change.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "integer", "description": "Work item ID"},
                    "title": {"type": "string", "description": "New title"},
                    "description": {"type": "string", "description": "New description (HTML allowed)"},
                    "state": {"type": "string", "description": "New state (e.g. Active, Resolved, Closed)"},
                    "assigned_to": {"type": "string", "description": "Email or display name of the new assignee"}
                },
                "required": ["id"]
            }
        ),
        Tool(
            name="wit_list_work_item_comments",
            description="List comments on a work item.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "integer", "description": "Work item ID"},
                    "project": PROJECT
                },
                "required": ["id"]
            }
        ),
        Tool(
            name="wit_get_work_items_for_iteration",
            description="List work items under an iteration path (includes child iterations).",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "iteration_path": {
                        "type": "string",
                        "description": "Iteration path, e.g. 'MyProject\\\\Sprint 1'"
                    }
                },
                "required": ["project", "iteration_path"]
            }
        ),
        Tool(
            name="wit_add_work_item_comment",
            description="Add a comment to a work item.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "integer", "description": "Work item ID"},
                    "comment": {"type": "string", "description": "Comment text (HTML allowed)"},
                    "project": PROJECT
                },
                "required": ["id", "comment"]
            }
        ),
        Tool(
            name="wit_work_items_link",
            description="Link two work items. Parent/Child create hierarchy links; "
                       "Predecessor/Successor create dependency links.",
            inputSchema={
                "type": "object",
                "properties": {
                    "source_id": {"type": "integer", "description": "Work item the link is added to"},
                    "target_id": {"type": "integer", "description": "Work item being linked"},
                    "link_type": {
                        "type": "string",
                        "enum": ["Related", "Parent", "Child", "Predecessor", "Successor"],
                        "description": "Relationship of target to source (default: Related)"
                    },
                    "comment": {"type": "string", "description": "Optional link comment"}
                },
                "required": ["source_id", "target_id"]
            }
        ),
        Tool(
            name="wit_run_query",
            description="Run a WIQL query and list the matching work items.",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "WIQL query"},
                    "project": PROJECT
                },
                "required": ["query"]
            }
        ),
        Tool(
            name="wit_search_work_items",
            description="Full-text search across work items.",
            inputSchema={
                "type": "object",
                "properties": {
                    "search_text": {"type": "string", "description": "Text to search for"},
                    "project": PROJECT,
                    "top": _top(50)
                },
                "required": ["search_text"]
            }
        ),

        # ============================================================================
        # Work Tracking Tools (iterations, areas)
        # ============================================================================
        Tool(
            name="work_list_iterations",
            description="List the iterations (sprints) of a project's team.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "team": {"type": "string", "description": "Team name (default: the project's default team)"}
                },
                "required": ["project"]
            }
        ),
        Tool(
            name="work_list_areas",
            description="List the area paths of a project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "depth": {"type": "integer", "description": "Depth of the area tree to fetch (default: 10)"}
                },
                "required": ["project"]
            }
        ),
        Tool(
            name="work_create_iteration",
            description="Create an iteration. start_date and finish_date (YYYY-MM-DD) must be given together.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "name": {"type": "string", "description": "Iteration name"},
                    "path": {"type": "string", "description": "Parent iteration path (default: project root)"},
                    "start_date": {"type": "string", "description": "Start date (YYYY-MM-DD)"},
                    "finish_date": {"type": "string", "description": "Finish date (YYYY-MM-DD)"}
                },
                "required": ["project", "name"]
            }
        ),
        Tool(
            name="work_create_area",
            description="Create an area path.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "name": {"type": "string", "description": "Area name"},
                    "path": {"type": "string", "description": "Parent area path (default: project root)"}
                },
                "required": ["project", "name"]
            }
        ),

        # ============================================================================
        # Repository Tools
        # ============================================================================
        Tool(
            name="repo_list_repos_by_project",
            description="List Git repositories in a project.",
            inputSchema={
                "type": "object",
                "properties": {"project": PROJECT},
                "required": ["project"]
            }
        ),
        Tool(
            name="repo_get_repo_by_name_or_id",
            description="Get a repository by name or ID.",
            inputSchema={
                "type": "object",
                "properties": {"project": PROJECT, "repository": REPOSITORY},
                "required": ["project", "repository"]
            }
        ),
        Tool(
            name="repo_list_branches_by_repo",
            description="List branches of a repository.",
            inputSchema={
                "type": "object",
                "properties": {"project": PROJECT, "repository": REPOSITORY},
                "required": ["project", "repository"]
            }
        ),
        Tool(
            name="repo_get_branch_by_name",
            description="Get a branch by name (with or without the refs/heads/ prefix).",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "repository": REPOSITORY,
                    "branch": {"type": "string", "description": "Branch name, e.g. 'main' or 'feature/login'"}
                },
                "required": ["project", "repository", "branch"]
            }
        ),
        Tool(
            name="repo_list_pull_requests_by_repo",
            description="List pull requests in a repository.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "repository": REPOSITORY,
                    "status": {
                        "type": "string",
                        "enum": ["active", "completed", "abandoned", "all"],
                        "description": "Filter by status (default: active)"
                    },
                    "top": _top(50)
                },
                "required": ["project", "repository"]
            }
        ),
        Tool(
            name="repo_list_pull_requests_by_project",
            description="List pull requests across all repositories in a project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "status": {
                        "type": "string",
                        "enum": ["active", "completed", "abandoned", "all"],
                        "description": "Filter by status (default: active)"
                    },
                    "top": _top(50)
                },
                "required": ["project"]
            }
        ),
        Tool(
            name="repo_get_pull_request_by_id",
            description="Get pull request details including reviewers and merge status.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "repository": REPOSITORY,
                    "pull_request_id": PULL_REQUEST_ID
                },
                "required": ["project", "repository", "pull_request_id"]
            }
        ),
        Tool(
            name="repo_create_pull_request",
            description="Create a pull request. Title max 500 characters, description max 4000.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "repository": REPOSITORY,
                    "source_branch": {"type": "string", "description": "Source branch (e.g. 'feature/login')"},
                    "target_branch": {"type": "string", "description": "Target branch (e.g. 'main')"},
                    "title": {"type": "string", "description": "Pull request title"},
                    "description": {"type": "string", "description": "Pull request description"},
                    "is_draft": {"type": "boolean", "description": "Create as draft (default: false)"}
                },
                "required": ["project", "repository", "source_branch", "target_branch", "title"]
            }
        ),
        Tool(
            name="repo_update_pull_request_status",
            description="Complete, abandon or reactivate a pull request.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "repository": REPOSITORY,
                    "pull_request_id": PULL_REQUEST_ID,
                    "status": {
                        "type": "string",
                        "enum": ["active", "completed", "abandoned"],
                        "description": "New status"
                    }
                },
                "required": ["project", "repository", "pull_request_id", "status"]
            }
        ),
        Tool(
            name="repo_list_pull_request_threads",
            description="List comment threads of a pull request.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "repository": REPOSITORY,
                    "pull_request_id": PULL_REQUEST_ID
                },
                "required": ["project", "repository", "pull_request_id"]
            }
        ),
        Tool(
            name="repo_list_pull_request_thread_comments",
            description="List comments in a pull request thread.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "repository": REPOSITORY,
                    "pull_request_id": PULL_REQUEST_ID,
                    "thread_id": THREAD_ID
                },
                "required": ["project", "repository", "pull_request_id", "thread_id"]
            }
        ),
        Tool(
            name="repo_reply_to_comment",
            description="Reply to a pull request comment thread.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "repository": REPOSITORY,
                    "pull_request_id": PULL_REQUEST_ID,
                    "thread_id": THREAD_ID,
                    "content": {"type": "string", "description": "Reply text"}
                },
                "required": ["project", "repository", "pull_request_id", "thread_id", "content"]
            }
        ),
        Tool(
            name="repo_resolve_comment",
            description="Resolve a pull request comment thread.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "repository": REPOSITORY,
                    "pull_request_id": PULL_REQUEST_ID,
                    "thread_id": THREAD_ID,
                    "status": {
                        "type": "string",
                        "enum": ["active", "fixed", "wontFix", "closed", "byDesign", "pending"],
                        "description": "Thread status (default: closed)"
                    }
                },
                "required": ["project", "repository", "pull_request_id", "thread_id"]
            }
        ),

        # ============================================================================
        # Build Tools
        # ============================================================================
        Tool(
            name="list_build_definitions",
            description="List build pipeline definitions in a project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "name": {"type": "string", "description": "Filter by definition name"}
                },
                "required": ["project"]
            }
        ),
        Tool(
            name="run_build",
            description="Queue a build for a pipeline definition.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "definition_id": {"type": "integer", "description": "Build definition ID"},
                    "source_branch": {"type": "string", "description": "Branch to build (default: definition default)"}
                },
                "required": ["project", "definition_id"]
            }
        ),
        Tool(
            name="get_build_status",
            description="Get the status and result of a build.",
            inputSchema={
                "type": "object",
                "properties": {"project": PROJECT, "build_id": BUILD_ID},
                "required": ["project", "build_id"]
            }
        ),
        Tool(
            name="list_builds",
            description="List recent builds, optionally filtered by definition, branch or status.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "definition_id": {"type": "integer", "description": "Build definition ID"},
                    "branch_name": {"type": "string", "description": "Branch name"},
                    "status_filter": {
                        "type": "string",
                        "enum": ["all", "cancelling", "completed", "inProgress", "none", "notStarted", "postponed"],
                        "description": "Build status filter"
                    },
                    "top": _top(20)
                },
                "required": ["project"]
            }
        ),
        Tool(
            name="get_build_logs",
            description="List the logs of a build. Use get_build_log_content to read one.",
            inputSchema={
                "type": "object",
                "properties": {"project": PROJECT, "build_id": BUILD_ID},
                "required": ["project", "build_id"]
            }
        ),
        Tool(
            name="get_build_log_content",
            description="Get the content of a build log, optionally a line range.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "build_id": BUILD_ID,
                    "log_id": {"type": "integer", "description": "Log ID (from get_build_logs)"},
                    "start_line": {"type": "integer", "description": "First line to return"},
                    "end_line": {"type": "integer", "description": "Last line to return"}
                },
                "required": ["project", "build_id", "log_id"]
            }
        ),
        Tool(
            name="get_build_changes",
            description="List the commits included in a build.",
            inputSchema={
                "type": "object",
                "properties": {"project": PROJECT, "build_id": BUILD_ID, "top": _top(20)},
                "required": ["project", "build_id"]
            }
        ),

        # ============================================================================
        # Search Tools
        # ============================================================================
        Tool(
            name="search_code",
            description="Search code across repositories.",
            inputSchema={
                "type": "object",
                "properties": {
                    "search_text": {"type": "string", "description": "Text to search for"},
                    "project": PROJECT,
                    "top": _top(25)
                },
                "required": ["search_text"]
            }
        ),

        # ============================================================================
        # Test Plan Tools
        # ============================================================================
        Tool(
            name="create_test_plan",
            description="Create a test plan.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "name": {"type": "string", "description": "Test plan name"},
                    "area_path": {"type": "string", "description": "Area path (default: project root)"},
                    "iteration": {"type": "string", "description": "Iteration path (default: project root)"}
                },
                "required": ["project", "name"]
            }
        ),
        Tool(
            name="list_test_plans",
            description="List test plans in a project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "active_only": {"type": "boolean", "description": "Only return active plans"}
                },
                "required": ["project"]
            }
        ),
        Tool(
            name="create_test_suite",
            description="Create a test suite in a plan. Dynamic suites need query_string; "
                       "requirement suites need requirement_id.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "plan_id": PLAN_ID,
                    "name": {"type": "string", "description": "Suite name"},
                    "suite_type": {
                        "type": "string",
                        "enum": ["staticTestSuite", "dynamicTestSuite", "requirementTestSuite"],
                        "description": "Suite type (default: staticTestSuite)"
                    },
                    "parent_suite_id": {"type": "integer", "description": "Parent suite ID (default: plan root suite)"},
                    "query_string": {"type": "string", "description": "WIQL for dynamic suites"},
                    "requirement_id": {"type": "integer", "description": "Requirement work item ID for requirement suites"}
                },
                "required": ["project", "plan_id", "name"]
            }
        ),
        Tool(
            name="create_test_case",
            description="Create a Test Case work item with an optional action/expected-result step.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "title": {"type": "string", "description": "Test case title"},
                    "steps": {"type": "string", "description": "Step action"},
                    "expected_result": {"type": "string", "description": "Expected result of the step"},
                    "priority": {"type": "integer", "enum": [1, 2, 3, 4], "description": "Priority (default: 2)"},
                    "area_path": {"type": "string", "description": "Area path"},
                    "iteration_path": {"type": "string", "description": "Iteration path"}
                },
                "required": ["project", "title"]
            }
        ),
        Tool(
            name="add_test_cases_to_suite",
            description="Add existing test cases to a test suite.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "plan_id": PLAN_ID,
                    "suite_id": SUITE_ID,
                    "test_case_ids": {
                        "type": "array",
                        "items": {"type": "integer"},
                        "description": "Test case work item IDs"
                    }
                },
                "required": ["project", "plan_id", "suite_id", "test_case_ids"]
            }
        ),
        Tool(
            name="list_test_cases",
            description="List test cases in a test suite.",
            inputSchema={
                "type": "object",
                "properties": {"project": PROJECT, "plan_id": PLAN_ID, "suite_id": SUITE_ID},
                "required": ["project", "plan_id", "suite_id"]
            }
        ),
        Tool(
            name="run_test_case",
            description="Record a manual test outcome for a test case in a suite (creates and completes a test run).",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "plan_id": PLAN_ID,
                    "suite_id": SUITE_ID,
                    "test_case_id": {"type": "integer", "description": "Test case work item ID"},
                    "outcome": {
                        "type": "string",
                        "enum": ["Passed", "Failed", "Blocked", "NotApplicable", "None"],
                        "description": "Test outcome"
                    },
                    "comment": {"type": "string", "description": "Optional result comment"}
                },
                "required": ["project", "plan_id", "suite_id", "test_case_id", "outcome"]
            }
        ),
        Tool(
            name="get_test_results",
            description="Get the results of a test run.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "run_id": {"type": "integer", "description": "Test run ID"}
                },
                "required": ["project", "run_id"]
            }
        ),
        Tool(
            name="get_test_results_by_build",
            description="Summarize test results across all test runs of a build.",
            inputSchema={
                "type": "object",
                "properties": {"project": PROJECT, "build_id": BUILD_ID},
                "required": ["project", "build_id"]
            }
        ),

        # ============================================================================
        # Release Tools
        # ============================================================================
        Tool(
            name="list_release_definitions",
            description="List release pipeline definitions in a project.",
            inputSchema={
                "type": "object",
                "properties": {"project": PROJECT},
                "required": ["project"]
            }
        ),
        Tool(
            name="list_releases",
            description="List releases, optionally for one release definition.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "definition_id": {"type": "integer", "description": "Release definition ID"},
                    "top": _top(20)
                },
                "required": ["project"]
            }
        ),
        Tool(
            name="create_release",
            description="Create a release from a release definition.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "definition_id": {"type": "integer", "description": "Release definition ID"},
                    "description": {"type": "string", "description": "Release description"}
                },
                "required": ["project", "definition_id"]
            }
        ),
        Tool(
            name="deploy_release",
            description="Deploy a release to one of its environments (stages).",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "release_id": {"type": "integer", "description": "Release ID"},
                    "environment_id": {"type": "integer", "description": "Release environment ID"},
                    "comment": {"type": "string", "description": "Deployment comment"}
                },
                "required": ["project", "release_id", "environment_id"]
            }
        ),

        # ============================================================================
        # Wiki Tools
        # ============================================================================
        Tool(
            name="list_wikis",
            description="List wikis in a project.",
            inputSchema={
                "type": "object",
                "properties": {"project": PROJECT},
                "required": ["project"]
            }
        ),
        Tool(
            name="get_wiki_page",
            description="Get a wiki page's content and version. Pass the version to update_wiki_page.",
            inputSchema={
                "type": "object",
                "properties": {"project": PROJECT, "wiki_identifier": WIKI_IDENTIFIER, "path": PAGE_PATH},
                "required": ["project", "wiki_identifier", "path"]
            }
        ),
        Tool(
            name="create_wiki_page",
            description="Create a wiki page (Markdown content).",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "wiki_identifier": WIKI_IDENTIFIER,
                    "path": PAGE_PATH,
                    "content": {"type": "string", "description": "Page content in Markdown"}
                },
                "required": ["project", "wiki_identifier", "path", "content"]
            }
        ),
        Tool(
            name="update_wiki_page",
            description="Update a wiki page. 'version' is the ETag returned by get_wiki_page.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": PROJECT,
                    "wiki_identifier": WIKI_IDENTIFIER,
                    "path": PAGE_PATH,
                    "content": {"type": "string", "description": "New page content in Markdown"},
                    "version": {"type": "string", "description": "Page version (ETag) from get_wiki_page"}
                },
                "required": ["project", "wiki_identifier", "path", "content", "version"]
            }
        ),
    ]
