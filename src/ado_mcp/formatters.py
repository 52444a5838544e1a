"""Formatting functions for Azure DevOps tool responses.

Each function takes the JSON object returned by the REST API and returns the
display text sent back to the MCP client.
"""
from datetime import datetime
from typing import Optional
from xml.sax.saxutils import escape


def _display_name(identity: Optional[dict], default: str = "Unassigned") -> str:
    if isinstance(identity, dict) and identity.get("displayName"):
        return identity["displayName"]
    return default


def format_timestamp(value: Optional[str], default: str = "N/A") -> str:
    """Render an ISO-8601 timestamp as 'YYYY-MM-DD HH:MM:SS'."""
    if not value:
        return default
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


def format_date(value: Optional[str]) -> str:
    """Render an ISO-8601 timestamp as 'YYYY-MM-DD'."""
    return format_timestamp(value)[:10] if value else "N/A"


def strip_ref_prefix(ref_name: str) -> str:
    """'refs/heads/main' -> 'main'."""
    return ref_name[len("refs/heads/"):] if ref_name.startswith("refs/heads/") else ref_name


# ============================================================================
# Projects
# ============================================================================

def format_project_summary(project: dict) -> str:
    return f"- {project['name']}: {project.get('description') or 'No description'}"


def format_project(project: dict) -> str:
    """Format a project for display."""
    return f"""Project: {project['name']}
ID: {project['id']}
Description: {project.get('description') or 'No description'}
State: {project.get('state', 'unknown')}
URL: {project.get('url', 'N/A')}
Visibility: {project.get('visibility', 'unknown')}"""


# ============================================================================
# Work Items
# ============================================================================

def format_work_item_summary(wi: dict) -> str:
    """Format a work item as a compact one-liner for list views."""
    fields = wi.get("fields", {})
    title = fields.get("System.Title", "(untitled)")
    wi_type = fields.get("System.WorkItemType", "unknown")
    state = fields.get("System.State", "unknown")
    assignee = _display_name(fields.get("System.AssignedTo"))
    return f"- [{wi['id']}] {title} ({wi_type}, {state}, {assignee})"


def format_work_item(wi: dict) -> str:
    """Format a work item with full details."""
    fields = wi.get("fields", {})
    return f"""Work Item #{wi['id']}:
Title: {fields.get('System.Title', '(untitled)')}
Type: {fields.get('System.WorkItemType', 'unknown')}
State: {fields.get('System.State', 'unknown')}
Assigned To: {_display_name(fields.get('System.AssignedTo'))}
Created By: {_display_name(fields.get('System.CreatedBy'), 'Unknown')}
Created: {format_timestamp(fields.get('System.CreatedDate'))}
Last Updated: {format_timestamp(fields.get('System.ChangedDate'))}
Area: {fields.get('System.AreaPath', 'N/A')}
Iteration: {fields.get('System.IterationPath', 'N/A')}
Tags: {fields.get('System.Tags') or 'No tags'}

Description:
{fields.get('System.Description') or 'No description'}"""


def format_work_item_comment(comment: dict) -> str:
    author = _display_name(comment.get("createdBy"), "Unknown")
    return f"- [{format_timestamp(comment.get('createdDate'))}] {author}: {comment.get('text', '')}"


def format_work_item_search_hit(hit: dict) -> str:
    fields = hit.get("fields", {})
    project = (hit.get("project") or {}).get("name", "unknown")
    return (f"- [{fields.get('system.id')}] {fields.get('system.title')} "
            f"({fields.get('system.workitemtype')}, {fields.get('system.state')}, {project})")


# ============================================================================
# Work Tracking (iterations, areas)
# ============================================================================

def format_iteration(iteration: dict) -> str:
    attributes = iteration.get("attributes") or {}
    start = attributes.get("startDate")
    finish = attributes.get("finishDate")
    dates = f" ({format_date(start)} - {format_date(finish)})" if start else ""
    timeframe = f" [{attributes['timeFrame']}]" if attributes.get("timeFrame") else ""
    return f"- {iteration['name']}{dates}{timeframe}"


def flatten_area_paths(node: dict, prefix: str = "") -> list[str]:
    """Walk a classification node tree depth-first, returning backslash-joined paths."""
    path = prefix + node["name"]
    paths = [path]
    for child in node.get("children") or []:
        paths.extend(flatten_area_paths(child, path + "\\"))
    return paths


# ============================================================================
# Repositories, Branches, Pull Requests
# ============================================================================

def format_repository_summary(repo: dict) -> str:
    disabled = " (disabled)" if repo.get("isDisabled") else ""
    return f"- {repo['name']}{disabled}"


def format_repository(repo: dict) -> str:
    return f"""Repository: {repo['name']}
ID: {repo['id']}
Default Branch: {repo.get('defaultBranch', 'N/A')}
Size: {repo.get('size', 'N/A')}
URL: {repo.get('webUrl', 'N/A')}"""


def format_branch(ref: dict) -> str:
    creator = _display_name(ref.get("creator"), "")
    creator_info = f" by {creator}" if creator else ""
    return f"- {strip_ref_prefix(ref['name'])} ({ref.get('objectId', '')[:8]}{creator_info})"


def format_pull_request_summary(pr: dict) -> str:
    return (f"- PR #{pr['pullRequestId']}: {pr['title']} ({pr.get('status', 'unknown')}) "
            f"by {_display_name(pr.get('createdBy'), 'Unknown')}\n"
            f"  {pr.get('sourceRefName', '?')} → {pr.get('targetRefName', '?')}")


def format_pull_request(pr: dict) -> str:
    """Format a pull request with full details."""
    reviewers = ", ".join(r.get("displayName", "?") for r in pr.get("reviewers") or []) or "None"
    repository = (pr.get("repository") or {}).get("name", "N/A")
    return f"""Pull Request #{pr['pullRequestId']}: {pr['title']}
Repository: {repository}
Status: {pr.get('status', 'unknown')}
Created By: {_display_name(pr.get('createdBy'), 'Unknown')}
Source Branch: {pr.get('sourceRefName', 'N/A')}
Target Branch: {pr.get('targetRefName', 'N/A')}
Created: {format_timestamp(pr.get('creationDate'))}
Merge Status: {pr.get('mergeStatus', 'N/A')}
Reviewers: {reviewers}
Description: {pr.get('description') or 'No description'}"""


def format_thread(thread: dict) -> str:
    comments = thread.get("comments") or []
    first = comments[0].get("content", "") if comments else ""
    preview = f": {first[:80]}" if first else ""
    return f"- Thread {thread['id']} (Status: {thread.get('status', 'unknown')}, {len(comments)} comments){preview}"


def format_thread_comment(comment: dict) -> str:
    author = _display_name(comment.get("author"), "Unknown")
    return f"- [{comment['id']}] {author}: {comment.get('content', '')}"


# ============================================================================
# Builds
# ============================================================================

def format_build_definition(definition: dict) -> str:
    path = definition.get("path", "\\")
    path_info = f" in {path}" if path and path != "\\" else ""
    return f"- [{definition['id']}] {definition['name']} ({definition.get('type', 'build')}){path_info}"


def format_build_summary(build: dict) -> str:
    definition = (build.get("definition") or {}).get("name", "unknown")
    result = build.get("result") or build.get("status", "unknown")
    branch = strip_ref_prefix(build.get("sourceBranch", ""))
    return f"- Build #{build['id']} {build.get('buildNumber', '')}: {definition} on {branch or 'N/A'} ({result})"


def format_build(build: dict) -> str:
    """Format a build with status details."""
    definition = (build.get("definition") or {}).get("name", "unknown")
    start = format_timestamp(build.get("startTime"), "Not started")
    finish = format_timestamp(build.get("finishTime"), "Not finished")
    return f"""Build #{build['id']}:
Definition: {definition}
Status: {build.get('status', 'unknown')}
Result: {build.get('result') or 'In Progress'}
Source Branch: {strip_ref_prefix(build.get('sourceBranch', '')) or 'N/A'}
Start Time: {start}
Finish Time: {finish}
Requested By: {_display_name(build.get('requestedBy'), 'Unknown')}"""


def format_build_log(log: dict) -> str:
    return f"- Log {log['id']}: {log.get('lineCount', '?')} lines ({format_timestamp(log.get('lastChangedOn'))})"


def format_build_change(change: dict) -> str:
    author = _display_name(change.get("author"), "Unknown")
    message = (change.get("message") or "").splitlines()[0] if change.get("message") else "(no message)"
    return f"- {change.get('id', '')[:8]} {author}: {message}"


# ============================================================================
# Test Plans
# ============================================================================

def format_test_plan(plan: dict) -> str:
    return f"- [{plan['id']}] {plan['name']} ({plan.get('state', 'unknown')})"


def format_test_case(entry: dict) -> str:
    test_case = entry.get("testCase") or entry.get("workItem") or {}
    priority = test_case.get("priority", "N/A")
    return f"- [{test_case.get('id')}] {test_case.get('name', 'Unknown')} (Priority: {priority})"


def format_test_result(result: dict) -> str:
    name = (result.get("testCase") or {}).get("name") or result.get("testCaseTitle") or "Unknown"
    error = f" - {result['errorMessage']}" if result.get("errorMessage") else ""
    duration = f" [{result['durationInMs']}ms]" if result.get("durationInMs") is not None else ""
    return f"- {name}: {result.get('outcome', 'Unknown')}{duration}{error}"


def build_test_steps_xml(action: str, expected_result: str = "") -> str:
    """Build the single-step XML stored in Microsoft.VSTS.TCM.Steps."""
    return (f'<steps id="0" last="1"><step id="1" type="ActionStep">'
            f'<parameterizedString isformatted="true">{escape(action)}</parameterizedString>'
            f'<parameterizedString isformatted="true">{escape(expected_result)}</parameterizedString>'
            f'</step></steps>')


# ============================================================================
# Releases
# ============================================================================

def format_release_definition(definition: dict) -> str:
    path = definition.get("path", "\\")
    path_info = f" in {path}" if path and path != "\\" else ""
    return f"- [{definition['id']}] {definition['name']}{path_info}"


def format_release_summary(release: dict) -> str:
    definition = (release.get("releaseDefinition") or {}).get("name", "unknown")
    return f"- [{release['id']}] {release['name']} - {definition} ({release.get('status', 'unknown')})"


# ============================================================================
# Wikis and Search
# ============================================================================

def format_wiki(wiki: dict) -> str:
    return f"- {wiki['name']} ({wiki.get('type', 'unknown')}, ID: {wiki['id']})"


def format_wiki_page(page: dict, etag: Optional[str] = None) -> str:
    version = f"\nVersion (ETag): {etag}" if etag else ""
    return f"""Wiki Page: {page.get('path', '/')}
Git Path: {page.get('gitItemPath', 'N/A')}{version}

Content:
{page.get('content') or '(empty page)'}"""


def format_code_search_hit(hit: dict) -> str:
    project = (hit.get("project") or {}).get("name", "unknown")
    repository = (hit.get("repository") or {}).get("name", "unknown")
    matches = sum(len(v) for v in (hit.get("matches") or {}).values()) if isinstance(hit.get("matches"), dict) else 0
    return f"- {hit.get('path', '?')} ({project}/{repository}) - {matches} matches"
