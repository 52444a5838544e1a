"""Tests for tool handlers against a fake Azure DevOps backend."""
import json

import pytest

from ado_mcp import handlers
from ado_mcp.validation import ValidationError


def _body(request):
    return json.loads(request.content)


def _work_item(wi_id, title, state="Active", wi_type="Task"):
    return {
        "id": wi_id,
        "fields": {
            "System.Title": title,
            "System.State": state,
            "System.WorkItemType": wi_type,
            "System.AssignedTo": {"displayName": "Ada Lovelace"},
        },
    }


class TestValidationBeforeIO:
    """Invalid arguments are rejected before any request is sent."""

    @pytest.mark.parametrize("handler,arguments", [
        (handlers.handle_wit_get_work_item, {"id": 0}),
        (handlers.handle_wit_get_work_item, {"id": 2147483648}),
        (handlers.handle_list_work_items, {"project": "../secrets"}),
        (handlers.handle_list_repositories, {"project": "a//b"}),
        (handlers.handle_get_repository, {"project": "Proj", "repository": "../other"}),
        (handlers.handle_create_pull_request, {
            "project": "Proj", "repository": "app", "source_branch": "bad branch",
            "target_branch": "main", "title": "t",
        }),
        (handlers.handle_create_pull_request, {
            "project": "Proj", "repository": "app", "source_branch": "feature/x",
            "target_branch": "main", "title": "x" * 501,
        }),
        (handlers.handle_wit_work_items_link, {"source_id": 1, "target_id": 2, "link_type": "Sibling"}),
        (handlers.handle_wit_work_items_link, {"source_id": 3, "target_id": 3}),
        (handlers.handle_create_iteration, {"project": "Proj", "name": "Sprint 1", "start_date": "2024-01-01"}),
        (handlers.handle_run_test_case, {
            "project": "Proj", "plan_id": 1, "suite_id": 2, "test_case_id": 3, "outcome": "Maybe",
        }),
        (handlers.handle_add_test_cases_to_suite, {"project": "Proj", "plan_id": 1, "suite_id": 2, "test_case_ids": []}),
        (handlers.handle_wit_create_work_item, {"project": "Proj", "type": "Bug", "fields": {"System.State": "New"}}),
        (handlers.handle_wit_create_work_item, {
            "project": "Proj", "type": "Bug", "fields": {"System.Title": "t", "System.Title/../relations": "x"},
        }),
        (handlers.handle_wit_create_work_item, {
            "project": "Proj", "type": "Bug", "fields": {"System.Title": "t", "Custom~0Field": "x"},
        }),
        (handlers.handle_get_branch, {"project": "Proj", "repository": "app", "branch": 5}),
        (handlers.handle_get_branch, {"project": "Proj", "repository": "app"}),
        (handlers.handle_update_wiki_page, {
            "project": "Proj", "wiki_identifier": "Proj.wiki", "path": "/Home", "content": "x", "version": "",
        }),
    ])
    async def test_rejected_without_request(self, client, fake_ado, handler, arguments):
        with pytest.raises(ValidationError):
            await handler(arguments, client)
        assert fake_ado.requests == []


class TestProjects:
    """Test project handlers."""

    async def test_list_projects(self, client, fake_ado):
        fake_ado.add("GET", "/contoso/_apis/projects", {"value": [
            {"name": "Alpha", "description": "First"},
            {"name": "Beta"},
        ]})

        result = await handlers.handle_list_projects({}, client)

        text = result[0].text
        assert "Found 2 projects" in text
        assert "- Alpha: First" in text
        assert "- Beta: No description" in text

    async def test_get_project(self, client, fake_ado):
        fake_ado.add("GET", "/contoso/_apis/projects/My Project", {
            "id": "abc", "name": "My Project", "state": "wellFormed", "visibility": "private",
        })

        result = await handlers.handle_get_project({"project_id": "My Project"}, client)

        assert "Project: My Project" in result[0].text
        assert "State: wellFormed" in result[0].text


class TestWorkItems:
    """Test work item handlers."""

    async def test_default_query_escapes_project(self, client, fake_ado):
        project = "O'Brien"
        fake_ado.add("POST", f"/contoso/{project}/_apis/wit/wiql", {"workItems": [{"id": 1}, {"id": 2}]})
        fake_ado.add("GET", "/contoso/_apis/wit/workitems", {"value": [
            _work_item(1, "First"), _work_item(2, "Second"),
        ]})

        result = await handlers.handle_list_work_items({"project": project}, client)

        wiql_request = fake_ado.requests[0]
        assert "[System.TeamProject] = 'O''Brien'" in _body(wiql_request)["query"]
        assert wiql_request.url.params["$top"] == "20"
        assert fake_ado.requests[1].url.params["ids"] == "1,2"
        assert "Found 2 work items" in result[0].text
        assert "- [1] First (Task, Active, Ada Lovelace)" in result[0].text

    async def test_custom_query_passed_through(self, client, fake_ado):
        query = "SELECT [System.Id] FROM WorkItems WHERE [System.State] = 'Active'"
        fake_ado.add("POST", "/contoso/Proj/_apis/wit/wiql", {"workItems": []})

        result = await handlers.handle_list_work_items({"project": "Proj", "query": query}, client)

        assert _body(fake_ado.requests[0])["query"] == query
        assert "Found 0 work items" in result[0].text
        assert len(fake_ado.requests) == 1

    async def test_work_items_fetched_in_batches(self, client, fake_ado):
        ids = list(range(1, 251))
        fake_ado.add("POST", "/contoso/_apis/wit/wiql", {"workItems": [{"id": i} for i in ids]})
        fake_ado.add("GET", "/contoso/_apis/wit/workitems", {"value": []})

        await handlers.handle_wit_run_query({"query": "SELECT [System.Id] FROM WorkItems"}, client)

        gets = [r for r in fake_ado.requests if r.method == "GET"]
        assert len(gets) == 2
        assert len(gets[0].url.params["ids"].split(",")) == 200
        assert len(gets[1].url.params["ids"].split(",")) == 50

    async def test_iteration_path_escaped(self, client, fake_ado):
        fake_ado.add("POST", "/contoso/Proj/_apis/wit/wiql", {"workItems": []})

        result = await handlers.handle_wit_get_work_items_for_iteration(
            {"project": "Proj", "iteration_path": "Proj\\Sprint 'A'"}, client)

        assert "UNDER 'Proj\\Sprint ''A'''" in _body(fake_ado.requests[0])["query"]
        assert "No work items found" in result[0].text

    async def test_create_work_item_sends_json_patch(self, client, fake_ado):
        fake_ado.add("POST", "/contoso/Proj/_apis/wit/workitems/$Bug", {
            "id": 99, "fields": {"System.Title": "Crash on save"},
        })

        result = await handlers.handle_wit_create_work_item({
            "project": "Proj",
            "type": "Bug",
            "fields": {"System.Title": "Crash on save", "Microsoft.VSTS.Common.Priority": 1},
        }, client)

        request = fake_ado.last()
        assert request.headers["Content-Type"] == "application/json-patch+json"
        assert _body(request) == [
            {"op": "add", "path": "/fields/System.Title", "value": "Crash on save"},
            {"op": "add", "path": "/fields/Microsoft.VSTS.Common.Priority", "value": 1},
        ]
        assert result[0].text == "Created work item #99: Crash on save"

    async def test_update_without_fields(self, client, fake_ado):
        result = await handlers.handle_wit_update_work_item({"id": 5}, client)

        assert result[0].text == "No updates provided"
        assert fake_ado.requests == []

    async def test_update_replaces_fields(self, client, fake_ado):
        fake_ado.add("PATCH", "/contoso/_apis/wit/workitems/5", {"id": 5, "fields": {"System.Title": "New"}})

        await handlers.handle_wit_update_work_item({"id": 5, "title": "New", "state": "Resolved"}, client)

        assert _body(fake_ado.last()) == [
            {"op": "replace", "path": "/fields/System.Title", "value": "New"},
            {"op": "replace", "path": "/fields/System.State", "value": "Resolved"},
        ]

    async def test_link_parent(self, client, fake_ado):
        fake_ado.add("PATCH", "/contoso/_apis/wit/workitems/10", {"id": 10})

        result = await handlers.handle_wit_work_items_link(
            {"source_id": 10, "target_id": 20, "link_type": "Parent"}, client)

        operation = _body(fake_ado.last())[0]
        assert operation["path"] == "/relations/-"
        assert operation["value"]["rel"] == "System.LinkTypes.Hierarchy-Reverse"
        assert operation["value"]["url"] == "https://dev.azure.com/contoso/_apis/wit/workItems/20"
        assert "Parent relationship" in result[0].text

    async def test_comments_use_preview_api(self, client, fake_ado):
        fake_ado.add("GET", "/contoso/Proj/_apis/wit/workItems/7/comments", {"comments": [
            {"text": "Looks good", "createdBy": {"displayName": "Grace"}, "createdDate": "2024-03-01T10:00:00Z"},
        ]})

        result = await handlers.handle_wit_list_work_item_comments({"id": 7, "project": "Proj"}, client)

        assert fake_ado.last().url.params["api-version"] == "7.0-preview.3"
        assert "Grace: Looks good" in result[0].text

    async def test_search_uses_search_host(self, client, fake_ado):
        fake_ado.add("POST", "/contoso/_apis/search/workitemsearchresults", {"results": []})

        result = await handlers.handle_wit_search_work_items({"search_text": "login", "project": "Proj"}, client)

        request = fake_ado.last()
        assert request.url.host == "almsearch.dev.azure.com"
        assert _body(request)["filters"] == {"System.TeamProject": ["Proj"]}
        assert result[0].text == "No work items found matching the search criteria"


class TestWorkTracking:
    """Test iteration and area handlers."""

    async def test_list_areas_flattens_tree(self, client, fake_ado):
        fake_ado.add("GET", "/contoso/Proj/_apis/wit/classificationnodes/areas", {
            "name": "Proj",
            "children": [
                {"name": "Web", "children": [{"name": "Checkout"}]},
                {"name": "Mobile"},
            ],
        })

        result = await handlers.handle_list_areas({"project": "Proj"}, client)

        assert fake_ado.last().url.params["$depth"] == "10"
        assert result[0].text.splitlines() == [
            "Found 4 areas:",
            "- Proj",
            "- Proj\\Web",
            "- Proj\\Web\\Checkout",
            "- Proj\\Mobile",
        ]

    async def test_create_iteration_with_dates(self, client, fake_ado):
        fake_ado.add("POST", "/contoso/Proj/_apis/wit/classificationnodes/iterations/", {
            "name": "Sprint 1", "path": "\\Proj\\Iteration\\Sprint 1",
        })

        result = await handlers.handle_create_iteration({
            "project": "Proj", "name": "Sprint 1", "start_date": "2024-01-01", "finish_date": "2024-01-14",
        }, client)

        assert _body(fake_ado.last())["attributes"] == {
            "startDate": "2024-01-01T00:00:00Z",
            "finishDate": "2024-01-14T00:00:00Z",
        }
        assert "Created iteration: Sprint 1 (2024-01-01 to 2024-01-14)" in result[0].text

    async def test_finish_before_start_rejected(self, client, fake_ado):
        with pytest.raises(ValidationError, match="finish_date must not be before start_date"):
            await handlers.handle_create_iteration({
                "project": "Proj", "name": "S", "start_date": "2024-02-01", "finish_date": "2024-01-01",
            }, client)


class TestRepositories:
    """Test repository and pull request handlers."""

    async def test_create_pull_request(self, client, fake_ado):
        fake_ado.add("POST", "/contoso/Proj/_apis/git/repositories/app/pullrequests", {
            "pullRequestId": 12, "title": "Add login", "status": "active",
        })

        result = await handlers.handle_create_pull_request({
            "project": "Proj", "repository": "app", "source_branch": "feature/login",
            "target_branch": "refs/heads/main", "title": "Add login",
        }, client)

        body = _body(fake_ado.last())
        assert body["sourceRefName"] == "refs/heads/feature/login"
        assert body["targetRefName"] == "refs/heads/main"
        assert "Created PR #12: Add login" in result[0].text

    async def test_complete_pull_request_reads_merge_commit(self, client, fake_ado):
        pr_path = "/contoso/Proj/_apis/git/repositories/app/pullrequests/12"
        commit = {"commitId": "abc123"}
        fake_ado.add("GET", pr_path, {"pullRequestId": 12, "lastMergeSourceCommit": commit})
        fake_ado.add("PATCH", pr_path, {"pullRequestId": 12, "status": "completed"})

        result = await handlers.handle_update_pull_request_status({
            "project": "Proj", "repository": "app", "pull_request_id": 12, "status": "completed",
        }, client)

        assert [r.method for r in fake_ado.requests] == ["GET", "PATCH"]
        assert _body(fake_ado.last()) == {"status": "completed", "lastMergeSourceCommit": commit}
        assert result[0].text == "Updated PR #12 status to: completed"

    async def test_list_pull_requests_status_filter(self, client, fake_ado):
        fake_ado.add("GET", "/contoso/Proj/_apis/git/repositories/app/pullrequests", {"value": []})

        await handlers.handle_list_pull_requests({"project": "Proj", "repository": "app", "status": "abandoned"}, client)

        assert fake_ado.last().url.params["searchCriteria.status"] == "abandoned"

    async def test_get_branch_exact_match(self, client, fake_ado):
        fake_ado.add("GET", "/contoso/Proj/_apis/git/repositories/app/refs", {"value": [
            {"name": "refs/heads/main-old", "objectId": "111"},
            {"name": "refs/heads/main", "objectId": "222", "creator": {"displayName": "Linus"}},
        ]})

        result = await handlers.handle_get_branch({"project": "Proj", "repository": "app", "branch": "main"}, client)

        assert fake_ado.last().url.params["filter"] == "heads/main"
        assert "Commit: 222" in result[0].text

    async def test_resolve_comment_defaults_to_closed(self, client, fake_ado):
        fake_ado.add("PATCH", "/contoso/Proj/_apis/git/repositories/app/pullrequests/3/threads/9", {})

        result = await handlers.handle_resolve_comment(
            {"project": "Proj", "repository": "app", "pull_request_id": 3, "thread_id": 9}, client)

        assert _body(fake_ado.last()) == {"status": "closed"}
        assert "status: closed" in result[0].text


class TestBuilds:
    """Test build handlers."""

    async def test_run_build_on_branch(self, client, fake_ado):
        fake_ado.add("POST", "/contoso/Proj/_apis/build/builds", {
            "id": 501, "status": "notStarted", "definition": {"name": "CI"},
        })

        result = await handlers.handle_run_build(
            {"project": "Proj", "definition_id": 4, "source_branch": "main"}, client)

        assert _body(fake_ado.last()) == {"definition": {"id": 4}, "sourceBranch": "refs/heads/main"}
        assert "Started build #501" in result[0].text

    async def test_log_content_json(self, client, fake_ado):
        fake_ado.add("GET", "/contoso/Proj/_apis/build/builds/8/logs/3", {"value": ["line one", "line two"]})

        result = await handlers.handle_get_build_log_content(
            {"project": "Proj", "build_id": 8, "log_id": 3, "start_line": 1, "end_line": 2}, client)

        assert fake_ado.last().url.params["startLine"] == "1"
        assert result[0].text.endswith("line one\nline two")

    async def test_log_content_text(self, client, fake_ado):
        fake_ado.add("GET", "/contoso/Proj/_apis/build/builds/8/logs/3", text="alpha\nbeta\n")

        result = await handlers.handle_get_build_log_content({"project": "Proj", "build_id": 8, "log_id": 3}, client)

        assert "(2 lines)" in result[0].text


class TestTestPlans:
    """Test test plan handlers."""

    async def test_create_suite_under_root(self, client, fake_ado):
        fake_ado.add("GET", "/contoso/Proj/_apis/testplan/plans/5", {"id": 5, "rootSuite": {"id": 50}})
        fake_ado.add("POST", "/contoso/Proj/_apis/testplan/Plans/5/suites", {"id": 51, "name": "Smoke"})

        result = await handlers.handle_create_test_suite({"project": "Proj", "plan_id": 5, "name": "Smoke"}, client)

        assert _body(fake_ado.last()) == {
            "suiteType": "staticTestSuite", "name": "Smoke", "parentSuite": {"id": 50},
        }
        assert result[0].text == "Created test suite: Smoke (ID: 51) in plan 5"

    async def test_create_test_case_steps_xml(self, client, fake_ado):
        fake_ado.add("POST", "/contoso/Proj/_apis/wit/workitems/$Test Case", {
            "id": 77, "fields": {"System.Title": "Login works"},
        })

        await handlers.handle_create_test_case({
            "project": "Proj", "title": "Login works", "steps": "Enter <user>", "expected_result": "Welcome",
        }, client)

        steps = [op for op in _body(fake_ado.last()) if op["path"] == "/fields/Microsoft.VSTS.TCM.Steps"][0]
        assert "Enter &lt;user&gt;" in steps["value"]
        assert "Welcome" in steps["value"]

    async def test_run_test_case_flow(self, client, fake_ado):
        fake_ado.add("GET", "/contoso/Proj/_apis/testplan/Plans/1/Suites/2/TestPoint", {"value": [{"id": 300}]})
        fake_ado.add("POST", "/contoso/Proj/_apis/test/runs", {"id": 40})
        fake_ado.add("GET", "/contoso/Proj/_apis/test/runs/40/results", {"value": [{"id": 100000}]})
        fake_ado.add("PATCH", "/contoso/Proj/_apis/test/runs/40/results", {"value": []})
        fake_ado.add("PATCH", "/contoso/Proj/_apis/test/runs/40", {"id": 40, "state": "Completed"})

        result = await handlers.handle_run_test_case({
            "project": "Proj", "plan_id": 1, "suite_id": 2, "test_case_id": 3, "outcome": "Passed",
        }, client)

        assert [r.method for r in fake_ado.requests] == ["GET", "POST", "GET", "PATCH", "PATCH"]
        assert _body(fake_ado.requests[1])["pointIds"] == [300]
        assert _body(fake_ado.requests[3])[0]["outcome"] == "Passed"
        assert "outcome: Passed (run 40)" in result[0].text

    async def test_results_by_build_aggregates_runs(self, client, fake_ado):
        fake_ado.add("GET", "/contoso/Proj/_apis/test/runs", {"value": [{"id": 1}]})
        fake_ado.add("GET", "/contoso/Proj/_apis/test/runs/1/results", {"value": [
            {"testCaseTitle": "a", "outcome": "Passed"},
            {"testCaseTitle": "b", "outcome": "Failed"},
            {"testCaseTitle": "c", "outcome": "NotExecuted"},
        ]})

        result = await handlers.handle_get_test_results_by_build({"project": "Proj", "build_id": 9}, client)

        assert fake_ado.requests[0].url.params["buildUri"] == "vstfs:///Build/Build/9"
        text = result[0].text
        assert "Total: 3" in text
        assert "Passed: 1" in text
        assert "Failed: 1" in text


class TestReleasesAndWikis:
    """Test release and wiki handlers."""

    async def test_deploy_release(self, client, fake_ado):
        fake_ado.add("PATCH", "/contoso/Proj/_apis/release/releases/6/environments/2", {})

        await handlers.handle_deploy_release({"project": "Proj", "release_id": 6, "environment_id": 2}, client)

        request = fake_ado.last()
        assert request.url.host == "vsrm.dev.azure.com"
        assert request.url.params["api-version"] == "7.0-preview.7"
        assert _body(request)["status"] == "inProgress"

    async def test_get_wiki_page_reports_etag(self, client, fake_ado):
        fake_ado.add("GET", "/contoso/Proj/_apis/wiki/wikis/Proj.wiki/pages",
                     {"path": "/Home", "content": "# Welcome"}, headers={"ETag": '"v1"'})

        result = await handlers.handle_get_wiki_page(
            {"project": "Proj", "wiki_identifier": "Proj.wiki", "path": "/Home"}, client)

        assert fake_ado.last().url.params["path"] == "/Home"
        assert 'Version (ETag): "v1"' in result[0].text
        assert "# Welcome" in result[0].text

    async def test_update_wiki_page_sends_if_match(self, client, fake_ado):
        fake_ado.add("PUT", "/contoso/Proj/_apis/wiki/wikis/Proj.wiki/pages", {"path": "/Home"})

        result = await handlers.handle_update_wiki_page({
            "project": "Proj", "wiki_identifier": "Proj.wiki", "path": "/Home",
            "content": "# New", "version": '"v1"',
        }, client)

        assert fake_ado.last().headers["If-Match"] == '"v1"'
        assert result[0].text == "Updated wiki page: /Home"


class TestBranchArguments:
    """Test branch argument handling."""

    async def test_non_string_branch_reports_validation_error(self, client, fake_ado):
        with pytest.raises(ValidationError, match="Branch name must be a string"):
            await handlers.handle_get_branch({"project": "Proj", "repository": "app", "branch": 5}, client)
        assert fake_ado.requests == []
