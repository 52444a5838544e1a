"""Fixtures for the Azure DevOps MCP test suite.

Provides environment isolation, settings, and a fake Azure DevOps HTTP
backend wired into AzureDevOpsClient through httpx.MockTransport.
"""
from typing import Any, Optional

import httpx
import pytest

from ado_mcp.client import AzureDevOpsClient
from ado_mcp.config import Settings


ENV_VARS = (
    "AZURE_DEVOPS_ORG",
    "AZURE_DEVOPS_PAT",
    "AZURE_DEVOPS_EXT_PAT",
    "AZURE_DEVOPS_BASE_URL",
    "AZURE_DEVOPS_RELEASE_BASE_URL",
    "AZURE_DEVOPS_SEARCH_BASE_URL",
    "AZURE_DEVOPS_API_VERSION",
    "AZURE_DEVOPS_TIMEOUT",
    "ADO_MCP_RATE_LIMIT",
    "ADO_MCP_RATE_WINDOW_MS",
    "ADO_MCP_LOG_LEVEL",
)


class FakeClock:
    """Manually advanced millisecond clock for rate limiter tests."""

    def __init__(self, start: int = 1_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeAzureDevOps:
    """Canned Azure DevOps backend for httpx.MockTransport.

    Routes match on method and exact URL path (e.g. "/contoso/_apis/projects").
    Every request is recorded; unmatched requests get a 404.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: list[tuple[str, str, httpx.Response]] = []

    def add(
        self,
        method: str,
        path: str,
        json: Any = None,
        status: int = 200,
        headers: Optional[dict] = None,
        text: Optional[str] = None,
    ) -> None:
        if text is not None:
            response = httpx.Response(status, text=text, headers=headers)
        else:
            response = httpx.Response(status, json=json if json is not None else {}, headers=headers)
        self.routes.append((method, path, response))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for method, path, response in self.routes:
            if request.method == method and request.url.path == path:
                return httpx.Response(
                    response.status_code,
                    headers=response.headers,
                    content=response.content,
                )
        return httpx.Response(404, json={"message": f"No route for {request.method} {request.url.path}"})

    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Strip Azure DevOps variables and run from an empty directory (no .env)."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def settings() -> Settings:
    return Settings(AZURE_DEVOPS_ORG="contoso", AZURE_DEVOPS_PAT="test-pat")


@pytest.fixture
def fake_ado() -> FakeAzureDevOps:
    return FakeAzureDevOps()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def client(settings, fake_ado):
    """AzureDevOpsClient wired to the fake backend (no real network)."""
    async with AzureDevOpsClient(settings, transport=httpx.MockTransport(fake_ado)) as c:
        yield c

