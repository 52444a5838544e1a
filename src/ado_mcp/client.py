"""HTTP client for the Azure DevOps REST API.

All outbound requests go through AzureDevOpsClient.request(), which:
- Counts the call against the client's rate limiter before any network I/O
- Adds the api-version query parameter unless the caller supplied one
- Returns the raw httpx.Response (handlers call raise_for_status())
"""
import base64
import logging
from typing import Any, Optional

import httpx

from .config import Settings
from .rate_limit import FixedWindowRateLimiter

logger = logging.getLogger("ado-mcp.client")

JSON_PATCH_HEADERS = {"Content-Type": "application/json-patch+json"}


def _basic_auth_header(pat: str) -> str:
    token = base64.b64encode(f":{pat}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class AzureDevOpsClient:
    """Authenticated, rate-limited client for one Azure DevOps organization.

    Args:
        settings: Resolved startup settings
        rate_limiter: Limiter owned by this client (built from settings if omitted)
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        settings: Settings,
        rate_limiter: Optional[FixedWindowRateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.organization = settings.organization
        self.api_version = settings.api_version
        self.rate_limiter = rate_limiter or FixedWindowRateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_ms=settings.rate_limit_window_ms,
        )
        self.http = httpx.AsyncClient(
            base_url=settings.organization_url,
            timeout=settings.request_timeout,
            headers={
                "Authorization": _basic_auth_header(settings.pat),
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    async def __aenter__(self) -> "AzureDevOpsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[dict] = None,
        api_version: Optional[str] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request after checking the rate limit.

        Raises:
            RateLimitExceeded: before any I/O if the window's ceiling is exceeded
            httpx.RequestError: on connection failures
        """
        self.rate_limiter.check()

        query = dict(params or {})
        query.setdefault("api-version", api_version or self.api_version)
        logger.debug(f"{method} {url} params={query}")
        return await self.http.request(method, url, params=query, **kwargs)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    def release_url(self, path: str) -> str:
        """Absolute URL on the release-management host (vsrm.dev.azure.com)."""
        return f"{self.settings.release_url}{path}"

    def search_url(self, path: str) -> str:
        """Absolute URL on the search host (almsearch.dev.azure.com)."""
        return f"{self.settings.search_url}{path}"

    def work_item_url(self, work_item_id: int) -> str:
        """Absolute API URL of a work item, as used in relation links."""
        return f"{self.settings.organization_url}/_apis/wit/workItems/{work_item_id}"


def describe_http_error(error: Exception) -> str:
    """Summarize an httpx error as '<status>: <message>' for tool output."""
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        message = None
        try:
            body = response.json()
            if isinstance(body, dict):
                message = body.get("message")
        except ValueError:
            pass
        return f"{response.status_code}: {message or response.reason_phrase}"
    if isinstance(error, httpx.TimeoutException):
        return "Request timed out"
    if isinstance(error, httpx.RequestError):
        return f"No response from server ({type(error).__name__})"
    return str(error) or type(error).__name__
