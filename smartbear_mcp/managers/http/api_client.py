"""
HTTP client used by backend clients to reach product REST APIs.

This module provides:
- Consistent header construction (User-Agent, JSON content type, auth)
- A single ``call(endpoint, method, body)`` entry point
- One retry after refreshing the auth token on 401
- Link-header pagination for list endpoints
- Mapping of error statuses to user-facing ``ApiRequestError``
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from ..tools.exceptions import ToolError

logger = logging.getLogger(__name__)

_NEXT_LINK = re.compile(r'<([^>]+)>;\s*rel="next"')

TokenRefresher = Callable[[], Awaitable[Optional[str]]]


class ApiRequestError(ToolError):
    """Raised when a product API answers with an error status."""

    def __init__(self, message: str, status_code: int, response_text: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text


@dataclass
class ApiResponse:
    """Status, headers and decoded body of an API call."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None


def next_page_url(link_header: Optional[str]) -> Optional[str]:
    """Extract the rel="next" URL from a Link header."""
    if not link_header:
        return None
    match = _NEXT_LINK.search(link_header)
    return match.group(1) if match else None


class ApiClient:
    """
    Async REST client with standardized headers, auth and error handling.
    """

    def __init__(
        self,
        base_url: str,
        auth_token: Optional[str] = None,
        auth_scheme: str = "Bearer",
        headers: Optional[Dict[str, str]] = None,
        user_agent: Optional[str] = None,
        token_refresher: Optional[TokenRefresher] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: Base URL that relative endpoints are joined to
            auth_token: Token sent in the Authorization header
            auth_scheme: Authorization scheme, e.g. "Bearer" or "token"
            headers: Extra default headers for every request
            user_agent: User-Agent header value
            token_refresher: Coroutine returning a fresh token after a 401
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token
        self.auth_scheme = auth_scheme
        self.default_headers = dict(headers or {})
        self.user_agent = user_agent
        self.token_refresher = token_refresher
        self.timeout = timeout
        self._transport = transport

    def build_url(self, endpoint: str) -> str:
        """Build full URL from endpoint."""
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def build_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Merge default, per-request and auth headers."""
        headers = {"Content-Type": "application/json"}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        headers.update(self.default_headers)
        if extra:
            headers.update(extra)
        if self.auth_token:
            headers["Authorization"] = f"{self.auth_scheme} {self.auth_token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        body: Any,
        params: Optional[Dict[str, Any]],
        headers: Optional[Dict[str, str]],
    ) -> httpx.Response:
        response = await client.request(
            method, url, json=body, params=params, headers=self.build_headers(headers)
        )
        if response.status_code == 401 and self.token_refresher is not None:
            logger.info(f"Received 401 from {url}, refreshing token and retrying")
            new_token = await self.token_refresher()
            if new_token:
                self.auth_token = new_token
            response = await client.request(
                method, url, json=body, params=params, headers=self.build_headers(headers)
            )
        if response.status_code >= 400:
            logger.warning(f"HTTP {response.status_code} from {method} {url}")
            raise ApiRequestError(
                f"Request failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
                response_text=response.text,
            )
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        paginate: bool = False,
    ) -> ApiResponse:
        """
        Perform a request and decode the JSON response.

        With ``paginate`` the list bodies of every page reachable through
        rel="next" links are concatenated.

        Raises:
            ApiRequestError: On an error status
            httpx.RequestError: On transport failures
        """
        url = self.build_url(endpoint)
        method = method.upper()

        async with self._client() as client:
            logger.debug(f"{method} request to {url} with params: {params}")
            response = await self._send(client, method, url, body, params, headers)
            data = self._decode(response)

            if paginate:
                results = list(data or [])
                next_url = next_page_url(response.headers.get("link"))
                while next_url:
                    response = await self._send(client, method, next_url, body, None, headers)
                    results.extend(self._decode(response) or [])
                    next_url = next_page_url(response.headers.get("link"))
                data = results

        logger.debug(f"Successful {method} request to {url}")
        return ApiResponse(status=response.status_code, headers=dict(response.headers), body=data)
