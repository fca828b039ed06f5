"""HTTP request helper enforcing expected status codes."""

import json
import logging
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import aiohttp

log = logging.getLogger(__name__)

type QueryParams = Mapping[str, str | int | float]


class UnexpectedStatusError(AssertionError):
    """Raised when a response status differs from the expected one.

    Subclasses ``AssertionError`` so it fails the current test method rather
    than the suite.
    """

    def __init__(self, status: int, expected: int, url: str) -> None:
        super().__init__(
            f"Request failed with status code {status}, expected {expected}. "
            f"Endpoint: {url}"
        )
        self.status = status
        self.expected = expected
        self.url = url


@dataclass(frozen=True, kw_only=True)
class ApiResponse:
    """Fully read HTTP response."""

    status: int
    url: str
    headers: Mapping[str, str]
    text: str

    def json(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.text)


def build_url(base_url: str, path: str | None = None) -> str:
    """Join a base URL and an optional path with exactly one slash."""
    if not path:
        return base_url
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


@dataclass(frozen=True, kw_only=True)
class RequestHelper:
    """Issues GET/POST/PUT requests and checks the response status."""

    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def create(cls, timeout: float = 30) -> AsyncGenerator["RequestHelper", None]:
        """Create helper with managed session lifecycle."""
        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=timeout)
        ) as session:
            yield cls(session=session)

    async def get(
        self,
        url: str,
        path: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        params: QueryParams | None = None,
        expected_status: int = 200,
    ) -> ApiResponse:
        """Issue a GET request."""
        return await self.request(
            "GET",
            url,
            path,
            headers=headers,
            params=params,
            expected_status=expected_status,
        )

    async def post(
        self,
        url: str,
        path: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        params: QueryParams | None = None,
        body: Any = None,
        expected_status: int = 200,
    ) -> ApiResponse:
        """Issue a POST request."""
        return await self.request(
            "POST",
            url,
            path,
            headers=headers,
            params=params,
            body=body,
            expected_status=expected_status,
        )

    async def put(
        self,
        url: str,
        path: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        params: QueryParams | None = None,
        body: Any = None,
        expected_status: int = 200,
    ) -> ApiResponse:
        """Issue a PUT request."""
        return await self.request(
            "PUT",
            url,
            path,
            headers=headers,
            params=params,
            body=body,
            expected_status=expected_status,
        )

    async def request(
        self,
        method: str,
        url: str,
        path: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        params: QueryParams | None = None,
        body: Any = None,
        expected_status: int = 200,
    ) -> ApiResponse:
        """Issue a request and return the response if the status matches.

        Mappings and lists are sent as JSON, strings and bytes as they are.

        Raises:
            UnexpectedStatusError: If the status code differs from expected_status

        """
        target = build_url(url, path)
        kwargs: dict[str, Any] = {}
        if headers:
            kwargs["headers"] = dict(headers)
        if params:
            kwargs["params"] = {key: str(value) for key, value in params.items()}
        if isinstance(body, (str, bytes)):
            kwargs["data"] = body
        elif body is not None:
            kwargs["json"] = body

        async with self.session.request(method, target, **kwargs) as response:
            text = await response.text()
            result = ApiResponse(
                status=response.status,
                url=str(response.url),
                headers=dict(response.headers),
                text=text,
            )

        if result.status != expected_status:
            log.error(
                "Request failed with status code %d, expected %d. Endpoint: %s",
                result.status,
                expected_status,
                target,
            )
            raise UnexpectedStatusError(result.status, expected_status, target)

        log.info(
            "%s request executed with status code %d. Endpoint: %s. Query params: %s",
            method,
            result.status,
            target,
            params,
        )
        return result
