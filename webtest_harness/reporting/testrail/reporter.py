"""TestRail result reporter implementation."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from pydantic import ValidationError

from webtest_harness.http import ApiResponse, RequestHelper, UnexpectedStatusError
from webtest_harness.models.report import UNRESOLVED_ID, CaseMapping
from webtest_harness.reporting.base import ReportingError, ResultReporter
from webtest_harness.reporting.testrail.config import TestRailConfig
from webtest_harness.reporting.testrail.models import TestRun, TestsPage

log = logging.getLogger(__name__)

# Guards against a server that keeps returning a next link
MAX_PAGES = 100

_TRANSPORT_ERRORS = (aiohttp.ClientError, TimeoutError, UnexpectedStatusError)


@dataclass(frozen=True, kw_only=True)
class TestRailReporter(ResultReporter):
    """Reports results to TestRail over its v2 API with basic authentication."""

    __test__ = False

    config: TestRailConfig
    http: RequestHelper = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: TestRailConfig
    ) -> AsyncGenerator["TestRailReporter", None]:
        """Create reporter with managed session lifecycle."""
        async with aiohttp.ClientSession(
            auth=aiohttp.BasicAuth(config.username, config.password.get_secret_value()),
            headers={"Content-Type": "application/json"},
            timeout=aiohttp.ClientTimeout(total=config.timeout),
        ) as session:
            yield cls(config=config, http=RequestHelper(session=session))

    @property
    def api_url(self) -> str:
        return f"{self.config.url.rstrip('/')}{self.config.api_path}"

    def endpoint(self, path: str, **query: int) -> str:
        """Build an API URL, appending query arguments TestRail style."""
        url = f"{self.api_url}/{path}"
        if query:
            separator = "&" if "?" in url else "?"
            url += separator + "&".join(f"{key}={value}" for key, value in query.items())
        return url

    async def create_run(self, project_id: int, name: str, description: str) -> int:
        """Create a run in the project, returning -1 on any failure."""
        try:
            response = await self.http.post(
                self.endpoint(f"add_run/{project_id}"),
                body={"name": name, "description": description},
            )
            run = TestRun.model_validate(self._json(response))
        except (*_TRANSPORT_ERRORS, ReportingError, ValidationError) as e:
            log.error("[TestRail] Could not create test run: %s", e)
            return UNRESOLVED_ID

        log.info("[TestRail] Created Test Run with id: %d", run.id)
        return run.id

    async def find_case(self, run_id: int, method_name: str) -> CaseMapping:
        """Find the first run entry whose title equals the method name.

        Titles are compared exactly and case-sensitively. If a run holds
        several entries with the same title, the first one wins.
        """
        offset = 0
        for _ in range(MAX_PAGES):
            page = await self._get_tests(run_id, offset)

            for test in page.tests:
                if test.title == method_name:
                    return CaseMapping(
                        method_name=method_name,
                        case_id=test.case_id,
                        test_id=test.id,
                    )

            if page.links.next is None or not page.tests:
                break
            offset = page.offset + len(page.tests)

        return CaseMapping(method_name=method_name)

    async def post_result(
        self, run_id: int, case_id: int, status_id: int, comment: str
    ) -> bool:
        """Add a result for a case, logging instead of raising on failure."""
        try:
            await self.http.post(
                self.endpoint(f"add_result_for_case/{run_id}/{case_id}"),
                body={"status_id": status_id, "comment": comment},
            )
        except _TRANSPORT_ERRORS as e:
            log.error("[TestRail] Failed to update TestRail: %s", e)
            return False

        log.info("[TestRail] Updated case %d in run %d", case_id, run_id)
        return True

    async def _get_tests(self, run_id: int, offset: int) -> TestsPage:
        query = {"offset": offset} if offset else {}
        try:
            response = await self.http.get(self.endpoint(f"get_tests/{run_id}", **query))
            return TestsPage.parse(self._json(response))
        except (*_TRANSPORT_ERRORS, ValidationError) as e:
            raise ReportingError(f"Failed to list tests of run {run_id}: {e}") from e

    @staticmethod
    def _json(response: ApiResponse) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ReportingError(f"Invalid JSON from {response.url}: {e}") from e
