"""Fixtures for integration tests."""

from collections.abc import AsyncGenerator

import pytest
from aioresponses import aioresponses as aioresponses_cls
from pydantic import SecretStr

from webtest_harness.reporting.testrail import TestRailConfig, TestRailReporter

TESTRAIL_URL = "http://testrail.test"


@pytest.fixture
def testrail_config() -> TestRailConfig:
    """Create TestRail configuration with path-style API routing."""
    return TestRailConfig(
        url=TESTRAIL_URL,
        username="qa@example.com",
        password=SecretStr("api-key"),
        api_path="/api/v2",
        project_id=3,
    )


@pytest.fixture
async def reporter(
    testrail_config: TestRailConfig, aioresponses: aioresponses_cls
) -> AsyncGenerator[TestRailReporter, None]:
    """Create reporter with managed session."""
    async with TestRailReporter.from_config(testrail_config) as impl:
        yield impl
