"""Fixtures for module tests using a WireMock testcontainer."""

from collections.abc import Generator
from pathlib import Path
from textwrap import dedent

import pytest
from testcontainers.core import testcontainers_config
from wiremock.constants import Config
from wiremock.testing.testcontainer import WireMockContainer


@pytest.fixture(scope="session", autouse=True)
def _disable_ryuk() -> None:
    """Disable the extra cleanup instance, we use contexts to clean containers."""
    testcontainers_config.ryuk_disabled = True


@pytest.fixture(scope="session")
def wiremock_server() -> Generator[WireMockContainer, None, None]:
    """Start WireMock container using wiremock's testcontainer support."""
    with WireMockContainer(secure=False) as wm:
        Config.base_url = wm.get_url("__admin")
        yield wm
        print(wm.get_logs())


@pytest.fixture(scope="session")
def wiremock_url(wiremock_server: WireMockContainer) -> str:
    """URL of WireMock as seen from the host."""
    return wiremock_server.get_base_url().rstrip("/")


@pytest.fixture
def suite_root(tmp_path: Path) -> Path:
    """Create a directory holding an importable test module."""
    package = tmp_path / "shop_suites" / "api"
    package.mkdir(parents=True)
    (package / "products.py").write_text(
        dedent(
            """
            from webtest_harness.collection import csv_data


            class ProductApiTests:
                async def test_list_products(self, ctx):
                    response = await ctx.http.get(ctx.base_url, "/api/products")
                    assert response.json()["products"]

                async def test_missing_product(self, ctx):
                    await ctx.http.get(ctx.base_url, "/api/products/999")

                @csv_data
                async def test_product_by_id(self, ctx, row):
                    await ctx.http.get(ctx.base_url, f"/api/products/{row['id']}")
            """
        ),
        encoding="utf-8",
    )

    fixtures = tmp_path / "dataproviders" / "api" / "ProductApiTests"
    fixtures.mkdir(parents=True)
    (fixtures / "test_product_by_id.csv").write_text("id\n1\n2\n", encoding="utf-8")
    return tmp_path
