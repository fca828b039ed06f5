"""Pydantic models for TestRail API responses."""

from collections.abc import Sequence

from pydantic import Field

from webtest_harness.models.base import Model


class TestRun(Model):
    """A test run as returned by ``add_run``."""

    __test__ = False

    id: int
    name: str | None = None
    description: str | None = None
    project_id: int | None = None
    created_on: int | None = None


class RunTest(Model):
    """One entry of a run: a case instantiated inside the run."""

    id: int
    case_id: int
    title: str
    status_id: int | None = None


class PageLinks(Model):
    """Pagination links of a bulk response."""

    next: str | None = None


class TestsPage(Model):
    """Response of ``get_tests``.

    Older TestRail versions return a bare list; newer ones a paginated
    object with the entries under ``tests``.
    """

    __test__ = False

    offset: int = 0
    limit: int = 250
    size: int = 0
    links: PageLinks = Field(default_factory=PageLinks, alias="_links")
    tests: Sequence[RunTest] = Field(default_factory=list)

    @classmethod
    def parse(cls, data: object) -> "TestsPage":
        """Validate either response shape."""
        if isinstance(data, list):
            return cls.model_validate({"tests": data, "size": len(data)})
        return cls.model_validate(data)
