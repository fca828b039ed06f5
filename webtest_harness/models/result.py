"""Models for test method execution results."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from webtest_harness.models.report import ReportOutcome

MethodStatus = Literal["passed", "failed", "skipped"]


@dataclass(frozen=True, kw_only=True)
class MethodResult:
    """Result of a single test method invocation.

    Parametrized methods produce one result per fixture row, all sharing the
    same ``method_name``.
    """

    __test__ = False

    class_name: str
    method_name: str
    status: MethodStatus
    duration: float
    message: str | None = None
    invocation: int = 0
    report: ReportOutcome | None = None


@dataclass(frozen=True, kw_only=True)
class SuiteResult:
    """Outcome of a whole suite execution."""

    suite_name: str
    run_id: int | None = None
    results: Sequence[MethodResult] = field(default_factory=list)

    def count(self, status: MethodStatus) -> int:
        """Count method results with the given status."""
        return sum(1 for result in self.results if result.status == status)

    @property
    def has_failures(self) -> bool:
        """Whether any method invocation failed."""
        return any(result.status == "failed" for result in self.results)
