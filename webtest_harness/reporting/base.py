"""Abstract base class for test-management result reporters."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field

from webtest_harness.models.report import (
    UNRESOLVED_ID,
    CaseMapping,
    NotReported,
    ReportFailed,
    Reported,
    ReportOutcome,
)

log = logging.getLogger(__name__)

STATUS_IDS: Mapping[str, int] = {
    "passed": 1,
    "failed": 5,
}
UNTESTED_STATUS_ID = 0


class ReportingError(Exception):
    """Raised when the reporting service cannot be reached or answers garbage."""


class UnresolvedRunError(RuntimeError):
    """Raised when a case is resolved against a run that was never created.

    This signals a sequencing bug in the caller, not an unavailable service.
    """


def status_id_for(status: str) -> int:
    """Map a method status to the remote status vocabulary.

    passed → 1, failed → 5, anything else → 0 (untested).
    """
    return STATUS_IDS.get(status, UNTESTED_STATUS_ID)


@dataclass(frozen=True, kw_only=True)
class ResultReporter(ABC):
    """Abstract base for result reporters.

    Case mappings are resolved once per method and run, then reused for every
    later report of that method in the same run.
    """

    _mappings: dict[tuple[int, str], CaseMapping] = field(
        default_factory=dict, repr=False
    )

    @abstractmethod
    async def create_run(self, project_id: int, name: str, description: str) -> int:
        """Create a remote test run.

        Returns:
            The run ID, or ``UNRESOLVED_ID`` if the run could not be created

        """

    @abstractmethod
    async def find_case(self, run_id: int, method_name: str) -> CaseMapping:
        """Look up the case whose title equals ``method_name`` in a run.

        Returns:
            The mapping, unresolved if no case matches

        Raises:
            ReportingError: If the service could not be queried

        """

    @abstractmethod
    async def post_result(
        self, run_id: int, case_id: int, status_id: int, comment: str
    ) -> bool:
        """Record a result for a case in a run.

        Returns:
            True if the service accepted the result

        """

    async def resolve_case(self, run_id: int, method_name: str) -> CaseMapping:
        """Resolve the remote identifiers of a method within a run.

        Raises:
            UnresolvedRunError: If ``run_id`` is the unresolved sentinel

        """
        if run_id == UNRESOLVED_ID:
            raise UnresolvedRunError(
                "Test run ID is not set. Please create a test run first."
            )

        key = (run_id, method_name)
        if (cached := self._mappings.get(key)) is not None:
            return cached

        try:
            mapping = await self.find_case(run_id, method_name)
        except ReportingError as e:
            log.warning("Could not resolve case for %s: %s", method_name, e)
            return CaseMapping(method_name=method_name)

        self._mappings[key] = mapping
        return mapping

    async def report(
        self, run_id: int, method_name: str, status: str, comment: str
    ) -> ReportOutcome:
        """Report a method outcome, never raising.

        Returns:
            What happened, so callers can act on it without parsing logs

        """
        try:
            mapping = await self.resolve_case(run_id, method_name)
        except UnresolvedRunError as e:
            log.error("[TestRail] Error updating result: %s", e)
            return ReportFailed(error=str(e))

        if not mapping.resolved:
            log.info("[TestRail] No case titled %s in run %d", method_name, run_id)
            return NotReported(reason=f"no case titled {method_name!r} in run {run_id}")

        status_id = status_id_for(status)
        log.info(
            "[TestRail] Run ID: %d, case ID: %d, test ID: %d, status ID: %d",
            run_id,
            mapping.case_id,
            mapping.test_id,
            status_id,
        )

        if not await self.post_result(run_id, mapping.case_id, status_id, comment):
            return ReportFailed(
                error=f"result for case {mapping.case_id} was not accepted"
            )

        return Reported(
            run_id=run_id,
            case_id=mapping.case_id,
            test_id=mapping.test_id,
            status_id=status_id,
        )
