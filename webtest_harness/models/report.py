"""Models for results of reporting to the test-management service."""

from dataclasses import dataclass

UNRESOLVED_ID = -1


@dataclass(frozen=True, kw_only=True)
class CaseMapping:
    """Remote identifiers of a test method within one test run.

    ``case_id`` identifies the case in the project, ``test_id`` the entry of
    that case inside the run. Both are ``UNRESOLVED_ID`` when the method has
    no counterpart in the run.
    """

    method_name: str
    case_id: int = UNRESOLVED_ID
    test_id: int = UNRESOLVED_ID

    @property
    def resolved(self) -> bool:
        """Whether the method was found in the run."""
        return self.case_id != UNRESOLVED_ID


@dataclass(frozen=True, kw_only=True)
class Reported:
    """The result was recorded by the remote service."""

    run_id: int
    case_id: int
    test_id: int
    status_id: int


@dataclass(frozen=True, kw_only=True)
class NotReported:
    """Nothing was sent, e.g. the method has no case in the run."""

    reason: str


@dataclass(frozen=True, kw_only=True)
class ReportFailed:
    """Reporting was attempted but did not succeed."""

    error: str


ReportOutcome = Reported | NotReported | ReportFailed
