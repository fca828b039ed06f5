"""Integration tests for the TestRail reporter."""

import aiohttp
import pytest
from aioresponses import aioresponses as aioresponses_cls
from pydantic import SecretStr
from yarl import URL

from webtest_harness.models.report import (
    UNRESOLVED_ID,
    CaseMapping,
    NotReported,
    ReportFailed,
    Reported,
)
from webtest_harness.reporting.base import ReportingError
from webtest_harness.reporting.testrail import TestRailConfig, TestRailReporter
from webtest_harness.testing.testrail.payloads import (
    add_result_response,
    add_run_response,
    get_tests_response,
    run_test_entry,
)

API_URL = "http://testrail.test/api/v2"

RUN_ENTRIES = [
    run_test_entry(test_id=1001, case_id=501, title="alpha"),
    run_test_entry(test_id=1002, case_id=502, title="beta"),
    run_test_entry(test_id=1003, case_id=503, title="gamma"),
]


def test_endpoints_use_query_string_routing() -> None:
    """Endpoints use TestRail's query-string routing by default."""
    reporter = TestRailReporter(
        config=TestRailConfig(
            url="https://example.testrail.io/",
            username="qa@example.com",
            password=SecretStr("api-key"),
        ),
        http=None,  # type: ignore[arg-type]
    )

    assert reporter.api_url == "https://example.testrail.io/index.php?/api/v2"
    assert (
        reporter.endpoint("get_tests/42", offset=250)
        == "https://example.testrail.io/index.php?/api/v2/get_tests/42&offset=250"
    )


async def test_session_sends_credentials(reporter: TestRailReporter) -> None:
    """The session authenticates with username and API key."""
    auth = reporter.http.session.auth

    assert auth == aiohttp.BasicAuth("qa@example.com", "api-key")
    assert reporter.http.session.headers["Content-Type"] == "application/json"


class TestCreateRun:
    """Tests for create_run."""

    async def test_creates_run(
        self, reporter: TestRailReporter, aioresponses: aioresponses_cls
    ) -> None:
        """Posts the run name and description and returns the run ID."""
        url = f"{API_URL}/add_run/3"
        aioresponses.post(url, status=200, payload=add_run_response(run_id=42))

        run_id = await reporter.create_run(3, "TestRun_240305_1407", "Nightly")

        assert run_id == 42
        call = aioresponses.requests[("POST", URL(url))][0]
        assert call.kwargs["json"] == {
            "name": "TestRun_240305_1407",
            "description": "Nightly",
        }

    @pytest.mark.parametrize(
        "response",
        [
            {"status": 500, "body": "Internal Server Error"},
            {"status": 403, "payload": {"error": "Access denied"}},
            {"status": 200, "body": "<html>maintenance</html>"},
            {"status": 200, "payload": {"name": "no id"}},
            {"exception": aiohttp.ClientConnectionError("refused")},
        ],
        ids=["server-error", "forbidden", "not-json", "missing-id", "unreachable"],
    )
    async def test_returns_unresolved_on_failure(
        self,
        reporter: TestRailReporter,
        aioresponses: aioresponses_cls,
        response: dict[str, object],
    ) -> None:
        """Any failure yields the unresolved run ID instead of raising."""
        aioresponses.post(f"{API_URL}/add_run/3", **response)  # type: ignore[arg-type]

        assert await reporter.create_run(3, "TestRun", "Nightly") == UNRESOLVED_ID


class TestFindCase:
    """Tests for find_case."""

    @pytest.mark.parametrize(
        "title,case_id,test_id",
        [
            ("alpha", 501, 1001),
            ("beta", 502, 1002),
            ("gamma", 503, 1003),
        ],
    )
    async def test_matches_title(
        self,
        reporter: TestRailReporter,
        aioresponses: aioresponses_cls,
        title: str,
        case_id: int,
        test_id: int,
    ) -> None:
        """Resolves a method to the entry with the same title."""
        aioresponses.get(
            f"{API_URL}/get_tests/42", payload=get_tests_response(RUN_ENTRIES)
        )

        mapping = await reporter.find_case(42, title)

        assert mapping == CaseMapping(method_name=title, case_id=case_id, test_id=test_id)

    async def test_title_match_is_exact(
        self, reporter: TestRailReporter, aioresponses: aioresponses_cls
    ) -> None:
        """Case and prefix variations do not match."""
        aioresponses.get(
            f"{API_URL}/get_tests/42",
            payload=get_tests_response(RUN_ENTRIES),
            repeat=True,
        )

        assert not (await reporter.find_case(42, "Beta")).resolved
        assert not (await reporter.find_case(42, "bet")).resolved

    async def test_first_duplicate_wins(
        self, reporter: TestRailReporter, aioresponses: aioresponses_cls
    ) -> None:
        """The first entry is used when titles repeat."""
        aioresponses.get(
            f"{API_URL}/get_tests/42",
            payload=get_tests_response(
                [
                    run_test_entry(test_id=1001, case_id=501, title="alpha"),
                    run_test_entry(test_id=1009, case_id=509, title="alpha"),
                ]
            ),
        )

        mapping = await reporter.find_case(42, "alpha")

        assert mapping.case_id == 501

    async def test_follows_pagination(
        self, reporter: TestRailReporter, aioresponses: aioresponses_cls
    ) -> None:
        """Requests further pages until the title is found."""
        aioresponses.get(
            f"{API_URL}/get_tests/42",
            payload=get_tests_response(
                RUN_ENTRIES[:2],
                limit=2,
                next_link="/api/v2/get_tests/42&limit=2&offset=2",
            ),
        )
        aioresponses.get(
            f"{API_URL}/get_tests/42?offset=2",
            payload=get_tests_response(RUN_ENTRIES[2:], offset=2, limit=2),
        )

        mapping = await reporter.find_case(42, "gamma")

        assert mapping.case_id == 503

    async def test_unknown_title_after_last_page(
        self, reporter: TestRailReporter, aioresponses: aioresponses_cls
    ) -> None:
        """Returns an unresolved mapping once pages run out."""
        aioresponses.get(
            f"{API_URL}/get_tests/42", payload=get_tests_response(RUN_ENTRIES)
        )

        mapping = await reporter.find_case(42, "delta")

        assert mapping == CaseMapping(method_name="delta")
        assert mapping.case_id == UNRESOLVED_ID
        assert mapping.test_id == UNRESOLVED_ID

    async def test_accepts_bare_list(
        self, reporter: TestRailReporter, aioresponses: aioresponses_cls
    ) -> None:
        """Handles servers returning the entries as a plain list."""
        aioresponses.get(f"{API_URL}/get_tests/42", payload=RUN_ENTRIES)

        mapping = await reporter.find_case(42, "beta")

        assert mapping.case_id == 502

    async def test_raises_on_service_error(
        self, reporter: TestRailReporter, aioresponses: aioresponses_cls
    ) -> None:
        """Service failures raise ReportingError."""
        aioresponses.get(f"{API_URL}/get_tests/42", status=500)

        with pytest.raises(ReportingError, match="run 42"):
            await reporter.find_case(42, "alpha")


class TestPostResult:
    """Tests for post_result."""

    async def test_posts_status_and_comment(
        self, reporter: TestRailReporter, aioresponses: aioresponses_cls
    ) -> None:
        """Sends status_id and comment for the case."""
        url = f"{API_URL}/add_result_for_case/42/501"
        aioresponses.post(url, payload=add_result_response(status_id=5))

        assert await reporter.post_result(42, 501, 5, "Automated test result: failed")

        call = aioresponses.requests[("POST", URL(url))][0]
        assert call.kwargs["json"] == {
            "status_id": 5,
            "comment": "Automated test result: failed",
        }

    async def test_returns_false_on_rejection(
        self, reporter: TestRailReporter, aioresponses: aioresponses_cls
    ) -> None:
        """Non-200 answers are logged, not raised."""
        aioresponses.post(
            f"{API_URL}/add_result_for_case/42/501",
            status=400,
            payload={"error": "Field :case_id is not a valid test case."},
        )

        assert not await reporter.post_result(42, 501, 1, "ok")


class TestReport:
    """Tests for the full report flow."""

    async def test_reports_and_caches_mapping(
        self, reporter: TestRailReporter, aioresponses: aioresponses_cls
    ) -> None:
        """Looks the run up once and posts every outcome."""
        aioresponses.get(
            f"{API_URL}/get_tests/42", payload=get_tests_response(RUN_ENTRIES)
        )
        result_url = f"{API_URL}/add_result_for_case/42/502"
        aioresponses.post(result_url, payload=add_result_response(), repeat=True)

        first = await reporter.report(42, "beta", "passed", "ok")
        second = await reporter.report(42, "beta", "failed", "broken")

        assert first == Reported(run_id=42, case_id=502, test_id=1002, status_id=1)
        assert second == Reported(run_id=42, case_id=502, test_id=1002, status_id=5)
        assert len(aioresponses.requests[("GET", URL(f"{API_URL}/get_tests/42"))]) == 1
        assert len(aioresponses.requests[("POST", URL(result_url))]) == 2

    async def test_unknown_case_is_not_reported(
        self, reporter: TestRailReporter, aioresponses: aioresponses_cls
    ) -> None:
        """Methods without a case produce no POST."""
        aioresponses.get(
            f"{API_URL}/get_tests/42", payload=get_tests_response(RUN_ENTRIES)
        )

        outcome = await reporter.report(42, "delta", "passed", "ok")

        assert isinstance(outcome, NotReported)
        assert all(method == "GET" for method, _ in aioresponses.requests)

    async def test_lookup_failure_is_not_reported(
        self, reporter: TestRailReporter, aioresponses: aioresponses_cls
    ) -> None:
        """A failing lookup does not raise out of report."""
        aioresponses.get(f"{API_URL}/get_tests/42", status=503)

        outcome = await reporter.report(42, "alpha", "passed", "ok")

        assert isinstance(outcome, NotReported)

    async def test_rejected_result_is_failure(
        self, reporter: TestRailReporter, aioresponses: aioresponses_cls
    ) -> None:
        """A rejected POST yields ReportFailed."""
        aioresponses.get(
            f"{API_URL}/get_tests/42", payload=get_tests_response(RUN_ENTRIES)
        )
        aioresponses.post(f"{API_URL}/add_result_for_case/42/501", status=500)

        outcome = await reporter.report(42, "alpha", "passed", "ok")

        assert isinstance(outcome, ReportFailed)
