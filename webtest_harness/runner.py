"""Suite runner sequencing suite, class and method lifecycle hooks."""

import asyncio
import inspect
import logging
import time
import unittest
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import aiohttp

from webtest_harness.artifacts import ArtifactNamer
from webtest_harness.browser.session import Session, SessionFactory, SessionState
from webtest_harness.collection import TestClass, TestMethod
from webtest_harness.config import ConfigError, HarnessConfig
from webtest_harness.context import MethodContext, SuiteContext
from webtest_harness.fixtures import FixtureNotFoundError, FixtureRow, fixture_path, load_rows
from webtest_harness.http import RequestHelper, UnexpectedStatusError
from webtest_harness.models.report import UNRESOLVED_ID, ReportFailed, ReportOutcome
from webtest_harness.models.result import MethodResult, MethodStatus, SuiteResult
from webtest_harness.reporting.base import ResultReporter

log = logging.getLogger(__name__)

RUN_DESCRIPTION = "Automated test run."


class SuiteAborted(Exception):
    """Raised when the suite cannot start, before any test method runs."""


@dataclass(frozen=True, kw_only=True)
class SuiteRunner:
    """Runs test classes against one environment.

    Classes run concurrently up to ``config.max_concurrency``; the methods of
    a class run one after another in definition order. Every method
    invocation owns a fresh browser session when its class uses a browser.
    """

    config: HarnessConfig
    http: RequestHelper = field(repr=False)
    reporter: ResultReporter | None = None
    session_factory: SessionFactory = field(default_factory=SessionFactory)
    suite_name: str = "webtest"
    environment: str | None = None
    project_id: int = 1
    run_description: str = RUN_DESCRIPTION
    clock: Callable[[], datetime] = field(default=datetime.now, repr=False)

    async def run(self, classes: Sequence[TestClass]) -> SuiteResult:
        """Run the suite.

        Raises:
            SuiteAborted: If the environment is unknown or fails its health check

        """
        suite = await self.start_suite()

        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        async def run_guarded(test_class: TestClass) -> Sequence[MethodResult]:
            async with semaphore:
                return await self.run_class(suite, test_class)

        per_class = await asyncio.gather(*(run_guarded(c) for c in classes))
        results = [result for class_results in per_class for result in class_results]

        log.info(
            "[SUITE %s FINISHED] %d invocation(s) run", suite.suite_name, len(results)
        )
        return SuiteResult(suite_name=suite.suite_name, run_id=suite.run_id, results=results)

    async def start_suite(self) -> SuiteContext:
        """Resolve the environment, probe it, and create the remote run."""
        environment = self.config.resolve_environment(self.environment)
        try:
            base_url = self.config.base_url(environment)
        except ConfigError as e:
            raise SuiteAborted(str(e)) from e

        log.info("URL under testing: %s", base_url)
        try:
            await self.http.get(base_url, expected_status=200)
        except (UnexpectedStatusError, aiohttp.ClientError, TimeoutError) as e:
            raise SuiteAborted(f"Health check failed for {base_url}: {e}") from e
        log.info("Health check passed")

        started_at = self.clock()
        run_id = None
        if self.reporter is not None:
            run_id = await self.reporter.create_run(
                self.project_id,
                f"TestRun_{started_at:%y%m%d_%H%M}",
                self.run_description,
            )
            if run_id == UNRESOLVED_ID:
                log.warning("[TestRail] Test run was not created, reporting disabled")

        return SuiteContext(
            suite_name=self.suite_name,
            environment=environment,
            base_url=base_url,
            started_at=started_at,
            run_id=run_id,
        )

    async def run_class(
        self, suite: SuiteContext, test_class: TestClass
    ) -> Sequence[MethodResult]:
        """Run all methods of a class between its class hooks."""
        log.info("[TEST %s STARTED]", test_class.name)
        instance: object | None = None
        results: list[MethodResult] = []

        try:
            instance = test_class.cls()
            if (setup := getattr(instance, "setup_class", None)) is not None:
                await call(setup, suite)
        except Exception as e:
            stage = "setup_class" if instance is not None else "instantiation"
            log.error("%s of %s failed: %s", stage, test_class.name, e, exc_info=e)
            for method in test_class.methods:
                results.append(
                    await self.finish(
                        suite,
                        test_class,
                        method,
                        status="failed",
                        duration=0.0,
                        message=f"{stage} failed: {e}",
                    )
                )
        else:
            for method in test_class.methods:
                results.extend(
                    await self.run_method(suite, test_class, instance, method, results)
                )
        finally:
            if (teardown := getattr(instance, "teardown_class", None)) is not None:
                try:
                    await call(teardown)
                except Exception as e:
                    log.error(
                        "teardown_class of %s failed: %s", test_class.name, e, exc_info=e
                    )

        log.info("[ALL %s FINISHED]", test_class.name)
        return results

    async def run_method(
        self,
        suite: SuiteContext,
        test_class: TestClass,
        instance: object,
        method: TestMethod,
        previous: Sequence[MethodResult],
    ) -> Sequence[MethodResult]:
        """Run every invocation of a method, one per fixture row."""
        if unmet := unmet_dependencies(method, previous):
            log.info("Test Skipped: %s", method.name)
            return [
                await self.finish(
                    suite,
                    test_class,
                    method,
                    status="skipped",
                    duration=0.0,
                    message=f"depends on {', '.join(unmet)} which did not pass",
                )
            ]

        rows: Sequence[FixtureRow | None] = [None]
        if method.data_driven:
            path = fixture_path(
                self.config.fixtures_root, test_class.module, test_class.name, method.name
            )
            try:
                rows = load_rows(path)
            except FixtureNotFoundError as e:
                return [
                    await self.finish(
                        suite,
                        test_class,
                        method,
                        status="failed",
                        duration=0.0,
                        message=str(e),
                    )
                ]
            if not rows:
                log.warning("No fixture rows for %s, nothing to run", method.name)

        return [
            await self.invoke(suite, test_class, instance, method, invocation, row)
            for invocation, row in enumerate(rows)
        ]

    async def invoke(
        self,
        suite: SuiteContext,
        test_class: TestClass,
        instance: object,
        method: TestMethod,
        invocation: int,
        row: FixtureRow | None,
    ) -> MethodResult:
        """Run one invocation; the browser session is closed on every path."""
        log.info("[Starting %s]", method.name)
        started = time.monotonic()
        session: Session | None = None
        status: MethodStatus = "failed"
        message: str | None = None

        try:
            if test_class.uses_browser:
                session = await asyncio.to_thread(
                    self.session_factory.create_session,
                    self.config.browser,
                    self.config.headless,
                )
            context = MethodContext(
                suite=suite,
                class_name=test_class.name,
                method_name=method.name,
                http=self.http,
                artifacts=ArtifactNamer(
                    root=self.config.artifacts_root,
                    suite_name=suite.suite_name,
                    class_name=test_class.name,
                    method_name=method.name,
                ),
                session=session,
                invocation=invocation,
                data=row,
            )
            args = (context,) if row is None else (context, row)
            await call(getattr(instance, method.name), *args)
            status = "passed"
        except unittest.SkipTest as e:
            status = "skipped"
            message = str(e)
        except Exception as e:
            status = "failed"
            message = f"{type(e).__name__}: {e}"
            log.error("%s raised %s", method.name, message, exc_info=e)
        finally:
            if session is not None and session.state is SessionState.READY:
                await asyncio.to_thread(session.close)

        return await self.finish(
            suite,
            test_class,
            method,
            status=status,
            duration=time.monotonic() - started,
            message=message,
            invocation=invocation,
        )

    async def finish(
        self,
        suite: SuiteContext,
        test_class: TestClass,
        method: TestMethod,
        *,
        status: MethodStatus,
        duration: float,
        message: str | None,
        invocation: int = 0,
    ) -> MethodResult:
        """Log and report a finished invocation."""
        log.info("[Test %s %s]", method.name, status)
        return MethodResult(
            class_name=test_class.name,
            method_name=method.name,
            status=status,
            duration=duration,
            message=message,
            invocation=invocation,
            report=await self.report(suite, method.name, status, message),
        )

    async def report(
        self, suite: SuiteContext, method_name: str, status: MethodStatus, message: str | None
    ) -> ReportOutcome | None:
        """Send the outcome to the reporter; failures never reach the caller."""
        if self.reporter is None or not suite.reporting_active or suite.run_id is None:
            return None

        comment = f"Automated test result: {status}"
        if message:
            comment += f"\n{message}"

        log.info("[TestRail] Updating starting")
        try:
            outcome = await self.reporter.report(suite.run_id, method_name, status, comment)
        except Exception as e:
            log.error("[TestRail] Error updating result: %s", e, exc_info=e)
            return ReportFailed(error=str(e))
        log.info("[TestRail] Updating finished")
        return outcome


def unmet_dependencies(
    method: TestMethod, previous: Sequence[MethodResult]
) -> Sequence[str]:
    """Dependencies of ``method`` that have not passed every invocation."""
    statuses: dict[str, set[str]] = {}
    for result in previous:
        statuses.setdefault(result.method_name, set()).add(result.status)
    return [
        name for name in method.depends_on if statuses.get(name, set()) != {"passed"}
    ]


async def call(func: Callable[..., Any], *args: Any) -> Any:
    """Await coroutine functions; run plain functions on a worker thread."""
    if inspect.iscoroutinefunction(func):
        return await func(*args)
    return await asyncio.to_thread(func, *args)

