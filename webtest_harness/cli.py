"""CLI entry point for running a test suite."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager, nullcontext
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from webtest_harness.collection import collect
from webtest_harness.config import ConfigError, HarnessConfig, load_config
from webtest_harness.http import RequestHelper
from webtest_harness.models.result import SuiteResult
from webtest_harness.reporting.base import ResultReporter
from webtest_harness.reporting.testrail import TestRailReporter
from webtest_harness.runner import SuiteAborted, SuiteRunner

EXIT_ABORTED = 2

STATUS_SYMBOLS = {
    "passed": "✅",
    "failed": "❌",
    "skipped": "⏭️",
}


def log_results_summary(log: logging.Logger, suite_result: SuiteResult) -> None:
    """Log a formatted summary of method results."""
    log.info("=" * 80)
    log.info("Test Results Summary: %s", suite_result.suite_name)
    log.info("=" * 80)

    for result in suite_result.results:
        symbol = STATUS_SYMBOLS.get(result.status, "?")
        log.info(
            "%s %s.%s[%d]: %s (%.2fs)",
            symbol,
            result.class_name,
            result.method_name,
            result.invocation,
            result.status,
            result.duration,
        )
        if result.message:
            log.info("  Message: %s", result.message)
        if result.report is not None:
            log.info("  Report: %s", result.report)


def format_output(suite_result: SuiteResult) -> dict[str, Any]:
    """Format suite results for JSON output."""
    results = [
        {
            "class": result.class_name,
            "method": result.method_name,
            "invocation": result.invocation,
            "status": result.status,
            "duration": result.duration,
            "message": result.message,
            "reported": type(result.report).__name__ if result.report else None,
        }
        for result in suite_result.results
    ]

    return {
        "suite": suite_result.suite_name,
        "run_id": suite_result.run_id,
        "total": len(results),
        "passed": suite_result.count("passed"),
        "failed": suite_result.count("failed"),
        "skipped": suite_result.count("skipped"),
        "results": results,
    }


def apply_overrides(
    config: HarnessConfig,
    browser: str | None = None,
    headless: bool | None = None,
    report: bool | None = None,
    max_concurrency: int | None = None,
) -> HarnessConfig:
    """Return the configuration with command line overrides applied.

    Raises:
        ConfigError: If an override fails validation

    """
    overrides: dict[str, Any] = {}
    if browser is not None:
        overrides["browser"] = browser
    if headless is not None:
        overrides["headless"] = headless
    if report is not None:
        overrides["update_test_rail"] = report
    if max_concurrency is not None:
        overrides["max_concurrency"] = max_concurrency
    try:
        return HarnessConfig.model_validate({**config.model_dump(), **overrides})
    except ValidationError as e:
        raise ConfigError(f"Invalid command line override: {e}") from e


def reporter_context(
    config: HarnessConfig, log: logging.Logger
) -> AbstractAsyncContextManager[ResultReporter | None]:
    """Context managing the reporter, or yielding None when reporting is off."""
    if config.reporting_enabled and config.testrail is not None:
        return TestRailReporter.from_config(config.testrail)
    if config.update_test_rail:
        log.warning("update_test_rail is set but no testrail.* settings were found")
    return nullcontext(None)


def reporting_settings(config: HarnessConfig) -> dict[str, Any]:
    """Project and run description for the suite runner."""
    if config.testrail is None:
        return {}
    return {
        "project_id": config.testrail.project_id,
        "run_description": config.testrail.run_description,
    }


async def run(
    config: HarnessConfig,
    modules: Sequence[str],
    environment: str | None = None,
    suite_name: str = "webtest",
) -> int:
    """Run the suite and return the exit code."""
    log = logging.getLogger("webtest_harness")

    classes = collect(modules)
    if not classes:
        log.info("No test classes found in %s", ", ".join(modules))
        print(json.dumps({"total": 0, "results": []}))
        return 0

    log.info("Running %d test class(es)...", len(classes))

    async with (
        RequestHelper.create(timeout=config.http_timeout) as http,
        reporter_context(config, log) as reporter,
    ):
        runner = SuiteRunner(
            config=config,
            http=http,
            reporter=reporter,
            suite_name=suite_name,
            environment=environment,
            **reporting_settings(config),
        )
        try:
            suite_result = await runner.run(classes)
        except SuiteAborted as e:
            log.error("Suite aborted: %s", e)
            print(json.dumps({"aborted": True, "reason": str(e)}))
            return EXIT_ABORTED

    log_results_summary(log, suite_result)
    print(json.dumps(format_output(suite_result), indent=2))

    return 1 if suite_result.has_failures else 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Run browser and API test classes and report to TestRail"
    )
    parser.add_argument(
        "modules",
        nargs="+",
        help="Dotted names of the modules holding test classes",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="YAML file with the harness properties",
    )
    parser.add_argument(
        "--environment",
        default=None,
        help="Environment to test, defaults to default.environment",
    )
    parser.add_argument("--suite-name", default="webtest", help="Name of the suite")
    parser.add_argument(
        "--browser",
        default=None,
        help="Browser to start (chrome, firefox, chromeheadless, firefoxheadless)",
    )
    parser.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Run the browser without a UI",
    )
    parser.add_argument(
        "--report",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Send results to TestRail (overrides update_test_rail)",
    )
    parser.add_argument(
        "--max-concurrency",
        type=int,
        default=None,
        help="Number of test classes run at the same time",
    )
    parser.add_argument(
        "--rootdir",
        type=Path,
        default=Path.cwd(),
        help="Directory the test modules are imported from",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = apply_overrides(
            load_config(args.config),
            browser=args.browser,
            headless=args.headless,
            report=args.report,
            max_concurrency=args.max_concurrency,
        )
    except ConfigError as e:
        logging.getLogger("webtest_harness").error("%s", e)
        sys.exit(EXIT_ABORTED)

    rootdir = str(args.rootdir.resolve())
    if rootdir not in sys.path:
        sys.path.insert(0, rootdir)

    exit_code = asyncio.run(
        run(
            config=config,
            modules=args.modules,
            environment=args.environment,
            suite_name=args.suite_name,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
