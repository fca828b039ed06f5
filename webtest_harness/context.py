"""Explicit context objects handed to test code.

The suite context is created once, before any test class starts, and never
changes afterwards. Each method invocation gets its own method context
holding the browser session it owns.
"""

from dataclasses import dataclass
from datetime import datetime
from functools import cached_property
from pathlib import Path

from webtest_harness.artifacts import ArtifactNamer
from webtest_harness.browser.pages import PageActions
from webtest_harness.browser.session import Session
from webtest_harness.browser.waits import WaitEngine
from webtest_harness.fixtures import FixtureRow
from webtest_harness.http import RequestHelper
from webtest_harness.models.report import UNRESOLVED_ID


class NoBrowserSessionError(RuntimeError):
    """Raised when browser helpers are used by a test class without a browser."""


@dataclass(frozen=True, kw_only=True)
class SuiteContext:
    """Suite-wide state written once at suite start."""

    suite_name: str
    environment: str
    base_url: str
    started_at: datetime
    # None when reporting is disabled, UNRESOLVED_ID when run creation failed
    run_id: int | None = None

    @property
    def reporting_active(self) -> bool:
        """Whether outcomes should be sent to the reporting service."""
        return self.run_id is not None and self.run_id != UNRESOLVED_ID


@dataclass(frozen=True, kw_only=True)
class MethodContext:
    """Everything one test method invocation may use."""

    suite: SuiteContext
    class_name: str
    method_name: str
    http: RequestHelper
    artifacts: ArtifactNamer
    session: Session | None = None
    invocation: int = 0
    data: FixtureRow | None = None

    @property
    def base_url(self) -> str:
        return self.suite.base_url

    @cached_property
    def waits(self) -> WaitEngine:
        """Wait engine bound to this invocation's browser session."""
        if self.session is None:
            raise NoBrowserSessionError(
                f"{self.class_name} does not use a browser; set uses_browser = True"
            )
        return WaitEngine(driver=self.session.driver)

    @cached_property
    def page(self) -> PageActions:
        """Page actions for building page objects."""
        return PageActions(waits=self.waits)

    def take_screenshot(self, name: str) -> Path:
        """Save a screenshot named after the current test and return its path."""
        if self.session is None:
            raise NoBrowserSessionError("Screenshots need a browser session")
        path = self.artifacts.screenshot_path(name)
        self.session.save_screenshot(path)
        return path
