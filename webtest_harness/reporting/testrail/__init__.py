"""TestRail reporter module."""

from webtest_harness.reporting.testrail.config import TestRailConfig
from webtest_harness.reporting.testrail.reporter import TestRailReporter

__all__ = ["TestRailConfig", "TestRailReporter"]
