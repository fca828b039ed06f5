"""Browser sessions and the factory creating one per test method."""

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.chrome.service import Service as ChromeService
from selenium.webdriver.firefox.options import Options as FirefoxOptions
from selenium.webdriver.firefox.service import Service as FirefoxService
from selenium.webdriver.remote.webdriver import WebDriver

log = logging.getLogger(__name__)


class BrowserKind(StrEnum):
    """Supported browser variants."""

    CHROME = "chrome"
    FIREFOX = "firefox"


DEFAULT_BROWSER = BrowserKind.CHROME

DRIVER_PATH_ENV: Mapping[BrowserKind, str] = {
    BrowserKind.CHROME: "CHROME_DRIVER_PATH",
    BrowserKind.FIREFOX: "GECKO_DRIVER_PATH",
}

DEFAULT_DRIVER_PATHS: Mapping[BrowserKind, Path] = {
    BrowserKind.CHROME: Path("resources/chromedriver"),
    BrowserKind.FIREFOX: Path("resources/geckodriver"),
}

_HEADLESS_SUFFIX = "headless"


class SessionState(StrEnum):
    """Liveness of a browser session."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


class SessionStateError(RuntimeError):
    """Raised on an illegal session state transition or use."""


type DriverBuilder = Callable[[BrowserKind, bool, Path | None], WebDriver]


def parse_browser_kind(value: str | BrowserKind) -> tuple[BrowserKind, bool]:
    """Parse a browser name into its kind and whether it implies headless.

    Accepts the enum values plus the ``chromeheadless`` / ``firefoxheadless``
    spellings. Unknown names fall back to the default browser.
    """
    if isinstance(value, BrowserKind):
        return value, False

    name = value.strip().lower()
    headless = name.endswith(_HEADLESS_SUFFIX)
    try:
        return BrowserKind(name.removesuffix(_HEADLESS_SUFFIX)), headless
    except ValueError:
        log.warning(
            "Do not know how to start: %s, starting %s.", value, DEFAULT_BROWSER
        )
        return DEFAULT_BROWSER, False


def resolve_driver_path(
    kind: BrowserKind, environ: Mapping[str, str] | None = None
) -> Path | None:
    """Find the driver executable for a browser kind.

    The environment variable wins over the bundled default path. Returns
    None when neither is usable, leaving the lookup to Selenium Manager.
    """
    environ = os.environ if environ is None else environ

    if override := environ.get(DRIVER_PATH_ENV[kind], "").strip():
        return Path(override)

    default = DEFAULT_DRIVER_PATHS[kind]
    if default.exists():
        return default

    return None


def build_driver(
    kind: BrowserKind, headless: bool, driver_path: Path | None
) -> WebDriver:
    """Start a local Selenium WebDriver."""
    executable = str(driver_path) if driver_path else None

    if kind is BrowserKind.FIREFOX:
        firefox_options = FirefoxOptions()
        if headless:
            firefox_options.add_argument("-headless")
        return webdriver.Firefox(
            options=firefox_options,
            service=FirefoxService(executable_path=executable),
        )

    chrome_options = ChromeOptions()
    if headless:
        chrome_options.add_argument("--headless=new")
    return webdriver.Chrome(
        options=chrome_options,
        service=ChromeService(executable_path=executable),
    )


@dataclass(kw_only=True)
class Session:
    """One browser automation handle owned by a single test method."""

    kind: BrowserKind
    headless: bool = False
    state: SessionState = SessionState.UNINITIALIZED
    _driver: WebDriver | None = field(default=None, repr=False)

    @property
    def driver(self) -> WebDriver:
        """The live driver.

        Raises:
            SessionStateError: If the session is not ready

        """
        if self.state is not SessionState.READY or self._driver is None:
            raise SessionStateError(f"Session is {self.state}, not ready")
        return self._driver

    def start(self, driver: WebDriver) -> None:
        """Attach a started driver, moving the session to ready."""
        if self.state is not SessionState.UNINITIALIZED:
            raise SessionStateError(f"Cannot start a session that is {self.state}")
        self._driver = driver
        self.state = SessionState.READY

    def close(self) -> None:
        """Quit the driver, moving the session to closed.

        The session is closed even if the driver fails to quit.
        """
        if self.state is not SessionState.READY:
            raise SessionStateError(f"Cannot close a session that is {self.state}")

        driver, self._driver = self._driver, None
        self.state = SessionState.CLOSED
        log.info("Close driver")
        try:
            if driver is not None:
                driver.quit()
        except WebDriverException as e:
            log.warning("Driver did not quit cleanly: %s", e)

    def save_screenshot(self, path: Path) -> None:
        """Save a PNG screenshot of the current page."""
        path.parent.mkdir(parents=True, exist_ok=True)
        self.driver.save_screenshot(str(path))

    def browser_logs(self) -> list[dict[str, Any]]:
        """Return the browser console log entries collected so far."""
        return list(self.driver.get_log("browser"))


@dataclass(frozen=True, kw_only=True)
class SessionFactory:
    """Creates a fresh, unpooled browser session per test method."""

    driver_builder: DriverBuilder = build_driver
    environ: Mapping[str, str] | None = None

    def create_session(
        self, kind: BrowserKind | str = DEFAULT_BROWSER, headless: bool = False
    ) -> Session:
        """Create a ready session for the given browser variant.

        Unsupported kinds fall back to the default browser with a warning.
        """
        browser, implied_headless = parse_browser_kind(kind)
        headless = headless or implied_headless

        log.info("Create driver: %s (headless=%s)", browser, headless)
        session = Session(kind=browser, headless=headless)
        driver = self.driver_builder(
            browser, headless, resolve_driver_path(browser, self.environ)
        )
        session.start(driver)
        if not headless:
            try:
                session.driver.maximize_window()
            except Exception:
                session.close()
                raise
        return session
