"""Wait engine polling page conditions through Selenium.

Pages render asynchronously, so every interaction first waits for its
element. A wait that hits a stale element reference (the element was
detached between lookup and use) is restarted once from scratch; a second
stale reference fails the wait.

Waiting and then re-locating the element leaves a small window in which it
can go stale again. Callers that need the element to be used in the same
attempt it was found in should use :meth:`WaitEngine.wait_and_act`.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from selenium.common.exceptions import StaleElementReferenceException, TimeoutException
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.wait import WebDriverWait

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
INTERACTIVE_TIMEOUT = 5.0
POLL_INTERVAL = 0.5
MAX_ATTEMPTS = 2

type Locator = tuple[str, str]
type ElementCondition = Callable[[Locator], Callable[[WebDriver], WebElement | bool]]


class ElementNotReady(AssertionError):
    """Raised when a waited-for condition is not met.

    Either the timeout elapsed or the element reference went stale on every
    attempt. Fails the current test method.
    """

    def __init__(self, description: str, reason: str) -> None:
        super().__init__(f"Element not ready: {description} ({reason})")
        self.description = description
        self.reason = reason


def describe(locator: Locator) -> str:
    """Human readable form of a locator."""
    by, value = locator
    return f"{by}={value}"


@dataclass(frozen=True, kw_only=True)
class WaitEngine:
    """Blocking waits bound to one browser session."""

    driver: WebDriver
    default_timeout: float = DEFAULT_TIMEOUT
    poll_interval: float = POLL_INTERVAL

    def wait_for_condition[T](
        self,
        predicate: Callable[[WebDriver], T],
        timeout: float | None = None,
        description: str = "condition",
    ) -> T:
        """Poll ``predicate`` until it returns a truthy value.

        Args:
            predicate: Called with the driver on every poll
            timeout: Seconds per attempt, defaults to ``default_timeout``
            description: Used in logs and in the raised error

        Returns:
            The first truthy value returned by the predicate

        Raises:
            ElementNotReady: On timeout or after two stale references

        """
        seconds = self._timeout(timeout)
        return self._with_stale_retry(
            lambda: self._until(predicate, seconds), description, seconds
        )

    def wait_and_act[T](
        self,
        locator: Locator,
        action: Callable[[WebElement], T],
        timeout: float | None = None,
        condition: ElementCondition = EC.visibility_of_element_located,
    ) -> T:
        """Wait for an element and use it within the same attempt.

        A stale reference raised by ``action`` restarts the wait like one
        raised while waiting.
        """
        seconds = self._timeout(timeout)

        def attempt() -> T:
            element = self._until(condition(locator), seconds)
            return action(element)

        return self._with_stale_retry(attempt, describe(locator), seconds)

    def wait_for_visible(
        self, locator: Locator, timeout: float | None = None
    ) -> WebElement:
        """Wait until the element is present and displayed."""
        return self.wait_for_condition(
            EC.visibility_of_element_located(locator), timeout, describe(locator)
        )

    def wait_for_clickable(
        self, locator: Locator, timeout: float | None = None
    ) -> WebElement:
        """Wait until the element is displayed and enabled."""
        return self.wait_for_condition(
            EC.element_to_be_clickable(locator), timeout, describe(locator)
        )

    def wait_for_invisible(self, locator: Locator, timeout: float | None = None) -> None:
        """Wait until the element is hidden or gone from the page."""
        self.wait_for_condition(
            EC.invisibility_of_element_located(locator), timeout, describe(locator)
        )

    def _timeout(self, timeout: float | None) -> float:
        return self.default_timeout if timeout is None else timeout

    def _until[T](self, predicate: Callable[[WebDriver], T], timeout: float) -> T:
        wait = WebDriverWait(self.driver, timeout, poll_frequency=self.poll_interval)
        return wait.until(predicate)

    def _with_stale_retry[T](
        self, attempt: Callable[[], T], description: str, timeout: float
    ) -> T:
        for number in range(1, MAX_ATTEMPTS + 1):
            try:
                return attempt()
            except StaleElementReferenceException:
                log.warning(
                    "Stale element reference for %s (attempt %d of %d)",
                    description,
                    number,
                    MAX_ATTEMPTS,
                )
            except TimeoutException as e:
                log.error("Timed out after %.1fs waiting for %s", timeout, description)
                raise ElementNotReady(
                    description, f"not ready after {timeout:g}s"
                ) from e

        raise ElementNotReady(description, "element reference went stale twice")
