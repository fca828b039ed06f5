"""Tests for the wait engine."""

import time
from unittest.mock import Mock

import pytest
from selenium.common.exceptions import StaleElementReferenceException
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement

from webtest_harness.browser.waits import ElementNotReady, WaitEngine, describe

LOCATOR = (By.CSS_SELECTOR, "#search")


@pytest.fixture
def element() -> Mock:
    """Create a visible mock element."""
    element = Mock(spec=WebElement)
    element.is_displayed.return_value = True
    element.is_enabled.return_value = True
    return element


@pytest.fixture
def driver(element: Mock) -> Mock:
    """Create mock driver locating the mock element."""
    driver = Mock(spec=WebDriver)
    driver.find_element.return_value = element
    return driver


@pytest.fixture
def waits(driver: Mock) -> WaitEngine:
    """Create wait engine polling fast."""
    return WaitEngine(driver=driver, default_timeout=1.0, poll_interval=0.01)


def test_describe_locator() -> None:
    """Formats locators for messages."""
    assert describe(LOCATOR) == "css selector=#search"


class TestWaitForCondition:
    """Tests for wait_for_condition."""

    def test_returns_first_truthy_value(self, waits: WaitEngine) -> None:
        """Polls until the predicate returns a truthy value."""
        predicate = Mock(side_effect=[False, None, "ready"])

        assert waits.wait_for_condition(predicate, timeout=1.0) == "ready"
        assert predicate.call_count == 3

    def test_passes_driver_to_predicate(self, waits: WaitEngine, driver: Mock) -> None:
        """The predicate receives the session's driver."""
        predicate = Mock(return_value=True)

        waits.wait_for_condition(predicate)

        predicate.assert_called_with(driver)

    def test_times_out_no_earlier_than_timeout(self, waits: WaitEngine) -> None:
        """Raises ElementNotReady once the timeout has elapsed."""
        started = time.monotonic()

        with pytest.raises(ElementNotReady) as exc_info:
            waits.wait_for_condition(lambda _: False, timeout=0.2, description="#never")

        elapsed = time.monotonic() - started
        assert 0.2 <= elapsed < 1.2
        assert exc_info.value.description == "#never"
        assert "not ready after 0.2s" in str(exc_info.value)

    def test_uses_default_timeout(self, driver: Mock) -> None:
        """Falls back to the engine's default timeout."""
        waits = WaitEngine(driver=driver, default_timeout=0.1, poll_interval=0.01)

        with pytest.raises(ElementNotReady, match="after 0.1s"):
            waits.wait_for_condition(lambda _: False)

    def test_not_ready_fails_the_test(self, waits: WaitEngine) -> None:
        """ElementNotReady is an assertion failure."""
        with pytest.raises(AssertionError):
            waits.wait_for_condition(lambda _: False, timeout=0.05)

    def test_retries_once_after_stale_reference(self, waits: WaitEngine) -> None:
        """A stale reference restarts the wait."""
        predicate = Mock(side_effect=[StaleElementReferenceException(), "ready"])

        assert waits.wait_for_condition(predicate) == "ready"
        assert predicate.call_count == 2

    def test_fails_after_second_stale_reference(self, waits: WaitEngine) -> None:
        """Two stale references make at most two attempts and fail."""
        predicate = Mock(side_effect=StaleElementReferenceException())

        with pytest.raises(ElementNotReady, match="stale twice"):
            waits.wait_for_condition(predicate, description="#flaky")

        assert predicate.call_count == 2


class TestElementWaits:
    """Tests for the locator based helpers."""

    def test_wait_for_visible_returns_element(
        self, waits: WaitEngine, driver: Mock, element: Mock
    ) -> None:
        """Returns the located element once displayed."""
        assert waits.wait_for_visible(LOCATOR) is element
        driver.find_element.assert_called_with(*LOCATOR)

    def test_wait_for_visible_times_out_when_hidden(
        self, waits: WaitEngine, element: Mock
    ) -> None:
        """Hidden elements are not ready."""
        element.is_displayed.return_value = False

        with pytest.raises(ElementNotReady, match="css selector=#search"):
            waits.wait_for_visible(LOCATOR, timeout=0.05)

    def test_wait_for_clickable_returns_element(
        self, waits: WaitEngine, element: Mock
    ) -> None:
        """Returns the element once displayed and enabled."""
        assert waits.wait_for_clickable(LOCATOR) is element


class TestWaitAndAct:
    """Tests for wait_and_act."""

    def test_runs_action_on_element(self, waits: WaitEngine, element: Mock) -> None:
        """Returns the action's result."""
        element.text = "Laptop"

        assert waits.wait_and_act(LOCATOR, lambda e: e.text) == "Laptop"

    def test_stale_action_restarts_wait(
        self, waits: WaitEngine, driver: Mock, element: Mock
    ) -> None:
        """A stale reference during the action re-locates the element."""
        element.click.side_effect = [StaleElementReferenceException(), None]

        waits.wait_and_act(LOCATOR, lambda e: e.click())

        assert element.click.call_count == 2
        assert driver.find_element.call_count == 2

    def test_fails_when_action_is_stale_twice(
        self, waits: WaitEngine, element: Mock
    ) -> None:
        """Two stale actions fail with ElementNotReady."""
        element.click.side_effect = StaleElementReferenceException()

        with pytest.raises(ElementNotReady, match="stale twice"):
            waits.wait_and_act(LOCATOR, lambda e: e.click())

        assert element.click.call_count == 2
