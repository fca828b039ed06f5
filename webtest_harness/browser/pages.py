"""Page-object building blocks.

Page objects do not inherit from a shared base. Each one holds a
:class:`PageActions` and implements the small :class:`Page` protocol.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Protocol

from selenium.webdriver.common.action_chains import ActionChains
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support import expected_conditions as EC

from webtest_harness.browser.waits import (
    INTERACTIVE_TIMEOUT,
    Locator,
    WaitEngine,
    describe,
)

log = logging.getLogger(__name__)

SCROLL_PAUSE = 0.4


class Page(Protocol):
    """Capabilities every page object offers."""

    def open_page(self) -> None:
        """Navigate the browser to this page."""

    def interact(self, **fields: str) -> None:
        """Perform the page's main interaction with the given field values."""


@dataclass(frozen=True, kw_only=True)
class PageActions:
    """Element interactions that wait for their element first."""

    waits: WaitEngine

    @property
    def driver(self) -> WebDriver:
        return self.waits.driver

    def open_url(self, url: str) -> None:
        log.info("Opening page: %s", url)
        self.driver.get(url)

    def find(self, locator: Locator) -> WebElement:
        return self.driver.find_element(*locator)

    def find_all(self, locator: Locator) -> list[WebElement]:
        """Return all matching elements once the first one is visible."""
        self.waits.wait_for_visible(locator, INTERACTIVE_TIMEOUT)
        return self.driver.find_elements(*locator)

    def click(self, locator: Locator) -> None:
        self.waits.wait_and_act(
            locator,
            lambda element: element.click(),
            INTERACTIVE_TIMEOUT,
            condition=EC.element_to_be_clickable,
        )
        log.info("Clicked on element: %s", describe(locator))

    def type(self, text: str, locator: Locator) -> None:
        self.waits.wait_and_act(
            locator, lambda element: element.send_keys(text), INTERACTIVE_TIMEOUT
        )

    def text_of(self, locator: Locator) -> str:
        return self.waits.wait_and_act(
            locator, lambda element: element.text, INTERACTIVE_TIMEOUT
        )

    def attribute_of(self, locator: Locator, name: str) -> str | None:
        return self.waits.wait_and_act(
            locator,
            lambda element: element.get_attribute(name),
            INTERACTIVE_TIMEOUT,
        )

    def press_key(self, locator: Locator, key: str) -> None:
        self.find(locator).send_keys(key)

    def press_key_with_actions(self, key: str) -> None:
        log.info("Pressing %r using action chains", key)
        ActionChains(self.driver).send_keys(key).perform()

    def hover_and_click(self, element: WebElement) -> None:
        ActionChains(self.driver).move_to_element(element).perform()
        element.click()

    def switch_to_frame(self, locator: Locator) -> None:
        self.driver.switch_to.frame(self.find(locator))

    def execute_script(self, script: str, *args: Any) -> Any:
        return self.driver.execute_script(script, *args)

    @property
    def current_url(self) -> str:
        return self.driver.current_url

    @property
    def title(self) -> str:
        return self.driver.title

    @property
    def page_source(self) -> str:
        return self.driver.page_source

    def scroll_to_bottom(self) -> None:
        log.info("Scrolling to the bottom of the page")
        self.execute_script("window.scrollTo(0, document.body.scrollHeight)")

    def scroll_to_bottom_for_dynamic_load(
        self, pause: float = SCROLL_PAUSE, max_scrolls: int = 100
    ) -> int:
        """Scroll until the page height stops growing.

        Returns the number of scrolls performed.
        """
        log.info("Scrolling to the bottom of the page until no more content loads")
        last_height = self.execute_script("return document.body.scrollHeight")

        for scrolls in range(1, max_scrolls + 1):
            self.scroll_to_bottom()
            time.sleep(pause)
            new_height = self.execute_script("return document.body.scrollHeight")
            if new_height == last_height:
                return scrolls
            last_height = new_height

        log.warning("Page still growing after %d scrolls", max_scrolls)
        return max_scrolls

    def assert_condition(
        self, condition: bool, success_message: str, failure_message: str
    ) -> None:
        """Assert ``condition``, logging the matching message."""
        if not condition:
            log.error(failure_message)
            raise AssertionError(failure_message)
        log.info(success_message)
