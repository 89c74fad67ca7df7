"""Chrome WebDriver lifecycle and low-level interaction helpers."""

import time
from typing import Callable, Optional

from lxml import html as lxml_html
from selenium import webdriver
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.action_chains import ActionChains
from webdriver_manager.chrome import ChromeDriverManager

from court_harvest.lib.config import Config
from court_harvest.lib.logging_config import get_logger
from court_harvest.lib.waits import wait_for_document_ready

logger = get_logger()

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)


def describe_element(element) -> str:
    """Short id/class/text description of an element for [UI_ACTION] logs."""
    try:
        el_id = element.get_attribute("id") or "<anonymous>"
        el_class = element.get_attribute("class") or "<no class>"
        text = (element.text or "").strip()[:40] or "<no text>"
        return f"id: {el_id}, class: {el_class}, text: '{text}'"
    except Exception:
        return "<unavailable>"


def js_click(driver, element) -> None:
    driver.execute_script("arguments[0].click();", element)


def safe_click(driver, element, label: str = "element") -> str:
    """Click natively, falling back to a JavaScript click.

    Returns which method worked ('native' or 'javascript'); re-raises the
    JavaScript failure if both fail.
    """
    try:
        element.click()
        logger.info(f"[UI_ACTION] Clicked {label} using native click")
        return "native"
    except Exception:
        logger.info(f"[UI_ACTION] Native click failed for {label}, trying JavaScript click")
    try:
        js_click(driver, element)
        logger.info(f"[UI_ACTION] Clicked {label} using JavaScript")
        return "javascript"
    except Exception as e:
        logger.error(f"[UI_ACTION] JavaScript click failed for {label}: {e}")
        raise


def coordinate_click(driver, element) -> None:
    """Click the centre of the element's bounding box."""
    rect = element.rect or {}
    width = rect.get("width") or 0
    height = rect.get("height") or 0
    if not width or not height:
        raise RuntimeError("Element has no bounding box")
    # move_to_element targets the in-view centre point
    ActionChains(driver).move_to_element(element).click().perform()


def is_visible(element) -> bool:
    try:
        return bool(element.is_displayed())
    except Exception:
        return False


def parse_page(driver):
    """Parse the current page source into an lxml tree."""
    source = driver.page_source or "<html></html>"
    return lxml_html.fromstring(source)


class BrowserSession:
    """Owns one Chrome driver for the duration of a crawl.

    The driver is created lazily and restarted (up to the configured limit)
    when a liveness probe shows the session has died.
    """

    def __init__(
        self,
        headless: Optional[bool] = None,
        driver_factory: Optional[Callable[[], object]] = None,
    ):
        self.headless = Config.get_headless() if headless is None else headless
        self._driver_factory = driver_factory
        self._driver = None
        self._restart_count = 0
        self._max_restarts = Config.get_max_driver_restarts()

    def _setup_driver(self) -> webdriver.Chrome:
        """Setup Chrome WebDriver with appropriate options."""
        options = Options()
        if self.headless:
            options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument("--window-size=1920,1080")
        options.add_argument("--lang=ru-RU")
        options.add_argument(f"--user-agent={USER_AGENT}")
        options.page_load_strategy = "eager"

        service = Service(ChromeDriverManager().install())
        driver = webdriver.Chrome(service=service, options=options)
        driver.set_page_load_timeout(Config.get_page_load_timeout())

        logger.info("Chrome WebDriver initialized")
        return driver

    def _create_driver(self):
        if self._driver_factory is not None:
            return self._driver_factory()
        return self._setup_driver()

    @property
    def driver(self):
        return self.get_driver()

    def get_driver(self):
        """Get or create the WebDriver instance."""
        if self._driver is None:
            self._driver = self._create_driver()
            return self._driver

        try:
            _ = self._driver.current_window_handle
            return self._driver
        except Exception as exc:
            logger.warning(f"WebDriver appears dead or unresponsive (attempting restart): {exc}")
            return self._restart_driver()

    def _restart_driver(self):
        """Quit the current driver and create a new one, within the restart limit."""
        if self._driver is not None:
            try:
                self._driver.quit()
            except Exception:
                logger.debug("Existing driver quit failed during restart")
            finally:
                self._driver = None

        self._restart_count += 1
        if self._restart_count > self._max_restarts:
            logger.error(f"Exceeded max WebDriver restart attempts ({self._max_restarts})")
            raise RuntimeError("Exceeded max WebDriver restart attempts")

        logger.info(f"Restarting WebDriver (attempt {self._restart_count}/{self._max_restarts})")
        time.sleep(1)
        self._driver = self._create_driver()
        return self._driver

    def open(self, url: str, timeout: Optional[float] = None) -> None:
        """Navigate to `url` and wait for the document to finish loading."""
        driver = self.get_driver()
        logger.info(f"Opening {url}")
        driver.get(url)
        wait_for_document_ready(
            driver, timeout=timeout if timeout is not None else Config.get_wait_timeout_seconds()
        )

    def close(self) -> None:
        """Close the WebDriver."""
        if self._driver:
            try:
                self._driver.quit()
            finally:
                self._driver = None
            logger.info("WebDriver closed")

    def __enter__(self) -> "BrowserSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
