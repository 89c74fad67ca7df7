"""Extended search form: open, fill the dependent dropdowns, submit."""

from typing import Optional

from selenium.common.exceptions import NoSuchElementException
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import Select, WebDriverWait

from court_harvest.lib.config import Config
from court_harvest.lib.errors import FormFillError, NavigationTimeout
from court_harvest.lib.logging_config import get_logger
from court_harvest.lib.waits import settle, wait_for, wait_for_navigation
from court_harvest.models.search_context import CaseSearchParams
from court_harvest.services.browser_session import describe_element, safe_click

logger = get_logger()

CASE_TYPE_ID = "extendedSearch_case_type"
CATEGORY_ID = "extendedSearch_sub_category_1"
SUBCATEGORY_ID = "extendedSearch_sub_category_2"
SUBMIT_ID = "extendedSearch_search"

# Any element that hints the court/region picker is present
REGION_INDICATOR_SELECTOR = "[class*='court'], [class*='region'], button, a, input[type='button']"


class SearchFormService:
    """Drives the extended search form in dependency order.

    Each dropdown is populated by the site only after its parent selection,
    so case type, category and subcategory are set strictly in that order,
    polling for the next dropdown in between.
    """

    def __init__(
        self,
        dropdown_timeout: Optional[float] = None,
        form_timeout: Optional[float] = None,
        settle_seconds: Optional[float] = None,
    ):
        self.dropdown_timeout = (
            Config.get_dropdown_timeout_seconds() if dropdown_timeout is None else dropdown_timeout
        )
        self.form_timeout = Config.get_wait_timeout_seconds() if form_timeout is None else form_timeout
        self.settle_seconds = Config.get_settle_seconds() if settle_seconds is None else settle_seconds

    def open_form(self, session, url: Optional[str] = None) -> None:
        """Navigate to the search page and wait for the case-type dropdown."""
        url = url or Config.get_search_url()
        session.open(url)
        driver = session.get_driver()
        try:
            WebDriverWait(driver, self.form_timeout).until(
                EC.presence_of_element_located((By.ID, CASE_TYPE_ID))
            )
        except Exception as e:
            raise FormFillError(f"Search form did not load at {url}: {e}") from e
        logger.info("Search form loaded")

    def check_region_selection_availability(self, driver) -> bool:
        """Heuristic probe for the region picker; absence is only a warning."""
        try:
            return len(driver.find_elements(By.CSS_SELECTOR, REGION_INDICATOR_SELECTOR)) > 0
        except Exception:
            return False

    def _wait_for_dropdown(self, driver, element_id: str):
        try:
            return wait_for(
                lambda: driver.find_elements(By.ID, element_id),
                timeout=self.dropdown_timeout,
                description=f"dropdown #{element_id}",
            )[0]
        except NavigationTimeout as e:
            raise FormFillError(f"Dropdown #{element_id} did not appear: {e}") from e

    def _select_value(self, driver, element_id: str, value: str, label: str) -> None:
        """Select `value` once the option has been populated."""
        element = self._wait_for_dropdown(driver, element_id)

        def _try_select():
            # the element may be replaced when the parent selection re-renders
            current = driver.find_element(By.ID, element_id)
            try:
                Select(current).select_by_value(value)
            except NoSuchElementException:
                return False
            return True

        try:
            wait_for(
                _try_select,
                timeout=self.dropdown_timeout,
                description=f"option {value} in #{element_id}",
            )
        except NavigationTimeout as e:
            raise FormFillError(f"Option {value} not available in #{element_id}: {e}") from e

        logger.info(f"[UI_ACTION] Selected {label} = {value} ({describe_element(element)})")
        settle(self.settle_seconds)

    def fill(self, driver, params: CaseSearchParams) -> None:
        """Set case type, category and subcategory.

        Raises:
            FormFillError: a dropdown or its option never appeared
        """
        if not self.check_region_selection_availability(driver):
            logger.warning("Region selection is not available; continuing without region filter")

        self._select_value(driver, CASE_TYPE_ID, params.case_type, "case type")
        self._select_value(driver, CATEGORY_ID, params.category, "category")
        self._select_value(driver, SUBCATEGORY_ID, params.subcategory, "subcategory")
        logger.info("Search form filled")

    def submit(self, driver, timeout: Optional[float] = None) -> None:
        """Click the search button and wait for the results page."""
        timeout = self.form_timeout if timeout is None else timeout
        try:
            button = driver.find_element(By.ID, SUBMIT_ID)
        except Exception as e:
            raise FormFillError(f"Search button #{SUBMIT_ID} not found: {e}") from e

        previous_url = driver.current_url
        logger.info("[UI_ACTION] Submitting search form")
        try:
            safe_click(driver, button, label="search button")
        except Exception as e:
            raise FormFillError(f"Search submit failed: {e}") from e

        try:
            wait_for_navigation(driver, previous_url, timeout=timeout)
        except NavigationTimeout as e:
            raise FormFillError(f"Results page did not load: {e}") from e
        settle(self.settle_seconds)
        logger.info("Navigation finished, results page loaded")
