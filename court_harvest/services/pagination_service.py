"""Bounded walk over result pages 2..max_pages."""

from typing import List, Optional

from selenium.webdriver.common.by import By

from court_harvest.lib.config import Config
from court_harvest.lib.errors import CrawlCancelled
from court_harvest.lib.logging_config import get_logger
from court_harvest.lib.waits import settle, wait_for_navigation
from court_harvest.models.case import CaseRecord
from court_harvest.models.search_context import CrawlContext
from court_harvest.services.browser_session import safe_click
from court_harvest.services.results_parser_service import ResultsParserService

logger = get_logger()

PAGINATION_SELECTOR = ".pagination"


class PaginationService:
    """Follows explicit page-number links and parses each page.

    A missing pagination block, a missing link for the next page number
    or an empty page all end the walk normally. Any other exception is
    logged and ends the walk; pages parsed so far are kept.
    """

    def __init__(
        self,
        parser: ResultsParserService,
        navigation_timeout: Optional[float] = None,
        settle_seconds: Optional[float] = None,
    ):
        self.parser = parser
        self.navigation_timeout = (
            Config.get_wait_timeout_seconds() if navigation_timeout is None else navigation_timeout
        )
        self.settle_seconds = Config.get_settle_seconds() if settle_seconds is None else settle_seconds

    def _find_page_link(self, driver, page_number: int):
        paginations = driver.find_elements(By.CSS_SELECTOR, PAGINATION_SELECTOR)
        if not paginations:
            logger.warning(f"Pagination not found while looking for page {page_number}")
            return None
        links = paginations[0].find_elements(By.CSS_SELECTOR, f"a[href*='page={page_number}']")
        if not links:
            logger.info(f"No link to page {page_number}; pagination finished")
            return None
        return links[0]

    def walk(
        self,
        driver,
        first_page_cases: List[CaseRecord],
        max_pages: int,
        context: Optional[CrawlContext] = None,
    ) -> List[CaseRecord]:
        """Return first-page cases plus everything parsed from pages 2..max_pages."""
        all_cases = list(first_page_cases)
        if not first_page_cases:
            return all_cases

        pages_visited = 1
        try:
            for page_number in range(2, max_pages + 1):
                if context is not None:
                    context.check_cancelled(f"page {page_number}")

                link = self._find_page_link(driver, page_number)
                if link is None:
                    break

                logger.info(f"Moving to results page {page_number}")
                previous_url = driver.current_url
                safe_click(driver, link, label=f"page {page_number} link")
                wait_for_navigation(driver, previous_url, timeout=self.navigation_timeout)
                settle(self.settle_seconds)

                page_cases = self.parser.parse_with_retry(driver, context)
                if not page_cases:
                    logger.warning(f"No cases on page {page_number}; stopping")
                    break

                all_cases.extend(page_cases)
                pages_visited = page_number
                logger.info(f"Parsed {len(page_cases)} cases on page {page_number}")
        except CrawlCancelled:
            # the caller sees the cancel event at its next checkpoint
            logger.info("Pagination interrupted by cancellation")
        except Exception as e:
            logger.error(f"Pagination stopped: {e}")

        logger.info(f"Pagination finished after {pages_visited} page(s), {len(all_cases)} cases total")
        return all_cases
