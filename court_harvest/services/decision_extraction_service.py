"""Per-case enrichment from the case detail page.

Visits `record.link`, refines the record with header, parties, movement
and result data, reveals the original-court link, then runs the decision
cascade: downloadable decision file first, embedded decision text second.
"""

from typing import Callable, List, Optional, Tuple

from selenium.webdriver.common.by import By

from court_harvest.lib.case_utils import (
    DECISION_CHECK_ERROR,
    DECISION_NOT_FOUND,
    embedded_decision_link,
)
from court_harvest.lib.config import Config
from court_harvest.lib.errors import NavigationTimeout
from court_harvest.lib.logging_config import get_logger
from court_harvest.lib.text_utils import clean_text
from court_harvest.lib.waits import settle, wait_for, wait_for_document_ready
from court_harvest.models.case import CaseRecord
from court_harvest.services import case_detail_parser as detail
from court_harvest.services import decision_rules as rules
from court_harvest.services.browser_session import parse_page, safe_click

logger = get_logger()

SHOW_ORIGINAL_LINK_ID = "show-original-link"

# Terminal decision states of one case check
STATUS_FILE = "file"
STATUS_EMBEDDED = "embedded"
STATUS_NOT_FOUND = "not_found"
STATUS_ERROR = "error"


class DecisionExtractionService:
    """Enriches one `CaseRecord` in place while its detail page is open."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        page_timeout: Optional[float] = None,
        reveal_timeout: float = 5.0,
        settle_seconds: Optional[float] = None,
    ):
        self.base_url = base_url or Config.get_base_url()
        self.page_timeout = Config.get_wait_timeout_seconds() if page_timeout is None else page_timeout
        self.reveal_timeout = reveal_timeout
        self.settle_seconds = Config.get_settle_seconds() if settle_seconds is None else settle_seconds

    # detail steps

    def _detail_steps(self) -> List[Tuple[str, Callable]]:
        return [
            ("header", lambda tree, rec: detail.apply_header(rec, detail.parse_header(tree))),
            ("parties", lambda tree, rec: detail.apply_parties(rec, detail.parse_parties(tree))),
            ("movement", lambda tree, rec: detail.apply_movements(rec, detail.parse_movements(tree))),
            ("result", lambda tree, rec: detail.apply_result(rec, detail.parse_result_block(tree))),
        ]

    def extract_details(self, tree, record: CaseRecord) -> None:
        """Run every detail step; a failing step is logged and skipped."""
        for name, step in self._detail_steps():
            try:
                step(tree, record)
            except Exception as e:
                logger.warning(f"Detail step {name} failed for case {record.case_number}: {e}")

    def extract_original_link(self, driver, record: CaseRecord) -> None:
        """Click the reveal button and read the original-court link (best-effort)."""
        try:
            buttons = driver.find_elements(By.ID, SHOW_ORIGINAL_LINK_ID)
            if not buttons:
                logger.debug(f"No original link button for case {record.case_number}")
                return
            safe_click(driver, buttons[0], label="show original link")
            anchor = wait_for(
                lambda: driver.find_elements(By.CSS_SELECTOR, detail.ORIGINAL_LINK_CSS),
                timeout=self.reveal_timeout,
                description="original link",
            )[0]
            href = (anchor.get_attribute("href") or "").strip()
            if href:
                record.original_case_link = href
                logger.info(f"Original link for case {record.case_number}: {href}")
        except NavigationTimeout:
            logger.info(f"Original link did not appear for case {record.case_number}")
        except Exception as e:
            logger.warning(f"Error extracting original link for case {record.case_number}: {e}")

    # decision cascade

    def apply_file_decision(self, record: CaseRecord, found: rules.FileDecision) -> None:
        record.has_decision = True
        record.decision_link = found.link
        record.decision_type = found.decision_type

    def apply_embedded_decision(self, record: CaseRecord, found: rules.EmbeddedDecision) -> None:
        record.has_decision = True
        record.decision_link = embedded_decision_link(record.link)
        record.decision_type = found.decision_type
        record.decision_content = clean_text(found.content)
        if found.decision_date:
            record.decision_date = found.decision_date

    def detect_decision(self, tree, record: CaseRecord) -> str:
        """Decision cascade over a parsed page; returns the terminal status."""
        try:
            found_file = rules.find_file_decision(tree, self.base_url)
        except Exception as e:
            logger.warning(f"File decision check failed for case {record.case_number}: {e}")
            found_file = None
        if found_file:
            self.apply_file_decision(record, found_file)
            logger.info(f"Decision file found for case {record.case_number}: {record.decision_type}")
            return STATUS_FILE

        found_embedded = rules.find_embedded_decision(tree)
        if found_embedded:
            self.apply_embedded_decision(record, found_embedded)
            logger.info(f"Embedded decision found for case {record.case_number}: {record.decision_type}")
            return STATUS_EMBEDDED

        record.has_decision = False
        record.decision_type = DECISION_NOT_FOUND
        logger.info(f"No decision found for case {record.case_number}")
        return STATUS_NOT_FOUND

    def enrich_from_html(self, html: str, record: CaseRecord) -> str:
        """Offline variant of `enrich` for an already fetched page."""
        record.reset_decision()
        try:
            tree = detail.parse_tree(html)
            self.extract_details(tree, record)
            return self.detect_decision(tree, record)
        except Exception as e:
            return self._mark_error(record, e)

    def enrich(self, driver, record: CaseRecord) -> str:
        """Navigate to the case page and enrich `record` in place."""
        logger.info(f"Checking decision for case {record.case_number}")
        record.reset_decision()
        try:
            driver.get(record.link)
            wait_for_document_ready(driver, timeout=self.page_timeout)
            settle(self.settle_seconds)

            self.extract_details(parse_page(driver), record)
            self.extract_original_link(driver, record)
            # the reveal click may have changed the DOM
            return self.detect_decision(parse_page(driver), record)
        except Exception as e:
            return self._mark_error(record, e)

    def _mark_error(self, record: CaseRecord, exc: Exception) -> str:
        logger.error(f"Error checking decision for case {record.case_number}: {exc}")
        record.has_decision = False
        record.decision_link = ""
        record.decision_type = DECISION_CHECK_ERROR
        return STATUS_ERROR
