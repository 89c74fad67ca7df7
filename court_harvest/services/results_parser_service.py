"""Parse case records out of a rendered search results page.

The extraction itself works on an lxml tree of `driver.page_source`, so
every strategy is a pure function that can be exercised against static
HTML. Strategies are tried in order and the first non-empty result wins:

1. bordered tables, one case per table (header row + details row)
2. every non-header row that carries a link (court from the previous row)
3. every case-detail anchor, context rebuilt from the enclosing rows

Results from the fallback strategies are de-duplicated by case number.
"""

import time
from typing import Callable, List, Optional, Tuple

from lxml import html as lxml_html
from selenium.webdriver.common.by import By

from court_harvest.lib.case_utils import absolute_url, normalize_case_number
from court_harvest.lib.config import Config
from court_harvest.lib.date_utils import extract_dates
from court_harvest.lib.errors import NavigationTimeout
from court_harvest.lib.logging_config import get_logger
from court_harvest.lib.text_utils import NOT_SPECIFIED, clean_text, extract_parties
from court_harvest.lib.waits import wait_for
from court_harvest.models.case import CaseRecord
from court_harvest.models.search_context import CrawlContext

logger = get_logger()

CASE_LINK_XPATH = "//a[contains(@href, '/extended')]"
BORDERED_TABLE_CSS = "table.table-bordered"


def _cell_text(el) -> str:
    return el.text_content() if el is not None else ""


def _has_class(el, name: str) -> bool:
    return name in (el.get("class") or "").split()


def _previous_row(row):
    prev = row.getprevious()
    while prev is not None and prev.tag != "tr":
        prev = prev.getprevious()
    return prev


def _first_cell_text(row) -> str:
    if row is None:
        return ""
    cells = row.xpath("./td")
    return _cell_text(cells[0]) if cells else ""


def _enclosing_row(el):
    rows = el.xpath("./ancestor::tr[1]")
    return rows[0] if rows else None


def build_record(
    court: str,
    case_number: str,
    href: Optional[str],
    dates_text: str,
    parties_text: str,
    base_url: str,
    context: Optional[CrawlContext] = None,
) -> CaseRecord:
    """Assemble a listing-level record from the raw cell texts."""
    court_name = clean_text(court) or NOT_SPECIFIED
    number = clean_text(case_number)
    dates = extract_dates(dates_text)
    plaintiff, defendant = extract_parties(parties_text)

    record = CaseRecord(
        title=f"{court_name} - {number}",
        link=absolute_url(base_url, href),
        case_number=number,
        court_type=court_name,
        description=f"Поступило: {dates.received_text}, Решение: {dates.decision_text}",
        subject=f"Истец: {plaintiff} | Ответчик: {defendant}",
        plaintiff=plaintiff,
        defendant=defendant,
        received_date=dates.received_date,
        start_date=dates.received_date,
    )
    if context is not None:
        record.federal_district = context.federal_district
        record.region = context.region
        record.case_category = context.category
        record.case_subcategory = context.subcategory
    return record


def parse_case_table(table, base_url: str, context: Optional[CrawlContext] = None) -> Optional[CaseRecord]:
    """One bordered table: header row (court, linked number) + details row (dates, parties)."""
    header_rows = [r for r in table.xpath(".//tr") if _has_class(r, "active")]
    if not header_rows:
        return None
    header_cells = header_rows[0].xpath("./td")
    if len(header_cells) < 2:
        return None
    links = header_cells[1].xpath(".//a")
    if not links:
        return None

    detail_rows = [r for r in table.xpath(".//tr") if not _has_class(r, "active")]
    if not detail_rows:
        return None
    detail_cells = detail_rows[0].xpath("./td")
    if len(detail_cells) < 2:
        return None

    return build_record(
        court=_cell_text(header_cells[0]),
        case_number=_cell_text(links[0]),
        href=links[0].get("href"),
        dates_text=_cell_text(detail_cells[0]),
        parties_text=_cell_text(detail_cells[1]),
        base_url=base_url,
        context=context,
    )


def parse_tables(tree, base_url: str, context: Optional[CrawlContext] = None) -> List[CaseRecord]:
    """Primary strategy over bordered tables (any table when none are bordered)."""
    tables = tree.cssselect(BORDERED_TABLE_CSS)
    logger.info(f"Found case tables: {len(tables)}")
    if not tables:
        tables = tree.xpath("//table")
        logger.info(f"Alternative search found tables: {len(tables)}")

    cases: List[CaseRecord] = []
    for table in tables:
        try:
            record = parse_case_table(table, base_url, context)
        except Exception as e:
            logger.error(f"Error parsing case table: {e}")
            continue
        if record is not None:
            cases.append(record)
    return cases


def parse_rows(tree, base_url: str, context: Optional[CrawlContext] = None) -> List[CaseRecord]:
    """Fallback: any non-header row with >= 2 cells and a link in some cell."""
    cases: List[CaseRecord] = []
    for row in tree.xpath("//tr"):
        if _has_class(row, "active"):
            continue
        cells = row.xpath("./td")
        if len(cells) < 2:
            continue
        link = None
        for cell in cells:
            found = cell.xpath(".//a")
            if found:
                link = found[0]
                break
        if link is None:
            continue
        cases.append(
            build_record(
                court=_first_cell_text(_previous_row(row)),
                case_number=_cell_text(link),
                href=link.get("href"),
                dates_text=_cell_text(cells[0]),
                parties_text=_cell_text(cells[1]),
                base_url=base_url,
                context=context,
            )
        )
    return cases


def parse_links(tree, base_url: str, context: Optional[CrawlContext] = None) -> List[CaseRecord]:
    """Fallback: case-detail anchors, context rebuilt from the enclosing/previous row."""
    anchors = tree.xpath(CASE_LINK_XPATH)
    logger.info(f"Found case links: {len(anchors)}")
    cases: List[CaseRecord] = []
    for anchor in anchors:
        row = _enclosing_row(anchor)
        dates_text = parties_text = court = ""
        if row is not None:
            cells = row.xpath("./td")
            if len(cells) >= 2:
                dates_text = _cell_text(cells[0])
                parties_text = _cell_text(cells[1])
            court = _first_cell_text(_previous_row(row))
        cases.append(
            build_record(
                court=court,
                case_number=_cell_text(anchor),
                href=anchor.get("href"),
                dates_text=dates_text,
                parties_text=parties_text,
                base_url=base_url,
                context=context,
            )
        )
    return cases


def dedupe_by_case_number(cases: List[CaseRecord]) -> List[CaseRecord]:
    """Drop records without a case number and keep the first of each number."""
    seen = set()
    unique: List[CaseRecord] = []
    for case in cases:
        key = normalize_case_number(case.case_number)
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(case)
    return unique


def parse_fallback(tree, base_url: str, context: Optional[CrawlContext] = None) -> List[CaseRecord]:
    logger.info("Running alternative results parsing")
    cases = parse_rows(tree, base_url, context)
    if not cases:
        cases = parse_links(tree, base_url, context)
    cases = dedupe_by_case_number(cases)
    logger.info(f"Alternative parsing found unique cases: {len(cases)}")
    return cases


def results_count_text(tree) -> Optional[str]:
    found = tree.cssselect(".count")
    if not found:
        return None
    return clean_text(found[0].text_content()) or None


def parse_results_html(html: str, base_url: str, context: Optional[CrawlContext] = None) -> List[CaseRecord]:
    """Parse one results page; never raises."""
    if not html:
        return []
    tree = lxml_html.fromstring(html)

    count = results_count_text(tree)
    if count:
        logger.info(f"Results banner: {count}")

    strategies: List[Tuple[str, Callable]] = [("tables", parse_tables), ("fallback", parse_fallback)]
    for name, strategy in strategies:
        try:
            cases = strategy(tree, base_url, context)
        except Exception as e:
            logger.error(f"Results strategy {name} failed: {e}")
            continue
        if cases:
            logger.info(f"Parsed {len(cases)} cases using {name} strategy")
            return cases
    return []


class ResultsParserService:
    """Reads results pages from the live driver and retries empty parses."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        table_timeout: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url or Config.get_base_url()
        self.max_attempts = Config.get_parse_retries() if max_attempts is None else max_attempts
        self.retry_delay = Config.get_parse_retry_delay_seconds() if retry_delay is None else retry_delay
        self.table_timeout = table_timeout
        self._sleep = sleep

    def parse_html(self, html: str, context: Optional[CrawlContext] = None) -> List[CaseRecord]:
        return parse_results_html(html, self.base_url, context)

    def parse_page(self, driver, context: Optional[CrawlContext] = None) -> List[CaseRecord]:
        return self.parse_html(driver.page_source, context)

    def _wait_for_tables(self, driver) -> None:
        # bordered tables first, then any table; the fallback strategies
        # still run when neither shows up
        for selector, timeout in ((BORDERED_TABLE_CSS, self.table_timeout), ("table", self.table_timeout / 2)):
            try:
                wait_for(
                    lambda: driver.find_elements(By.CSS_SELECTOR, selector),
                    timeout=timeout,
                    description=f"selector {selector}",
                    sleep=self._sleep,
                )
                return
            except NavigationTimeout:
                continue
        logger.debug("No result tables rendered")

    def parse_with_retry(
        self,
        driver,
        context: Optional[CrawlContext] = None,
        max_attempts: Optional[int] = None,
    ) -> List[CaseRecord]:
        """Re-run the whole parse while it comes back empty.

        An empty page might simply not be rendered yet; after the last
        attempt the empty result is accepted.
        """
        attempts = self.max_attempts if max_attempts is None else max_attempts
        attempts = max(1, int(attempts))
        for attempt in range(1, attempts + 1):
            try:
                logger.info(f"Parsing results, attempt #{attempt}")
                self._wait_for_tables(driver)
                cases = self.parse_page(driver, context)
                if cases:
                    logger.info(f"Parsed {len(cases)} cases on attempt #{attempt}")
                    return cases
                logger.warning(f"No cases found on attempt #{attempt}")
            except Exception as e:
                logger.warning(f"Error parsing results on attempt #{attempt}: {e}")
            if attempt < attempts:
                self._sleep(self.retry_delay)

        logger.error(f"No results parsed after {attempts} attempts")
        return []
