"""One crawl unit: search, paginate, enrich every case."""

import threading
from typing import List, Optional

from court_harvest.lib.config import Config
from court_harvest.lib.errors import CrawlCancelled, FormFillError
from court_harvest.lib.logging_config import get_logger
from court_harvest.lib.rate_limiter import EthicalRateLimiter, RateLimiter
from court_harvest.lib.regions import RegionResolver, get_resolver
from court_harvest.models.case import CaseRecord
from court_harvest.models.search_context import CaseSearchParams, CrawlContext, build_context
from court_harvest.services.browser_session import BrowserSession
from court_harvest.services.decision_extraction_service import STATUS_ERROR, DecisionExtractionService
from court_harvest.services.pagination_service import PaginationService
from court_harvest.services.region_tree_service import RegionTreeService
from court_harvest.services.results_parser_service import ResultsParserService
from court_harvest.services.search_form_service import SearchFormService

logger = get_logger()


class CrawlOrchestrator:
    """Runs the search form, result walk and per-case enrichment in order.

    The orchestrator never propagates a crawl failure: form and search
    errors, cancellation and unexpected exceptions all end the crawl with
    whatever records have been accumulated so far.
    """

    def __init__(
        self,
        session: BrowserSession,
        form: Optional[SearchFormService] = None,
        tree: Optional[RegionTreeService] = None,
        parser: Optional[ResultsParserService] = None,
        paginator: Optional[PaginationService] = None,
        extractor: Optional[DecisionExtractionService] = None,
        rate_limiter: Optional[RateLimiter] = None,
        resolver: Optional[RegionResolver] = None,
        search_url: Optional[str] = None,
    ):
        self.session = session
        self.resolver = resolver or get_resolver()
        self.form = form or SearchFormService()
        self.tree = tree or RegionTreeService(self.resolver)
        self.parser = parser or ResultsParserService()
        self.paginator = paginator or PaginationService(self.parser)
        self.extractor = extractor or DecisionExtractionService()
        self.rate_limiter = rate_limiter or EthicalRateLimiter(
            Config.get_case_delay_seconds(),
            backoff_factor=Config.get_backoff_factor(),
            max_backoff_seconds=Config.get_max_backoff_seconds(),
        )
        self.search_url = search_url or Config.get_search_url()

    def _search(self, params: CaseSearchParams, context: CrawlContext) -> List[CaseRecord]:
        """Fill and submit the form, then collect all result pages."""
        self.form.open_form(self.session, self.search_url)
        driver = self.session.get_driver()
        self.form.fill(driver, params)

        if params.regions:
            selection = self.tree.select_regions(driver, params.regions)
            if selection.missing:
                logger.warning(f"Regions not selected in tree: {', '.join(selection.missing)}")

        self.form.submit(driver)

        context.check_cancelled("page 1")
        first_page = self.parser.parse_with_retry(driver, context)
        logger.info(f"First page: {len(first_page)} cases")
        return self.paginator.walk(driver, first_page, context.max_pages, context)

    def _after_case(self, status: str, context: CrawlContext) -> None:
        if not isinstance(self.rate_limiter, EthicalRateLimiter):
            return
        if status == STATUS_ERROR:
            delay = self.rate_limiter.record_failure()
            logger.warning(f"Decision check failed, backing off {delay:.1f}s")
            self.rate_limiter.pause(delay, context.cancel_event)
        else:
            self.rate_limiter.reset_failures()

    def _enrich_all(self, cases: List[CaseRecord], context: CrawlContext) -> None:
        driver = self.session.get_driver()
        total = len(cases)
        for index, case in enumerate(cases, start=1):
            context.check_cancelled(f"case {case.case_number}")
            if not case.link:
                logger.warning(f"Case {case.case_number} has no link; skipping decision check")
                continue
            logger.info(f"Processing case {index}/{total}: {case.case_number}")
            status = self.extractor.enrich(driver, case)
            self._after_case(status, context)
            if index < total:
                self.rate_limiter.wait_if_needed(context.cancel_event)

    def crawl(
        self,
        regions: Optional[List[str]] = None,
        max_pages: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
        context: Optional[CrawlContext] = None,
    ) -> List[CaseRecord]:
        """Crawl the given regions and return the enriched records."""
        params = CaseSearchParams.from_config(regions, max_pages)
        if context is None:
            context = build_context(
                params.regions,
                self.resolver,
                max_pages=params.max_pages,
                cancel_event=cancel_event,
            )
        logger.info(
            f"Starting crawl: district={context.federal_district}, region={context.region}, "
            f"max pages={context.max_pages}"
        )

        cases: List[CaseRecord] = []
        try:
            context.check_cancelled("region")
            cases = self._search(params, context)
            logger.info(f"Collected {len(cases)} cases; checking decisions")
            self._enrich_all(cases, context)
        except CrawlCancelled as e:
            logger.warning(f"{e}; returning {len(cases)} cases")
        except FormFillError as e:
            logger.error(f"Search form failed: {e}")
        except Exception as e:
            logger.error(f"Crawl failed: {e}")

        with_decision = sum(1 for c in cases if c.has_decision)
        logger.info(f"Crawl finished: {len(cases)} cases, {with_decision} with decisions")
        return cases
