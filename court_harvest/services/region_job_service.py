"""Per-region jobs and the recurring cadence runner."""

import re
import threading
import time
from typing import Callable, Dict, List, Optional

from court_harvest.lib.case_utils import EMBEDDED_DECISION_MARKER
from court_harvest.lib.config import Config
from court_harvest.lib.logging_config import get_logger
from court_harvest.lib.regions import RegionResolver, get_resolver
from court_harvest.lib.text_utils import truncate
from court_harvest.models.case import CaseRecord
from court_harvest.models.search_context import CaseSearchParams, build_context
from court_harvest.services.browser_session import BrowserSession
from court_harvest.services.crawl_orchestrator import CrawlOrchestrator
from court_harvest.services.export_service import ExportService

logger = get_logger()

_UNIT_SECONDS = {
    "s": 1,
    "sec": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hour": 3600,
    "hours": 3600,
}

_CADENCE_RE = re.compile(r"^(?:every\s+)?(\d+)?\s*([a-z]+)$")


def parse_cadence(cadence: str) -> int:
    """Convert "every 5 minutes", "every hour", "5m" or "2h" to seconds.

    Raises:
        ValueError: unrecognised cadence or a non-positive interval
    """
    text = (cadence or "").strip().lower()
    m = _CADENCE_RE.match(text)
    if not m or m.group(2) not in _UNIT_SECONDS:
        raise ValueError(f"Unrecognised cadence: {cadence!r}")
    count = int(m.group(1)) if m.group(1) else 1
    if count <= 0:
        raise ValueError(f"Cadence must be positive: {cadence!r}")
    return count * _UNIT_SECONDS[m.group(2)]


def summarize(cases: List[CaseRecord]) -> Dict[str, float]:
    total = len(cases)
    with_decision = [c for c in cases if c.has_decision]
    embedded = sum(1 for c in with_decision if EMBEDDED_DECISION_MARKER in (c.decision_link or ""))
    return {
        "total": total,
        "with_decision": len(with_decision),
        "embedded": embedded,
        "file": len(with_decision) - embedded,
        "success_rate": (len(with_decision) / total * 100) if total else 0.0,
    }


def log_region_summary(region: str, cases: List[CaseRecord]) -> Dict[str, float]:
    stats = summarize(cases)
    logger.info(
        f"Region {region}: total={stats['total']}, with decisions={stats['with_decision']}, "
        f"embedded={stats['embedded']}, files={stats['file']}, "
        f"success rate={stats['success_rate']:.1f}%"
    )
    for case in cases:
        logger.debug(
            f"  {case.case_number} | {case.court_type} | decision={'yes' if case.has_decision else 'no'}"
            f" | {truncate(case.plaintiff, 60)} vs {truncate(case.defendant, 60)}"
        )
    return stats


def default_orchestrator_factory() -> CrawlOrchestrator:
    return CrawlOrchestrator(BrowserSession())


class RegionJobService:
    """Crawls one region, publishes its batch and logs a summary."""

    def __init__(
        self,
        orchestrator_factory: Optional[Callable[[], CrawlOrchestrator]] = None,
        exporter: Optional[ExportService] = None,
        resolver: Optional[RegionResolver] = None,
        topic: Optional[str] = None,
        max_pages: Optional[int] = None,
    ):
        self.orchestrator_factory = orchestrator_factory or default_orchestrator_factory
        self.exporter = exporter or ExportService()
        self.resolver = resolver or get_resolver()
        self.topic = topic or Config.get_topic()
        self.max_pages = max_pages

    def process_region(
        self, region: str, cancel_event: Optional[threading.Event] = None
    ) -> List[CaseRecord]:
        """Run one crawl unit for `region`.

        Raises:
            PublishError: the batch could not be published
        """
        logger.info(f"Job started for region: {region}")
        district = self.resolver.resolve(region)
        logger.info(f"Region {region} belongs to {district}")

        params = CaseSearchParams.from_config([region], self.max_pages)
        context = build_context(
            params.regions, self.resolver, max_pages=params.max_pages, cancel_event=cancel_event
        )

        orchestrator = self.orchestrator_factory()
        try:
            cases = orchestrator.crawl(params.regions, max_pages=params.max_pages, context=context)
        finally:
            orchestrator.session.close()

        if not cases:
            logger.info(f"Region {region}: no cases found")
            return []

        for case in cases:
            case.federal_district = district
        self.exporter.publish_batch(self.topic, cases, context)
        logger.info(f"Region {region}: published {len(cases)} cases to {self.topic}")
        log_region_summary(region, cases)
        return cases

    def run_once(self, regions: List[str], cancel_event: Optional[threading.Event] = None) -> Dict[str, int]:
        """Process each region in turn; a failed region does not stop the rest."""
        counts: Dict[str, int] = {}
        for region in regions:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Cancellation requested; skipping remaining regions")
                break
            try:
                counts[region] = len(self.process_region(region, cancel_event))
            except Exception as e:
                logger.error(f"Error processing region {region}: {e}")
                counts[region] = -1
        return counts

    def run_every(
        self,
        regions: List[str],
        cadence: str,
        cancel_event: Optional[threading.Event] = None,
        max_ticks: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> int:
        """Run `run_once` on the cadence until cancelled; returns ticks run."""
        interval = parse_cadence(cadence)
        cancel_event = cancel_event or threading.Event()
        logger.info(f"Scheduling {len(regions)} region(s) every {interval}s")

        ticks = 0
        while not cancel_event.is_set():
            started = clock()
            self.run_once(regions, cancel_event)
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            remaining = max(0.0, interval - (clock() - started))
            logger.info(f"Next run in {remaining:.0f}s")
            if cancel_event.wait(remaining):
                break
        logger.info(f"Scheduler stopped after {ticks} run(s)")
        return ticks
