"""Command-line interface for the court records harvester."""

import argparse
import sys
import threading
from typing import List, Optional

from court_harvest.lib.config import Config
from court_harvest.lib.errors import PublishError
from court_harvest.lib.logging_config import get_logger, setup_logging
from court_harvest.lib.regions import get_resolver
from court_harvest.models.case import CaseRecord
from court_harvest.services.browser_session import BrowserSession
from court_harvest.services.crawl_orchestrator import CrawlOrchestrator
from court_harvest.services.export_service import ExportService
from court_harvest.services.region_job_service import (
    RegionJobService,
    log_region_summary,
    parse_cadence,
)

logger = get_logger()


class CourtHarvestCLI:
    """Command-line interface for the court records harvester."""

    def __init__(self):
        self.resolver = get_resolver()
        self.cancel_event = threading.Event()
        self.headless: Optional[bool] = None
        self.max_pages: Optional[int] = None

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="court-harvest",
            description="Court records harvester",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # One crawl for a region, print the summary
  court-harvest crawl "Республика Татарстан"

  # Crawl and publish to the configured channel
  court-harvest crawl Калмыкия --publish --max-pages 3

  # Recurring crawl of the configured regions
  court-harvest schedule --every "every 30 minutes"

  # Inspect the region table
  court-harvest regions
  court-harvest resolve ХМАО
""",
        )
        headless = parser.add_mutually_exclusive_group()
        headless.add_argument(
            "--headless",
            dest="headless",
            action="store_true",
            default=None,
            help="Run Chrome headless (default from configuration)",
        )
        headless.add_argument(
            "--no-headless",
            dest="headless",
            action="store_false",
            help="Run Chrome with a visible window",
        )
        parser.add_argument(
            "--max-pages",
            type=int,
            default=None,
            help="Maximum number of result pages per crawl (default: %s)" % Config.get_max_pages(),
        )
        parser.add_argument(
            "--log-level",
            default=Config.get_log_level(),
            choices=["DEBUG", "INFO", "WARNING", "ERROR"],
            help="Log level (default: %(default)s)",
        )

        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        crawl_parser = subparsers.add_parser(
            "crawl",
            help="Run one crawl for the given regions",
            description="Search, paginate and check decisions for the given regions once.",
        )
        crawl_parser.add_argument("regions", nargs="+", help="Region or federal district names")
        crawl_parser.add_argument(
            "--publish",
            action="store_true",
            help="Publish the batch to the configured channel",
        )
        crawl_parser.add_argument(
            "--topic",
            default=None,
            help="Channel name (default: %s)" % Config.get_topic(),
        )

        schedule_parser = subparsers.add_parser(
            "schedule",
            help="Crawl regions on a recurring cadence",
            description="Process each region in turn on the cadence until interrupted.",
        )
        schedule_parser.add_argument(
            "regions",
            nargs="*",
            help="Regions to process (default: configured regions)",
        )
        schedule_parser.add_argument(
            "--every",
            default=Config.get_schedule_every(),
            help='Cadence such as "every 5 minutes" or "2h" (default: %(default)s)',
        )
        schedule_parser.add_argument(
            "--once",
            action="store_true",
            help="Run a single pass and exit",
        )

        subparsers.add_parser("regions", help="Print the federal district table")

        resolve_parser = subparsers.add_parser(
            "resolve", help="Show the federal district of a region name"
        )
        resolve_parser.add_argument("name", help="Region, alias or district name")
        return parser

    def _new_orchestrator(self) -> CrawlOrchestrator:
        return CrawlOrchestrator(BrowserSession(headless=self.headless), resolver=self.resolver)

    def print_summary(self, region: str, cases: List[CaseRecord]) -> None:
        stats = log_region_summary(region, cases)
        print(f"\nRegion: {region}")
        print(f"  Cases:           {stats['total']}")
        print(f"  With decisions:  {stats['with_decision']}")
        print(f"  Embedded:        {stats['embedded']}")
        print(f"  Files:           {stats['file']}")
        if stats["total"]:
            print(f"  Success rate:    {stats['success_rate']:.1f}%")
        for case in cases:
            mark = "+" if case.has_decision else "-"
            print(f"  [{mark}] {case.case_number} {case.court_type} {case.decision_type}")

    def cmd_crawl(self, args) -> int:
        orchestrator = self._new_orchestrator()
        try:
            cases = orchestrator.crawl(
                args.regions, max_pages=self.max_pages, cancel_event=self.cancel_event
            )
        finally:
            orchestrator.session.close()

        label = ", ".join(args.regions)
        self.print_summary(label, cases)

        if args.publish and cases:
            exporter = ExportService()
            topic = args.topic or Config.get_topic()
            try:
                path = exporter.publish_batch(topic, cases)
            except PublishError as e:
                logger.error(str(e))
                print(f"\nPublish failed: {e}")
                return 1
            print(f"\nPublished {len(cases)} cases to {topic}: {path}")
        return 0 if cases else 1

    def cmd_schedule(self, args) -> int:
        regions = args.regions or Config.get_regions()
        try:
            parse_cadence(args.every)
        except ValueError as e:
            print(str(e))
            return 2

        jobs = RegionJobService(orchestrator_factory=self._new_orchestrator, max_pages=self.max_pages)
        if args.once:
            counts = jobs.run_once(regions, self.cancel_event)
            return 0 if all(c >= 0 for c in counts.values()) else 1
        try:
            jobs.run_every(regions, args.every, self.cancel_event)
        except KeyboardInterrupt:
            self.cancel_event.set()
            logger.info("Scheduler interrupted")
        return 0

    def cmd_regions(self, args) -> int:
        for district, regions in self.resolver.all_regions().items():
            print(district)
            for region in regions:
                print(f"  {region}")
        return 0

    def cmd_resolve(self, args) -> int:
        canonical = self.resolver.canonical_name(args.name)
        district = self.resolver.resolve(args.name)
        if self.resolver.is_district(args.name):
            print(f"{args.name} -> {district} (district)")
        elif canonical:
            print(f"{args.name} -> {canonical} -> {district}")
        else:
            print(f"{args.name} -> unknown region, default {district}")
        return 0

    def run(self, argv: Optional[List[str]] = None) -> int:
        parser = self.build_parser()
        args = parser.parse_args(argv)

        setup_logging(log_level=args.log_level, log_file=Config.get_log_file())
        self.headless = args.headless
        self.max_pages = args.max_pages

        if not args.command:
            parser.print_help()
            return 0

        handlers = {
            "crawl": self.cmd_crawl,
            "schedule": self.cmd_schedule,
            "regions": self.cmd_regions,
            "resolve": self.cmd_resolve,
        }
        try:
            return handlers[args.command](args)
        except KeyboardInterrupt:
            self.cancel_event.set()
            print("\nInterrupted")
            return 130


def main():
    """Main entry point."""
    cli = CourtHarvestCLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
