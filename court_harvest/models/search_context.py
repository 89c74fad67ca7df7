"""Per-crawl search parameters and context.

Region/category labels, the cancel event and the verified sink channels travel with each crawl as a
`CrawlContext` value instead of living on a long-lived service.
"""

import threading
from dataclasses import dataclass, field
from typing import List, Optional, Set

from court_harvest.lib.config import Config
from court_harvest.lib.errors import CrawlCancelled
from court_harvest.lib.regions import DEFAULT_REGION, RegionResolver, get_resolver


@dataclass
class CaseSearchParams:
    """Fixed filters submitted through the extended search form."""

    regions: List[str] = field(default_factory=list)
    case_type: str = "gr_first"
    category: str = "46"
    subcategory: str = "53"
    max_pages: int = 1

    @classmethod
    def from_config(cls, regions: Optional[List[str]] = None, max_pages: Optional[int] = None) -> "CaseSearchParams":
        return cls(
            regions=list(regions or []),
            case_type=Config.get_case_type(),
            category=Config.get_category(),
            subcategory=Config.get_subcategory(),
            max_pages=max_pages if max_pages is not None else Config.get_max_pages(),
        )


@dataclass
class CrawlContext:
    """Labels stamped on every record of one crawl plus its cancel switch."""

    federal_district: str
    region: str
    category: str = ""
    subcategory: str = ""
    max_pages: int = 1
    cancel_event: threading.Event = field(default_factory=threading.Event)
    # sink channels already checked during this crawl
    verified_channels: Set[str] = field(default_factory=set)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def check_cancelled(self, checkpoint: str = "") -> None:
        """Raise `CrawlCancelled` if cancellation was requested."""
        if self.cancel_event.is_set():
            where = f" at {checkpoint}" if checkpoint else ""
            raise CrawlCancelled(f"Crawl cancelled{where}")


def build_context(
    regions: Optional[List[str]],
    resolver: Optional[RegionResolver] = None,
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    max_pages: int = 1,
    cancel_event: Optional[threading.Event] = None,
) -> CrawlContext:
    """Derive the crawl context from the requested region list.

    The first district named directly wins, otherwise the district of the
    first region. Only non-district names become region labels; a list that
    names just a district uses the district as its region label.
    """
    resolver = resolver or get_resolver()
    names = [r.strip() for r in (regions or []) if r and r.strip()]
    if not names:
        names = [DEFAULT_REGION]

    districts = [resolver.resolve(n) for n in names if resolver.is_district(n)]
    plain_regions = [n for n in names if not resolver.is_district(n)]

    if districts:
        district = districts[0]
    else:
        district = resolver.resolve(plain_regions[0])

    region_label = ", ".join(plain_regions) if plain_regions else district

    return CrawlContext(
        federal_district=district,
        region=region_label,
        category=category if category is not None else Config.get_category_label(),
        subcategory=subcategory if subcategory is not None else Config.get_subcategory_label(),
        max_pages=max(1, int(max_pages)),
        cancel_event=cancel_event or threading.Event(),
    )
