"""Exception types shared across the harvester services."""


class CourtHarvestError(Exception):
    """Base class for harvester failures."""


class FormFillError(CourtHarvestError):
    """The search form could not be filled or submitted.

    This is the only failure allowed to short-circuit a whole crawl unit.
    """


class NavigationTimeout(CourtHarvestError):
    """A page, selector or DOM condition did not become ready in time."""


class CrawlCancelled(CourtHarvestError):
    """Raised at a cooperative checkpoint once cancellation was requested."""


class PublishError(CourtHarvestError):
    """A batch could not be delivered to the sink after bounded retries."""
