import itertools
import threading

import pytest

from court_harvest.lib.case_utils import EMBEDDED_DECISION_MARKER
from court_harvest.lib.errors import PublishError
from court_harvest.models.case import CaseRecord
from court_harvest.services.region_job_service import RegionJobService, parse_cadence, summarize


@pytest.mark.parametrize(
    "cadence,seconds",
    [
        ("every 5 minutes", 300),
        ("every minute", 60),
        ("every hour", 3600),
        ("5m", 300),
        ("2h", 7200),
        ("30 seconds", 30),
        ("  Every 10 Minutes ", 600),
    ],
)
def test_parse_cadence(cadence, seconds):
    assert parse_cadence(cadence) == seconds


@pytest.mark.parametrize("cadence", ["", "often", "every 0 minutes", "every 5 fortnights", "-5m"])
def test_parse_cadence_rejects_bad_values(cadence):
    with pytest.raises(ValueError):
        parse_cadence(cadence)


class FakeSessionHandle:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class StubOrchestrator:
    def __init__(self, cases=None, error=None):
        self.session = FakeSessionHandle()
        self.cases = cases or []
        self.error = error
        self.calls = []
        self.contexts = []

    def crawl(self, regions, max_pages=None, cancel_event=None, context=None):
        self.calls.append((regions, max_pages))
        self.contexts.append(context)
        if self.error:
            raise self.error
        return list(self.cases)


class RecordingExporter:
    def __init__(self, error=None):
        self.batches = []
        self.contexts = []
        self.error = error

    def publish_batch(self, topic, records, context=None):
        if self.error:
            raise self.error
        self.batches.append((topic, list(records)))
        self.contexts.append(context)


def _cases():
    return [
        CaseRecord(case_number="2-1/2024", has_decision=True, decision_link="https://court.example/d/1.pdf"),
        CaseRecord(
            case_number="2-2/2024",
            has_decision=True,
            decision_link="https://court.example/extended/case/2" + EMBEDDED_DECISION_MARKER,
        ),
        CaseRecord(case_number="2-3/2024"),
    ]


def _service(orchestrators, exporter, resolver):
    pending = list(orchestrators)
    return RegionJobService(
        orchestrator_factory=lambda: pending.pop(0),
        exporter=exporter,
        resolver=resolver,
        topic="court-cases",
        max_pages=2,
    )


def test_process_region_publishes_batch_with_district(resolver):
    orchestrator = StubOrchestrator(_cases())
    exporter = RecordingExporter()

    cases = _service([orchestrator], exporter, resolver).process_region("Калмыкия")

    assert orchestrator.calls == [(["Калмыкия"], 2)]
    assert orchestrator.session.closed
    assert len(cases) == 3
    topic, published = exporter.batches[0]
    assert topic == "court-cases"
    assert {c.federal_district for c in published} == {"Южный федеральный округ"}


def test_process_region_shares_one_context_between_crawl_and_publish(resolver):
    orchestrator = StubOrchestrator(_cases())
    exporter = RecordingExporter()
    cancel = threading.Event()

    _service([orchestrator], exporter, resolver).process_region("Калмыкия", cancel_event=cancel)

    context = orchestrator.contexts[0]
    assert exporter.contexts == [context]
    assert context.cancel_event is cancel
    assert context.federal_district == "Южный федеральный округ"
    assert context.max_pages == 2


def test_empty_region_is_not_published(resolver):
    exporter = RecordingExporter()
    assert _service([StubOrchestrator([])], exporter, resolver).process_region("Калмыкия") == []
    assert exporter.batches == []


def test_publish_error_propagates_and_session_is_closed(resolver):
    orchestrator = StubOrchestrator(_cases())
    service = _service([orchestrator], RecordingExporter(error=PublishError("disk full")), resolver)

    with pytest.raises(PublishError):
        service.process_region("Татарстан")
    assert orchestrator.session.closed


def test_session_closed_when_crawl_raises(resolver):
    orchestrator = StubOrchestrator(error=RuntimeError("chrome died"))
    with pytest.raises(RuntimeError):
        _service([orchestrator], RecordingExporter(), resolver).process_region("Татарстан")
    assert orchestrator.session.closed


def test_run_once_continues_after_failed_region(resolver):
    orchestrators = [StubOrchestrator(error=RuntimeError("boom")), StubOrchestrator(_cases())]
    exporter = RecordingExporter()

    counts = _service(orchestrators, exporter, resolver).run_once(["Татарстан", "Калмыкия"])

    assert counts == {"Татарстан": -1, "Калмыкия": 3}
    assert len(exporter.batches) == 1


def test_run_once_stops_when_cancelled(resolver):
    cancel = threading.Event()
    cancel.set()
    assert _service([], RecordingExporter(), resolver).run_once(["Татарстан"], cancel) == {}


def test_run_every_respects_max_ticks(resolver):
    service = _service([], RecordingExporter(), resolver)
    runs = []
    service.run_once = lambda regions, cancel_event=None: runs.append(list(regions)) or {}
    clock = itertools.count(0, 10).__next__

    ticks = service.run_every(["Татарстан"], "every 5 seconds", max_ticks=3, clock=clock)

    assert ticks == 3
    assert runs == [["Татарстан"]] * 3


def test_run_every_stops_on_cancel(resolver):
    service = _service([], RecordingExporter(), resolver)
    cancel = threading.Event()

    def _run_once(regions, cancel_event=None):
        cancel.set()
        return {}

    service.run_once = _run_once

    assert service.run_every(["Татарстан"], "every 5 minutes", cancel_event=cancel) == 1


def test_run_every_rejects_bad_cadence(resolver):
    with pytest.raises(ValueError):
        _service([], RecordingExporter(), resolver).run_every(["Татарстан"], "sometimes")


def test_summarize_counts_decision_kinds():
    stats = summarize(_cases())
    assert stats["total"] == 3
    assert stats["with_decision"] == 2
    assert stats["embedded"] == 1
    assert stats["file"] == 1
    assert round(stats["success_rate"], 1) == 66.7
    assert summarize([])["success_rate"] == 0.0
