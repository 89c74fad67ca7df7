import threading
from datetime import date

import pytest

from court_harvest.lib.case_utils import DECISION_NOT_FOUND
from court_harvest.lib.errors import CrawlCancelled
from court_harvest.lib.regions import DEFAULT_DISTRICT, DEFAULT_REGION
from court_harvest.models.case import CaseRecord
from court_harvest.models.case_movement import CaseMovement
from court_harvest.models.search_context import CaseSearchParams, CrawlContext, build_context


def _record():
    return CaseRecord(
        title="Суд - 2-1/2024",
        link="https://court.example/extended/case/1",
        case_number="2-1/2024",
        court_type="Суд",
        received_date=date(2024, 1, 15),
        start_date=date(2024, 1, 15),
        has_decision=True,
        decision_link="https://court.example/decisions/1.pdf",
        decision_type="Решение",
        decision_date=date(2024, 3, 12),
        case_movements=[
            CaseMovement("Регистрация иска", "Выполнено", "", date(2024, 1, 15), "15.01.2024"),
        ],
    )


def test_to_dict_uses_camel_case_and_iso_dates():
    data = _record().to_dict()
    assert data["caseNumber"] == "2-1/2024"
    assert data["receivedDate"] == "2024-01-15"
    assert data["decisionDate"] == "2024-03-12"
    assert data["hasDecision"] is True
    assert data["caseMovements"] == [
        {"eventName": "Регистрация иска", "eventResult": "Выполнено", "basis": "", "eventDate": "2024-01-15"}
    ]
    assert "case_number" not in data
    assert "eventDateText" not in data["caseMovements"][0]


def test_from_dict_restores_record():
    original = _record()
    restored = CaseRecord.from_dict(original.to_dict())
    assert restored.case_number == original.case_number
    assert restored.decision_date == original.decision_date
    assert restored.case_movements[0].event_date == date(2024, 1, 15)
    assert restored.case_movements[0].event_date_text == "15.01.2024"


def test_reset_decision_returns_to_unchecked_state():
    record = _record()
    record.decision_content = "текст"
    record.reset_decision()
    assert record.has_decision is False
    assert record.decision_link == ""
    assert record.decision_type == DECISION_NOT_FOUND
    assert record.decision_content is None
    assert record.decision_date is None


def test_decision_kind_properties():
    record = _record()
    assert not record.is_embedded_decision
    record.decision_link = record.link + "#embedded_decision"
    assert record.is_embedded_decision


def test_decision_state_consistency():
    record = _record()
    assert record.decision_state_is_consistent()
    record.decision_link = ""
    assert not record.decision_state_is_consistent()
    record.has_decision = False
    assert record.decision_state_is_consistent()


def test_search_params_from_config():
    params = CaseSearchParams.from_config(["Калмыкия"], max_pages=2)
    assert params.regions == ["Калмыкия"]
    assert params.case_type == "gr_first"
    assert params.category == "46"
    assert params.subcategory == "53"
    assert params.max_pages == 2


def test_build_context_for_plain_regions(resolver):
    ctx = build_context(["Калмыкия", "Астраханская область"], resolver, max_pages=3)
    assert ctx.federal_district == "Южный федеральный округ"
    assert ctx.region == "Калмыкия, Астраханская область"
    assert ctx.category == "Имущественные споры"
    assert ctx.max_pages == 3


def test_build_context_prefers_direct_district(resolver):
    ctx = build_context(["Республика Татарстан", "ЮФО"], resolver)
    assert ctx.federal_district == "Южный федеральный округ"
    assert ctx.region == "Республика Татарстан"


def test_build_context_district_only(resolver):
    ctx = build_context(["Южный федеральный округ"], resolver)
    assert ctx.region == "Южный федеральный округ"
    assert ctx.federal_district == "Южный федеральный округ"


def test_build_context_empty_list_uses_default_region(resolver):
    ctx = build_context([], resolver)
    assert ctx.region == DEFAULT_REGION
    assert ctx.federal_district == DEFAULT_DISTRICT


def test_context_cancellation_checkpoint():
    event = threading.Event()
    ctx = CrawlContext(federal_district="X", region="Y", cancel_event=event)
    ctx.check_cancelled("region")
    event.set()
    assert ctx.cancelled
    with pytest.raises(CrawlCancelled, match="case 2-1/2024"):
        ctx.check_cancelled("case 2-1/2024")


def test_movement_from_dict_keeps_printed_date_text():
    movement = CaseMovement.from_dict({"eventName": "Заседание", "eventDateText": "весна 2024"})
    assert movement.event_date is None
    assert movement.event_date_text == "весна 2024"
    assert CaseMovement.from_dict({"eventName": "Заседание"}).event_date_text == ""
