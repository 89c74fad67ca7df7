from datetime import date

import pytest

from court_harvest.lib.case_utils import DECISION_CHECK_ERROR, DECISION_NOT_FOUND, EMBEDDED_DECISION_MARKER
from court_harvest.models.case import CaseRecord
from court_harvest.services import decision_extraction_service as des
from court_harvest.services.decision_extraction_service import DecisionExtractionService
from tests.utils.fake_webelement import FakeDriver
from tests.utils.pages import BASE_URL, load_fixture

CASE_URL = BASE_URL + "/extended/case/1"
ORIGINAL_URL = "https://vahitovsky--tat.sudrf.ru/modules.php?name=sud_delo&case_id=100"


@pytest.fixture
def service():
    return DecisionExtractionService(BASE_URL, page_timeout=1, reveal_timeout=0, settle_seconds=0)


def _driver_for(fixture):
    driver = FakeDriver(url=BASE_URL + "/search?page=1")
    driver.pages[CASE_URL] = load_fixture(fixture)
    return driver


def _record():
    return CaseRecord(case_number="2-100/2024", link=CASE_URL, court_type="Суд из списка")


def test_file_decision(service):
    driver = _driver_for("detail/file_decision.html")
    record = _record()

    status = service.enrich(driver, record)

    assert status == des.STATUS_FILE
    assert driver.visited == [CASE_URL]
    assert record.has_decision is True
    assert record.decision_type == "Решение"
    assert record.decision_link == "https://court.example/decisions/2024/100.pdf"
    assert record.court_type == "Вахитовский районный суд г. Казани"
    assert record.judge_name == "Петров Петр Петрович"
    assert record.decision_state_is_consistent()


def test_embedded_decision_from_justified_paragraphs(service):
    driver = _driver_for("detail/justified_paragraphs.html")
    record = _record()

    status = service.enrich(driver, record)

    assert status == des.STATUS_EMBEDDED
    assert record.has_decision is True
    assert record.decision_link == CASE_URL + EMBEDDED_DECISION_MARKER
    assert record.decision_type == "Решение"
    assert record.decision_date == date(2024, 3, 12)
    assert record.decision_content.startswith("ИМЕНЕМ РОССИЙСКОЙ ФЕДЕРАЦИИ")
    assert record.is_embedded_decision


def test_weak_text_is_not_a_decision(service):
    driver = _driver_for("detail/weak_text.html")
    record = _record()
    record.has_decision = True
    record.decision_link = "stale"

    status = service.enrich(driver, record)

    assert status == des.STATUS_NOT_FOUND
    assert record.has_decision is False
    assert record.decision_type == DECISION_NOT_FOUND
    assert record.decision_link == ""


def test_full_case_page_with_original_link(service):
    driver = _driver_for("detail/full_case.html")
    revealed = load_fixture("detail/full_case.html").replace(
        '<div id="original-link"></div>',
        f'<div id="original-link"><a href="{ORIGINAL_URL}" target="_blank">Сайт суда</a></div>',
    )
    driver.on_click("show-original-link", lambda d, el: d.set_html(revealed))
    record = _record()

    status = service.enrich(driver, record)

    assert status == des.STATUS_EMBEDDED
    assert record.original_case_link == ORIGINAL_URL
    assert record.plaintiff == "ООО «Банк»"
    assert record.defendant == "Иванов И.И.; Иванова А.А."
    assert record.third_parties == "ООО «Страховая компания»"
    assert record.representatives == "Сидоров С.С."
    assert record.start_date == date(2024, 1, 15)
    assert record.received_date == date(2024, 1, 15)
    assert record.decision_date == date(2024, 3, 12)
    assert record.case_result == "Иск удовлетворен"
    assert record.case_category == "Имущественные споры"
    assert len(record.case_movements) == 5
    assert ("native", "show-original-link") in driver.clicks


def test_original_link_that_never_appears_is_not_fatal(service):
    driver = _driver_for("detail/full_case.html")
    record = _record()

    status = service.enrich(driver, record)

    assert status == des.STATUS_EMBEDDED
    assert record.original_case_link == ""


def test_failing_detail_step_does_not_stop_decision_check(service, monkeypatch):
    def _boom(tree):
        raise ValueError("broken parties table")

    monkeypatch.setattr(des.detail, "parse_parties", _boom)
    driver = _driver_for("detail/file_decision.html")
    record = _record()

    assert service.enrich(driver, record) == des.STATUS_FILE
    assert record.judge_name == "Петров Петр Петрович"


def test_navigation_error_marks_check_error(service):
    class BrokenDriver(FakeDriver):
        def get(self, url):
            raise RuntimeError("net::ERR_CONNECTION_RESET")

    record = _record()
    status = service.enrich(BrokenDriver(), record)

    assert status == des.STATUS_ERROR
    assert record.has_decision is False
    assert record.decision_link == ""
    assert record.decision_type == DECISION_CHECK_ERROR


def test_enrich_from_html(service):
    record = _record()
    assert service.enrich_from_html(load_fixture("detail/file_decision.html"), record) == des.STATUS_FILE
    assert record.decision_type == "Решение"
