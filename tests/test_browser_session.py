import pytest

from court_harvest.services import browser_session as bs
from court_harvest.services.browser_session import BrowserSession, describe_element, safe_click
from tests.utils.fake_webelement import FakeDriver


@pytest.fixture
def drivers(monkeypatch):
    monkeypatch.setattr(bs.time, "sleep", lambda s: None)
    created = []

    def _factory():
        driver = FakeDriver()
        created.append(driver)
        return driver

    _factory.created = created
    return _factory


def test_driver_is_created_lazily_and_reused(drivers):
    session = BrowserSession(headless=True, driver_factory=drivers)
    assert drivers.created == []

    first = session.get_driver()
    assert session.get_driver() is first
    assert session.driver is first
    assert len(drivers.created) == 1


def test_dead_driver_is_restarted(drivers):
    session = BrowserSession(driver_factory=drivers)
    first = session.get_driver()
    first.alive = False

    second = session.get_driver()

    assert second is not first
    assert first.quit_called


def test_restart_limit(drivers, monkeypatch):
    monkeypatch.setattr(bs.Config, "get_max_driver_restarts", classmethod(lambda cls: 1))
    session = BrowserSession(driver_factory=drivers)
    session.get_driver().alive = False
    session.get_driver().alive = False

    with pytest.raises(RuntimeError, match="Exceeded max WebDriver restart attempts"):
        session.get_driver()


def test_open_waits_for_document_ready(drivers):
    session = BrowserSession(driver_factory=drivers)
    session.open("https://court.example/extended-search", timeout=0)
    assert drivers.created[0].visited == ["https://court.example/extended-search"]


def test_close_quits_driver_and_context_manager(drivers):
    with BrowserSession(driver_factory=drivers) as session:
        driver = session.get_driver()
    assert driver.quit_called
    # closing twice is harmless
    session.close()


def test_safe_click_falls_back_to_javascript():
    driver = FakeDriver("<html><body><button id='go' data-click-fails='1'>Найти</button></body></html>")
    assert safe_click(driver, driver.element("#go"), label="search button") == "javascript"
    assert driver.clicks == [("javascript", "go")]


def test_safe_click_reraises_when_both_fail():
    driver = FakeDriver(
        "<html><body><button id='go' data-click-fails='1' data-js-click-fails='1'>Найти</button></body></html>"
    )
    with pytest.raises(Exception, match="javascript error"):
        safe_click(driver, driver.element("#go"))


def test_describe_element():
    driver = FakeDriver("<html><body><a id='tree' class='link'>Суд / регион</a></body></html>")
    assert describe_element(driver.element("#tree")) == "id: tree, class: link, text: 'Суд / регион'"
