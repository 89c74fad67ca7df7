"""Pytest configuration and fixtures."""

import pytest
from selenium.common.exceptions import NoSuchElementException
from selenium.webdriver.common.by import By

from court_harvest.lib.regions import RegionResolver
from court_harvest.models.search_context import CrawlContext
from court_harvest.services import search_form_service
from tests.utils.pages import BASE_URL


@pytest.fixture
def base_url():
    return BASE_URL


@pytest.fixture
def resolver():
    """Resolver over the packaged region table."""
    return RegionResolver()


@pytest.fixture
def crawl_context():
    return CrawlContext(
        federal_district="Приволжский федеральный округ",
        region="Республика Татарстан",
        category="Имущественные споры",
        subcategory="Иски о взыскании сумм по договору займа, кредитному договору",
        max_pages=3,
    )


@pytest.fixture
def no_sleep():
    """Sleep replacement that records requested delays."""
    calls = []

    def _sleep(seconds):
        calls.append(seconds)

    _sleep.calls = calls
    return _sleep


@pytest.fixture
def fake_select(monkeypatch):
    """Replace Selenium's Select in the form service; returns the selection log."""
    selections = []

    class FakeSelect:
        def __init__(self, element):
            self.element = element

        def select_by_value(self, value):
            options = self.element.find_elements(By.CSS_SELECTOR, f"option[value='{value}']")
            if not options:
                raise NoSuchElementException(f"Cannot locate option with value: {value}")
            self.element._el.set("data-selected", value)
            selections.append((self.element.get_attribute("id"), value))

    monkeypatch.setattr(search_form_service, "Select", FakeSelect)
    return selections
