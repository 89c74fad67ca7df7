from datetime import date

import pytest

from court_harvest.lib.case_utils import (
    EMBEDDED_DECISION_MARKER,
    absolute_url,
    embedded_decision_link,
    is_embedded_decision_link,
    normalize_case_number,
)
from court_harvest.lib.date_utils import (
    DATE_NOT_SPECIFIED,
    extract_dates,
    extract_decision_date,
    parse_russian_date,
)
from court_harvest.lib.text_utils import (
    NOT_SPECIFIED,
    clean_party_name,
    clean_text,
    collapse_whitespace,
    extract_parties,
    join_names,
    truncate,
)


def test_collapse_whitespace_handles_nbsp_and_none():
    assert collapse_whitespace("  a\xa0\n b\t c ") == "a b c"
    assert collapse_whitespace(None) == ""


def test_clean_text_unpads_hyphens():
    assert clean_text(" 2 - 100/2024 ") == "2-100/2024"
    assert clean_text("") == ""


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Истец: ООО «Банк» Ответчик: Иванов И.И.", ("ООО «Банк»", "Иванов И.И.")),
        ("ПАО Сбербанк | Петров П.П.", ("ПАО Сбербанк", "Петров П.П.")),
        ("ПАО Сбербанк; Петров П.П.", ("ПАО Сбербанк", "Петров П.П.")),
        ("ООО «Займ» против Сидорова С.С.", ("ООО «Займ»", "Сидорова С.С.")),
        ("ООО «Займ» к Сидорову С.С.", ("ООО «Займ»", "Сидорову С.С.")),
        ("Только истец", ("Только истец", NOT_SPECIFIED)),
        ("", (NOT_SPECIFIED, NOT_SPECIFIED)),
    ],
)
def test_extract_parties(raw, expected):
    assert extract_parties(raw) == expected


def test_clean_party_name_strips_role_prefix():
    assert clean_party_name("Ответчик: Иванов И.И.;") == "Иванов И.И."
    assert clean_party_name(" - ") == NOT_SPECIFIED


def test_join_names_drops_blanks_and_repeats():
    joined = join_names(["Иванов", " Иванов ", "", "Петров"])
    assert joined == "Иванов; Петров"
    assert join_names([]) == ""


def test_truncate():
    assert truncate("короткий", 20) == "короткий"
    assert truncate("x" * 30, 10) == "xxxxxxx..."
    assert truncate(None, 5) == ""


@pytest.mark.parametrize(
    "text,expected",
    [
        ("12 марта 2024", date(2024, 3, 12)),
        ("1 января 2023 года", date(2023, 1, 1)),
        ("5 дек. 2022", date(2022, 12, 5)),
        ("05.03.2024", date(2024, 3, 5)),
        ("2024-03-05", date(2024, 3, 5)),
        ("05/03/2024", date(2024, 3, 5)),
        ("31.02.2024", None),
        ("не указана", None),
        (None, None),
    ],
)
def test_parse_russian_date(text, expected):
    assert parse_russian_date(text) == expected


def test_extract_dates_labelled_pair():
    dates = extract_dates("Поступило: 15.01.2024, Решение: 12 марта 2024")
    assert dates.received_text == "15.01.2024"
    assert dates.decision_text == "12 марта 2024"
    assert dates.received_date == date(2024, 1, 15)
    assert dates.decision_date == date(2024, 3, 12)


def test_extract_dates_unlabelled_pair():
    dates = extract_dates("15.01.2024 / 20.02.2024")
    assert dates.received_date == date(2024, 1, 15)
    assert dates.decision_date == date(2024, 2, 20)


def test_extract_dates_received_only():
    dates = extract_dates("Поступило: 01.02.2024")
    assert dates.received_date == date(2024, 2, 1)
    assert dates.decision_text == DATE_NOT_SPECIFIED
    assert dates.decision_date is None


def test_extract_dates_empty():
    dates = extract_dates("")
    assert dates.received_text == DATE_NOT_SPECIFIED
    assert dates.received_date is None


def test_extract_decision_date_prefers_long_form():
    text = "Дело № 2-1/2024 от 01.01.2024. Решение принято 12 марта 2024 года."
    assert extract_decision_date(text) == date(2024, 3, 12)
    assert extract_decision_date("решение от 05.04.2024") == date(2024, 4, 5)
    assert extract_decision_date("без даты") is None


def test_absolute_url():
    base = "https://court.example/"
    assert absolute_url(base, "/extended/case/1") == "https://court.example/extended/case/1"
    assert absolute_url(base, "extended/case/1") == "https://court.example/extended/case/1"
    assert absolute_url(base, "https://other.example/x") == "https://other.example/x"
    assert absolute_url(base, "//cdn.example/x.pdf") == "https://cdn.example/x.pdf"
    assert absolute_url(base, None) == ""


def test_embedded_decision_link_roundtrip():
    link = embedded_decision_link("https://court.example/extended/case/1")
    assert link.endswith(EMBEDDED_DECISION_MARKER)
    assert is_embedded_decision_link(link)
    assert not is_embedded_decision_link("https://court.example/decisions/1.pdf")


def test_normalize_case_number():
    assert normalize_case_number(" 2 - 1234 / 2024 ") == "2-1234/2024"
    assert normalize_case_number(None) == ""
