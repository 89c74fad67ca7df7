"""Russian-locale date parsing for listing cells and decision texts."""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from court_harvest.lib.text_utils import collapse_whitespace

DATE_NOT_SPECIFIED = "не указана"

RU_MONTHS = {
    "января": 1, "январь": 1, "янв": 1,
    "февраля": 2, "февраль": 2, "фев": 2,
    "марта": 3, "март": 3, "мар": 3,
    "апреля": 4, "апрель": 4, "апр": 4,
    "мая": 5, "май": 5,
    "июня": 6, "июнь": 6, "июн": 6,
    "июля": 7, "июль": 7, "июл": 7,
    "августа": 8, "август": 8, "авг": 8,
    "сентября": 9, "сентябрь": 9, "сен": 9,
    "октября": 10, "октябрь": 10, "окт": 10,
    "ноября": 11, "ноябрь": 11, "ноя": 11,
    "декабря": 12, "декабрь": 12, "дек": 12,
}

_LONG_DATE_RE = re.compile(r"(\d{1,2})\s+([А-Яа-яЁё]+)\.?\s+(\d{4})")
_NUMERIC_DATE_RE = re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4})")
_ISO_DATE_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")

# A date token inside listing text: long form or dd.mm.yyyy
_DATE_TOKEN = r"(\d{1,2}\s+[А-Яа-яЁё]+\s+\d{4}|\d{1,2}\.\d{1,2}\.\d{4})"

_LISTING_PATTERNS = [
    re.compile(r"Поступило:\s*" + _DATE_TOKEN + r".*?Решение:\s*" + _DATE_TOKEN, re.IGNORECASE | re.DOTALL),
    re.compile(_DATE_TOKEN + r".*?" + _DATE_TOKEN, re.DOTALL),
    re.compile(r"Поступило:\s*([^,]+?)\s*,?\s*Решение:\s*([^,]+)", re.IGNORECASE | re.DOTALL),
]
_RECEIVED_ONLY_RE = re.compile(r"Поступило:\s*" + _DATE_TOKEN, re.IGNORECASE)

# Patterns tried, in order, on a decision text
_DECISION_DATE_PATTERNS = [
    re.compile(r"\d{1,2}\s+[А-Яа-яЁё]+\s+\d{4}\s+года", re.IGNORECASE),
    re.compile(r"\d{1,2}\.\d{1,2}\.\d{4}"),
    re.compile(r"\d{4}-\d{2}-\d{2}"),
]

_FALLBACK_FORMATS = ["%d.%m.%Y", "%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%y"]


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_russian_date(text: Optional[str]) -> Optional[date]:
    """Parse a date written as '5 марта 2024', '05.03.2024' or '2024-03-05'.

    Returns None when nothing parses; never raises.
    """
    if not text:
        return None
    s = collapse_whitespace(text).lower()

    m = _LONG_DATE_RE.search(s)
    if m:
        month = RU_MONTHS.get(m.group(2).lower().rstrip("."))
        if month:
            parsed = _safe_date(int(m.group(3)), month, int(m.group(1)))
            if parsed:
                return parsed

    m = _NUMERIC_DATE_RE.search(s)
    if m:
        parsed = _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
        if parsed:
            return parsed

    m = _ISO_DATE_RE.search(s)
    if m:
        parsed = _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if parsed:
            return parsed

    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


@dataclass
class ListingDates:
    """Dates found in a results-page dates cell.

    The *_text fields keep what the page printed, or the 'не указана'
    sentinel; the date fields hold the best-effort parse.
    """

    received_text: str = DATE_NOT_SPECIFIED
    decision_text: str = DATE_NOT_SPECIFIED
    received_date: Optional[date] = None
    decision_date: Optional[date] = None


def extract_dates(dates_text: Optional[str]) -> ListingDates:
    """Extract the received/decision pair from a combined dates cell."""
    result = ListingDates()
    cleaned = collapse_whitespace(dates_text)
    if not cleaned:
        return result

    for pattern in _LISTING_PATTERNS:
        m = pattern.search(cleaned)
        if m:
            result.received_text = m.group(1).strip()
            result.decision_text = m.group(2).strip()
            result.received_date = parse_russian_date(result.received_text)
            result.decision_date = parse_russian_date(result.decision_text)
            return result

    m = _RECEIVED_ONLY_RE.search(cleaned)
    if m:
        result.received_text = m.group(1).strip()
        result.received_date = parse_russian_date(result.received_text)
    return result


def extract_decision_date(content: Optional[str]) -> Optional[date]:
    """Best-effort date of a decision text.

    Long-form Russian dates win over numeric ones, which win over ISO;
    the first candidate that actually parses is returned.
    """
    if not content:
        return None
    for pattern in _DECISION_DATE_PATTERNS:
        for m in pattern.finditer(content):
            parsed = parse_russian_date(m.group(0))
            if parsed:
                return parsed
    return None
