"""Helpers for case numbers and case/decision URLs."""

import re
from typing import Optional

# Appended to a case link when the decision text is rendered on the case page
EMBEDDED_DECISION_MARKER = "#embedded_decision"

DECISION_NOT_FOUND = "Не найдено"
DECISION_CHECK_ERROR = "Ошибка при проверке"


def absolute_url(base_url: str, href: Optional[str]) -> str:
    """Prefix the site origin onto a relative href.

    Absolute hrefs are returned unchanged; empty input gives ''.
    """
    if not href:
        return ""
    href = href.strip()
    if href.startswith(("http://", "https://")):
        return href
    if href.startswith("//"):
        return "https:" + href
    base = (base_url or "").rstrip("/")
    if not href.startswith("/"):
        href = "/" + href
    return base + href


def embedded_decision_link(case_link: str) -> str:
    return (case_link or "") + EMBEDDED_DECISION_MARKER


def is_embedded_decision_link(link: Optional[str]) -> bool:
    return bool(link) and link.endswith(EMBEDDED_DECISION_MARKER)


def normalize_case_number(case_number: Optional[str]) -> str:
    """Return a case number with whitespace collapsed and hyphens unpadded.

    '2-1234 / 2024' and '2 - 1234/2024' both become '2-1234/2024'.
    """
    if not case_number:
        return ""
    s = re.sub(r"\s+", " ", case_number.replace("\xa0", " ")).strip()
    s = re.sub(r"\s*-\s*", "-", s)
    s = re.sub(r"\s*/\s*", "/", s)
    return s
