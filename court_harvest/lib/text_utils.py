"""Text cleanup helpers for scraped listing and detail-page fields."""

import re
from typing import Iterable, List, Optional, Tuple

NOT_SPECIFIED = "Не указан"

_WS_RE = re.compile(r"\s+")
_DASH_RE = re.compile(r"\s*-\s*")

# Role prefixes that the listing prints in front of party names
_ROLE_PREFIX_RE = re.compile(
    r"^\s*(?:истцы|истец|ответчики|ответчик|заявители|заявитель)\s*[:\-–—]?\s*",
    re.IGNORECASE,
)
_EDGE_PUNCT = " :;,-–—|\t\n"

# Relational patterns tried when a party string has no delimiter
_RELATION_PATTERNS = [
    re.compile(r"Истец:\s*(.+?)\s*Ответчик:\s*(.+)", re.IGNORECASE),
    re.compile(r"(.+?)\s+против\s+(.+)", re.IGNORECASE),
    re.compile(r"(.+?)\s+к\s+(.+)", re.IGNORECASE),
]


def collapse_whitespace(text: Optional[str]) -> str:
    """Collapse runs of whitespace (including non-breaking spaces) to one space."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text.replace("\xa0", " ")).strip()


def clean_text(text: Optional[str]) -> str:
    """Normalize a listing cell: single spaces and no padding around hyphens.

    'А40 - 123 / 2024' style case numbers come out as 'А40-123 / 2024'.
    """
    cleaned = collapse_whitespace(text)
    if not cleaned:
        return ""
    return _DASH_RE.sub("-", cleaned)


def clean_party_name(name: Optional[str]) -> str:
    """Strip role prefixes and stray punctuation from a single party name."""
    cleaned = collapse_whitespace(name)
    previous = None
    while cleaned and cleaned != previous:
        previous = cleaned
        cleaned = _ROLE_PREFIX_RE.sub("", cleaned).strip(_EDGE_PUNCT)
    return cleaned or NOT_SPECIFIED


def extract_parties(parties_text: Optional[str]) -> Tuple[str, str]:
    """Split a combined party string into (plaintiff, defendant).

    Delimiters are tried first ('|' then ';'), then relational phrases
    ('X против Y', 'X к Y'); otherwise the whole string is the plaintiff.
    """
    cleaned = collapse_whitespace(parties_text)
    if not cleaned:
        return NOT_SPECIFIED, NOT_SPECIFIED

    for delimiter in ("|", ";"):
        if delimiter in cleaned:
            parts = [p for p in cleaned.split(delimiter) if p.strip()]
            if len(parts) >= 2:
                return clean_party_name(parts[0]), clean_party_name(parts[1])

    for pattern in _RELATION_PATTERNS:
        m = pattern.search(cleaned)
        if m:
            return clean_party_name(m.group(1)), clean_party_name(m.group(2))

    return clean_party_name(cleaned), NOT_SPECIFIED


def join_names(names: Iterable[str]) -> str:
    """Join names with '; ', dropping blanks and repeats; empty string when none."""
    seen: List[str] = []
    for name in names:
        n = collapse_whitespace(name)
        if n and n not in seen:
            seen.append(n)
    return "; ".join(seen)


def truncate(text: Optional[str], max_length: int) -> str:
    if not text or len(text) <= max_length:
        return text or ""
    return text[: max_length - 3] + "..."
