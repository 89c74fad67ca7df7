"""Decision detection rules: marker lists, validation, classification and
the ordered detection strategies.

Everything here is a pure function over text or an lxml tree. The marker
lists and type tables below are the single source of truth used by the
decision extraction service.
"""

import copy
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional, Tuple

from court_harvest.lib.case_utils import absolute_url
from court_harvest.lib.date_utils import extract_decision_date
from court_harvest.lib.logging_config import get_logger
from court_harvest.lib.text_utils import collapse_whitespace

logger = get_logger()

FEDERATION_PHRASE = "именем российской федерации"

# At least one of these must be present
REQUIRED_MARKERS = [
    FEDERATION_PHRASE,
    "решил:",
    "решила:",
    "определил:",
    "определила:",
    "постановил:",
    "постановила:",
    "установил:",
    "установила:",
]

# At least MIN_OPTIONAL_MARKERS of these must be present
OPTIONAL_MARKERS = [
    "суд",
    "судья",
    "рассмотрев",
    "заявление",
    "иск",
    "дело №",
    "председательствующий",
    "решение",
    "определение",
    "постановление",
    "удовлетворить",
    "отказать",
    "истец",
    "ответчик",
]
MIN_OPTIONAL_MARKERS = 3

# Letter-spaced document titles, as printed at the top of a judgment
SPACED_TITLES: List[Tuple[str, str]] = [
    ("р е ш е н и е", "Решение"),
    ("о п р е д е л е н и е", "Определение"),
    ("п о с т а н о в л е н и е", "Постановление"),
]

# Document word that, together with the federation phrase, names the type
TITLE_WORDS: List[Tuple[str, str]] = [
    ("решение", "Решение"),
    ("определение", "Определение"),
    ("постановление", "Постановление"),
    ("приказ", "Судебный приказ"),
]

MOTIVATED_DECISION = ("мотивированное решение", "Мотивированное решение")

VERDICT_VERBS: List[Tuple[Tuple[str, ...], str]] = [
    (("решил:", "решила:"), "Решение"),
    (("определил:", "определила:"), "Определение"),
    (("постановил:", "постановила:"), "Постановление"),
]

GENERIC_ACT = "Судебный акт"

# Download links: link text keyword -> type, most specific first
LINK_TEXT_TYPES: List[Tuple[str, str]] = [
    ("мотивированное решение", "Мотивированное решение"),
    ("решение", "Решение"),
    ("определение", "Определение"),
    ("постановление", "Постановление"),
    ("приказ", "Судебный приказ"),
]
DEFAULT_LINK_TYPE = "Документ"

DECISION_FILE_EXTENSIONS = (".doc", ".docx", ".pdf", ".rtf")
DECISION_PATH_SEGMENT = "/decisions/"
DECISION_LINK_KEYWORDS = ["решение", "определение", "постановление", "приказ", "мотивированное"]

DOWNLOAD_CONTAINER_CSS = ".btn-group1"

JUSTIFIED_PARAGRAPHS_CSS = (
    "p.MsoNormal[style*='TEXT-ALIGN: justify'], "
    "p.MsoNormal[style*='text-align: justify'], "
    "p[class*='MsoNormal'][style*='justify']"
)
MIN_JUSTIFIED_PARAGRAPHS = 5
MAX_JUSTIFIED_PARAGRAPHS = 20
MIN_FRAGMENT_LENGTH = 10
MIN_TEXT_FRAGMENTS = 3

HEADING_BLOCKQUOTE_XPATH = (
    "//h3[@class='text-center']"
    "/following-sibling::*[1][self::blockquote and @itemprop='text']"
)

STRONG_INDICATORS = ["р е ш е н и е", "о п р е д е л е н и е", FEDERATION_PHRASE]
NON_CONTENT_TAGS = ("script", "style", "nav", "header", "footer", "noscript")


def _normalize(text: Optional[str]) -> str:
    return collapse_whitespace(text).lower()


def visible_text(element) -> str:
    """Text of an element with block boundaries kept as spaces."""
    return collapse_whitespace(" ".join(t for t in element.itertext() if t and t.strip()))


# validation


def marker_counts(text: Optional[str]) -> Tuple[int, int]:
    """Return (required markers present, optional markers present)."""
    content = _normalize(text)
    if not content:
        return 0, 0
    required = sum(1 for m in REQUIRED_MARKERS if m in content)
    optional = sum(1 for m in OPTIONAL_MARKERS if m in content)
    return required, optional


def is_valid_decision_content(text: Optional[str]) -> bool:
    """A judgment needs one required marker and three optional ones."""
    required, optional = marker_counts(text)
    valid = required >= 1 and optional >= MIN_OPTIONAL_MARKERS
    logger.debug(f"Content validation: required={required}, optional={optional}, valid={valid}")
    return valid


def classify_decision_text(text: Optional[str]) -> Optional[str]:
    """Return the document type of an accepted decision text, or None.

    None means the text is not treated as a decision at all.
    """
    content = _normalize(text)
    if not content:
        return None

    for marker, doc_type in SPACED_TITLES:
        if marker in content:
            return doc_type

    if FEDERATION_PHRASE in content:
        for word, doc_type in TITLE_WORDS:
            if word in content:
                return doc_type

    if MOTIVATED_DECISION[0] in content:
        return MOTIVATED_DECISION[1]

    for verbs, doc_type in VERDICT_VERBS:
        if any(v in content for v in verbs):
            return doc_type

    if FEDERATION_PHRASE in content:
        return GENERIC_ACT
    return None


# file links


def is_decision_file_link(href: Optional[str], link_text: Optional[str]) -> bool:
    """Extension, decisions path and link wording must all match."""
    if not href:
        return False
    path = href.split("?", 1)[0].split("#", 1)[0].lower()
    has_extension = path.endswith(DECISION_FILE_EXTENSIONS)
    has_path = DECISION_PATH_SEGMENT in href
    text = _normalize(link_text)
    has_text = any(k in text for k in DECISION_LINK_KEYWORDS)
    return has_extension and has_path and has_text


def decision_type_from_link_text(link_text: Optional[str]) -> str:
    text = _normalize(link_text)
    for keyword, doc_type in LINK_TEXT_TYPES:
        if keyword in text:
            return doc_type
    return DEFAULT_LINK_TYPE


@dataclass
class FileDecision:
    link: str
    decision_type: str
    link_text: str = ""


@dataclass
class EmbeddedDecision:
    content: str
    decision_type: str
    decision_date: Optional[date]
    strategy: str


def find_file_decision(tree, base_url: str) -> Optional[FileDecision]:
    """First qualifying anchor inside the download-button container."""
    containers = tree.cssselect(DOWNLOAD_CONTAINER_CSS)
    if not containers:
        logger.debug("Download container not found")
        return None
    anchors = containers[0].xpath(".//a")
    logger.info(f"Found links in download container: {len(anchors)}")
    for anchor in anchors:
        href = anchor.get("href") or ""
        text = collapse_whitespace(anchor.text_content())
        if is_decision_file_link(href, text):
            return FileDecision(
                link=absolute_url(base_url, href),
                decision_type=decision_type_from_link_text(text),
                link_text=text,
            )
    return None


# embedded candidates


def justified_paragraphs_text(tree) -> Optional[str]:
    """Concatenated text of Word-exported justified paragraphs."""
    paragraphs = tree.cssselect(JUSTIFIED_PARAGRAPHS_CSS)
    logger.debug(f"Justified paragraphs: {len(paragraphs)}")
    if len(paragraphs) < MIN_JUSTIFIED_PARAGRAPHS:
        return None
    fragments = []
    for p in paragraphs[:MAX_JUSTIFIED_PARAGRAPHS]:
        text = visible_text(p)
        if len(text) > MIN_FRAGMENT_LENGTH:
            fragments.append(text)
    if len(fragments) < MIN_TEXT_FRAGMENTS:
        return None
    return " ".join(fragments)


def heading_blockquote_text(tree) -> Optional[str]:
    """Text of the quoted block that directly follows the centred heading."""
    found = tree.xpath(HEADING_BLOCKQUOTE_XPATH)
    if not found:
        return None
    return visible_text(found[0]) or None


def whole_page_text(tree) -> Optional[str]:
    """Visible body text, only when the page carries a strong decision indicator."""
    bodies = tree.xpath("//body")
    clone = copy.deepcopy(bodies[0] if bodies else tree)
    for el in clone.xpath("|".join(f".//{t}" for t in NON_CONTENT_TAGS)):
        el.drop_tree()
    text = visible_text(clone)
    if not any(ind in _normalize(text) for ind in STRONG_INDICATORS):
        return None
    return text or None



EMBEDDED_STRATEGIES: List[Tuple[str, Callable]] = [
    ("justified_paragraphs", justified_paragraphs_text),
    ("heading_blockquote", heading_blockquote_text),
    ("whole_page", whole_page_text),
]


def accept_decision_text(text: Optional[str], strategy: str = "") -> Optional[EmbeddedDecision]:
    """Validate and classify a candidate text; None when rejected."""
    if not text or not is_valid_decision_content(text):
        return None
    doc_type = classify_decision_text(text)
    if not doc_type:
        return None
    return EmbeddedDecision(
        content=text,
        decision_type=doc_type,
        decision_date=extract_decision_date(text),
        strategy=strategy,
    )


def find_embedded_decision(tree) -> Optional[EmbeddedDecision]:
    """Run the embedded strategies in order; first accepted candidate wins."""
    for name, strategy in EMBEDDED_STRATEGIES:
        try:
            candidate = strategy(tree)
        except Exception as e:
            logger.warning(f"Embedded strategy {name} failed: {e}")
            continue
        if not candidate:
            continue
        accepted = accept_decision_text(candidate, name)
        if accepted:
            logger.info(f"Embedded decision accepted by {name}: {accepted.decision_type}")
            return accepted
        logger.info(f"Candidate from {name} rejected by content validation")
    return None

