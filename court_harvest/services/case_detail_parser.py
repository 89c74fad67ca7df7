"""Extraction of case details from a case page.

Header, parties, movement and result block are read from an lxml tree of
the page. Each `apply_*` helper refines a `CaseRecord` in place and only
overwrites a field when the page offers a non-empty value.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from lxml import html as lxml_html

from court_harvest.lib.date_utils import parse_russian_date
from court_harvest.lib.logging_config import get_logger
from court_harvest.lib.text_utils import NOT_SPECIFIED, clean_text, collapse_whitespace, join_names
from court_harvest.models.case import CaseRecord
from court_harvest.models.case_movement import CaseMovement

logger = get_logger()

HEADER_BLOCK_CSS = ".col-md-8.text-right"
CONDENSED_TABLE_CSS = "table.table-condensed"
JUDGE_XPATH = "//text()[contains(., 'Судья')]/following::b[1]"
REPRESENTATIVE_NAME_XPATH = "//td[@itemprop='name']"
ORIGINAL_LINK_CSS = "#original-link a[target='_blank']"

HEADER_LABELS = {
    "case_number": "Номер дела",
    "start_date": "Дата начала",
    "court": "Суд",
    "judge": "Судья",
}
_ALL_LABELS = "|".join(re.escape(v) for v in HEADER_LABELS.values())

PARTY_ROLE_MARKERS = ["ИСТЕЦ", "ОТВЕТЧИК", "ТРЕТЬЕ", "ПРЕДСТАВИТЕЛЬ"]
MOVEMENT_TABLE_MARKERS = ["Движение дела", "Наименование события"]
MOVEMENT_DESCRIPTION_EVENTS = 3


@dataclass
class HeaderInfo:
    case_number: str = ""
    start_date: Optional[date] = None
    start_date_text: str = ""
    court: str = ""
    judge: str = ""


@dataclass
class PartiesInfo:
    plaintiffs: List[str] = field(default_factory=list)
    defendants: List[str] = field(default_factory=list)
    third_parties: List[str] = field(default_factory=list)
    representatives: List[str] = field(default_factory=list)


def parse_tree(html: str):
    return lxml_html.fromstring(html or "<html></html>")


# header


def _labeled_value(block_html: str, block_text: str, label: str) -> str:
    m = re.search(rf"(?:{re.escape(label)})\s*:\s*<b>([^<]+)</b>", block_html, re.IGNORECASE)
    if m:
        return clean_text(m.group(1))
    m = re.search(
        rf"(?<![А-Яа-яЁё])(?:{re.escape(label)})\s*:\s*(.+?)(?=\s*(?:{_ALL_LABELS})\s*:|$)",
        block_text,
        re.IGNORECASE,
    )
    if m:
        return clean_text(m.group(1))
    return ""


def parse_header(tree) -> HeaderInfo:
    """Case number, start date, court and judge from the labelled header block."""
    info = HeaderInfo()
    blocks = tree.cssselect(HEADER_BLOCK_CSS)
    if blocks:
        block_html = lxml_html.tostring(blocks[0], encoding="unicode")
        block_text = collapse_whitespace(blocks[0].text_content())
        logger.debug(f"Header text: {block_text}")
        info.case_number = _labeled_value(block_html, block_text, HEADER_LABELS["case_number"])
        info.start_date_text = _labeled_value(block_html, block_text, HEADER_LABELS["start_date"])
        info.start_date = parse_russian_date(info.start_date_text)
        info.court = _labeled_value(block_html, block_text, HEADER_LABELS["court"])
        info.judge = _labeled_value(block_html, block_text, HEADER_LABELS["judge"])
    else:
        logger.warning("Header block not found")

    if not info.judge:
        found = tree.xpath(JUDGE_XPATH)
        if found:
            info.judge = clean_text(found[0].text_content())
            if info.judge:
                logger.debug(f"Judge found by secondary lookup: {info.judge}")
    return info


def apply_header(record: CaseRecord, info: HeaderInfo) -> None:
    if info.case_number:
        record.case_number = info.case_number
    if info.start_date:
        record.start_date = info.start_date
    if info.court:
        record.court_type = info.court
    if info.judge:
        record.judge_name = info.judge


# parties


def _classify_role(role_text: str) -> Optional[str]:
    role = collapse_whitespace(role_text).upper()
    if "ИСТЕЦ" in role:
        return "plaintiffs"
    if "ОТВЕТЧИК" in role:
        return "defendants"
    if "ТРЕТЬЕ" in role:
        return "third_parties"
    if "ПРЕДСТАВИТЕЛЬ" in role:
        return "representatives"
    return None


def find_parties_table(tree):
    for table in tree.cssselect(CONDENSED_TABLE_CSS):
        table_text = table.text_content()
        if any(marker in table_text for marker in PARTY_ROLE_MARKERS):
            return table
    return None


def parse_parties(tree) -> PartiesInfo:
    """Role/name pairs from the parties table plus tagged representative cells."""
    info = PartiesInfo()
    table = find_parties_table(tree)
    if table is not None:
        for row in table.xpath(".//tr"):
            cells = row.xpath("./td")
            if len(cells) < 2:
                continue
            name = collapse_whitespace(cells[1].text_content())
            bucket = _classify_role(cells[0].text_content())
            if bucket and name:
                getattr(info, bucket).append(name)

    if not info.representatives:
        for cell in tree.xpath(REPRESENTATIVE_NAME_XPATH):
            role_cells = cell.xpath("./preceding-sibling::td[1]")
            if not role_cells or _classify_role(role_cells[0].text_content()) != "representatives":
                continue
            name = collapse_whitespace(cell.text_content())
            if name and name not in info.representatives:
                info.representatives.append(name)

    logger.info(
        f"Parties extracted: plaintiffs={len(info.plaintiffs)}, defendants={len(info.defendants)}, "
        f"third parties={len(info.third_parties)}, representatives={len(info.representatives)}"
    )
    return info


def apply_parties(record: CaseRecord, info: PartiesInfo) -> None:
    if info.plaintiffs:
        record.plaintiff = join_names(info.plaintiffs)
    if info.defendants:
        record.defendant = join_names(info.defendants)
    if info.third_parties:
        record.third_parties = join_names(info.third_parties)
    if info.representatives:
        record.representatives = join_names(info.representatives)


# movement


def find_movement_table(tree):
    for table in tree.cssselect(CONDENSED_TABLE_CSS):
        table_text = table.text_content()
        if any(marker in table_text for marker in MOVEMENT_TABLE_MARKERS):
            return table
    return None


def parse_movements(tree) -> List[CaseMovement]:
    """Rows of the case movement table: name, result, basis, date."""
    table = find_movement_table(tree)
    if table is None:
        return []
    movements: List[CaseMovement] = []
    for row in table.xpath(".//tr"):
        cells = row.xpath("./td")
        if len(cells) < 4:
            continue
        name = collapse_whitespace(cells[0].text_content())
        date_text = collapse_whitespace(cells[3].text_content())
        if not name or not date_text:
            continue
        movements.append(
            CaseMovement(
                event_name=name,
                event_result=collapse_whitespace(cells[1].text_content()),
                basis=collapse_whitespace(cells[2].text_content()),
                event_date=parse_russian_date(date_text),
                event_date_text=date_text,
            )
        )
    return movements


def apply_movements(record: CaseRecord, movements: List[CaseMovement]) -> None:
    """Store movements, back-fill received/decision dates and summarise."""
    if not movements:
        return
    record.case_movements = list(movements)
    for m in movements:
        if "Решение" in m.event_name and "вынесено" in m.event_name and m.event_date:
            record.decision_date = m.event_date
            logger.info(f"Decision date from case movement: {m.event_date}")
        if "Регистрация" in m.event_name and "иска" in m.event_name and m.event_date:
            record.received_date = m.event_date
            logger.info(f"Registration date from case movement: {m.event_date}")

    summary = [
        f"{m.event_name}: {m.event_date_text or (m.event_date.strftime('%d.%m.%Y') if m.event_date else '')}"
        for m in movements[:MOVEMENT_DESCRIPTION_EVENTS]
    ]
    record.description = "; ".join(summary)


# result block


def parse_result_block(tree) -> Dict[str, str]:
    """Label/value pairs from definition lists on the page."""
    pairs: Dict[str, str] = {}
    for dt in tree.xpath("//dl//dt"):
        dd = dt.xpath("./following-sibling::dd[1]")
        if not dd:
            continue
        label = collapse_whitespace(dt.text_content()).rstrip(":").strip()
        value = collapse_whitespace(dd[0].text_content())
        if label and label not in pairs:
            pairs[label] = value
    return pairs


def apply_result(record: CaseRecord, pairs: Dict[str, str]) -> None:
    result = next((v for k, v in pairs.items() if "Результат" in k and v), "")
    record.case_result = result or NOT_SPECIFIED

    category = next((v for k, v in pairs.items() if "Категория" in k and v), "")
    if category:
        parts = [p.strip() for p in category.split("/") if p.strip()]
        if parts:
            record.case_category = parts[0]
        if len(parts) > 1:
            record.case_subcategory = " / ".join(parts[1:])


def original_link_href(tree) -> str:
    found = tree.cssselect(ORIGINAL_LINK_CSS)
    return (found[0].get("href") or "").strip() if found else ""
