"""HTML fixture loading and small builders for results pages."""

from pathlib import Path
from typing import Iterable, List, Tuple

FIXTURES = Path(__file__).resolve().parent.parent / "fixtures"
BASE_URL = "https://court.example"


def load_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


def case_table(court: str, number: str, href: str, dates: str, parties: str) -> str:
    return (
        '<table class="table table-bordered">'
        f'<tr class="active"><td>{court}</td><td><a href="{href}">{number}</a></td></tr>'
        f"<tr><td>{dates}</td><td>{parties}</td></tr>"
        "</table>"
    )


def results_page(cases: Iterable[Tuple[str, str]], page_links: List[int] = ()) -> str:
    """A results page with one bordered table per (number, href) and a pagination block."""
    tables = "".join(
        case_table(
            "Кировский районный суд",
            number,
            href,
            "Поступило: 10.01.2024, Решение: 20.02.2024",
            "Истец: ООО «Банк» Ответчик: Иванов И.И.",
        )
        for number, href in cases
    )
    pagination = ""
    if page_links:
        items = "".join(f'<li><a href="/search?page={n}">{n}</a></li>' for n in page_links)
        pagination = f'<ul class="pagination">{items}</ul>'
    return f"<html><body>{tables}{pagination}</body></html>"
