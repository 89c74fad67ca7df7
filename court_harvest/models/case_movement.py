"""CaseMovement data model: one procedural event from a case's history."""

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class CaseMovement:
    """Represents one row of the 'Движение дела' table.

    Attributes:
        event_name: Наименование события
        event_result: Результат события
        basis: Основание для выбранного результата события
        event_date: Дата события, when it parses
    """

    event_name: str = ""
    event_result: str = ""
    basis: str = ""
    event_date: Optional[date] = None
    # date cell as printed, kept for summaries when it does not parse
    event_date_text: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "CaseMovement":
        event_date = data.get("eventDate")
        if isinstance(event_date, str) and event_date:
            event_date = date.fromisoformat(event_date[:10])
        return cls(
            event_name=data.get("eventName") or "",
            event_result=data.get("eventResult") or "",
            basis=data.get("basis") or "",
            event_date=event_date or None,
            event_date_text=data.get("eventDateText")
            or (event_date.strftime("%d.%m.%Y") if event_date else ""),
        )

    def to_dict(self) -> dict:
        return {
            "eventName": self.event_name,
            "eventResult": self.event_result,
            "basis": self.basis,
            "eventDate": self.event_date.isoformat() if self.event_date else None,
        }
