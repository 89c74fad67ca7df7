"""Case record data model for the court records harvester.

A `CaseRecord` is created by the results parser from one listing row pair
and then refined in place by the decision extractor while the detail page
is open. `to_dict()` gives the camelCase document handed to the sink.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from court_harvest.lib.case_utils import (
    DECISION_NOT_FOUND,
    is_embedded_decision_link,
)
from court_harvest.models.case_movement import CaseMovement


@dataclass
class CaseRecord:
    """Represents one scraped civil case.

    Party fields are '; '-joined name lists and stay '' (never None) when
    the page lists nobody in that role.
    """

    # listing fields
    title: str = ""
    link: str = ""
    case_number: str = ""
    court_type: str = ""
    description: str = ""
    subject: str = ""

    # classification
    federal_district: str = ""
    region: str = ""
    case_category: str = ""
    case_subcategory: str = ""
    case_result: str = ""
    judge_name: str = ""

    # parties
    plaintiff: str = ""
    defendant: str = ""
    third_parties: str = ""
    representatives: str = ""

    # dates
    start_date: Optional[date] = None
    received_date: Optional[date] = None
    decision_date: Optional[date] = None

    # decision state
    has_decision: bool = False
    decision_link: str = ""
    decision_type: str = ""
    decision_content: Optional[str] = None

    case_movements: List[CaseMovement] = field(default_factory=list)
    original_case_link: str = ""

    @property
    def is_embedded_decision(self) -> bool:
        return self.has_decision and is_embedded_decision_link(self.decision_link)

    def reset_decision(self) -> None:
        """Put the decision fields back to the unchecked state."""
        self.has_decision = False
        self.decision_link = ""
        self.decision_type = DECISION_NOT_FOUND
        self.decision_content = None
        self.decision_date = None

    def decision_state_is_consistent(self) -> bool:
        """A found decision always carries a type and a link."""
        if not self.has_decision:
            return True
        return bool(self.decision_link) and self.decision_type not in ("", DECISION_NOT_FOUND)

    def to_dict(self) -> dict:
        """Convert the record to a camelCase dictionary for JSON export."""
        return {
            "title": self.title,
            "link": self.link,
            "caseNumber": self.case_number,
            "courtType": self.court_type,
            "description": self.description,
            "subject": self.subject,
            "federalDistrict": self.federal_district,
            "region": self.region,
            "caseCategory": self.case_category,
            "caseSubcategory": self.case_subcategory,
            "caseResult": self.case_result,
            "judgeName": self.judge_name,
            "plaintiff": self.plaintiff,
            "defendant": self.defendant,
            "thirdParties": self.third_parties,
            "representatives": self.representatives,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "receivedDate": self.received_date.isoformat() if self.received_date else None,
            "decisionDate": self.decision_date.isoformat() if self.decision_date else None,
            "hasDecision": self.has_decision,
            "decisionLink": self.decision_link,
            "decisionType": self.decision_type,
            "decisionContent": self.decision_content,
            "caseMovements": [m.to_dict() for m in self.case_movements],
            "originalCaseLink": self.original_case_link,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CaseRecord":
        def _date(key: str) -> Optional[date]:
            val = data.get(key)
            if isinstance(val, str) and val:
                return date.fromisoformat(val[:10])
            return val or None

        return cls(
            title=data.get("title") or "",
            link=data.get("link") or "",
            case_number=data.get("caseNumber") or "",
            court_type=data.get("courtType") or "",
            description=data.get("description") or "",
            subject=data.get("subject") or "",
            federal_district=data.get("federalDistrict") or "",
            region=data.get("region") or "",
            case_category=data.get("caseCategory") or "",
            case_subcategory=data.get("caseSubcategory") or "",
            case_result=data.get("caseResult") or "",
            judge_name=data.get("judgeName") or "",
            plaintiff=data.get("plaintiff") or "",
            defendant=data.get("defendant") or "",
            third_parties=data.get("thirdParties") or "",
            representatives=data.get("representatives") or "",
            start_date=_date("startDate"),
            received_date=_date("receivedDate"),
            decision_date=_date("decisionDate"),
            has_decision=bool(data.get("hasDecision")),
            decision_link=data.get("decisionLink") or "",
            decision_type=data.get("decisionType") or "",
            decision_content=data.get("decisionContent"),
            case_movements=[CaseMovement.from_dict(m) for m in data.get("caseMovements") or []],
            original_case_link=data.get("originalCaseLink") or "",
        )
