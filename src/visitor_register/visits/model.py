from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from datetime import datetime
from typing import Any, Mapping, Optional

from ..common.validators import optional_text, parse_bool
from ..core.constants import DEFAULT_VISITOR_TYPE, PLACEHOLDER_VALUE
from ..core.enums import VisitState

DETAIL_FIELDS = (
    "known_as",
    "address",
    "phone_number",
    "unit",
    "reason_for_visit",
    "type",
    "company_name",
    "mandatory_acknowledgment_taken",
)


@dataclass(frozen=True)
class VisitDetails:
    """Contact and purpose fields snapshotted on every visit."""

    known_as: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    unit: Optional[str] = None
    reason_for_visit: Optional[str] = None
    type: Optional[str] = None
    company_name: Optional[str] = None
    mandatory_acknowledgment_taken: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "VisitDetails":
        return cls(
            known_as=optional_text(data.get("known_as")),
            address=optional_text(data.get("address")),
            phone_number=optional_text(data.get("phone_number")),
            unit=optional_text(data.get("unit")),
            reason_for_visit=optional_text(data.get("reason_for_visit")),
            type=optional_text(data.get("type")),
            company_name=optional_text(data.get("company_name")),
            mandatory_acknowledgment_taken=parse_bool(data.get("mandatory_acknowledgment_taken")),
        )

    def with_required_defaults(self) -> "VisitDetails":
        """unit and type are NOT NULL columns."""
        return replace(
            self,
            unit=self.unit or PLACEHOLDER_VALUE,
            type=self.type or DEFAULT_VISITOR_TYPE,
        )

    def with_placeholders(self) -> "VisitDetails":
        """Defaults used when back-filling a missed visit."""
        return replace(
            self.with_required_defaults(),
            known_as=self.known_as or PLACEHOLDER_VALUE,
            address=self.address or PLACEHOLDER_VALUE,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class NewDependent:
    full_name: str
    age: Optional[int] = None

    def to_dict(self) -> dict:
        return {"full_name": self.full_name, "age": self.age}


@dataclass(frozen=True)
class Visitor:
    """Identity record; first + last name is unique."""

    id: int
    first_name: str
    last_name: str
    photo_path: Optional[str]
    is_banned: bool
    created_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class Visit:
    id: int
    visitor_id: int
    entry_time: datetime
    exit_time: Optional[datetime]
    details: VisitDetails

    @property
    def state(self) -> VisitState:
        return VisitState.OPEN if self.exit_time is None else VisitState.CLOSED


@dataclass(frozen=True)
class OpenVisit:
    """Read-model for sign-out: the open visit plus the visitor's name."""

    visit_id: int
    visitor_id: int
    first_name: str
    last_name: str


@dataclass(frozen=True)
class SignInResult:
    visitor: Visitor
    visit_id: int
    details: VisitDetails
    dependents: tuple[NewDependent, ...]

    def to_payload(self) -> dict:
        payload = {
            "id": self.visitor.id,
            "visit_id": self.visit_id,
            "first_name": self.visitor.first_name,
            "last_name": self.visitor.last_name,
            "is_banned": self.visitor.is_banned,
            "dependents": [d.to_dict() for d in self.dependents],
        }
        payload.update(self.details.to_dict())
        return payload


def duplicate_visitor_message(first_name: str, last_name: str) -> str:
    return (
        f"A visitor named {first_name} {last_name} already exists. "
        "Please use the search bar to log them in."
    )
