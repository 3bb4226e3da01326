from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input only ever matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass(frozen=True)
class NameSearch:
    """Whitespace-separated terms; each must appear in the first or last name."""

    terms: tuple[str, ...]

    @classmethod
    def parse(cls, query: str) -> "NameSearch":
        return cls(terms=tuple(t for t in (query or "").split() if t))

    def params(self) -> dict:
        return {f"term{i}": f"%{escape_like(term)}%" for i, term in enumerate(self.terms)}

    def where_sql(self, *, first: str = "p.first_name", last: str = "p.last_name") -> str:
        clauses = [f"({first} LIKE %(term{i})s OR {last} LIKE %(term{i})s)" for i in range(len(self.terms))]
        return " AND ".join(clauses) if clauses else "1=1"


@dataclass(frozen=True)
class HistoryFilter:
    """Optional filters for the history report; bounds are inclusive."""

    search: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def params(self) -> dict:
        return {
            "search": f"%{escape_like(self.search.lower())}%" if self.search else None,
            "start": self.start,
            "end": self.end,
        }

    def where_sql(self) -> str:
        clauses = ["1=1"]
        if self.search:
            clauses.append("(LOWER(p.first_name) LIKE %(search)s OR LOWER(p.last_name) LIKE %(search)s)")
        if self.start is not None:
            clauses.append("t.entry_time >= %(start)s")
        if self.end is not None:
            clauses.append("t.entry_time <= %(end)s")
        return " AND ".join(clauses)


HISTORY_CSV_FIELDS = [
    "visit_id",
    "visitor_id",
    "first_name",
    "last_name",
    "known_as",
    "entry_time",
    "exit_time",
    "unit",
    "type",
    "reason_for_visit",
    "company_name",
    "phone_number",
    "address",
    "mandatory_acknowledgment_taken",
    "is_banned",
    "dependents",
]
