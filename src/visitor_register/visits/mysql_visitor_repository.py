from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..core.exceptions import DuplicateVisitorError, NotFoundError
from ..database.errors import QueryError
from ..database.gateway import PersistenceGateway, Transaction
from .model import NewDependent, OpenVisit, Visit, VisitDetails, Visitor, duplicate_visitor_message
from .repository import VisitorRepository

logger = logging.getLogger(__name__)


# -------- Statement parameters (one frozen set per execution) --------
@dataclass(frozen=True)
class VisitorInsert:
    first_name: str
    last_name: str
    photo_path: Optional[str]


@dataclass(frozen=True)
class VisitInsert:
    visitor_id: int
    entry_time: datetime
    exit_time: Optional[datetime]
    known_as: Optional[str]
    address: Optional[str]
    phone_number: Optional[str]
    unit: Optional[str]
    reason_for_visit: Optional[str]
    type: Optional[str]
    company_name: Optional[str]
    mandatory_acknowledgment_taken: int

    @classmethod
    def build(
        cls,
        *,
        visitor_id: int,
        details: VisitDetails,
        entry_time: datetime,
        exit_time: Optional[datetime] = None,
    ) -> "VisitInsert":
        details = details.with_required_defaults()
        return cls(
            visitor_id=int(visitor_id),
            entry_time=entry_time,
            exit_time=exit_time,
            known_as=details.known_as,
            address=details.address,
            phone_number=details.phone_number,
            unit=details.unit,
            reason_for_visit=details.reason_for_visit,
            type=details.type,
            company_name=details.company_name,
            mandatory_acknowledgment_taken=1 if details.mandatory_acknowledgment_taken else 0,
        )


@dataclass(frozen=True)
class DependentInsert:
    visit_id: int
    full_name: str
    age: Optional[int]


@dataclass(frozen=True)
class CloseOpenVisits:
    visitor_id: int
    exit_time: datetime


INSERT_VISITOR_SQL = """
    INSERT INTO visitors(first_name, last_name, photo_path)
    VALUES(%(first_name)s, %(last_name)s, %(photo_path)s)
"""

INSERT_VISIT_SQL = """
    INSERT INTO visits(
        visitor_id, entry_time, exit_time, known_as, address, phone_number, unit,
        reason_for_visit, type, company_name, mandatory_acknowledgment_taken
    )
    VALUES(
        %(visitor_id)s, %(entry_time)s, %(exit_time)s, %(known_as)s, %(address)s, %(phone_number)s, %(unit)s,
        %(reason_for_visit)s, %(type)s, %(company_name)s, %(mandatory_acknowledgment_taken)s
    )
"""

INSERT_DEPENDENT_SQL = """
    INSERT INTO dependents(visit_id, full_name, age)
    VALUES(%(visit_id)s, %(full_name)s, %(age)s)
"""

CLOSE_OPEN_VISITS_SQL = """
    UPDATE visits
    SET exit_time=%(exit_time)s
    WHERE visitor_id=%(visitor_id)s AND exit_time IS NULL
"""

VISIT_COLUMNS = """
    id, visitor_id, entry_time, exit_time, known_as, address, phone_number, unit,
    reason_for_visit, type, company_name, mandatory_acknowledgment_taken
"""


def _to_visitor(r: Dict[str, Any]) -> Visitor:
    return Visitor(
        id=int(r["id"]),
        first_name=r["first_name"],
        last_name=r["last_name"],
        photo_path=r.get("photo_path"),
        is_banned=bool(r.get("is_banned")),
        created_at=r.get("created_at"),
    )


def _to_visit(r: Dict[str, Any]) -> Visit:
    return Visit(
        id=int(r["id"]),
        visitor_id=int(r["visitor_id"]),
        entry_time=r["entry_time"],
        exit_time=r.get("exit_time"),
        details=VisitDetails.from_mapping(r),
    )


class MySQLVisitorRepository(VisitorRepository):
    def __init__(self, gateway: PersistenceGateway):
        self._gateway = gateway

    def get_visitor(self, visitor_id: int) -> Optional[Visitor]:
        r = self._gateway.execute(
            """
            SELECT id, first_name, last_name, photo_path, is_banned, created_at
            FROM visitors
            WHERE id=%(visitor_id)s
            """,
            {"visitor_id": int(visitor_id)},
        ).first()
        return _to_visitor(r) if r else None

    def find_visitor_by_name(self, first_name: str, last_name: str) -> Optional[Visitor]:
        r = self._gateway.execute(
            """
            SELECT id, first_name, last_name, photo_path, is_banned, created_at
            FROM visitors
            WHERE first_name=%(first_name)s AND last_name=%(last_name)s
            """,
            asdict(VisitorInsert(first_name=first_name, last_name=last_name, photo_path=None)),
        ).first()
        return _to_visitor(r) if r else None

    def get_latest_visit(self, visitor_id: int) -> Optional[Visit]:
        r = self._gateway.execute(
            f"""
            SELECT {VISIT_COLUMNS}
            FROM visits
            WHERE visitor_id=%(visitor_id)s
            ORDER BY entry_time DESC, id DESC
            LIMIT 1
            """,
            {"visitor_id": int(visitor_id)},
        ).first()
        return _to_visit(r) if r else None

    def list_dependents(self, visit_id: int) -> Sequence[NewDependent]:
        rows = self._gateway.execute(
            """
            SELECT full_name, age
            FROM dependents
            WHERE visit_id=%(visit_id)s
            ORDER BY id ASC
            """,
            {"visit_id": int(visit_id)},
        ).rows
        return [
            NewDependent(full_name=r["full_name"], age=int(r["age"]) if r.get("age") is not None else None)
            for r in rows
        ]

    def find_open_visit(self, visitor_id: int) -> Optional[OpenVisit]:
        r = self._gateway.execute(
            """
            SELECT v.id AS visit_id, v.visitor_id, p.first_name, p.last_name
            FROM visits v
            JOIN visitors p ON p.id = v.visitor_id
            WHERE v.visitor_id=%(visitor_id)s AND v.exit_time IS NULL
            ORDER BY v.entry_time DESC, v.id DESC
            LIMIT 1
            """,
            {"visitor_id": int(visitor_id)},
        ).first()
        if not r:
            return None
        return OpenVisit(
            visit_id=int(r["visit_id"]),
            visitor_id=int(r["visitor_id"]),
            first_name=r["first_name"],
            last_name=r["last_name"],
        )

    @staticmethod
    def _insert_visit(tx: Transaction, params: VisitInsert) -> int:
        visit_id = tx.execute(INSERT_VISIT_SQL, asdict(params)).lastrowid
        if not visit_id:
            raise QueryError("Failed to retrieve new visit ID.")
        return int(visit_id)

    @staticmethod
    def _insert_dependents(tx: Transaction, visit_id: int, dependents: Sequence[NewDependent]) -> None:
        for dep in dependents:
            params = DependentInsert(visit_id=int(visit_id), full_name=dep.full_name, age=dep.age)
            tx.execute(INSERT_DEPENDENT_SQL, asdict(params))

    def create_visitor_with_visit(
        self,
        *,
        first_name: str,
        last_name: str,
        photo_path: Optional[str],
        details: VisitDetails,
        dependents: Sequence[NewDependent],
        entry_time: datetime,
    ) -> tuple[int, int]:
        try:
            with self._gateway.transaction() as tx:
                visitor_id = tx.execute(
                    INSERT_VISITOR_SQL,
                    asdict(VisitorInsert(first_name=first_name, last_name=last_name, photo_path=photo_path)),
                ).lastrowid
                if not visitor_id:
                    raise QueryError("Failed to retrieve new visitor ID.")

                visit_id = self._insert_visit(
                    tx, VisitInsert.build(visitor_id=int(visitor_id), details=details, entry_time=entry_time)
                )
                self._insert_dependents(tx, visit_id, dependents)
        except QueryError as e:
            if e.is_duplicate_key:
                logger.info("Unique name constraint rejected %s %s", first_name, last_name)
                raise DuplicateVisitorError(duplicate_visitor_message(first_name, last_name)) from e
            raise
        return int(visitor_id), visit_id

    def open_visit(
        self,
        *,
        visitor_id: int,
        details: VisitDetails,
        dependents: Sequence[NewDependent],
        entry_time: datetime,
        require_visitor: bool = False,
    ) -> int:
        with self._gateway.transaction() as tx:
            if require_visitor:
                found = tx.execute(
                    "SELECT id FROM visitors WHERE id=%(visitor_id)s FOR UPDATE",
                    {"visitor_id": int(visitor_id)},
                ).first()
                if not found:
                    raise NotFoundError("Visitor ID not found.")

            closed = tx.execute(
                CLOSE_OPEN_VISITS_SQL,
                asdict(CloseOpenVisits(visitor_id=int(visitor_id), exit_time=entry_time)),
            ).rowcount
            if closed:
                logger.info("Closed %s open visit(s) of visitor %s before sign-in", closed, visitor_id)

            visit_id = self._insert_visit(
                tx, VisitInsert.build(visitor_id=visitor_id, details=details, entry_time=entry_time)
            )
            self._insert_dependents(tx, visit_id, dependents)
        return visit_id

    def insert_closed_visit(
        self,
        *,
        visitor_id: int,
        details: VisitDetails,
        entry_time: datetime,
        exit_time: datetime,
    ) -> int:
        params = VisitInsert.build(visitor_id=visitor_id, details=details, entry_time=entry_time, exit_time=exit_time)
        visit_id = self._gateway.execute(INSERT_VISIT_SQL, asdict(params)).lastrowid
        if not visit_id:
            raise QueryError("Failed to retrieve new visit ID.")
        return int(visit_id)

    def close_visit(self, *, visit_id: int, exit_time: datetime) -> bool:
        result = self._gateway.execute(
            """
            UPDATE visits
            SET exit_time=%(exit_time)s
            WHERE id=%(visit_id)s AND exit_time IS NULL
            """,
            {"exit_time": exit_time, "visit_id": int(visit_id)},
        )
        return result.rowcount > 0

    def set_banned(self, visitor_id: int, *, banned: bool) -> bool:
        result = self._gateway.execute(
            "UPDATE visitors SET is_banned=%(is_banned)s WHERE id=%(visitor_id)s",
            {"is_banned": 1 if banned else 0, "visitor_id": int(visitor_id)},
        )
        return result.rowcount > 0
