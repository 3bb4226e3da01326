from __future__ import annotations

import json
from dataclasses import replace
from datetime import datetime
from typing import Optional

import pytest

from visitor_register.core.exceptions import DuplicateVisitorError, NotFoundError
from visitor_register.core.enums import AuditStatus
from visitor_register.database.gateway import AuditCounts
from visitor_register.visits.model import (
    NewDependent,
    OpenVisit,
    Visit,
    VisitDetails,
    Visitor,
    duplicate_visitor_message,
)


class InMemoryStore:
    """Visitor + roster repositories backed by dicts."""

    def __init__(self):
        self.visitors: dict[int, Visitor] = {}
        self.visits: dict[int, Visit] = {}
        self.dependents: dict[int, list[NewDependent]] = {}
        self._next_visitor = 1
        self._next_visit = 1

    # -------- helpers for arranging data --------
    def add_visitor(self, first_name: str, last_name: str, *, banned: bool = False, photo_path=None) -> int:
        vid = self._next_visitor
        self._next_visitor += 1
        self.visitors[vid] = Visitor(
            id=vid, first_name=first_name, last_name=last_name, photo_path=photo_path, is_banned=banned
        )
        return vid

    def add_visit(self, visitor_id: int, entry_time: datetime, exit_time=None, *, details=None, dependents=()):
        visit_id = self._next_visit
        self._next_visit += 1
        self.visits[visit_id] = Visit(
            id=visit_id,
            visitor_id=int(visitor_id),
            entry_time=entry_time,
            exit_time=exit_time,
            details=(details or VisitDetails()).with_required_defaults(),
        )
        self.dependents[visit_id] = list(dependents)
        return visit_id

    def open_visits_of(self, visitor_id: int) -> list[Visit]:
        return [v for v in self.visits.values() if v.visitor_id == visitor_id and v.exit_time is None]

    def _visits_of(self, visitor_id: int) -> list[Visit]:
        return sorted(
            (v for v in self.visits.values() if v.visitor_id == visitor_id),
            key=lambda v: (v.entry_time, v.id),
        )

    # -------- VisitorRepository --------
    def get_visitor(self, visitor_id):
        return self.visitors.get(int(visitor_id))

    def find_visitor_by_name(self, first_name, last_name):
        for v in self.visitors.values():
            if v.first_name == first_name and v.last_name == last_name:
                return v
        return None

    def get_latest_visit(self, visitor_id):
        visits = self._visits_of(int(visitor_id))
        return visits[-1] if visits else None

    def list_dependents(self, visit_id):
        return list(self.dependents.get(int(visit_id), []))

    def find_open_visit(self, visitor_id) -> Optional[OpenVisit]:
        open_visits = sorted(self.open_visits_of(int(visitor_id)), key=lambda v: (v.entry_time, v.id))
        if not open_visits:
            return None
        visitor = self.visitors[int(visitor_id)]
        return OpenVisit(
            visit_id=open_visits[-1].id,
            visitor_id=visitor.id,
            first_name=visitor.first_name,
            last_name=visitor.last_name,
        )

    def create_visitor_with_visit(self, *, first_name, last_name, photo_path, details, dependents, entry_time):
        if self.find_visitor_by_name(first_name, last_name):
            raise DuplicateVisitorError(duplicate_visitor_message(first_name, last_name))
        vid = self.add_visitor(first_name, last_name, photo_path=photo_path)
        visit_id = self.add_visit(vid, entry_time, details=details, dependents=dependents)
        return vid, visit_id

    def open_visit(self, *, visitor_id, details, dependents, entry_time, require_visitor=False):
        if require_visitor and int(visitor_id) not in self.visitors:
            raise NotFoundError("Visitor ID not found.")
        for v in self.open_visits_of(int(visitor_id)):
            self.visits[v.id] = replace(v, exit_time=entry_time)
        return self.add_visit(visitor_id, entry_time, details=details, dependents=dependents)

    def insert_closed_visit(self, *, visitor_id, details, entry_time, exit_time):
        return self.add_visit(visitor_id, entry_time, exit_time, details=details)

    def close_visit(self, *, visit_id, exit_time):
        visit = self.visits.get(int(visit_id))
        if not visit or visit.exit_time is not None:
            return False
        self.visits[visit.id] = replace(visit, exit_time=exit_time)
        return True

    def set_banned(self, visitor_id, *, banned):
        visitor = self.visitors.get(int(visitor_id))
        if not visitor:
            return False
        self.visitors[visitor.id] = replace(visitor, is_banned=banned)
        return True

    # -------- RosterRepository --------
    def _row(self, visitor: Visitor, visit: Optional[Visit], *, id_key: str = "id") -> dict:
        row = {
            id_key: visitor.id,
            "first_name": visitor.first_name,
            "last_name": visitor.last_name,
            "photo_path": visitor.photo_path,
            "is_banned": 1 if visitor.is_banned else 0,
            "visit_id": visit.id if visit else None,
            "entry_time": visit.entry_time if visit else None,
            "exit_time": visit.exit_time if visit else None,
            "dependents_json": None,
        }
        if visit:
            row.update(visit.details.to_dict())
            deps = self.dependents.get(visit.id) or []
            if deps:
                row["dependents_json"] = json.dumps([d.to_dict() for d in deps])
        return row

    def list_open_visits(self):
        open_visits = sorted(
            (v for v in self.visits.values() if v.exit_time is None),
            key=lambda v: v.entry_time,
            reverse=True,
        )
        return [self._row(self.visitors[v.visitor_id], v) for v in open_visits]

    def search_visitors(self, search):
        rows = []
        for visitor in sorted(self.visitors.values(), key=lambda p: p.id):
            if all(t in visitor.first_name or t in visitor.last_name for t in search.terms):
                rows.append(self._row(visitor, self.get_latest_visit(visitor.id)))
        return rows

    def list_history(self, filters):
        rows = []
        for visit in sorted(self.visits.values(), key=lambda v: (v.entry_time, v.id), reverse=True):
            visitor = self.visitors[visit.visitor_id]
            if filters.search:
                needle = filters.search.lower()
                if needle not in visitor.first_name.lower() and needle not in visitor.last_name.lower():
                    continue
            if filters.start is not None and visit.entry_time < filters.start:
                continue
            if filters.end is not None and visit.entry_time > filters.end:
                continue
            rows.append(self._row(visitor, visit, id_key="visitor_id"))
        return rows


class FakeAudit:
    def __init__(self, *, fail: bool = False, raise_error: bool = False):
        self.entries: list[dict] = []
        self._fail = fail
        self._raise = raise_error

    def log_audit(self, event_name, status, counts=AuditCounts(), message=None):
        if self._raise:
            raise RuntimeError("audit table unavailable")
        self.entries.append(
            {"event_name": event_name, "status": AuditStatus(status), "counts": counts, "message": message}
        )
        return not self._fail


class FakePhotos:
    def __init__(self):
        self.deleted: list[str] = []

    def delete(self, relative_path):
        self.deleted.append(relative_path)
        return True


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def audit() -> FakeAudit:
    return FakeAudit()


@pytest.fixture()
def photos() -> FakePhotos:
    return FakePhotos()


@pytest.fixture()
def make_audit():
    return FakeAudit
