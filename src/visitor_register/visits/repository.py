from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import NewDependent, OpenVisit, Visit, VisitDetails, Visitor


class VisitorRepository(Protocol):
    """Repository interface for visitors, visits and their dependents.

    Methods that write to more than one table are atomic: all rows or none.
    """

    def get_visitor(self, visitor_id: int) -> Optional[Visitor]:
        raise NotImplementedError

    def find_visitor_by_name(self, first_name: str, last_name: str) -> Optional[Visitor]:
        raise NotImplementedError

    def get_latest_visit(self, visitor_id: int) -> Optional[Visit]:
        raise NotImplementedError

    def list_dependents(self, visit_id: int) -> Sequence[NewDependent]:
        raise NotImplementedError

    def find_open_visit(self, visitor_id: int) -> Optional[OpenVisit]:
        raise NotImplementedError

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
        """Insert visitor, first visit and dependents; returns (visitor_id, visit_id).

        Raises DuplicateVisitorError when the name is already taken.
        """

        raise NotImplementedError

    def open_visit(
        self,
        *,
        visitor_id: int,
        details: VisitDetails,
        dependents: Sequence[NewDependent],
        entry_time: datetime,
        require_visitor: bool = False,
    ) -> int:
        """Close any open visit of the visitor and insert a new open one with dependents.

        With ``require_visitor`` the visitor's existence is checked inside the
        transaction and NotFoundError is raised after rolling back.
        """

        raise NotImplementedError

    def insert_closed_visit(
        self,
        *,
        visitor_id: int,
        details: VisitDetails,
        entry_time: datetime,
        exit_time: datetime,
    ) -> int:
        raise NotImplementedError

    def close_visit(self, *, visit_id: int, exit_time: datetime) -> bool:
        raise NotImplementedError

    def set_banned(self, visitor_id: int, *, banned: bool) -> bool:
        raise NotImplementedError
