from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from ..common.datetime_utils import now_utc, parse_iso_datetime
from ..common.dependents import parse_dependents_payload
from ..common.validators import parse_visitor_id, require_non_empty
from ..core.enums import AuditEvent, AuditStatus
from ..core.exceptions import (
    BannedError,
    DuplicateVisitorError,
    InvalidTimeRangeError,
    NoPriorVisitError,
    NotFoundError,
    ValidationError,
)
from ..database.gateway import AuditWriter
from ..storage.photo_storage import PhotoStorage
from .model import SignInResult, VisitDetails, duplicate_visitor_message
from .repository import VisitorRepository

logger = logging.getLogger(__name__)

INVALID_ENTRY_TIME_MESSAGE = (
    "Invalid entry time. It must be a valid date/time and occur before the current exit time."
)


@dataclass(frozen=True)
class Registration:
    visitor_id: int
    visit_id: int


@dataclass(frozen=True)
class MissedVisit:
    visit_id: int
    entry_time: datetime
    exit_time: datetime


class VisitService:
    """Lifecycle of a visitor and their visits.

    Validation always happens before a transaction is opened; the repository
    owns the atomic multi-table writes.
    """

    def __init__(
        self,
        visitors: VisitorRepository,
        *,
        photos: Optional[PhotoStorage] = None,
        audit: Optional[AuditWriter] = None,
    ):
        self._visitors = visitors
        self._photos = photos
        self._audit = audit

    # -------- Registration --------
    def register(
        self,
        *,
        first_name: str,
        last_name: str,
        details: Mapping[str, Any],
        dependents: Any = None,
        photo_path: Optional[str] = None,
        now: datetime | None = None,
    ) -> Registration:
        """Create a visitor with their first (open) visit.

        The staged photo is removed whenever registration does not succeed.
        """

        try:
            first = require_non_empty(first_name, "First name")
            last = require_non_empty(last_name, "Last name")
            new_dependents = parse_dependents_payload(dependents)
            visit_details = VisitDetails.from_mapping(details)

            # Fast path for the friendly message; the unique index is the real guard.
            if self._visitors.find_visitor_by_name(first, last):
                raise DuplicateVisitorError(duplicate_visitor_message(first, last))

            visitor_id, visit_id = self._visitors.create_visitor_with_visit(
                first_name=first,
                last_name=last,
                photo_path=photo_path,
                details=visit_details,
                dependents=new_dependents,
                entry_time=now or now_utc(),
            )
        except Exception:
            self._discard_photo(photo_path)
            raise

        logger.info("Registered visitor %s (visit %s)", visitor_id, visit_id)
        return Registration(visitor_id=visitor_id, visit_id=visit_id)

    def _discard_photo(self, photo_path: Optional[str]) -> None:
        if photo_path and self._photos is not None:
            self._photos.delete(photo_path)

    # -------- Sign in --------
    def sign_in(self, visitor_id: Any, *, now: datetime | None = None) -> SignInResult:
        """Open a new visit copying the details and dependents of the latest one."""
        vid = parse_visitor_id(visitor_id, "Visitor ID is required.")

        visitor = self._visitors.get_visitor(vid)
        if not visitor:
            raise NotFoundError("Visitor not found.")
        if visitor.is_banned:
            raise BannedError("This visitor is banned and cannot log in.")

        last_visit = self._visitors.get_latest_visit(vid)
        if not last_visit:
            raise NoPriorVisitError(
                "Visitor found but no previous visit details exist. Please register again."
            )
        dependents = tuple(self._visitors.list_dependents(last_visit.id))

        visit_id = self._visitors.open_visit(
            visitor_id=vid,
            details=last_visit.details,
            dependents=dependents,
            entry_time=now or now_utc(),
        )
        logger.info("Visitor %s signed in (visit %s)", vid, visit_id)
        return SignInResult(
            visitor=visitor,
            visit_id=visit_id,
            details=last_visit.details,
            dependents=dependents,
        )

    def update_and_sign_in(
        self,
        visitor_id: Any,
        *,
        details: Mapping[str, Any],
        dependents: Any = None,
        now: datetime | None = None,
    ) -> int:
        """Open a new visit with details supplied by a returning visitor."""
        vid = parse_visitor_id(visitor_id, "Visitor ID is required for re-registration.")
        new_dependents = parse_dependents_payload(dependents, lenient=True)

        visit_id = self._visitors.open_visit(
            visitor_id=vid,
            details=VisitDetails.from_mapping(details),
            dependents=new_dependents,
            entry_time=now or now_utc(),
            require_visitor=True,
        )
        logger.info("Visitor %s updated details and signed in (visit %s)", vid, visit_id)
        return visit_id

    # -------- Sign out --------
    def sign_out(self, visitor_id: Any, *, now: datetime | None = None) -> str:
        """Close the most recent open visit; returns the visitor's full name."""
        not_found = "Visitor not found or already signed out."
        try:
            vid = parse_visitor_id(visitor_id, not_found)
        except ValidationError:
            raise NotFoundError(not_found)

        open_visit = self._visitors.find_open_visit(vid)
        if not open_visit:
            raise NotFoundError(not_found)

        if not self._visitors.close_visit(visit_id=open_visit.visit_id, exit_time=now or now_utc()):
            # Closed by a concurrent sign-out between the select and the update.
            raise NotFoundError(not_found)

        full_name = f"{open_visit.first_name} {open_visit.last_name}"
        logger.info("Visitor %s signed out (visit %s)", vid, open_visit.visit_id)
        return full_name

    # -------- Historical correction --------
    def record_missed_visit(
        self,
        visitor_id: Any,
        past_entry_time: Optional[str],
        *,
        now: datetime | None = None,
    ) -> MissedVisit:
        """Insert an already-closed visit that started at ``past_entry_time`` and ends now."""
        if not visitor_id or not past_entry_time:
            raise ValidationError("Missing visitor ID or required entry time.")
        vid = parse_visitor_id(visitor_id)

        exit_time = now or now_utc()
        entry_time = parse_iso_datetime(str(past_entry_time))
        if entry_time is None or entry_time >= exit_time:
            logger.warning("Attempted to record invalid or future entry time: %r", past_entry_time)
            raise InvalidTimeRangeError(INVALID_ENTRY_TIME_MESSAGE)

        if not self._visitors.get_visitor(vid):
            raise NotFoundError("Visitor not found.")

        last_visit = self._visitors.get_latest_visit(vid)
        details = last_visit.details if last_visit else VisitDetails()

        visit_id = self._visitors.insert_closed_visit(
            visitor_id=vid,
            details=details.with_placeholders(),
            entry_time=entry_time,
            exit_time=exit_time,
        )
        logger.info("Recorded missed visit %s for visitor %s", visit_id, vid)
        return MissedVisit(visit_id=visit_id, entry_time=entry_time, exit_time=exit_time)

    # -------- Ban / unban --------
    def ban(self, visitor_id: Any) -> None:
        self._set_banned(visitor_id, banned=True)

    def unban(self, visitor_id: Any) -> None:
        self._set_banned(visitor_id, banned=False)

    def _set_banned(self, visitor_id: Any, *, banned: bool) -> None:
        vid = parse_visitor_id(visitor_id, "A valid Visitor ID is required." if banned else "Invalid Visitor ID.")
        if not self._visitors.set_banned(vid, banned=banned):
            raise NotFoundError("Visitor not found.")

        event = AuditEvent.VISITOR_BANNED if banned else AuditEvent.VISITOR_UNBANNED
        logger.info("%s: %s", event.value, vid)
        if self._audit is not None:
            self._audit.log_audit(event.value, AuditStatus.OK, message=f"visitor_id={vid}")
