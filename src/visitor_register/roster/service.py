from __future__ import annotations

import csv
import io
import logging
from typing import Any, Iterable, Optional

from ..common.datetime_utils import end_of_day, parse_iso_date, start_of_day, to_iso_utc
from ..common.dependents import decode_dependents
from ..core.exceptions import ValidationError
from ..visits.model import DETAIL_FIELDS, VisitDetails
from .model import HISTORY_CSV_FIELDS, HistoryFilter, NameSearch
from .repository import RosterRepository

logger = logging.getLogger(__name__)


def photo_url(base_url: str, photo_path: Optional[str]) -> Optional[str]:
    if not photo_path:
        return None
    return f"{base_url.rstrip('/')}/{photo_path.lstrip('/')}"


class RosterService:
    """Read side: who is on site, name search and the history report."""

    def __init__(self, roster: RosterRepository):
        self._roster = roster

    def _shape(self, row: dict, *, base_url: str, id_key: str) -> dict:
        has_visit = row.get("visit_id") is not None
        out: dict[str, Any] = {
            id_key: int(row[id_key]),
            "first_name": row["first_name"],
            "last_name": row["last_name"],
            "is_banned": bool(row.get("is_banned")),
            "visit_id": int(row["visit_id"]) if has_visit else None,
            "entry_time": to_iso_utc(row.get("entry_time")),
            "exit_time": to_iso_utc(row.get("exit_time")),
        }
        if has_visit:
            out.update(VisitDetails.from_mapping(row).to_dict())
        else:
            out.update({name: None for name in DETAIL_FIELDS})
        out["photo"] = photo_url(base_url, row.get("photo_path"))
        out["dependents"] = decode_dependents(row.get("dependents_json"))
        return out

    def active_roster(self, *, base_url: str) -> list[dict]:
        """Everyone currently signed in, banned visitors included."""
        rows = self._roster.list_open_visits()
        return [self._shape(r, base_url=base_url, id_key="id") for r in rows]

    def search_by_name(self, query: Optional[str], *, base_url: str) -> list[dict]:
        search = NameSearch.parse(query or "")
        if not search.terms:
            raise ValidationError("Search term is required and cannot be empty.")
        rows = self._roster.search_visitors(search)
        return [self._shape(r, base_url=base_url, id_key="id") for r in rows]

    @staticmethod
    def build_history_filter(
        *,
        search: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> HistoryFilter:
        """Dates are YYYY-MM-DD; the end date covers the whole day."""
        try:
            start = start_of_day(parse_iso_date(start_date.strip())) if start_date else None
            end = end_of_day(parse_iso_date(end_date.strip())) if end_date else None
        except ValueError:
            raise ValidationError("Dates must use the YYYY-MM-DD format.")
        return HistoryFilter(search=(search or "").strip() or None, start=start, end=end)

    def history(
        self,
        *,
        search: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        base_url: str,
    ) -> list[dict]:
        filters = self.build_history_filter(search=search, start_date=start_date, end_date=end_date)
        rows = self._roster.list_history(filters)
        return [self._shape(r, base_url=base_url, id_key="visitor_id") for r in rows]

    @staticmethod
    def history_csv(rows: Iterable[dict]) -> str:
        """Render history rows for download."""
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=HISTORY_CSV_FIELDS, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            line = dict(row)
            line["dependents"] = "; ".join(
                f"{d['full_name']} ({d['age']})" if d.get("age") is not None else d["full_name"]
                for d in row.get("dependents") or []
            )
            line["exit_time"] = row.get("exit_time") or "-"
            writer.writerow(line)
        return out.getvalue()
