from __future__ import annotations

import csv
import io
from datetime import datetime

import pytest

from visitor_register.core.exceptions import ValidationError
from visitor_register.roster.model import HistoryFilter, NameSearch, escape_like
from visitor_register.roster.service import RosterService, photo_url
from visitor_register.visits.model import NewDependent, VisitDetails

BASE = "http://localhost:5000/"


@pytest.fixture()
def roster(store):
    return RosterService(store)


def test_photo_url_joins_base_and_relative_path():
    assert photo_url(BASE, "uploads/photo-1.png") == "http://localhost:5000/uploads/photo-1.png"
    assert photo_url(BASE, None) is None


def test_active_roster_shapes_rows(roster, store):
    vid = store.add_visitor("Jane", "Doe", photo_path="uploads/photo-1.png")
    store.add_visit(
        vid,
        datetime(2025, 1, 1, 8, 0, 0),
        details=VisitDetails(unit="4B", reason_for_visit="Family"),
        dependents=[NewDependent("Tom Doe", 7), NewDependent("Amy Doe")],
    )
    closed = store.add_visitor("Gone", "Home")
    store.add_visit(closed, datetime(2025, 1, 1, 7), datetime(2025, 1, 1, 7, 30))

    rows = roster.active_roster(base_url=BASE)

    assert len(rows) == 1
    row = rows[0]
    assert row["id"] == vid
    assert row["photo"] == "http://localhost:5000/uploads/photo-1.png"
    assert row["entry_time"] == "2025-01-01T08:00:00.000Z"
    assert row["exit_time"] is None
    assert row["unit"] == "4B"
    assert row["is_banned"] is False
    assert row["dependents"] == [{"full_name": "Tom Doe", "age": 7}, {"full_name": "Amy Doe", "age": None}]


def test_active_roster_keeps_banned_visitors(roster, store):
    vid = store.add_visitor("Bad", "Actor", banned=True)
    store.add_visit(vid, datetime(2025, 1, 1, 8))

    rows = roster.active_roster(base_url=BASE)
    assert [r["is_banned"] for r in rows] == [True]


def test_search_requires_a_term(roster):
    with pytest.raises(ValidationError, match="Search term is required and cannot be empty."):
        roster.search_by_name("   ", base_url=BASE)
    with pytest.raises(ValidationError):
        roster.search_by_name(None, base_url=BASE)


def test_search_matches_every_term(roster, store):
    jane = store.add_visitor("Jane", "Doe")
    store.add_visitor("John", "Doe")
    store.add_visitor("Jane", "Smith")
    store.add_visit(jane, datetime(2025, 1, 1, 8), datetime(2025, 1, 1, 9), dependents=[NewDependent("Tom")])

    rows = roster.search_by_name("Jane Doe", base_url=BASE)

    assert [r["id"] for r in rows] == [jane]
    assert rows[0]["dependents"] == [{"full_name": "Tom", "age": None}]


def test_search_includes_visitors_without_visits(roster, store):
    vid = store.add_visitor("New", "Person")

    rows = roster.search_by_name("New", base_url=BASE)

    assert rows[0]["id"] == vid
    assert rows[0]["visit_id"] is None
    assert rows[0]["unit"] is None
    assert rows[0]["dependents"] == []


def test_history_end_date_covers_whole_day(roster, store):
    vid = store.add_visitor("Jane", "Doe")
    late = store.add_visit(vid, datetime(2025, 1, 1, 23, 0, 0), datetime(2025, 1, 1, 23, 30))
    store.add_visit(vid, datetime(2025, 1, 2, 0, 0, 1))
    store.add_visit(vid, datetime(2024, 12, 31, 23, 59, 59), datetime(2025, 1, 1, 0, 10))

    rows = roster.history(start_date="2025-01-01", end_date="2025-01-01", base_url=BASE)

    assert [r["visit_id"] for r in rows] == [late]
    assert rows[0]["visitor_id"] == vid


def test_history_search_is_case_insensitive_and_newest_first(roster, store):
    jane = store.add_visitor("Jane", "Doe")
    other = store.add_visitor("Ann", "Lee")
    first = store.add_visit(jane, datetime(2025, 1, 1, 8), datetime(2025, 1, 1, 9))
    second = store.add_visit(jane, datetime(2025, 1, 3, 8), datetime(2025, 1, 3, 9))
    store.add_visit(other, datetime(2025, 1, 2, 8))

    rows = roster.history(search="jAnE", base_url=BASE)

    assert [r["visit_id"] for r in rows] == [second, first]


def test_history_rejects_malformed_dates(roster):
    with pytest.raises(ValidationError, match="Dates must use the YYYY-MM-DD format."):
        roster.history(start_date="01/02/2025", base_url=BASE)


def test_build_history_filter_bounds():
    filters = RosterService.build_history_filter(search="  ", start_date="2025-01-01", end_date="2025-01-31")

    assert filters.search is None
    assert filters.start == datetime(2025, 1, 1, 0, 0, 0)
    assert filters.end == datetime(2025, 1, 31, 23, 59, 59, 999000)


def test_history_csv_flattens_dependents(roster, store):
    vid = store.add_visitor("Jane", "Doe")
    store.add_visit(vid, datetime(2025, 1, 1, 8), dependents=[NewDependent("Tom", 7), NewDependent("Amy")])

    text = RosterService.history_csv(roster.history(base_url=BASE))
    rows = list(csv.DictReader(io.StringIO(text)))

    assert rows[0]["first_name"] == "Jane"
    assert rows[0]["dependents"] == "Tom (7); Amy"
    assert rows[0]["exit_time"] == "-"


def test_name_search_sql_escapes_wildcards():
    search = NameSearch.parse("50% a_b")

    assert search.terms == ("50%", "a_b")
    assert search.params() == {"term0": "%50\\%%", "term1": "%a\\_b%"}
    assert search.where_sql().count("LIKE") == 4
    assert escape_like("\\") == "\\\\"


def test_history_filter_sql_only_includes_given_bounds():
    assert HistoryFilter().where_sql() == "1=1"
    sql = HistoryFilter(search="Doe", end=datetime(2025, 1, 1)).where_sql()
    assert "LOWER(p.first_name)" in sql
    assert "t.entry_time <= %(end)s" in sql
    assert "%(start)s" not in sql
