from __future__ import annotations

from datetime import datetime

from visitor_register.database.gateway import QueryResult
from visitor_register.roster.model import HistoryFilter, NameSearch
from visitor_register.roster.mysql_roster_repository import MySQLRosterRepository

ROW = {"id": 1, "first_name": "Jane", "last_name": "Doe", "dependents_json": None}


class RecordingGateway:
    def __init__(self, rows=None):
        self.statements: list[tuple[str, dict | None]] = []
        self._rows = rows if rows is not None else [ROW]

    def execute(self, statement, params=None):
        self.statements.append((" ".join(statement.split()), params))
        return QueryResult(rows=list(self._rows), rowcount=len(self._rows))


def test_open_visits_only_and_newest_first():
    gateway = RecordingGateway()

    rows = MySQLRosterRepository(gateway).list_open_visits()

    assert rows == [ROW]
    statement, params = gateway.statements[0]
    assert "JOIN visits t ON t.visitor_id = p.id" in statement
    assert "WHERE t.exit_time IS NULL" in statement
    assert statement.endswith("ORDER BY t.entry_time DESC")
    assert "JSON_ARRAYAGG(JSON_OBJECT('full_name', d.full_name, 'age', d.age))" in statement
    assert "AS dependents_json" in statement
    assert params is None


def test_search_joins_latest_visit_and_escapes_terms():
    gateway = RecordingGateway()

    MySQLRosterRepository(gateway).search_visitors(NameSearch.parse("ja_ne  50%"))

    statement, params = gateway.statements[0]
    assert "LEFT JOIN visits t ON t.id = ( SELECT x.id FROM visits x WHERE x.visitor_id = p.id" in statement
    assert "ORDER BY x.entry_time DESC, x.id DESC LIMIT 1" in statement
    assert "(p.first_name LIKE %(term0)s OR p.last_name LIKE %(term0)s)" in statement
    assert "(p.first_name LIKE %(term1)s OR p.last_name LIKE %(term1)s)" in statement
    assert params == {"term0": "%ja\\_ne%", "term1": "%50\\%%"}


def test_history_filters_are_case_insensitive_and_bounded():
    gateway = RecordingGateway(rows=[])
    start, end = datetime(2025, 1, 1), datetime(2025, 1, 31, 23, 59, 59, 999000)

    rows = MySQLRosterRepository(gateway).list_history(HistoryFilter(search="Ann", start=start, end=end))

    assert rows == []
    statement, params = gateway.statements[0]
    assert "(LOWER(p.first_name) LIKE %(search)s OR LOWER(p.last_name) LIKE %(search)s)" in statement
    assert "t.entry_time >= %(start)s AND t.entry_time <= %(end)s" in statement
    assert statement.endswith("ORDER BY t.entry_time DESC, t.id DESC")
    assert params == {"search": "%ann%", "start": start, "end": end}


def test_unfiltered_history_has_no_name_clause():
    gateway = RecordingGateway()

    MySQLRosterRepository(gateway).list_history(HistoryFilter())

    statement, params = gateway.statements[0]
    assert "WHERE 1=1 ORDER BY" in statement
    assert "LIKE" not in statement
    assert params == {"search": None, "start": None, "end": None}
