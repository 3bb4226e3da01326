from __future__ import annotations

from typing import Sequence

from ..database.gateway import PersistenceGateway
from .model import HistoryFilter, NameSearch
from .repository import RosterRepository

DEPENDENTS_JSON_SQL = """
    (
        SELECT JSON_ARRAYAGG(JSON_OBJECT('full_name', d.full_name, 'age', d.age))
        FROM dependents d
        WHERE d.visit_id = t.id
    )
"""

VISIT_FIELDS_SQL = """
    t.id AS visit_id, t.entry_time, t.exit_time,
    t.known_as, t.address, t.phone_number, t.unit, t.reason_for_visit,
    t.type, t.company_name, t.mandatory_acknowledgment_taken
"""


class MySQLRosterRepository(RosterRepository):
    def __init__(self, gateway: PersistenceGateway):
        self._gateway = gateway

    def list_open_visits(self) -> Sequence[dict]:
        return self._gateway.execute(
            f"""
            SELECT
                p.id, p.first_name, p.last_name, p.photo_path, p.is_banned,
                {VISIT_FIELDS_SQL},
                {DEPENDENTS_JSON_SQL} AS dependents_json
            FROM visitors p
            JOIN visits t ON t.visitor_id = p.id
            WHERE t.exit_time IS NULL
            ORDER BY t.entry_time DESC
            """
        ).rows

    def search_visitors(self, search: NameSearch) -> Sequence[dict]:
        # Latest visit per visitor via outer join so visitors without visits still appear.
        return self._gateway.execute(
            f"""
            SELECT
                p.id, p.first_name, p.last_name, p.photo_path, p.is_banned,
                {VISIT_FIELDS_SQL},
                {DEPENDENTS_JSON_SQL} AS dependents_json
            FROM visitors p
            LEFT JOIN visits t ON t.id = (
                SELECT x.id
                FROM visits x
                WHERE x.visitor_id = p.id
                ORDER BY x.entry_time DESC, x.id DESC
                LIMIT 1
            )
            WHERE {search.where_sql()}
            ORDER BY p.id ASC
            """,
            search.params(),
        ).rows

    def list_history(self, filters: HistoryFilter) -> Sequence[dict]:
        return self._gateway.execute(
            f"""
            SELECT
                p.id AS visitor_id, p.first_name, p.last_name, p.photo_path, p.is_banned,
                {VISIT_FIELDS_SQL},
                {DEPENDENTS_JSON_SQL} AS dependents_json
            FROM visitors p
            JOIN visits t ON t.visitor_id = p.id
            WHERE {filters.where_sql()}
            ORDER BY t.entry_time DESC, t.id DESC
            """,
            filters.params(),
        ).rows
