from __future__ import annotations

from datetime import datetime

from ..database.gateway import PersistenceGateway
from .repository import RetentionRepository


class MySQLRetentionRepository(RetentionRepository):
    def __init__(self, gateway: PersistenceGateway):
        self._gateway = gateway

    def delete_dependents_before(self, threshold: datetime) -> int:
        return self._gateway.execute(
            """
            DELETE FROM dependents
            WHERE visit_id IN (
                SELECT id FROM (
                    SELECT id FROM visits WHERE entry_time < %(threshold)s
                ) AS expired
            )
            """,
            {"threshold": threshold},
        ).rowcount

    def delete_visits_before(self, threshold: datetime) -> int:
        return self._gateway.execute(
            "DELETE FROM visits WHERE entry_time < %(threshold)s",
            {"threshold": threshold},
        ).rowcount

    def delete_orphan_visitors(self) -> int:
        return self._gateway.execute(
            """
            DELETE p FROM visitors p
            LEFT JOIN visits t ON t.visitor_id = p.id
            WHERE t.id IS NULL AND p.is_banned = 0
            """
        ).rowcount
