from __future__ import annotations

from datetime import datetime
from typing import Protocol


class RetentionRepository(Protocol):
    """Each method is one statement committed on its own; returns rows deleted."""

    def delete_dependents_before(self, threshold: datetime) -> int:
        raise NotImplementedError

    def delete_visits_before(self, threshold: datetime) -> int:
        raise NotImplementedError

    def delete_orphan_visitors(self) -> int:
        """Visitors with no visits left, except banned ones."""
        raise NotImplementedError
