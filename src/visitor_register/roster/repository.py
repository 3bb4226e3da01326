from __future__ import annotations

from typing import Protocol, Sequence

from .model import HistoryFilter, NameSearch


class RosterRepository(Protocol):
    """Read-only queries. Rows are dicts with a raw ``dependents_json`` column."""

    def list_open_visits(self) -> Sequence[dict]:
        raise NotImplementedError

    def search_visitors(self, search: NameSearch) -> Sequence[dict]:
        raise NotImplementedError

    def list_history(self, filters: HistoryFilter) -> Sequence[dict]:
        raise NotImplementedError
