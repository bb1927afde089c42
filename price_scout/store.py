"""Persistence sink for fetched deals. The orchestrator only writes through it."""
from abc import ABC, abstractmethod
from datetime import datetime

from .models import Deal


class PersistenceStore(ABC):
    @abstractmethod
    async def put(self, deals: list[Deal]) -> None:
        ...

    @abstractmethod
    async def get_recent(self, since: datetime) -> list[Deal]:
        ...


class InMemoryStore(PersistenceStore):
    """Keeps the latest deal per (seller, region, duration) in memory."""

    def __init__(self):
        self._deals: dict[tuple, Deal] = {}

    async def put(self, deals: list[Deal]) -> None:
        for deal in deals:
            self._deals[deal.dedup_key] = deal

    async def get_recent(self, since: datetime) -> list[Deal]:
        recent = [d for d in self._deals.values() if d.fetched_at > since]
        return sorted(recent, key=lambda d: d.price)

    def __len__(self) -> int:
        return len(self._deals)
