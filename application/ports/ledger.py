"""Ports for the local JSON ledgers (stats counters and submitted links)."""
from __future__ import annotations

from typing import Callable, Optional, Protocol, runtime_checkable

from domain.gallery.entity import LedgerEntry
from domain.stats.entity import StatsLedger


@runtime_checkable
class StatsStore(Protocol):
    async def load(self) -> StatsLedger: ...

    async def update(self, mutate: Callable[[StatsLedger], None]) -> StatsLedger: ...


@runtime_checkable
class LinkLedger(Protocol):
    async def entries(self) -> list[LedgerEntry]: ...

    async def append(self, entry: LedgerEntry) -> LedgerEntry: ...

    async def remove(self, key: str) -> bool: ...


@runtime_checkable
class SessionStore(Protocol):
    def create(self, scope: str) -> str: ...

    def is_valid(self, token: Optional[str], scope: str) -> bool: ...

    def revoke(self, token: Optional[str]) -> bool: ...
