"""JSON file persistence for the stats and link ledgers.

Each store serializes its own read-modify-write cycles with an asyncio.Lock
and replaces the file atomically. Separate processes sharing a file are
last-writer-wins.
"""
from __future__ import annotations

import asyncio
import json
import os
import secrets
from pathlib import Path
from typing import Any, Callable, Optional

import aiofiles
import aiofiles.os

from core.logging_config import get_logger
from domain.gallery.entity import LedgerEntry
from domain.stats.entity import StatsLedger

logger = get_logger(__name__)


class JsonFileStore:
    """A JSON document on disk with locked, atomic rewrites."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def _read(self) -> Optional[Any]:
        if not self.path.exists():
            return None
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
            return json.loads(raw) if raw.strip() else None
        except ValueError as e:
            # A corrupt file is rebuilt on the next write instead of failing every request
            logger.warning("ledger_corrupt", path=str(self.path), error=str(e))
            return None

    async def _write(self, data: Any) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(f".{self.path.name}.{secrets.token_hex(4)}.tmp")
        try:
            async with aiofiles.open(tmp, "w", encoding="utf-8") as f:
                await f.write(json.dumps(data, ensure_ascii=False, indent=2))
            os.replace(tmp, self.path)
        finally:
            if tmp.exists():
                await aiofiles.os.remove(tmp)


class JsonStatsStore(JsonFileStore):
    async def load(self) -> StatsLedger:
        data = await self._read()
        return StatsLedger.from_dict(data) if isinstance(data, dict) else StatsLedger()

    async def update(self, mutate: Callable[[StatsLedger], None]) -> StatsLedger:
        async with self._lock:
            ledger = await self.load()
            mutate(ledger)
            await self._write(ledger.to_dict())
            return ledger


class JsonLinkLedger(JsonFileStore):
    async def _load_entries(self) -> list[LedgerEntry]:
        data = await self._read()
        if not isinstance(data, list):
            return []
        entries = []
        for row in data:
            entry = LedgerEntry.from_dict(row) if isinstance(row, dict) else None
            if entry is not None:
                entries.append(entry)
        return entries

    async def entries(self) -> list[LedgerEntry]:
        return await self._load_entries()

    async def append(self, entry: LedgerEntry) -> LedgerEntry:
        async with self._lock:
            entries = await self._load_entries()
            # Re-submitting a key replaces the earlier row
            entries = [e for e in entries if e.key != entry.key]
            entries.append(entry)
            await self._write([e.to_dict() for e in entries])
        logger.info("ledger_appended", key=entry.key)
        return entry

    async def remove(self, key: str) -> bool:
        async with self._lock:
            entries = await self._load_entries()
            kept = [e for e in entries if e.key != key]
            if len(kept) == len(entries):
                return False
            await self._write([e.to_dict() for e in kept])
        logger.info("ledger_removed", key=key)
        return True
