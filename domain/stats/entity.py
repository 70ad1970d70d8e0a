"""Upload statistics ledger.

Counters move by small steps on every accepted presign and are replaced
wholesale by a resync against the live listing. Between resyncs they are
telemetry only and may drift (abandoned uploads, deletions).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from domain.gallery.entity import EPOCH, parse_timestamp


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _optional_ts(value: Any) -> Optional[datetime]:
    ts = parse_timestamp(value)
    return None if ts == EPOCH else ts


@dataclass
class StatsLedger:
    object_count: int = 0
    bytes_stored: int = 0
    bytes_requested: int = 0
    presign_count: int = 0
    contributors: set[str] = field(default_factory=set)
    last_updated: Optional[datetime] = None
    last_synced_at: Optional[datetime] = None

    @property
    def contributor_count(self) -> int:
        return len(self.contributors)

    def record_presign(self, size: Optional[int], contributor: Optional[str] = None) -> None:
        """Count an admitted upload; the object may never actually arrive."""
        self.presign_count += 1
        self.object_count += 1
        if size:
            self.bytes_requested += size
            self.bytes_stored += size
        if contributor:
            self.contributors.add(contributor)
        self.last_updated = _now()

    def resync(self, sizes: Iterable[int], at: Optional[datetime] = None) -> None:
        """Overwrite object and byte counters from a live listing.

        Contributors and presign totals are not observable in a listing
        and carry over unchanged.
        """
        sizes = list(sizes)
        at = at or _now()
        self.object_count = len(sizes)
        self.bytes_stored = sum(max(int(s or 0), 0) for s in sizes)
        self.last_synced_at = at
        self.last_updated = at

    def to_dict(self) -> dict[str, Any]:
        return {
            "object_count": self.object_count,
            "bytes_stored": self.bytes_stored,
            "bytes_requested": self.bytes_requested,
            "presign_count": self.presign_count,
            "contributors": sorted(self.contributors),
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "last_synced_at": self.last_synced_at.isoformat() if self.last_synced_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StatsLedger":
        def _int(name: str) -> int:
            try:
                return max(int(data.get(name) or 0), 0)
            except (TypeError, ValueError):
                return 0

        contributors = data.get("contributors") or []
        return cls(
            object_count=_int("object_count"),
            bytes_stored=_int("bytes_stored"),
            bytes_requested=_int("bytes_requested"),
            presign_count=_int("presign_count"),
            contributors={str(c) for c in contributors if c},
            last_updated=_optional_ts(data.get("last_updated")),
            last_synced_at=_optional_ts(data.get("last_synced_at")),
        )
