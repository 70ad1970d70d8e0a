"""Gallery entries and the ordering rules applied before URLs are resolved."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Coerce a listing timestamp to an aware UTC datetime.

    Missing or unparseable values become the epoch so they sort as oldest.
    Naive values are taken to be UTC.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            # Numbers are epoch milliseconds, as JavaScript clients send them
            dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return EPOCH
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return EPOCH
    else:
        return EPOCH

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class SourceEntry:
    """One raw entry from a gallery source (bucket object, ledger row, drive file)."""

    key: Optional[str]
    size: int = 0
    last_modified: Any = None
    # Set when the source already knows where the media lives
    url: Optional[str] = None
    name: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def has_key(self) -> bool:
        return isinstance(self.key, str) and bool(self.key.strip())

    @property
    def timestamp(self) -> datetime:
        return parse_timestamp(self.last_modified)


@dataclass
class GalleryItem:
    """A resolved, displayable gallery entry."""

    key: str
    name: str
    size: int
    last_modified: Optional[datetime]
    url: str
    content_type: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: SourceEntry, url: str) -> "GalleryItem":
        ts = entry.timestamp
        return cls(
            key=entry.key,
            name=entry.name or entry.key.rsplit("/", 1)[-1],
            size=max(int(entry.size or 0), 0),
            last_modified=None if ts == EPOCH else ts,
            url=url,
            content_type=entry.content_type,
        )


def order_entries(entries: Iterable[SourceEntry], limit: int) -> list[SourceEntry]:
    """Drop keyless entries, sort newest first and keep the first ``limit``.

    ``sorted`` is stable, so entries with equal timestamps keep source order.
    """
    usable = [e for e in entries if e.has_key]
    usable.sort(key=lambda e: e.timestamp, reverse=True)
    return usable[:limit]


@dataclass
class LedgerEntry:
    """A submitted upload or external link recorded in the local ledger."""

    key: str
    name: Optional[str] = None
    url: Optional[str] = None
    size: int = 0
    last_modified: Optional[datetime] = None
    content_type: Optional[str] = None
    contributor: Optional[str] = None

    def to_source_entry(self) -> SourceEntry:
        return SourceEntry(
            key=self.key,
            size=self.size,
            last_modified=self.last_modified,
            url=self.url,
            name=self.name,
            content_type=self.content_type,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "url": self.url,
            "size": self.size,
            "last_modified": self.last_modified.isoformat() if self.last_modified else None,
            "content_type": self.content_type,
            "contributor": self.contributor,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Optional["LedgerEntry"]:
        key = data.get("key")
        if not isinstance(key, str) or not key.strip():
            return None
        ts = parse_timestamp(data.get("last_modified"))
        try:
            size = max(int(data.get("size") or 0), 0)
        except (TypeError, ValueError):
            size = 0
        return cls(
            key=key,
            name=data.get("name"),
            url=data.get("url"),
            size=size,
            last_modified=None if ts == EPOCH else ts,
            content_type=data.get("content_type"),
            contributor=data.get("contributor"),
        )
