"""Gallery domain exports."""
from .entity import GalleryItem, LedgerEntry, SourceEntry, order_entries, parse_timestamp

__all__ = ["GalleryItem", "LedgerEntry", "SourceEntry", "order_entries", "parse_timestamp"]
