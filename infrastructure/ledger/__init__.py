"""JSON-file ledgers."""
from .json_store import JsonFileStore, JsonLinkLedger, JsonStatsStore

__all__ = ["JsonFileStore", "JsonLinkLedger", "JsonStatsStore"]
