"""Stats domain exports."""
from .entity import StatsLedger

__all__ = ["StatsLedger"]
