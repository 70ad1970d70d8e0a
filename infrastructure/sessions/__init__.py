"""Server-side session stores."""
from .memory import InMemorySessionStore

__all__ = ["InMemorySessionStore"]
