"""Notes REST backend client."""
from .client import NotesClient

__all__ = ["NotesClient"]
