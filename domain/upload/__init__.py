"""Upload admission domain exports."""
from .policy import AdmissionPolicy, parse_declared_size

__all__ = ["AdmissionPolicy", "parse_declared_size"]
