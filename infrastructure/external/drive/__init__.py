"""Shared drive folder listing client."""
from .client import DriveClient, DriveFile

__all__ = ["DriveClient", "DriveFile"]
