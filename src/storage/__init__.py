"""
Remote object storage and local draft cache.
"""

from src.storage.remote import (
    ObjectStorage,
    GoogleDriveStorage,
    LocalFileStorage,
    get_storage,
)
from src.storage.draft_cache import DraftCache

__all__ = [
    "ObjectStorage",
    "GoogleDriveStorage",
    "LocalFileStorage",
    "get_storage",
    "DraftCache",
]
