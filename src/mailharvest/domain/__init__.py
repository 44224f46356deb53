"""Domain entities and errors."""

from mailharvest.domain.entities.folder_context import FolderContext
from mailharvest.domain.entities.mailbox_item import MailboxItem
from mailharvest.domain.errors import (
    CursorStoreError,
    DiscoveryError,
    ExtractionError,
    RemoteCallError,
    RemoteFetchError,
    RemoteListError,
    StoreWriteError,
)

__all__ = [
    "MailboxItem",
    "FolderContext",
    "ExtractionError",
    "RemoteCallError",
    "DiscoveryError",
    "RemoteListError",
    "RemoteFetchError",
    "StoreWriteError",
    "CursorStoreError",
]
