from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from mailharvest.domain.entities.mailbox_item import MailboxItem

# Hard limit on ids per listing request
MAX_PAGE_SIZE = 1000


@dataclass(frozen=True)
class PageWindow:
    """Offset-based window into a folder's item listing."""

    offset: int
    max_entries: int

    @classmethod
    def clamped(cls, offset: int, max_entries: int, limit: int = MAX_PAGE_SIZE) -> PageWindow:
        # Negative offsets and non-positive sizes are nonsensical
        return cls(offset=max(offset, 0), max_entries=min(max(max_entries, 1), limit))


@dataclass(frozen=True)
class ListItemsRequest:
    owner: str
    folder_id: str
    window: PageWindow


@dataclass(frozen=True)
class GetItemsRequest:
    owner: str
    folder_id: str
    item_ids: tuple[str, ...]


@dataclass(frozen=True)
class ItemIdPage:
    item_ids: tuple[str, ...]

    @property
    def size(self) -> int:
        return len(self.item_ids)


class RemoteMailClient(Protocol):
    """Capability set of the remote mailbox service.

    Every call takes the owner explicitly; implementations must not keep an
    ambient "current user". Failures raise ``RemoteCallError``.
    """

    def discover_folders(self, root: str, owner: str) -> Sequence[str]: ...

    def list_item_ids(self, request: ListItemsRequest) -> ItemIdPage: ...

    def get_item_details(self, request: GetItemsRequest) -> Sequence[MailboxItem]: ...

    def get_change_token(self, folder_id: str, owner: str) -> Optional[str]: ...
