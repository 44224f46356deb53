from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from mailharvest.application.ports.cursor_store import SyncCursorStore


@dataclass(frozen=True)
class FolderContext:
    """One folder to extract, bound to its owner and that owner's cursor storage."""

    folder_id: str
    owner: str
    cursor_store: SyncCursorStore

    def load_cursor(self) -> Optional[bytes]:
        return self.cursor_store.get(self.owner, self.folder_id)

    def save_cursor(self, cursor: bytes) -> None:
        self.cursor_store.put(self.owner, self.folder_id, cursor)
