from __future__ import annotations
from typing import Optional, Protocol


class SyncCursorStore(Protocol):
    """Opaque cursor per (owner, folder). ``put`` is an idempotent upsert."""

    def get(self, owner: str, folder_id: str) -> Optional[bytes]: ...
    def put(self, owner: str, folder_id: str, cursor: bytes) -> None: ...
    def delete_owner(self, owner: str) -> int: ...
