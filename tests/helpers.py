from __future__ import annotations

from typing import Mapping, Optional

from mailharvest.application.ports.remote_mail import GetItemsRequest, ItemIdPage, ListItemsRequest
from mailharvest.domain.entities.mailbox_item import MailboxItem
from mailharvest.domain.errors import RemoteCallError


def make_item(item_id: str, **headers: str) -> MailboxItem:
    return MailboxItem({"Item ID": item_id, "Subject": f"subject of {item_id}", **headers})


class FakeMailClient:
    """Scripted RemoteMailClient that records every call."""

    def __init__(
        self,
        folders: Mapping[str, list[str]],
        change_tokens: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.folders = {name: list(ids) for name, ids in folders.items()}
        self.change_tokens = dict(change_tokens or {})
        self.discover_calls: list[tuple[str, str]] = []
        self.list_calls: list[ListItemsRequest] = []
        self.get_calls: list[GetItemsRequest] = []
        self.token_calls: list[tuple[str, str]] = []
        self.fail_discover: Optional[RemoteCallError] = None
        self.fail_list: dict[str, RemoteCallError] = {}
        self.fail_get: dict[str, RemoteCallError] = {}
        self.fail_token: dict[str, RemoteCallError] = {}

    def discover_folders(self, root: str, owner: str) -> list[str]:
        self.discover_calls.append((root, owner))
        if self.fail_discover:
            raise self.fail_discover
        return list(self.folders)

    def list_item_ids(self, request: ListItemsRequest) -> ItemIdPage:
        self.list_calls.append(request)
        if request.folder_id in self.fail_list:
            raise self.fail_list[request.folder_id]
        ids = self.folders[request.folder_id]
        start = request.window.offset
        return ItemIdPage(item_ids=tuple(ids[start:start + request.window.max_entries]))

    def get_item_details(self, request: GetItemsRequest) -> list[MailboxItem]:
        self.get_calls.append(request)
        if request.folder_id in self.fail_get:
            raise self.fail_get[request.folder_id]
        return [make_item(i, Folder=request.folder_id, Owner=request.owner) for i in request.item_ids]

    def get_change_token(self, folder_id: str, owner: str) -> Optional[str]:
        self.token_calls.append((folder_id, owner))
        if folder_id in self.fail_token:
            raise self.fail_token[folder_id]
        return self.change_tokens.get(folder_id)

    def fetched_ids(self, folder_id: str) -> list[str]:
        return [i for r in self.get_calls if r.folder_id == folder_id for i in r.item_ids]


class InMemoryStore:
    """StoreClient keeping rows in a dict."""

    def __init__(self) -> None:
        self.rows: dict[bytes, dict[bytes, bytes]] = {}
        self.pending: list[tuple[bytes, dict[bytes, bytes]]] = []
        self.puts = 0
        self.flushes = 0
        self.fail_flush = False

    def put(self, row_key: bytes, columns: Mapping[bytes, bytes]) -> None:
        self.puts += 1
        self.pending.append((row_key, dict(columns)))

    def flush(self) -> None:
        if self.fail_flush:
            self.pending.clear()
            raise IOError("store unavailable")
        for key, columns in self.pending:
            self.rows[key] = columns
        self.pending.clear()
        self.flushes += 1


class InMemoryCursorStore:
    def __init__(self) -> None:
        self.cursors: dict[tuple[str, str], bytes] = {}
        self.put_calls: list[tuple[str, str, bytes]] = []
        self.fail_put = False

    def get(self, owner: str, folder_id: str) -> Optional[bytes]:
        return self.cursors.get((owner, folder_id))

    def put(self, owner: str, folder_id: str, cursor: bytes) -> None:
        if self.fail_put:
            raise IOError("cursor storage unavailable")
        self.put_calls.append((owner, folder_id, cursor))
        self.cursors[(owner, folder_id)] = cursor

    def delete_owner(self, owner: str) -> int:
        keys = [k for k in self.cursors if k[0] == owner]
        for k in keys:
            del self.cursors[k]
        return len(keys)
