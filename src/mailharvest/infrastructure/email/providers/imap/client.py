from __future__ import annotations

import imaplib
import re
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Sequence

from loguru import logger

from mailharvest.application.ports.remote_mail import GetItemsRequest, ItemIdPage, ListItemsRequest
from mailharvest.domain.entities.mailbox_item import MailboxItem
from mailharvest.domain.errors import RemoteCallError
from mailharvest.infrastructure.email.providers.imap.auth import (
    DEFAULT_IMAP_PORT,
    ImapAuthenticator,
    ImapCredentials,
    credentials_from_env,
)
from mailharvest.infrastructure.email.providers.imap.mapper import headers_to_mailbox_item

FETCH_ITEMS = "(UID RFC822.SIZE INTERNALDATE BODY.PEEK[HEADER])"

_LIST_RE = re.compile(rb'\((?P<flags>[^)]*)\) (?P<delim>"(?:[^"\\]|\\.)*"|NIL) (?P<name>.+)')
_UID_RE = re.compile(rb"\bUID (\d+)")
_SIZE_RE = re.compile(rb"\bRFC822\.SIZE (\d+)")
_DATE_RE = re.compile(rb'\bINTERNALDATE "([^"]+)"')
_UIDVALIDITY_RE = re.compile(rb"\bUIDVALIDITY (\d+)")
_UIDNEXT_RE = re.compile(rb"\bUIDNEXT (\d+)")
_MESSAGES_RE = re.compile(rb"\bMESSAGES (\d+)")


def quote_mailbox(name: str) -> str:
    return '"' + name.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _unquote(raw: bytes) -> str:
    text = raw.decode("utf-8", errors="replace").strip()
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        text = text[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return text


def parse_list_response(data: Sequence) -> list[tuple[str, str, set[str]]]:
    """Parse LIST lines into (name, delimiter, flags)."""
    folders = []
    for entry in data:
        if not entry:
            continue
        literal: Optional[bytes] = None
        if isinstance(entry, tuple):
            # Name sent as a literal: (b'(\\Flags) "/" {5}', b'Inbox')
            entry, literal = entry[0], entry[1]

        m = _LIST_RE.match(entry)
        if not m:
            logger.warning(f"Unparseable LIST response line: {entry!r}")
            continue

        flags = {f.lower() for f in m.group("flags").decode().split()}
        delim = "" if m.group("delim") == b"NIL" else _unquote(m.group("delim"))
        name = literal.decode("utf-8", errors="replace") if literal is not None else _unquote(m.group("name"))
        folders.append((name, delim, flags))
    return folders


def parse_fetch_response(data: Sequence) -> list[tuple[bytes, bytes]]:
    """Group FETCH data into (metadata, header literal) records."""
    records: list[list[bytes]] = []
    for part in data:
        if isinstance(part, tuple):
            records.append([part[0], part[1]])
        elif isinstance(part, bytes) and records:
            # Attributes sent after the literal, e.g. b' UID 7)'
            records[-1][0] += part
    return [(meta, body) for meta, body in records]


class ImapMailClient:
    """RemoteMailClient over IMAP.

    - folders: ``LIST "" "*"`` filtered to the root and its descendants
    - item ids: UIDs, paged by message sequence number (``UID SEARCH a:b``)
    - details: RFC 822 headers via ``UID FETCH ... BODY.PEEK[HEADER]``
    - change token: ``<UIDVALIDITY>:<UIDNEXT - MESSAGES>``, so a UIDVALIDITY
      reset or any expunge restarts the folder from offset 0

    One authenticated connection is kept per owner.
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_IMAP_PORT,
        timeout: Optional[float] = None,
        credentials: Callable[[str], ImapCredentials] = credentials_from_env,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.credentials = credentials
        self._conns: dict[str, imaplib.IMAP4] = {}
        self._selected: dict[str, str] = {}
        self._uidvalidity: dict[tuple[str, str], Optional[str]] = {}

    def _connect(self, owner: str) -> imaplib.IMAP4:
        conn = self._conns.get(owner)
        if conn is None:
            logger.info(f"Connecting to {self.host}:{self.port} as {owner}")
            try:
                conn = ImapAuthenticator(self.credentials(owner), self.host, self.port, self.timeout).login()
            except KeyError as e:
                raise RemoteCallError("AUTH", str(e)) from e
            except imaplib.IMAP4.abort:
                raise
            except imaplib.IMAP4.error as e:
                raise RemoteCallError("AUTH", f"Login failed for {owner}: {e}") from e
            self._conns[owner] = conn
        return conn

    def _drop(self, owner: str) -> None:
        conn = self._conns.pop(owner, None)
        self._selected.pop(owner, None)
        if conn is not None:
            try:
                conn.logout()
            except (imaplib.IMAP4.error, OSError):
                pass

    def disconnect(self) -> None:
        for owner in list(self._conns):
            self._drop(owner)

    @contextmanager
    def _remote(self, owner: str, what: str) -> Iterator[None]:
        try:
            yield
        except RemoteCallError:
            raise
        except imaplib.IMAP4.abort as e:
            self._drop(owner)
            raise RemoteCallError(RemoteCallError.TRANSPORT, f"{what}: {e}") from e
        except imaplib.IMAP4.error as e:
            raise RemoteCallError("BAD", f"{what}: {e}") from e
        except OSError as e:
            self._drop(owner)
            raise RemoteCallError(RemoteCallError.TRANSPORT, f"{what}: {e}") from e

    @staticmethod
    def _check(typ: str, data, what: str) -> None:
        if typ != "OK":
            raise RemoteCallError(typ, f"{what}: {data!r}")

    def _select(self, conn: imaplib.IMAP4, owner: str, folder_id: str) -> int:
        typ, data = conn.select(quote_mailbox(folder_id), readonly=True)
        self._check(typ, data, f"SELECT {folder_id}")
        self._selected[owner] = folder_id
        try:
            return int(data[0])
        except (TypeError, ValueError, IndexError):
            return 0

    def discover_folders(self, root: str, owner: str) -> list[str]:
        with self._remote(owner, "LIST"):
            conn = self._connect(owner)
            typ, data = conn.list('""', "*")
            self._check(typ, data, "LIST")

        folders = []
        for name, delim, flags in parse_list_response(data or []):
            if "\\noselect" in flags or "\\nonexistent" in flags:
                continue
            if root and name != root and not (delim and name.startswith(root + delim)):
                continue
            folders.append(name)
        return folders

    def get_change_token(self, folder_id: str, owner: str) -> Optional[str]:
        with self._remote(owner, f"STATUS {folder_id}"):
            conn = self._connect(owner)
            typ, data = conn.status(quote_mailbox(folder_id), "(UIDVALIDITY UIDNEXT MESSAGES)")
            self._check(typ, data, f"STATUS {folder_id}")

        line = b" ".join(x for x in data or [] if isinstance(x, bytes))
        uidvalidity = _UIDVALIDITY_RE.search(line)
        uidnext = _UIDNEXT_RE.search(line)
        messages = _MESSAGES_RE.search(line)

        validity = uidvalidity.group(1).decode() if uidvalidity else None
        self._uidvalidity[(owner, folder_id)] = validity
        if validity is None or not (uidnext and messages):
            return validity
        # UIDNEXT - MESSAGES holds steady while mail is only appended and grows on
        # every expunge, which shifts the sequence numbers the offset counts
        removed = int(uidnext.group(1)) - int(messages.group(1))
        return f"{validity}:{removed}"

    def list_item_ids(self, request: ListItemsRequest) -> ItemIdPage:
        owner, folder, window = request.owner, request.folder_id, request.window
        with self._remote(owner, f"UID SEARCH {folder}"):
            conn = self._connect(owner)
            exists = self._select(conn, owner, folder)
            if window.offset >= exists:
                return ItemIdPage(item_ids=())

            # Sequence numbers are 1-based and ascend with UID
            first = window.offset + 1
            last = min(window.offset + window.max_entries, exists)
            typ, data = conn.uid("SEARCH", None, f"{first}:{last}")
            self._check(typ, data, f"UID SEARCH {folder}")

        uids = sorted({int(x) for x in (data[0] or b"").split()}) if data else []
        return ItemIdPage(item_ids=tuple(str(u) for u in uids))

    def get_item_details(self, request: GetItemsRequest) -> list[MailboxItem]:
        owner, folder = request.owner, request.folder_id
        if not request.item_ids:
            return []

        with self._remote(owner, f"UID FETCH {folder}"):
            conn = self._connect(owner)
            if self._selected.get(owner) != folder:
                self._select(conn, owner, folder)
            typ, data = conn.uid("FETCH", ",".join(request.item_ids), FETCH_ITEMS)
            self._check(typ, data, f"UID FETCH {folder}")

        uidvalidity = self._uidvalidity.get((owner, folder))
        by_uid: dict[str, MailboxItem] = {}
        for meta, body in parse_fetch_response(data or []):
            uid_match = _UID_RE.search(meta)
            if not uid_match:
                continue
            uid = uid_match.group(1).decode()
            size = _SIZE_RE.search(meta)
            date = _DATE_RE.search(meta)
            by_uid[uid] = headers_to_mailbox_item(
                owner,
                folder,
                uidvalidity,
                uid,
                body or b"",
                size=int(size.group(1)) if size else None,
                internal_date=date.group(1).decode() if date else None,
            )

        missing = [uid for uid in request.item_ids if uid not in by_uid]
        if missing:
            logger.warning(f"{len(missing)} items vanished from {folder} before they could be fetched")
        # Keep the requested order
        return [by_uid[uid] for uid in request.item_ids if uid in by_uid]
