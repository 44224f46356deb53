from __future__ import annotations

from email import policy
from email.parser import BytesHeaderParser
from typing import Optional

from loguru import logger

from mailharvest.domain.entities.mailbox_item import DEFAULT_KEY_HEADER, MailboxItem

SYNTHETIC_HEADERS = frozenset({DEFAULT_KEY_HEADER, "Owner", "Folder", "UID", "Size", "Internal Date"})


def make_item_id(owner: str, folder: str, uidvalidity: Optional[str], uid: str) -> str:
    # Stable across runs as long as the folder's UIDVALIDITY holds
    return f"{owner}:{folder}:{uidvalidity or 0}:{uid}"


def _header_pairs(header_bytes: bytes) -> list[tuple[str, str]]:
    try:
        em = BytesHeaderParser(policy=policy.default).parsebytes(header_bytes)
        return [(name, str(value)) for name, value in em.items()]
    except Exception as e:
        # Malformed encoded words etc.; fall back to undecoded values
        logger.debug(f"Falling back to raw header parsing: {e}")
        em = BytesHeaderParser(policy=policy.compat32).parsebytes(header_bytes)
        return [(name, str(value)) for name, value in em.items()]


def headers_to_mailbox_item(
    owner: str,
    folder: str,
    uidvalidity: Optional[str],
    uid: str,
    header_bytes: bytes,
    size: Optional[int] = None,
    internal_date: Optional[str] = None,
) -> MailboxItem:
    headers: dict[str, str] = {
        DEFAULT_KEY_HEADER: make_item_id(owner, folder, uidvalidity, uid),
        "Owner": owner,
        "Folder": folder,
        "UID": uid,
    }
    if size is not None:
        headers["Size"] = str(size)
    if internal_date:
        headers["Internal Date"] = internal_date

    for name, value in _header_pairs(header_bytes):
        if name in SYNTHETIC_HEADERS:
            continue
        # Repeated headers (Received, ...) keep every value
        headers[name] = f"{headers[name]}\n{value}" if name in headers else value

    return MailboxItem(headers)
