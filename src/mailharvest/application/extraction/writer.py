from __future__ import annotations

from typing import Iterable

from loguru import logger

from mailharvest.application.ports.store_client import StoreClient
from mailharvest.domain.entities.mailbox_item import DEFAULT_KEY_HEADER, MailboxItem
from mailharvest.domain.errors import StoreWriteError

DEFAULT_COLUMN_FAMILY = "h"


class MailWriter:
    """Writes MailboxItems as store rows.

    Row key is the value of ``key_header``; each header becomes one column
    ``<family>:<header name>`` holding the header value.
    """

    def __init__(
        self,
        store: StoreClient,
        key_header: str = DEFAULT_KEY_HEADER,
        column_family: str = DEFAULT_COLUMN_FAMILY,
    ) -> None:
        self.store = store
        self.key_header = key_header
        self.column_family = column_family

    def to_row(self, item: MailboxItem) -> tuple[bytes, dict[bytes, bytes]]:
        if not item.has_header(self.key_header):
            raise StoreWriteError(f"Item has no {self.key_header!r} header to use as a row key: {item!r}")
        key = item.get_header(self.key_header)

        prefix = f"{self.column_family}:"
        columns = {
            (prefix + name).encode("utf-8"): value.encode("utf-8")
            for name, value in item.headers.items()
        }
        return key.encode("utf-8"), columns

    def write(self, items: Iterable[MailboxItem]) -> int:
        """Put every item then flush once. Returns the number of rows written."""
        rows = [self.to_row(item) for item in items]
        try:
            for row_key, columns in rows:
                self.store.put(row_key, columns)
            self.store.flush()
        except StoreWriteError:
            raise
        except Exception as e:
            logger.error(f"Failed to write {len(rows)} rows: {e}")
            raise StoreWriteError(f"Failed to write {len(rows)} rows: {e}", e) from e

        logger.debug(f"Wrote {len(rows)} rows")
        return len(rows)
