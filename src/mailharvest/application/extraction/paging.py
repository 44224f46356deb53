"""Offset paging over a folder's item identifiers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from mailharvest.application.ports.remote_mail import (
    MAX_PAGE_SIZE,
    ListItemsRequest,
    PageWindow,
    RemoteMailClient,
)
from mailharvest.domain.errors import RemoteCallError, RemoteListError


@dataclass(frozen=True)
class IdPageResult:
    window: PageWindow
    item_ids: tuple[str, ...]
    is_last_page: bool

    @property
    def next_offset(self) -> int:
        return self.window.offset + len(self.item_ids)


class PagedItemIdLister:
    """Lists one page of item ids at a caller-supplied offset.

    Keeps no state between calls, so a caller can resume anywhere. A page
    shorter than the requested size is the last one.
    """

    def __init__(self, client: RemoteMailClient, page_size: int = MAX_PAGE_SIZE) -> None:
        self.client = client
        self.page_size = page_size

    def list_next(
        self,
        owner: str,
        folder_id: str,
        offset: int,
        page_size: Optional[int] = None,
    ) -> IdPageResult:
        window = PageWindow.clamped(offset, page_size if page_size is not None else self.page_size)
        request = ListItemsRequest(owner=owner, folder_id=folder_id, window=window)

        try:
            page = self.client.list_item_ids(request)
        except RemoteCallError as e:
            logger.error(f"Failed to list item ids in {folder_id} for {owner} at offset {window.offset}: {e}")
            raise RemoteListError(f"Failed to list item ids in {folder_id} for {owner}: {e}", e) from e
        except OSError as e:
            logger.error(f"Transport failure listing {folder_id} for {owner}: {e}")
            raise RemoteListError(f"Transport failure listing {folder_id} for {owner}: {e}", e) from e

        ids = tuple(page.item_ids)
        logger.debug(f"Got {len(ids)} item ids from {folder_id} (offset={window.offset}, max={window.max_entries})")
        return IdPageResult(window=window, item_ids=ids, is_last_page=len(ids) < window.max_entries)
