"""Per-folder item iteration over two tiers of pagination.

Id pages (up to the page size) refill an in-memory id buffer; detail batches
(up to the batch bound) are fetched from that buffer and delivered one item
at a time. Every ``step()`` performs at most one remote call.
"""

from __future__ import annotations

from typing import Optional, Union

from loguru import logger

from mailharvest.application.extraction.batching import BatchDetailFetcher
from mailharvest.application.extraction.cursor import FolderCursor
from mailharvest.application.extraction.paging import PagedItemIdLister
from mailharvest.application.extraction.state import EXHAUSTED, NEED_DATA, ExtractionState, _Signal
from mailharvest.application.ports.remote_mail import RemoteMailClient
from mailharvest.domain.entities.folder_context import FolderContext
from mailharvest.domain.entities.mailbox_item import MailboxItem
from mailharvest.domain.errors import CursorStoreError, RemoteCallError, RemoteListError

StepResult = Union[MailboxItem, _Signal]


class FolderItemIterator:
    def __init__(
        self,
        client: RemoteMailClient,
        context: FolderContext,
        lister: PagedItemIdLister,
        fetcher: BatchDetailFetcher,
    ) -> None:
        self.client = client
        self.context = context
        self.lister = lister
        self.fetcher = fetcher

        self._stored = self._load_cursor()
        self._change_token = self._load_change_token()

        start = self._stored.resume_offset(self._change_token) if self._stored else 0
        if self._stored and start != self._stored.offset:
            logger.info(
                f"Folder {context.folder_id} for {context.owner} changed token "
                f"{self._stored.change_token} -> {self._change_token}, restarting from the beginning"
            )

        self.start_offset = start
        self._next_offset = start
        self._last_page_seen = False

        self._page_ids: tuple[str, ...] = ()
        self._id_index = 0
        self._batch: list[MailboxItem] = []
        self._batch_index = 0

        self.pages_listed = 0
        self.batches_fetched = 0
        self.items_delivered = 0
        self.state = ExtractionState.LISTING_PAGE

    def _load_cursor(self) -> Optional[FolderCursor]:
        try:
            raw = self.context.load_cursor()
        except Exception as e:
            # Unreadable cursor storage only costs re-extraction of this folder
            logger.error(f"Failed to load cursor for {self.context.owner}:{self.context.folder_id}: {e}")
            return None
        return FolderCursor.decode(raw)

    def _load_change_token(self) -> Optional[str]:
        try:
            return self.client.get_change_token(self.context.folder_id, self.context.owner)
        except (RemoteCallError, OSError) as e:
            raise RemoteListError(
                f"Failed to read change token of {self.context.folder_id} for {self.context.owner}: {e}", e
            ) from e

    @property
    def folder_id(self) -> str:
        return self.context.folder_id

    @property
    def exhausted(self) -> bool:
        return self.state is ExtractionState.EXHAUSTED

    def cursor(self) -> FolderCursor:
        """Cursor covering every entry listed so far."""
        return FolderCursor(offset=self._next_offset, change_token=self._change_token)

    def cursor_changed(self) -> bool:
        return self._stored != self.cursor()

    def step(self) -> StepResult:
        if self.state is ExtractionState.DELIVERING_BUFFERED:
            if self._batch_index < len(self._batch):
                item = self._batch[self._batch_index]
                self._batch_index += 1
                self.items_delivered += 1
                return item
            self.state = self._refill_state()
            return NEED_DATA

        if self.state is ExtractionState.FETCHING_BATCH:
            self._fetch_batch()
            return NEED_DATA

        if self.state is ExtractionState.LISTING_PAGE:
            self._list_page()
            return NEED_DATA

        return EXHAUSTED

    def _refill_state(self) -> ExtractionState:
        if self._id_index < len(self._page_ids):
            return ExtractionState.FETCHING_BATCH
        if not self._last_page_seen:
            return ExtractionState.LISTING_PAGE
        logger.debug(
            f"Folder {self.folder_id} drained after {self.items_delivered} items "
            f"({self.pages_listed} id pages, {self.batches_fetched} detail batches)"
        )
        return ExtractionState.EXHAUSTED

    def _list_page(self) -> None:
        page = self.lister.list_next(self.context.owner, self.folder_id, self._next_offset)
        self.pages_listed += 1

        # No partial page state is kept on failure, so a retry re-requests the same offset
        self._page_ids = page.item_ids
        self._id_index = 0
        self._next_offset = page.next_offset
        self._last_page_seen = page.is_last_page
        self.state = self._refill_state()

    def _fetch_batch(self) -> None:
        end = min(self._id_index + self.fetcher.batch_size, len(self._page_ids))
        ids = self._page_ids[self._id_index:end]
        self._batch = self.fetcher.fetch_batch(self.context.owner, self.folder_id, ids)
        self._batch_index = 0
        # Advance by what was requested; ids deleted remotely since listing simply vanish
        self._id_index = end
        self.batches_fetched += 1
        self.state = ExtractionState.DELIVERING_BUFFERED

    def __iter__(self) -> FolderItemIterator:
        return self

    def __next__(self) -> MailboxItem:
        while True:
            result = self.step()
            if result is EXHAUSTED:
                raise StopIteration
            if result is not NEED_DATA:
                return result


def save_folder_cursor(context: FolderContext, cursor: FolderCursor) -> None:
    """Persist ``cursor`` for the folder, wrapping storage failures."""
    try:
        context.save_cursor(cursor.encode())
    except Exception as e:
        raise CursorStoreError(
            f"Failed to save cursor for {context.owner}:{context.folder_id}: {e}", e
        ) from e
