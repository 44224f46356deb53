"""Extract one owner's mailbox into the destination store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from loguru import logger

from mailharvest.application.extraction.batching import DEFAULT_BATCH_SIZE
from mailharvest.application.extraction.chain import ChainedFolderIterator, DrainedFolder
from mailharvest.application.extraction.folder_iterator import save_folder_cursor
from mailharvest.application.extraction.writer import MailWriter
from mailharvest.application.ports.cursor_store import SyncCursorStore
from mailharvest.application.ports.remote_mail import MAX_PAGE_SIZE, RemoteMailClient
from mailharvest.domain.entities.mailbox_item import MailboxItem
from mailharvest.domain.errors import CursorStoreError

FolderErrorPolicy = Literal["abort", "skip"]


@dataclass
class ExtractionResult:
    """What one owner's run did."""

    owner: str
    items_written: int = 0
    batches_written: int = 0
    folders_drained: list[str] = field(default_factory=list)
    cursors_saved: list[str] = field(default_factory=list)
    cursor_failures: list[str] = field(default_factory=list)
    folders_failed: list[str] = field(default_factory=list)


class ExtractMailboxUseCase:
    """Drive the folder chain for one owner and write items in batches.

    Flow:
    1. Discover folders under ``root`` and chain them
    2. Buffer items; every ``write_batch_size`` items, write + flush the batch
    3. Once a batch is committed, save the cursor of each folder whose last
       item was in it (or earlier)

    Cursors are never saved before their items are written, so a crash in
    between re-extracts those items on the next run instead of losing them.
    """

    def __init__(
        self,
        client: RemoteMailClient,
        writer: MailWriter,
        cursor_store: SyncCursorStore,
        root: str = "",
        page_size: int = MAX_PAGE_SIZE,
        detail_batch_size: int = DEFAULT_BATCH_SIZE,
        write_batch_size: int = 100,
        on_folder_error: FolderErrorPolicy = "abort",
    ) -> None:
        self.client = client
        self.writer = writer
        self.cursor_store = cursor_store
        self.root = root
        self.page_size = page_size
        self.detail_batch_size = detail_batch_size
        self.write_batch_size = max(write_batch_size, 1)
        self.on_folder_error = on_folder_error

    def run(self, owner: str) -> ExtractionResult:
        """Extract everything new for ``owner``.

        Raises ``DiscoveryError``, ``RemoteListError``, ``RemoteFetchError`` or
        ``StoreWriteError``; cursor failures are logged and reported in the result.
        """
        result = ExtractionResult(owner=owner)
        chain = ChainedFolderIterator.for_owner(
            self.client,
            self.cursor_store,
            owner,
            root=self.root,
            page_size=self.page_size,
            batch_size=self.detail_batch_size,
            skip_failed_folders=self.on_folder_error == "skip",
        )

        buffer: list[MailboxItem] = []
        pending: list[DrainedFolder] = []

        for item in chain:
            buffer.append(item)
            # Drained folders have all their items in the buffer or already written
            pending.extend(chain.take_drained())
            if len(buffer) >= self.write_batch_size:
                self._commit(buffer, pending, result)
                buffer, pending = [], []

        pending.extend(chain.take_drained())
        self._commit(buffer, pending, result)

        result.folders_failed = [ctx.folder_id for ctx, _ in chain.failed_folders]
        logger.info(
            f"Owner {owner}: wrote {result.items_written} items in {result.batches_written} batches, "
            f"drained {len(result.folders_drained)} folders"
            + (f", {len(result.folders_failed)} folders failed" if result.folders_failed else "")
        )
        return result

    def _commit(self, items: list[MailboxItem], drained: list[DrainedFolder], result: ExtractionResult) -> None:
        if items:
            # Raises StoreWriteError; cursors below stay untouched then
            result.items_written += self.writer.write(items)
            result.batches_written += 1

        for folder in drained:
            result.folders_drained.append(folder.context.folder_id)
            if not folder.changed:
                continue
            try:
                save_folder_cursor(folder.context, folder.cursor)
            except CursorStoreError as e:
                logger.error(f"{e} (folder will be re-extracted on the next run)")
                result.cursor_failures.append(folder.context.folder_id)
                continue
            result.cursors_saved.append(folder.context.folder_id)
            logger.info(
                f"Folder {folder.context.folder_id} for {folder.context.owner} drained "
                f"({folder.items} new items, cursor offset {folder.cursor.offset})"
            )
