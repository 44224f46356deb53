"""One continuous item sequence across all of an owner's folders."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from loguru import logger

from mailharvest.application.extraction.batching import DEFAULT_BATCH_SIZE, BatchDetailFetcher
from mailharvest.application.extraction.cursor import FolderCursor
from mailharvest.application.extraction.discovery import FolderDiscovery
from mailharvest.application.extraction.folder_iterator import FolderItemIterator, StepResult
from mailharvest.application.extraction.paging import PagedItemIdLister
from mailharvest.application.extraction.state import EXHAUSTED, NEED_DATA, ExtractionState
from mailharvest.application.ports.cursor_store import SyncCursorStore
from mailharvest.application.ports.remote_mail import MAX_PAGE_SIZE, RemoteMailClient
from mailharvest.domain.entities.folder_context import FolderContext
from mailharvest.domain.entities.mailbox_item import MailboxItem
from mailharvest.domain.errors import RemoteFetchError, RemoteListError

IteratorFactory = Callable[[FolderContext], FolderItemIterator]


@dataclass(frozen=True)
class DrainedFolder:
    """A folder whose items have all been delivered."""

    context: FolderContext
    cursor: FolderCursor
    changed: bool
    items: int


class ChainedFolderIterator:
    """Flattens per-folder iterators into one lazy sequence.

    Folders are taken from a FIFO queue in discovery order, with at most one
    folder iterator alive at a time. Building that iterator may hit the remote
    service; failures there always propagate. List and fetch failures while
    iterating a folder propagate too, unless ``skip_failed_folders`` is set, in
    which case the folder is recorded in ``failed_folders`` and skipped without
    its cursor being advanced.
    """

    def __init__(
        self,
        folders: Iterable[FolderContext],
        iterator_factory: IteratorFactory,
        skip_failed_folders: bool = False,
    ) -> None:
        self._queue: deque[FolderContext] = deque(folders)
        self._factory = iterator_factory
        self._active: Optional[FolderItemIterator] = None
        self._finished = False
        self._drained: list[DrainedFolder] = []
        self.skip_failed_folders = skip_failed_folders
        self.failed_folders: list[tuple[FolderContext, Exception]] = []

    @classmethod
    def for_owner(
        cls,
        client: RemoteMailClient,
        cursor_store: SyncCursorStore,
        owner: str,
        root: str = "",
        page_size: int = MAX_PAGE_SIZE,
        batch_size: int = DEFAULT_BATCH_SIZE,
        skip_failed_folders: bool = False,
    ) -> ChainedFolderIterator:
        """Discover the owner's folders and chain them. Raises ``DiscoveryError``."""
        folder_ids = FolderDiscovery(client).discover(root, owner)
        if not folder_ids:
            logger.warning(f"Did not find any folders for {owner}")

        lister = PagedItemIdLister(client, page_size=page_size)
        fetcher = BatchDetailFetcher(client, batch_size=batch_size)
        contexts = [FolderContext(folder_id=f, owner=owner, cursor_store=cursor_store) for f in folder_ids]
        return cls(
            contexts,
            lambda ctx: FolderItemIterator(client, ctx, lister, fetcher),
            skip_failed_folders=skip_failed_folders,
        )

    @property
    def state(self) -> ExtractionState:
        if self._finished:
            return ExtractionState.EXHAUSTED
        if self._active is None:
            return ExtractionState.AWAITING_FOLDER
        return self._active.state

    @property
    def pending_folders(self) -> int:
        return len(self._queue)

    @property
    def active_folder(self) -> Optional[FolderContext]:
        return self._active.context if self._active else None

    def take_drained(self) -> list[DrainedFolder]:
        """Folders drained since the last call, in drain order."""
        drained, self._drained = self._drained, []
        return drained

    def step(self) -> StepResult:
        if self._finished:
            return EXHAUSTED

        if self._active is None:
            if not self._queue:
                self._finished = True
                logger.debug("All folders drained")
                return EXHAUSTED
            context = self._queue.popleft()
            logger.debug(f"Starting folder {context.folder_id} for {context.owner}")
            self._active = self._factory(context)
            return NEED_DATA

        try:
            result = self._active.step()
        except (RemoteListError, RemoteFetchError) as e:
            if not self.skip_failed_folders:
                raise
            logger.error(f"Skipping folder {self._active.folder_id}: {e}")
            self.failed_folders.append((self._active.context, e))
            self._active = None
            return NEED_DATA

        if result is EXHAUSTED:
            active = self._active
            self._drained.append(
                DrainedFolder(
                    context=active.context,
                    cursor=active.cursor(),
                    changed=active.cursor_changed(),
                    items=active.items_delivered,
                )
            )
            self._active = None
            return NEED_DATA
        return result

    def __iter__(self) -> ChainedFolderIterator:
        return self

    def __next__(self) -> MailboxItem:
        while True:
            result = self.step()
            if result is EXHAUSTED:
                raise StopIteration
            if result is not NEED_DATA:
                return result
