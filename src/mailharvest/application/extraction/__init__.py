"""Extraction primitives: discovery, paging, batching and the folder chain."""

from mailharvest.application.extraction.batching import BatchDetailFetcher, iter_batches
from mailharvest.application.extraction.chain import ChainedFolderIterator, DrainedFolder
from mailharvest.application.extraction.cursor import FolderCursor
from mailharvest.application.extraction.discovery import FolderDiscovery
from mailharvest.application.extraction.folder_iterator import FolderItemIterator
from mailharvest.application.extraction.paging import IdPageResult, PagedItemIdLister
from mailharvest.application.extraction.state import EXHAUSTED, NEED_DATA, ExtractionState
from mailharvest.application.extraction.writer import MailWriter

__all__ = [
    "BatchDetailFetcher",
    "iter_batches",
    "ChainedFolderIterator",
    "DrainedFolder",
    "FolderCursor",
    "FolderDiscovery",
    "FolderItemIterator",
    "IdPageResult",
    "PagedItemIdLister",
    "ExtractionState",
    "NEED_DATA",
    "EXHAUSTED",
    "MailWriter",
]
