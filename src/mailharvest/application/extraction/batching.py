"""Bounded batch retrieval of item details."""

from __future__ import annotations

from typing import Iterator, Sequence

from loguru import logger

from mailharvest.application.ports.remote_mail import GetItemsRequest, RemoteMailClient
from mailharvest.domain.entities.mailbox_item import MailboxItem
from mailharvest.domain.errors import RemoteCallError, RemoteFetchError

# Kept small so individual detail responses stay small
DEFAULT_BATCH_SIZE = 50


def iter_batches(ids: Sequence[str], size: int) -> Iterator[tuple[str, ...]]:
    """Split ids into consecutive non-empty slices of at most ``size``."""
    size = max(size, 1)
    for start in range(0, len(ids), size):
        yield tuple(ids[start:start + size])


class BatchDetailFetcher:
    def __init__(self, client: RemoteMailClient, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self.client = client
        self.batch_size = max(batch_size, 1)

    def fetch_batch(self, owner: str, folder_id: str, ids: Sequence[str]) -> list[MailboxItem]:
        """Fetch one batch. Callers must keep ``len(ids)`` within the batch bound."""
        if not ids:
            return []
        if len(ids) > self.batch_size:
            raise ValueError(f"Batch of {len(ids)} ids exceeds bound {self.batch_size}")

        request = GetItemsRequest(owner=owner, folder_id=folder_id, item_ids=tuple(ids))
        try:
            items = list(self.client.get_item_details(request))
        except RemoteCallError as e:
            logger.error(f"Failed to get {len(ids)} item details from {folder_id} for {owner}: {e}")
            raise RemoteFetchError(f"Failed to get item details from {folder_id} for {owner}: {e}", e) from e
        except OSError as e:
            logger.error(f"Transport failure fetching details from {folder_id} for {owner}: {e}")
            raise RemoteFetchError(f"Transport failure fetching details from {folder_id} for {owner}: {e}", e) from e

        logger.debug(f"Got {len(items)} item details from {folder_id}")
        return items

    def fetch(self, owner: str, folder_id: str, ids: Sequence[str]) -> Iterator[MailboxItem]:
        """Lazily yield details for ``ids`` in order, one remote call per batch.

        A failed batch raises and ends the sequence; later batches are not tried.
        """
        for batch in iter_batches(ids, self.batch_size):
            yield from self.fetch_batch(owner, folder_id, batch)
