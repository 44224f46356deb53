"""Retry decoration for remote mailbox calls."""

from __future__ import annotations

from typing import Optional, Sequence

from loguru import logger
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from mailharvest.application.ports.remote_mail import (
    GetItemsRequest,
    ItemIdPage,
    ListItemsRequest,
    RemoteMailClient,
)
from mailharvest.domain.entities.mailbox_item import MailboxItem
from mailharvest.domain.errors import RemoteCallError


def _is_retryable(exc: BaseException) -> bool:
    # Protocol-level refusals won't change on retry; dropped connections might
    if isinstance(exc, RemoteCallError):
        return exc.is_transport
    return isinstance(exc, OSError)


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    logger.warning(f"Remote call failed (attempt {state.attempt_number}), retrying: {exc}")


class RetryingMailClient:
    """Wraps a RemoteMailClient so each call is retried on transport failures."""

    def __init__(
        self,
        client: RemoteMailClient,
        attempts: int = 3,
        wait_min: float = 1.0,
        wait_max: float = 30.0,
    ) -> None:
        self.client = client
        self._retrying = Retrying(
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(max(attempts, 1)),
            wait=wait_exponential(multiplier=wait_min, min=wait_min, max=wait_max),
            before_sleep=_log_retry,
            reraise=True,
        )

    def discover_folders(self, root: str, owner: str) -> Sequence[str]:
        return self._retrying(self.client.discover_folders, root, owner)

    def list_item_ids(self, request: ListItemsRequest) -> ItemIdPage:
        return self._retrying(self.client.list_item_ids, request)

    def get_item_details(self, request: GetItemsRequest) -> Sequence[MailboxItem]:
        return self._retrying(self.client.get_item_details, request)

    def get_change_token(self, folder_id: str, owner: str) -> Optional[str]:
        return self._retrying(self.client.get_change_token, folder_id, owner)
