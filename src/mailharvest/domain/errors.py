"""Error taxonomy for mailbox extraction."""

from __future__ import annotations

from typing import Optional


class ExtractionError(Exception):
    """Base class for everything the extraction pipeline raises."""


class RemoteCallError(ExtractionError):
    """A remote mailbox call failed at the transport or protocol level.

    ``reason`` is a machine-readable code: ``"TRANSPORT"`` for connection and
    timeout failures, otherwise the response code the service returned.
    """

    TRANSPORT = "TRANSPORT"

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(f"{reason}: {message}")
        self.reason = reason
        self.message = message

    @property
    def is_transport(self) -> bool:
        return self.reason == self.TRANSPORT


class _WrappedError(ExtractionError):
    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause

    @property
    def reason(self) -> Optional[str]:
        return getattr(self.cause, "reason", None)


class DiscoveryError(_WrappedError):
    """Folder enumeration failed. Fatal for the owner's run."""


class RemoteListError(_WrappedError):
    """An item-id page request failed. Fatal for the current folder."""


class RemoteFetchError(_WrappedError):
    """A detail batch fetch failed. Fatal for the current folder."""


class StoreWriteError(_WrappedError):
    """Writing a batch to the destination store failed."""


class CursorStoreError(_WrappedError):
    """Reading or persisting a sync cursor failed."""
