"""One-shot extraction of one or more mailboxes into the destination store."""

from __future__ import annotations

import argparse
import sys

from loguru import logger

from mailharvest.application.extraction.retry import RetryingMailClient
from mailharvest.application.extraction.writer import MailWriter
from mailharvest.application.ports.cursor_store import SyncCursorStore
from mailharvest.application.ports.remote_mail import RemoteMailClient
from mailharvest.application.use_cases import ExtractMailboxUseCase, run_owners
from mailharvest.infrastructure import Settings, get_milvus_client, get_settings
from mailharvest.infrastructure.email.providers.imap import ImapMailClient
from mailharvest.infrastructure.stores import MilvusCursorStore, MilvusItemStore, SQLiteCursorStore

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[owner]}</cyan> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str) -> None:
    logger.remove()
    logger.configure(extra={"owner": "-"})
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)


def build_cursor_store(settings: Settings) -> SyncCursorStore:
    if settings.cursor_backend == "milvus":
        return MilvusCursorStore(get_milvus_client(), settings.milvus_cursor_collection)
    return SQLiteCursorStore(settings.sqlite_path)


def build_remote_client(settings: Settings) -> RemoteMailClient:
    client: RemoteMailClient = ImapMailClient(
        host=settings.imap_host,
        port=settings.imap_port,
        timeout=settings.imap_timeout_seconds,
    )
    if settings.retry_attempts > 1:
        client = RetryingMailClient(client, attempts=settings.retry_attempts)
    return client


class ExtractorFactory:
    """Builds one fully independent use case per owner (own IMAP connection and store buffer)."""

    def __init__(self, settings: Settings, cursor_store: SyncCursorStore) -> None:
        self.settings = settings
        self.cursor_store = cursor_store
        self._clients: list[RemoteMailClient] = []

    def __call__(self, owner: str) -> ExtractMailboxUseCase:
        s = self.settings
        client = build_remote_client(s)
        self._clients.append(client)
        store = MilvusItemStore(get_milvus_client(), s.milvus_items_collection)
        return ExtractMailboxUseCase(
            client=client,
            writer=MailWriter(store, key_header=s.key_header, column_family=s.column_family),
            cursor_store=self.cursor_store,
            root=s.root_folder,
            page_size=s.page_size,
            detail_batch_size=s.detail_batch_size,
            write_batch_size=s.write_batch_size,
            on_folder_error=s.on_folder_error,
        )

    def close(self) -> None:
        for client in self._clients:
            inner = getattr(client, "client", client)
            if hasattr(inner, "disconnect"):
                inner.disconnect()
        self._clients.clear()


def main() -> int:
    parser = argparse.ArgumentParser(description="Extract mailbox items into the keyed store")
    parser.add_argument("--owner", action="append", default=None, help="Owner to extract (repeatable; default: OWNERS)")
    parser.add_argument("--root", default=None, help="Root folder (default: ROOT_FOLDER)")
    parser.add_argument("--workers", type=int, default=None, help="Owners extracted concurrently")
    parser.add_argument("--reset-cursors", action="store_true", help="Forget stored cursors of the owners and exit")
    parser.add_argument("--check", action="store_true", help="Check the Milvus connection and exit")
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level)

    if args.check:
        health = get_milvus_client().health_check()
        print(f"Milvus {health['uri']}: {health['status']}")
        return 0 if health["status"] == "healthy" else 1

    owners = args.owner or settings.owner_list
    if not owners:
        logger.error("No owners configured! Set OWNERS or pass --owner")
        return 1

    if args.root is not None:
        settings = settings.model_copy(update={"root_folder": args.root})

    cursor_store = build_cursor_store(settings)

    if args.reset_cursors:
        for owner in owners:
            count = cursor_store.delete_owner(owner)
            print(f"Reset {count} cursors for {owner}")
        return 0

    factory = ExtractorFactory(settings, cursor_store)
    try:
        outcomes = run_owners(owners, factory, workers=args.workers or settings.workers)
    finally:
        factory.close()

    for outcome in outcomes:
        if outcome.ok:
            r = outcome.result
            print(f"{outcome.owner}: {r.items_written} items, {len(r.folders_drained)} folders")
        else:
            print(f"{outcome.owner}: FAILED ({outcome.error})")

    return 0 if all(o.ok for o in outcomes) else 1


if __name__ == "__main__":
    raise SystemExit(main())
