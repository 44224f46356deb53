"""Extraction worker - re-extracts every owner's mailbox at a configurable interval."""

from __future__ import annotations

import signal
import time
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from mailharvest.application.use_cases import OwnerOutcome, run_owners
from mailharvest.cli.extract_once import ExtractorFactory, build_cursor_store, configure_logging
from mailharvest.infrastructure import Settings, get_settings


@dataclass
class WorkerStats:
    """Track worker statistics."""
    total_items: int = 0
    total_errors: int = 0
    last_poll: datetime | None = None
    polls_completed: int = 0
    by_owner: dict[str, int] = field(default_factory=dict)

    def record(self, outcome: OwnerOutcome) -> None:
        if not outcome.ok:
            self.total_errors += 1
            return
        count = outcome.result.items_written
        self.total_items += count
        self.by_owner[outcome.owner] = self.by_owner.get(outcome.owner, 0) + count


class ExtractionWorker:
    """
    Multi-owner extraction worker.

    Runs an incremental extraction pass over all owners, then sleeps for
    ``poll_minutes``. Cursors make each pass pick up only new items.
    """

    def __init__(self, settings: Settings, owners: list[str]):
        self.settings = settings
        self.owners = owners
        self.poll_interval = settings.poll_minutes * 60  # Convert to seconds
        self.running = False
        self.stats = WorkerStats()
        self._cursor_store = None

    def _poll_all_owners(self) -> None:
        """Extract all configured owners once."""
        self.stats.last_poll = datetime.now()
        logger.info(f"Starting poll cycle #{self.stats.polls_completed + 1}")

        factory = ExtractorFactory(self.settings, self._cursor_store)
        try:
            outcomes = run_owners(self.owners, factory, workers=self.settings.workers)
        finally:
            factory.close()

        for outcome in outcomes:
            self.stats.record(outcome)

        self.stats.polls_completed += 1
        self._log_stats()

    def _log_stats(self) -> None:
        """Log current worker statistics."""
        logger.info(
            f"Worker stats: "
            f"polls={self.stats.polls_completed}, "
            f"items={self.stats.total_items}, "
            f"errors={self.stats.total_errors}, "
            f"by_owner={self.stats.by_owner}"
        )

    def _handle_shutdown(self, signum, frame) -> None:
        """Handle graceful shutdown."""
        logger.info(f"Received signal {signum}, shutting down...")
        self.running = False

    def run(self) -> int:
        """Run the worker loop."""
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)

        logger.info(f"Extraction worker starting with {len(self.owners)} owner(s)")
        logger.info(f"Poll interval: {self.poll_interval // 60} minutes")
        for owner in self.owners:
            logger.info(f"  - {owner}")

        try:
            self._cursor_store = build_cursor_store(self.settings)
        except Exception as e:
            logger.error(f"Failed to initialize cursor store: {e}")
            return 1

        self.running = True

        # Initial poll
        self._poll_all_owners()

        while self.running:
            logger.debug(f"Sleeping for {self.poll_interval} seconds...")

            # Sleep in small increments to respond to signals quickly
            sleep_remaining = self.poll_interval
            while sleep_remaining > 0 and self.running:
                sleep_time = min(sleep_remaining, 10)
                time.sleep(sleep_time)
                sleep_remaining -= sleep_time

            if self.running:
                self._poll_all_owners()

        logger.info("Worker shutdown complete")
        self._log_stats()
        return 0


def main() -> int:
    """Entry point for the extraction worker."""
    settings = get_settings()
    configure_logging(settings.log_level)

    logger.info("=" * 60)
    logger.info(f"{settings.app_name} extraction worker")
    logger.info("=" * 60)

    owners = settings.owner_list
    if not owners:
        logger.error("No owners configured! Set OWNERS")
        return 1

    return ExtractionWorker(settings, owners).run()


if __name__ == "__main__":
    raise SystemExit(main())
