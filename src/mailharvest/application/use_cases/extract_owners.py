"""Run independent per-owner extractions."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from loguru import logger

from mailharvest.application.use_cases.extract_mailbox import ExtractionResult, ExtractMailboxUseCase

# Builds a fresh use case per owner so no mutable state is shared between owners
UseCaseFactory = Callable[[str], ExtractMailboxUseCase]


@dataclass
class OwnerOutcome:
    owner: str
    result: Optional[ExtractionResult] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _run_one(owner: str, factory: UseCaseFactory) -> OwnerOutcome:
    with logger.contextualize(owner=owner):
        logger.info(f"Extracting mailbox of {owner}")
        try:
            result = factory(owner).run(owner)
        except Exception as e:
            # One owner's failure must not stop the others
            logger.error(f"Extraction for {owner} failed: {type(e).__name__}: {e}")
            return OwnerOutcome(owner=owner, error=e)
        return OwnerOutcome(owner=owner, result=result)


def run_owners(owners: Sequence[str], factory: UseCaseFactory, workers: int = 1) -> list[OwnerOutcome]:
    """Extract every owner, sequentially or on a thread pool. Outcomes keep ``owners`` order."""
    if workers <= 1 or len(owners) <= 1:
        return [_run_one(owner, factory) for owner in owners]

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="owner") as pool:
        futures = [pool.submit(_run_one, owner, factory) for owner in owners]
        return [f.result() for f in futures]
