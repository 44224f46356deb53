from mailharvest.application.use_cases.extract_mailbox import ExtractionResult, ExtractMailboxUseCase
from mailharvest.application.use_cases.extract_owners import OwnerOutcome, run_owners

__all__ = [
    "ExtractMailboxUseCase",
    "ExtractionResult",
    "OwnerOutcome",
    "run_owners",
]
