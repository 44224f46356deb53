from __future__ import annotations

from enum import Enum


class ExtractionState(str, Enum):
    """Where an extraction state machine will go on its next step."""

    AWAITING_FOLDER = "awaiting_folder"
    LISTING_PAGE = "listing_page"
    FETCHING_BATCH = "fetching_batch"
    DELIVERING_BUFFERED = "delivering_buffered"
    EXHAUSTED = "exhausted"


class _Signal:
    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return self.name


# Returned by step() when state advanced without producing an item
NEED_DATA = _Signal("NEED_DATA")
# Returned by step() once the sequence has nothing left
EXHAUSTED = _Signal("EXHAUSTED")
