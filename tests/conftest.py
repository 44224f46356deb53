from __future__ import annotations

import pytest

from mailharvest.application.extraction.writer import MailWriter
from mailharvest.application.use_cases import ExtractMailboxUseCase
from tests.helpers import InMemoryCursorStore, InMemoryStore


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def cursor_store() -> InMemoryCursorStore:
    return InMemoryCursorStore()


@pytest.fixture
def make_use_case(store, cursor_store):
    def _make(client, **kwargs) -> ExtractMailboxUseCase:
        kwargs.setdefault("page_size", 1000)
        kwargs.setdefault("detail_batch_size", 50)
        return ExtractMailboxUseCase(
            client=client,
            writer=MailWriter(store),
            cursor_store=cursor_store,
            **kwargs,
        )

    return _make
