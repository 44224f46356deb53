"""Store implementations."""

from mailharvest.infrastructure.stores.milvus_cursor_store import MilvusCursorStore
from mailharvest.infrastructure.stores.milvus_item_store import MilvusItemStore
from mailharvest.infrastructure.stores.sqlite_cursor_store import SQLiteCursorStore

__all__ = [
    "MilvusItemStore",
    "MilvusCursorStore",
    "SQLiteCursorStore",
]
