"""Milvus implementation of StoreClient for extracted mailbox rows."""

from __future__ import annotations

import json
from typing import Mapping

from loguru import logger

from mailharvest.infrastructure.milvus_client import MilvusClientWrapper

COLLECTION_NAME = "mailbox_items"


class MilvusItemStore:
    """Row store on a Milvus collection: primary key = row key, columns as JSON.

    ``put`` only buffers; ``flush`` upserts everything buffered in one call.
    Re-putting a row key overwrites the previous row.
    """

    def __init__(self, client: MilvusClientWrapper, collection_name: str = COLLECTION_NAME):
        self.client = client
        self.collection_name = collection_name
        self._pending: dict[str, dict] = {}
        self.client.ensure_keyed_collection(collection_name)

    def put(self, row_key: bytes, columns: Mapping[bytes, bytes]) -> None:
        key = row_key.decode("utf-8")
        decoded = {q.decode("utf-8"): v.decode("utf-8", errors="replace") for q, v in columns.items()}
        self._pending[key] = {
            "id": key,
            "placeholder_vector": self.client.placeholder_vector(),
            "columns_json": json.dumps(decoded, ensure_ascii=False),
        }

    def flush(self) -> None:
        if not self._pending:
            return
        rows = list(self._pending.values())
        self.client.client.upsert(collection_name=self.collection_name, data=rows)
        self._pending.clear()
        logger.debug(f"Upserted {len(rows)} rows into {self.collection_name}")
