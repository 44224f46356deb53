"""Milvus-based sync cursor store."""

from __future__ import annotations

import base64
import json
from typing import Optional

from loguru import logger

from mailharvest.infrastructure.milvus_client import MilvusClientWrapper


COLLECTION_NAME = "sync_cursors"


class MilvusCursorStore:
    """Store per-(owner, folder) sync cursors in Milvus."""

    def __init__(self, client: MilvusClientWrapper, collection_name: str = COLLECTION_NAME):
        self.client = client
        self.collection_name = collection_name
        self.client.ensure_keyed_collection(collection_name)

    def _make_id(self, owner: str, folder_id: str) -> str:
        return json.dumps([owner, folder_id])

    def get(self, owner: str, folder_id: str) -> Optional[bytes]:
        """Load cursor for owner/folder."""
        cursor_id = self._make_id(owner, folder_id)

        results = self.client.client.get(
            collection_name=self.collection_name,
            ids=[cursor_id],
            output_fields=["cursor_b64"],
        )

        if not results or not results[0].get("cursor_b64"):
            logger.debug(f"No cursor found for {owner}:{folder_id}")
            return None

        return base64.b64decode(results[0]["cursor_b64"])

    def put(self, owner: str, folder_id: str, cursor: bytes) -> None:
        """Save cursor for owner/folder."""
        data = {
            "id": self._make_id(owner, folder_id),
            "placeholder_vector": self.client.placeholder_vector(),
            "owner": owner,
            "folder_id": folder_id,
            "cursor_b64": base64.b64encode(cursor).decode("ascii"),
        }

        self.client.client.upsert(
            collection_name=self.collection_name,
            data=[data],
        )
        logger.debug(f"Saved cursor for {owner}:{folder_id}")

    def delete_owner(self, owner: str) -> int:
        """Remove every cursor of ``owner``."""
        owner_literal = json.dumps(owner)
        result = self.client.client.delete(
            collection_name=self.collection_name,
            filter=f"owner == {owner_literal}",
        )
        count = result.get("delete_count", 0) if isinstance(result, dict) else len(result or [])
        logger.info(f"Deleted {count} cursors for {owner}")
        return count
