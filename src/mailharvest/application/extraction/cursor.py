"""Encoding of the per-folder sync cursor."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

from loguru import logger


@dataclass(frozen=True)
class FolderCursor:
    # Number of folder entries already persisted, plus the remote change token
    # (for IMAP, UIDVALIDITY plus the expunge count) that the offset is valid for
    offset: int = 0
    change_token: Optional[str] = None

    def encode(self) -> bytes:
        return json.dumps(
            {"offset": self.offset, "change_token": self.change_token},
            sort_keys=True,
        ).encode("utf-8")

    @classmethod
    def decode(cls, raw: Optional[bytes]) -> Optional[FolderCursor]:
        """Parse a stored cursor. Missing or unreadable cursors mean "from the beginning"."""
        if not raw:
            return None
        try:
            data = json.loads(raw.decode("utf-8"))
            offset = int(data.get("offset", 0))
        except (UnicodeDecodeError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable sync cursor {raw[:64]!r}: {e}")
            return None

        token = data.get("change_token")
        return cls(offset=max(offset, 0), change_token=str(token) if token is not None else None)

    def resume_offset(self, current_token: Optional[str]) -> int:
        """Offset to resume at, or 0 when the remote folder was rebuilt since."""
        if current_token is not None and self.change_token is not None and current_token != self.change_token:
            return 0
        return self.offset
