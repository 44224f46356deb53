from __future__ import annotations
from typing import Mapping, Protocol


class StoreClient(Protocol):
    def put(self, row_key: bytes, columns: Mapping[bytes, bytes]) -> None: ...
    def flush(self) -> None: ...
