from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

DEFAULT_KEY_HEADER = "Item ID"


@dataclass(frozen=True)
class MailboxItem:
    """A single extracted item: an ordered, read-only set of headers."""

    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze a private copy so callers can't mutate the item afterwards
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def header_keys(self) -> tuple[str, ...]:
        return tuple(self.headers.keys())

    def get_header(self, name: str) -> Optional[str]:
        return self.headers.get(name)

    def has_header(self, name: str) -> bool:
        return name in self.headers

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MailboxItem):
            return NotImplemented
        return list(self.headers.items()) == list(other.headers.items())

    def __hash__(self) -> int:
        return hash(tuple(self.headers.items()))

    def __repr__(self) -> str:
        key = self.headers.get(DEFAULT_KEY_HEADER)
        return f"MailboxItem({DEFAULT_KEY_HEADER}={key!r}, headers={len(self.headers)})"
