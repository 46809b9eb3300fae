"""Immutable message value.

Every modification returns a new Message; headers are exposed through a
read-only mapping so concurrent stages can never mutate shared state.
"""

import time
import uuid
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

CONTENT_TYPE = "content-type"
# Header spelling used by the messaging framework; read as an alias
CONTENT_TYPE_ALIASES = (CONTENT_TYPE, "contentType")
ORIGINAL_CONTENT_TYPE = "originalContentType"

ID = "id"
TIMESTAMP = "timestamp"
READ_ONLY_HEADERS = frozenset({ID, TIMESTAMP})


@dataclass(frozen=True)
class Message:
    """A payload plus a read-only header mapping."""

    payload: Any
    headers: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @classmethod
    def create(cls, payload: Any, headers: Optional[Mapping[str, Any]] = None) -> "Message":
        """Build a message stamped with ``id`` and ``timestamp`` headers."""
        stamped = {ID: str(uuid.uuid4()), TIMESTAMP: int(time.time() * 1000)}
        stamped.update(headers or {})
        return cls(payload, stamped)

    @property
    def content_type(self) -> Optional[str]:
        for name in CONTENT_TYPE_ALIASES:
            value = self.headers.get(name)
            if value is not None:
                return str(value)
        return None

    @property
    def id(self) -> Optional[str]:
        value = self.headers.get(ID)
        return None if value is None else str(value)

    def with_payload(self, payload: Any) -> "Message":
        return replace(self, payload=payload)

    def with_header(self, name: str, value: Any) -> "Message":
        return self.with_headers({name: value})

    def with_headers(self, headers: Mapping[str, Any]) -> "Message":
        merged = dict(self.headers)
        merged.update(headers)
        return Message(self.payload, merged)

    def with_content_type(self, content_type: str) -> "Message":
        """Set the content type under the canonical header name only."""
        merged = {k: v for k, v in self.headers.items() if k not in CONTENT_TYPE_ALIASES}
        merged[CONTENT_TYPE] = content_type
        return Message(self.payload, merged)

    def without_headers(self, names: Iterable[str]) -> "Message":
        drop = set(names)
        if not drop & set(self.headers):
            return self
        return Message(self.payload, {k: v for k, v in self.headers.items() if k not in drop})


__all__ = [
    "Message",
    "CONTENT_TYPE",
    "CONTENT_TYPE_ALIASES",
    "ORIGINAL_CONTENT_TYPE",
    "ID",
    "TIMESTAMP",
    "READ_ONLY_HEADERS",
]
