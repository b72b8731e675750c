"""Immutable metadata models and the object stream handle."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, BinaryIO, NamedTuple, Optional

if TYPE_CHECKING:
    from datetime import datetime
    from types import TracebackType


@dataclasses.dataclass(frozen=True, eq=False)
class ObjectInfo:
    """Immutable snapshot of object metadata.

    :param key: Object key within the bucket.
    :param size: Object size in bytes.
    :param last_modified: Last modification time, ``None`` for prefixes.
    :param etag: Optional entity tag.
    :param content_type: Optional MIME type.
    :param metadata: User metadata stored with the object.
    :param is_prefix: ``True`` for a common prefix produced by a
        non-recursive listing; its key ends with ``/``.
    """

    key: str
    size: int
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    content_type: Optional[str] = None
    metadata: dict[str, str] = dataclasses.field(default_factory=dict)
    is_prefix: bool = False

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ObjectInfo):
            return self.key == other.key
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.key)


class KeyValue(NamedTuple):
    """A key and its value, as produced by ``Store.list_body``."""

    key: str
    value: bytes


class ObjectReader:
    """A live object stream together with its metadata.

    Reads are limited to ``info.size`` bytes. The caller owns the reader and
    must close it, directly or with a ``with`` block.

    :param stream: Open binary stream positioned at the first byte to return.
    :param info: Metadata of the object; ``size`` is the number of readable bytes.
    """

    def __init__(self, stream: BinaryIO, info: ObjectInfo) -> None:
        self._stream = stream
        self._info = info
        self._remaining = info.size
        self._closed = False

    def __repr__(self) -> str:
        return f"ObjectReader(key={self._info.key!r}, size={self._info.size})"

    @property
    def closed(self) -> bool:
        return self._closed

    def stat(self) -> ObjectInfo:
        """Return the metadata captured when the object was opened."""
        return self._info

    def read(self, size: int = -1) -> bytes:
        if self._closed:
            raise ValueError("I/O operation on closed ObjectReader")
        if self._remaining <= 0:
            return b""
        if size < 0 or size > self._remaining:
            size = self._remaining
        data = self._stream.read(size)
        self._remaining -= len(data)
        return data

    def readable(self) -> bool:
        return True

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._stream.close()

    def __enter__(self) -> ObjectReader:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
