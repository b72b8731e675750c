"""ObjectStore abstract base class — the contract the key-value layer builds on."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, BinaryIO

from s3kv._errors import BackendError, LocalIOError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from s3kv._context import Context
    from s3kv._models import ObjectInfo, ObjectReader
    from s3kv._options import (
        GetObjectOptions,
        ListObjectsOptions,
        PutObjectOptions,
        RemoveObjectOptions,
        StatObjectOptions,
    )

# Chunk size for streamed uploads and local copies
CHUNK_SIZE = 1024 * 1024


class ObjectStore(abc.ABC):
    """Abstract base class for object storage transports.

    An object store only knows buckets, keys and byte streams. Keys are used
    verbatim, including a trailing ``/``. Implementations must be safe to
    call from several threads at once, must check ``ctx`` before each request
    they issue, and must never leak native exceptions: everything is mapped
    to ``s3kv`` errors.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Unique identifier for this object store type (e.g. ``'s3'``)."""

    @abc.abstractmethod
    def bucket_exists(self, bucket: str, ctx: Context) -> bool:
        """Return ``True`` if ``bucket`` exists and is reachable."""

    @abc.abstractmethod
    def put_object(
        self,
        bucket: str,
        key: str,
        stream: BinaryIO,
        size: int,
        opts: PutObjectOptions,
        ctx: Context,
    ) -> None:
        """Store ``size`` bytes read from ``stream`` under ``key``.

        A negative ``size`` stores everything up to EOF.

        :raises BackendError: If the stream ends early or the write is rejected.
        """

    @abc.abstractmethod
    def get_object(self, bucket: str, key: str, opts: GetObjectOptions, ctx: Context) -> ObjectReader:
        """Open ``key`` for streaming.

        :raises NotFound: If the object does not exist.
        """

    @abc.abstractmethod
    def stat_object(self, bucket: str, key: str, opts: StatObjectOptions, ctx: Context) -> ObjectInfo:
        """Return object metadata without transferring data.

        :raises NotFound: If the object does not exist.
        """

    @abc.abstractmethod
    def remove_object(self, bucket: str, key: str, opts: RemoveObjectOptions, ctx: Context) -> None:
        """Remove ``key``. Removing a missing key succeeds."""

    @abc.abstractmethod
    def list_objects(self, bucket: str, opts: ListObjectsOptions, ctx: Context) -> Iterator[ObjectInfo]:
        """Lazily list objects under ``opts.prefix`` in lexicographic key order.

        Non-recursive listings group keys at the next ``/`` after the prefix
        and yield each group once as an ``ObjectInfo`` with ``is_prefix=True``.
        ``opts.max_keys`` is a page size hint; callers enforce their own cap.
        """

    @abc.abstractmethod
    def copy_object(self, bucket: str, src: str, dst: str, ctx: Context) -> None:
        """Server-side copy of ``src`` to ``dst``, replacing ``dst`` if present.

        :raises NotFound: If ``src`` does not exist.
        """

    def close(self) -> None:  # noqa: B027
        """Release resources. Default is a no-op."""


def iter_chunks(stream: BinaryIO, size: int, ctx: Context, *, key: str = "", backend: str = "") -> Iterator[bytes]:
    """Yield ``size`` bytes from ``stream`` in chunks, checking ``ctx`` between them.

    A negative ``size`` reads until EOF.

    :raises BackendError: If the stream ends before ``size`` bytes were read.
    :raises LocalIOError: If reading ``stream`` fails.
    """
    remaining = size
    while remaining != 0:
        ctx.raise_if_canceled(key)
        want = CHUNK_SIZE if remaining < 0 else min(CHUNK_SIZE, remaining)
        try:
            chunk = stream.read(want)
        except OSError as exc:
            raise LocalIOError(f"Cannot read source stream: {exc.strerror or exc}", key=key) from exc
        if not chunk:
            if remaining > 0:
                raise BackendError(
                    f"Stream ended {remaining} bytes short of declared size {size}",
                    key=key,
                    backend=backend or None,
                )
            return
        if remaining > 0:
            remaining -= len(chunk)
        yield chunk
