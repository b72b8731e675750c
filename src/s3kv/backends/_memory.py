"""In-process object store built on the standard library."""

from __future__ import annotations

import dataclasses
import hashlib
import io
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, BinaryIO

from s3kv._errors import NotFound
from s3kv._models import ObjectInfo, ObjectReader
from s3kv._object_store import ObjectStore, iter_chunks

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from s3kv._context import Context
    from s3kv._options import (
        GetObjectOptions,
        ListObjectsOptions,
        PutObjectOptions,
        RemoveObjectOptions,
        StatObjectOptions,
    )


@dataclasses.dataclass(frozen=True)
class _Blob:
    data: bytes
    last_modified: datetime
    etag: str
    content_type: str | None
    metadata: dict[str, str]


class MemoryObjectStore(ObjectStore):
    """Object store that keeps buckets in memory, using only the standard library.

    Follows S3 semantics where the key-value layer depends on them: keys are
    opaque strings (a trailing ``/`` is just a character), removing a missing
    key succeeds, and listings come back in lexicographic order.

    :param buckets: Names of buckets to create up front.
    """

    def __init__(self, buckets: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._buckets: dict[str, dict[str, _Blob]] = {name: {} for name in buckets}

    @property
    def name(self) -> str:
        return "memory"

    def __repr__(self) -> str:
        with self._lock:
            names = sorted(self._buckets)
        return f"MemoryObjectStore(buckets={names!r})"

    def make_bucket(self, bucket: str) -> None:
        """Create ``bucket`` if it does not exist yet."""
        with self._lock:
            self._buckets.setdefault(bucket, {})

    # region: helpers

    def _bucket(self, bucket: str) -> dict[str, _Blob]:
        """Return the bucket's object table. Caller holds the lock."""
        try:
            return self._buckets[bucket]
        except KeyError:
            raise NotFound(f"Bucket not found: {bucket}", key=bucket, backend=self.name) from None

    def _lookup(self, bucket: str, key: str) -> _Blob:
        with self._lock:
            blob = self._bucket(bucket).get(key)
        if blob is None:
            raise NotFound(f"Object not found: {key}", key=key, backend=self.name)
        return blob

    @staticmethod
    def _to_info(key: str, blob: _Blob) -> ObjectInfo:
        return ObjectInfo(
            key=key,
            size=len(blob.data),
            last_modified=blob.last_modified,
            etag=blob.etag,
            content_type=blob.content_type,
            metadata=dict(blob.metadata),
        )

    # endregion

    def bucket_exists(self, bucket: str, ctx: Context) -> bool:
        ctx.raise_if_canceled(bucket)
        with self._lock:
            return bucket in self._buckets

    def put_object(
        self,
        bucket: str,
        key: str,
        stream: BinaryIO,
        size: int,
        opts: PutObjectOptions,
        ctx: Context,
    ) -> None:
        with self._lock:
            self._bucket(bucket)
        data = b"".join(iter_chunks(stream, size, ctx, key=key, backend=self.name))
        blob = _Blob(
            data=data,
            last_modified=datetime.now(tz=timezone.utc),
            etag=hashlib.md5(data).hexdigest(),  # noqa: S324
            content_type=opts.content_type,
            metadata=dict(opts.metadata),
        )
        ctx.raise_if_canceled(key)
        with self._lock:
            self._bucket(bucket)[key] = blob

    def get_object(self, bucket: str, key: str, opts: GetObjectOptions, ctx: Context) -> ObjectReader:
        ctx.raise_if_canceled(key)
        blob = self._lookup(bucket, key)
        data = blob.data[opts.offset :]
        if opts.length is not None:
            data = data[: opts.length]
        info = dataclasses.replace(self._to_info(key, blob), size=len(data))
        return ObjectReader(io.BytesIO(data), info)

    def stat_object(self, bucket: str, key: str, opts: StatObjectOptions, ctx: Context) -> ObjectInfo:
        ctx.raise_if_canceled(key)
        return self._to_info(key, self._lookup(bucket, key))

    def remove_object(self, bucket: str, key: str, opts: RemoveObjectOptions, ctx: Context) -> None:
        ctx.raise_if_canceled(key)
        with self._lock:
            self._bucket(bucket).pop(key, None)

    def list_objects(self, bucket: str, opts: ListObjectsOptions, ctx: Context) -> Iterator[ObjectInfo]:
        ctx.raise_if_canceled(opts.prefix)
        with self._lock:
            snapshot = sorted(
                (key, blob) for key, blob in self._bucket(bucket).items() if key.startswith(opts.prefix)
            )
        seen_prefixes: set[str] = set()
        for key, blob in snapshot:
            ctx.raise_if_canceled(opts.prefix)
            if opts.start_after and key <= opts.start_after:
                continue
            if not opts.recursive:
                slash = key.find("/", len(opts.prefix))
                if slash != -1:
                    common = key[: slash + 1]
                    if common not in seen_prefixes:
                        seen_prefixes.add(common)
                        yield ObjectInfo(key=common, size=0, is_prefix=True)
                    continue
            yield self._to_info(key, blob)

    def copy_object(self, bucket: str, src: str, dst: str, ctx: Context) -> None:
        ctx.raise_if_canceled(src)
        blob = self._lookup(bucket, src)
        copied = dataclasses.replace(blob, last_modified=datetime.now(tz=timezone.utc))
        with self._lock:
            self._bucket(bucket)[dst] = copied
