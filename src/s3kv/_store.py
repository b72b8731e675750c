"""Store — the key-value contract over one bucket."""

from __future__ import annotations

import io
import logging
import threading
from typing import TYPE_CHECKING, BinaryIO

from s3kv._context import Context
from s3kv._errors import AlreadyExists, Canceled, InvalidKey, NotFound, S3KVError
from s3kv._models import KeyValue
from s3kv._options import (
    CopyOptions,
    DelOptions,
    GetInfoOptions,
    GetOptions,
    ListOptions,
    SetOptions,
    StatObjectOptions,
    resolve,
    resolve_list,
)
from s3kv._stream import ResultStream

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence
    from types import TracebackType

    from s3kv._models import ObjectInfo, ObjectReader
    from s3kv._object_store import ObjectStore
    from s3kv._types import Payload

log = logging.getLogger(__name__)

DEFAULT_BUCKET = "teos3"


class Store:
    """A key-value map stored in one bucket.

    Every method takes an optional options object for its call kind. Options
    without a context run under the store's default :attr:`context`.

    A store is safe to share between threads. It does not own the object
    store it was given unless ``close_object_store`` is set, as done by
    :func:`s3kv.connect`.

    :param object_store: Transport used for every request.
    :param bucket: Bucket holding the keys.
    :param context: Default context; a fresh background context if omitted.
    :param max_workers: Cap on concurrent fetches in :meth:`list_body`;
        ``None`` starts one fetch per listed key.
    :param close_object_store: Close ``object_store`` in :meth:`close`.
    """

    def __init__(
        self,
        object_store: ObjectStore,
        bucket: str = DEFAULT_BUCKET,
        *,
        context: Context | None = None,
        max_workers: int | None = None,
        close_object_store: bool = False,
    ) -> None:
        if not bucket or not bucket.strip():
            raise ValueError("bucket must be a non-empty string")
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._object_store = object_store
        self._bucket = bucket
        self._context = context or Context.background()
        self._max_workers = max_workers
        self._close_object_store = close_object_store

    def __repr__(self) -> str:
        return f"Store(backend={self._object_store.name!r}, bucket={self._bucket!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Store):
            return self._object_store is other._object_store and self._bucket == other._bucket
        return NotImplemented

    def __hash__(self) -> int:
        return hash((id(self._object_store), self._bucket))

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def object_store(self) -> ObjectStore:
        return self._object_store

    @property
    def context(self) -> Context:
        """Context used by calls whose options carry none."""
        return self._context

    @context.setter
    def context(self, context: Context) -> None:
        self._context = context

    def close(self) -> None:
        """Close the object store if this store owns it."""
        if self._close_object_store:
            self._object_store.close()

    def __enter__(self) -> Store:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    @staticmethod
    def _require_key(key: str) -> str:
        if not key:
            raise InvalidKey("Key must not be empty", key=key)
        return key

    # region: set and get

    def set(self, key: str, data: Payload, opts: SetOptions | None = None) -> None:
        """Store ``data`` under ``key``, replacing any existing value.

        :raises AlreadyExists: If ``key`` exists and ``opts.overwrite`` is ``False``.
        :raises BackendError: If the object store rejects the write.
        """
        view = memoryview(data)
        self.set_object(key, io.BytesIO(view), view.nbytes, opts)

    def set_object(self, key: str, reader: BinaryIO, size: int, opts: SetOptions | None = None) -> None:
        """Stream ``size`` bytes from ``reader`` into ``key``.

        A negative ``size`` streams until EOF.

        :raises AlreadyExists: If ``key`` exists and ``opts.overwrite`` is ``False``.
        :raises BackendError: If ``reader`` runs short or the write is rejected.
        """
        self._require_key(key)
        resolved = resolve(SetOptions, self._context, opts)
        if not resolved.overwrite and self._exists(key, resolved.context):
            raise AlreadyExists(f"Key already exists: {key}", key=key, backend=self._object_store.name)
        self._object_store.put_object(
            self._bucket, key, reader, size, resolved.object_options, resolved.context
        )

    def get(self, key: str, opts: GetOptions | None = None) -> bytes:
        """Return the value stored under ``key``.

        :raises NotFound: If ``key`` does not exist.
        """
        with self.get_object(key, opts) as reader:
            return reader.read()

    def get_object(self, key: str, opts: GetOptions | None = None) -> ObjectReader:
        """Open ``key`` for streaming. The caller must close the reader.

        :raises NotFound: If ``key`` does not exist.
        """
        self._require_key(key)
        resolved = resolve(GetOptions, self._context, opts)
        return self._object_store.get_object(self._bucket, key, resolved.object_options, resolved.context)

    def get_info(self, key: str, opts: GetInfoOptions | None = None) -> ObjectInfo:
        """Return metadata for ``key`` without reading its value.

        :raises NotFound: If ``key`` does not exist.
        """
        self._require_key(key)
        resolved = resolve(GetInfoOptions, self._context, opts)
        return self._object_store.stat_object(self._bucket, key, resolved.object_options, resolved.context)

    def _exists(self, key: str, ctx: Context) -> bool:
        try:
            self._object_store.stat_object(self._bucket, key, StatObjectOptions(), ctx)
        except NotFound:
            return False
        return True

    # endregion

    # region: delete

    def delete(self, key: str, opts: DelOptions | None = None) -> None:
        """Delete ``key``.

        A key ending with ``/`` is a folder marker: every key directly under
        it is deleted first (folder markers among them recursively), then the
        marker itself. The first failure stops the walk and is raised; the
        marker is only removed once all of its children are gone.
        """
        self._require_key(key)
        resolved = resolve(DelOptions, self._context, opts)
        if key.endswith("/"):
            children = [child for child in self._iter_keys(resolve_list(resolved.context, key)) if child != key]
            log.debug("Deleting %d keys under %r", len(children), key)
            for child in children:
                self.delete(child, DelOptions(context=resolved.context))
        self._object_store.remove_object(self._bucket, key, resolved.object_options, resolved.context)

    # endregion

    # region: listing

    def _iter_keys(self, opts: ListOptions) -> Iterator[str]:
        """Yield listed keys in backend order, stopping at ``max_keys``."""
        limit = opts.object_options.max_keys
        count = 0
        for info in self._object_store.list_objects(self._bucket, opts.object_options, opts.context):
            count += 1
            yield info.key
            if limit and count >= limit:
                return

    def list_len(self, prefix: str, opts: ListOptions | None = None) -> int:
        """Count keys under ``prefix``, stopping early at ``max_keys``."""
        return sum(1 for _ in self._iter_keys(resolve_list(self._context, prefix, opts)))

    def list(self, prefix: str, opts: ListOptions | None = None) -> ResultStream[str]:
        """Stream the keys under ``prefix`` in backend (lexicographic) order.

        Listing runs in a background thread that stays at most one key ahead
        of the consumer. Listing errors are raised from the iteration.
        """
        resolved = resolve_list(self._context, prefix, opts)

        def produce(emit: Callable[[str], bool]) -> None:
            for key in self._iter_keys(resolved):
                if not emit(key):
                    return

        return ResultStream(produce, name=f"s3kv-list:{prefix}")

    def list_ar(self, prefix: str, opts: ListOptions | None = None) -> Sequence[str]:
        """Return the keys under ``prefix`` as a list, in backend order."""
        with self.list(prefix, opts) as keys:
            return list(keys)

    def list_body(self, prefix: str, opts: ListOptions | None = None) -> ResultStream[KeyValue]:
        """Stream ``(key, value)`` pairs for the keys under ``prefix``.

        Values are fetched concurrently, one thread per key (at most
        ``max_workers`` at a time when the store has a cap, counting fetches
        still waiting to hand over their pair), so pairs arrive in completion
        order, not key order. This is best-effort: a key whose fetch fails is
        logged and left out.

        Once the context is canceled no new fetch starts. Pairs already
        fetched are still delivered, then the stream raises
        :class:`~s3kv.Canceled` after every fetch thread has been joined.
        """
        resolved = resolve_list(self._context, prefix, opts)
        ctx = resolved.context
        gate = threading.BoundedSemaphore(self._max_workers) if self._max_workers else None
        abandoned = threading.Event()

        def fetch(key: str, emit: Callable[[KeyValue], bool]) -> None:
            try:
                try:
                    value = self.get(key, GetOptions(context=ctx))
                except Canceled:
                    log.debug("Fetch of %r canceled", key)
                    return
                except S3KVError as exc:
                    log.warning("Skipping %r while listing %r: %s", key, prefix, exc)
                    return
                if not emit(KeyValue(key, value)):
                    abandoned.set()
            finally:
                if gate is not None:
                    gate.release()

        def produce(emit: Callable[[KeyValue], bool]) -> None:
            workers: list[threading.Thread] = []
            try:
                for key in self._iter_keys(resolved):
                    if ctx.canceled:
                        log.info("Listing %r canceled after %d fetches", prefix, len(workers))
                        break
                    if abandoned.is_set():
                        break
                    if gate is not None:
                        gate.acquire()
                    worker = threading.Thread(target=fetch, args=(key, emit), name=f"s3kv-get:{key}", daemon=True)
                    worker.start()
                    workers.append(worker)
            finally:
                for worker in workers:
                    worker.join()
            ctx.raise_if_canceled(prefix)

        return ResultStream(produce, name=f"s3kv-list-body:{prefix}")

    def list_body_ar(self, prefix: str, opts: ListOptions | None = None) -> Sequence[KeyValue]:
        """Return :meth:`list_body` results as a list, in fetch-completion order."""
        with self.list_body(prefix, opts) as pairs:
            return list(pairs)

    # endregion

    # region: copy and move

    def copy(self, source: str, destination: str, opts: CopyOptions | None = None) -> None:
        """Copy ``source`` to ``destination`` on the server side.

        :raises AlreadyExists: If ``destination`` exists.
        :raises NotFound: If ``source`` does not exist.
        """
        self._require_key(source)
        self._require_key(destination)
        resolved = resolve(CopyOptions, self._context, opts)
        ctx = resolved.context
        if self._exists(destination, ctx):
            raise AlreadyExists(
                f"Destination already exists: {destination}", key=destination, backend=self._object_store.name
            )
        self._object_store.copy_object(self._bucket, source, destination, ctx)

    def move(self, source: str, destination: str, opts: CopyOptions | None = None) -> None:
        """Copy ``source`` to ``destination``, then delete ``source``.

        Not atomic: if deleting ``source`` fails the error is raised and the
        copy at ``destination`` is kept.
        """
        resolved = resolve(CopyOptions, self._context, opts)
        self.copy(source, destination, resolved)
        self.delete(source, DelOptions(context=resolved.context))

    # endregion
