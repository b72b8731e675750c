"""Transfer — stream one object between a local file and a store key."""

from __future__ import annotations

import contextlib
import dataclasses
import logging
import os
import shutil
from typing import TYPE_CHECKING, BinaryIO

from s3kv._connect import connect
from s3kv._errors import LocalIOError
from s3kv._object_store import CHUNK_SIZE
from s3kv._store import DEFAULT_BUCKET

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import TracebackType

    from s3kv._store import Store

log = logging.getLogger(__name__)

# Arguments starting with this prefix name a store key
REMOTE_PREFIX = "s3:"


@dataclasses.dataclass(frozen=True)
class TransferEndpoint:
    """One side of a transfer.

    :param path: Store key when ``remote``, local file path otherwise.
    :param remote: Whether ``path`` is a store key.
    """

    path: str
    remote: bool = False

    @classmethod
    def parse(cls, arg: str) -> TransferEndpoint:
        """Parse ``s3:key`` as a store key and anything else as a local path.

        Surrounding spaces and tabs are ignored.
        """
        arg = arg.strip(" \t")
        if arg.startswith(REMOTE_PREFIX):
            return cls(arg[len(REMOTE_PREFIX) :], remote=True)
        return cls(arg)

    def __str__(self) -> str:
        return f"{REMOTE_PREFIX}{self.path}" if self.remote else self.path


class Transfer:
    """Copies a source endpoint to a target endpoint.

    The store is obtained from ``connector`` the first time a remote
    endpoint is met and reused for the rest of the transfer. Nothing is
    rolled back on failure: a partially written target stays in place.
    Closing the transfer closes that store.

    :param connector: Returns the store used for remote endpoints.
    """

    def __init__(self, connector: Callable[[], Store]) -> None:
        self._connector = connector
        self._store: Store | None = None

    def close(self) -> None:
        """Close the store if one was connected."""
        if self._store is not None:
            self._store.close()
            self._store = None

    def __enter__(self) -> Transfer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def _connected(self) -> Store:
        if self._store is None:
            self._store = self._connector()
            log.info("Connected to store %r", self._store)
        return self._store

    def _open_source(self, source: TransferEndpoint, stack: contextlib.ExitStack) -> tuple[BinaryIO, int]:
        if source.remote:
            reader = stack.enter_context(self._connected().get_object(source.path))
            return reader, reader.stat().size  # type: ignore[return-value]
        try:
            file = stack.enter_context(open(source.path, "rb"))  # noqa: SIM115
            size = os.fstat(file.fileno()).st_size
        except OSError as exc:
            raise LocalIOError(f"Cannot open {source.path}: {exc.strerror or exc}", key=source.path) from exc
        return file, size

    def _write_target(self, target: TransferEndpoint, reader: BinaryIO, size: int) -> None:
        if target.remote:
            self._connected().set_object(target.path, reader, size)
            return
        try:
            with open(target.path, "wb") as out:
                shutil.copyfileobj(reader, out, CHUNK_SIZE)
        except OSError as exc:
            raise LocalIOError(f"Cannot write {target.path}: {exc.strerror or exc}", key=target.path) from exc

    def run(self, args: Sequence[str]) -> None:
        """Copy ``args[0]`` to ``args[1]``; further arguments are ignored.

        :raises ValueError: If fewer than two arguments are given.
        :raises LocalIOError: If a local file cannot be read or written.
        :raises S3KVError: If a store request fails.
        """
        if len(args) < 2:
            raise ValueError("transfer needs a source and a target")
        source, target = TransferEndpoint.parse(args[0]), TransferEndpoint.parse(args[1])
        log.info("Copying %s to %s", source, target)
        with contextlib.ExitStack() as stack:
            try:
                reader, size = self._open_source(source, stack)
                log.info("Got data from %s (%d bytes)", source, size)
                self._write_target(target, reader, size)
            except Exception as exc:
                log.error("Copy %s to %s failed: %s", source, target, exc)
                raise
        log.info("Set data to %s", target)


def transfer(
    access_key: str,
    secret_key: str,
    endpoint: str,
    bucket: str,
    args: Sequence[str],
    secure: bool = True,
) -> None:
    """Copy ``args[0]`` to ``args[1]``; prefix store keys with ``s3:``.

    Connects to the store only if one of the endpoints is remote.
    """
    with Transfer(lambda: connect(access_key, secret_key, endpoint, secure, bucket or DEFAULT_BUCKET)) as pipeline:
        pipeline.run(args)
