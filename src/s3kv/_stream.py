"""ResultStream — an iterator fed by a background producer thread."""

from __future__ import annotations

import logging
import queue
import threading
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

T = TypeVar("T")

log = logging.getLogger(__name__)

# How often a blocked producer re-checks whether the consumer went away
_POLL_INTERVAL = 0.05


class _End:
    pass


class _Raised:
    __slots__ = ("exc",)

    def __init__(self, exc: BaseException) -> None:
        self.exc = exc


_END = _End()


class _Channel:
    """Bounded queue plus a stop flag shared by producer and consumer."""

    def __init__(self, buffer: int) -> None:
        self.queue: queue.Queue[object] = queue.Queue(maxsize=buffer)
        self.stop = threading.Event()

    def put(self, item: object) -> bool:
        while not self.stop.is_set():
            try:
                self.queue.put(item, timeout=_POLL_INTERVAL)
            except queue.Full:
                continue
            return True
        return False


def _run(channel: _Channel, produce: Callable[[Callable[[T], bool]], None]) -> None:
    try:
        produce(channel.put)
    except BaseException as exc:  # noqa: BLE001 -- handed to the consumer
        log.debug("Producer %s failed: %r", threading.current_thread().name, exc)
        channel.put(_Raised(exc))
    finally:
        channel.put(_END)


class ResultStream(Generic[T]):
    """Iterator over items emitted by ``produce`` running in a daemon thread.

    ``produce`` receives an ``emit`` callable. ``emit(item)`` blocks while the
    buffer is full and returns ``False`` once the consumer has closed the
    stream, at which point the producer should stop. ``emit`` may be called
    from any thread, but only until ``produce`` returns. An exception raised
    by ``produce`` is re-raised to the consumer after the items emitted
    before it.

    The producer starts immediately. The stream is finite and cannot be
    restarted. Closing it, explicitly or by dropping the last reference,
    releases a producer blocked in ``emit``.

    :param produce: Producer function.
    :param buffer: Number of items that may wait for the consumer.
    :param name: Thread name, for debugging.
    """

    def __init__(self, produce: Callable[[Callable[[T], bool]], None], *, buffer: int = 1, name: str = "") -> None:
        self._channel = _Channel(buffer)
        self._done = False
        # The thread only references the channel so an abandoned stream can be collected
        self._thread = threading.Thread(
            target=_run, args=(self._channel, produce), name=name or "s3kv-stream", daemon=True
        )
        self._thread.start()

    def __repr__(self) -> str:
        state = "done" if self._done else "open"
        return f"ResultStream({self._thread.name!r}, {state})"

    def __iter__(self) -> ResultStream[T]:
        return self

    def __next__(self) -> T:
        if self._done:
            raise StopIteration
        item = self._channel.queue.get()
        if item is _END:
            self._done = True
            raise StopIteration
        if isinstance(item, _Raised):
            self.close()
            raise item.exc
        return item  # type: ignore[return-value]

    def close(self) -> None:
        """Stop consuming; the producer stops at its next ``emit``."""
        self._done = True
        self._channel.stop.set()

    def __enter__(self) -> ResultStream[T]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __del__(self) -> None:
        self._channel.stop.set()
