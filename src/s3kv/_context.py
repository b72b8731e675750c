"""Context — cancellation handle passed to every store operation."""

from __future__ import annotations

import threading
import time
from typing import Optional

from s3kv._errors import Canceled


class Context:
    """A cancellation handle with an optional deadline.

    Contexts form a tree: a child derived with :meth:`with_cancel` or
    :meth:`with_timeout` is canceled when its parent is, but canceling a child
    leaves the parent untouched.

    :param parent: Parent context, if any.
    :param deadline: Absolute ``time.monotonic()`` value after which the
        context counts as canceled.
    """

    __slots__ = ("_parent", "_deadline", "_event")

    def __init__(self, parent: Optional[Context] = None, deadline: Optional[float] = None) -> None:
        self._parent = parent
        self._deadline = deadline
        self._event = threading.Event()

    @classmethod
    def background(cls) -> Context:
        """Return a fresh root context that is never canceled on its own."""
        return cls()

    def with_cancel(self) -> Context:
        """Derive a child context that can be canceled independently."""
        return Context(parent=self)

    def with_timeout(self, seconds: float) -> Context:
        """Derive a child context that is canceled after ``seconds``."""
        if seconds < 0:
            raise ValueError("timeout must not be negative")
        return Context(parent=self, deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._event.set()

    @property
    def deadline(self) -> Optional[float]:
        """The earliest deadline along the parent chain, if any."""
        own = self._deadline
        inherited = self._parent.deadline if self._parent is not None else None
        if own is None:
            return inherited
        if inherited is None:
            return own
        return min(own, inherited)

    @property
    def canceled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        return self._parent is not None and self._parent.canceled

    def raise_if_canceled(self, key: Optional[str] = None) -> None:
        """Raise :class:`Canceled` if the context has been canceled or timed out."""
        if self.canceled:
            raise Canceled("Operation canceled", key=key)

    def __repr__(self) -> str:
        state = "canceled" if self.canceled else "active"
        return f"Context({state})"
