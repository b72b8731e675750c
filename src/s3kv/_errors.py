"""Normalized error hierarchy for s3kv."""

from __future__ import annotations

from typing import Optional


class S3KVError(Exception):
    """Base class for all s3kv errors.

    :param message: Human-readable error description.
    :param key: The object key (or local path) involved in the error, if any.
    :param backend: The object store name involved, if any.
    """

    def __init__(self, message: str = "", *, key: Optional[str] = None, backend: Optional[str] = None) -> None:
        self.key = key
        self.backend = backend
        super().__init__(message)

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.key is not None:
            parts.append(f"key={self.key!r}")
        if self.backend is not None:
            parts.append(f"backend={self.backend!r}")
        return " | ".join(parts) if len(parts) > 1 else parts[0]

    def __repr__(self) -> str:
        cls = type(self).__name__
        args = [repr(super().__str__())]
        if self.key is not None:
            args.append(f"key={self.key!r}")
        if self.backend is not None:
            args.append(f"backend={self.backend!r}")
        return f"{cls}({', '.join(args)})"


class NotFound(S3KVError):
    """Raised when a key, object or bucket does not exist."""


class AlreadyExists(S3KVError):
    """Raised when a target key already exists and overwrite is not allowed."""


class InvalidKey(S3KVError):
    """Raised for an empty or otherwise unusable key."""


class BackendError(S3KVError):
    """Raised for any transport or storage failure reported by the object store."""


class PermissionDenied(BackendError):
    """Raised when access is denied by the object store."""


class BackendUnavailable(BackendError):
    """Raised when the object store cannot be reached."""


class LocalIOError(S3KVError):
    """Raised when a local file cannot be opened, created, read or written."""


class Canceled(S3KVError):
    """Raised when an operation is aborted through its context."""
