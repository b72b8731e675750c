"""Type aliases used throughout s3kv."""

from __future__ import annotations

from typing import Union

Payload = Union[bytes, bytearray, memoryview]  # noqa: UP007
