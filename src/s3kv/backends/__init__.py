"""Object store implementations."""

from s3kv.backends._memory import MemoryObjectStore
from s3kv.backends._s3 import S3ObjectStore

__all__ = ["MemoryObjectStore", "S3ObjectStore"]
