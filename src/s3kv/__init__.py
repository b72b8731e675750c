"""Key-value store and file copy utility over an S3-compatible bucket."""

from s3kv._config import ConnectionConfig
from s3kv._connect import connect, connect_config
from s3kv._context import Context
from s3kv._errors import (
    AlreadyExists,
    BackendError,
    BackendUnavailable,
    Canceled,
    InvalidKey,
    LocalIOError,
    NotFound,
    PermissionDenied,
    S3KVError,
)
from s3kv._models import KeyValue, ObjectInfo, ObjectReader
from s3kv._object_store import ObjectStore
from s3kv._options import (
    CopyOptions,
    DelOptions,
    GetInfoOptions,
    GetObjectOptions,
    GetOptions,
    ListObjectsOptions,
    ListOptions,
    PutObjectOptions,
    RemoveObjectOptions,
    SetOptions,
    StatObjectOptions,
)
from s3kv._store import DEFAULT_BUCKET, Store
from s3kv._stream import ResultStream
from s3kv._transfer import REMOTE_PREFIX, Transfer, TransferEndpoint, transfer

__version__ = "0.1.0"

__all__ = [
    # Core
    "Store",
    "ObjectStore",
    "connect",
    "connect_config",
    "DEFAULT_BUCKET",
    # Context & streams
    "Context",
    "ResultStream",
    # Models
    "ObjectInfo",
    "ObjectReader",
    "KeyValue",
    # Options
    "SetOptions",
    "GetOptions",
    "GetInfoOptions",
    "DelOptions",
    "ListOptions",
    "CopyOptions",
    "PutObjectOptions",
    "GetObjectOptions",
    "StatObjectOptions",
    "RemoveObjectOptions",
    "ListObjectsOptions",
    # Transfer
    "Transfer",
    "TransferEndpoint",
    "transfer",
    "REMOTE_PREFIX",
    # Config
    "ConnectionConfig",
    # Errors
    "S3KVError",
    "NotFound",
    "AlreadyExists",
    "InvalidKey",
    "BackendError",
    "PermissionDenied",
    "BackendUnavailable",
    "LocalIOError",
    "Canceled",
    # Version
    "__version__",
]
