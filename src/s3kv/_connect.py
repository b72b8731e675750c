"""connect — build a Store over S3-compatible storage."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from s3kv._context import Context
from s3kv._errors import BackendUnavailable, NotFound
from s3kv._store import DEFAULT_BUCKET, Store
from s3kv.backends._s3 import S3ObjectStore

if TYPE_CHECKING:
    from s3kv._config import ConnectionConfig

log = logging.getLogger(__name__)


def endpoint_url(endpoint: str, secure: bool = True) -> str:
    """Turn ``host[:port]`` into a URL; endpoints that already carry a scheme pass through."""
    if "://" in endpoint:
        return endpoint
    scheme = "https" if secure else "http"
    return f"{scheme}://{endpoint}"


@retry(
    retry=retry_if_exception_type(BackendUnavailable),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    before_sleep=before_sleep_log(log, logging.WARNING),  # type: ignore[arg-type,unused-ignore]
    reraise=True,
)
def _bucket_exists(object_store: S3ObjectStore, bucket: str, ctx: Context) -> bool:
    """Ask whether ``bucket`` exists, retrying while the endpoint is unreachable."""
    return object_store.bucket_exists(bucket, ctx)


def _probe_bucket(object_store: S3ObjectStore, bucket: str, ctx: Context) -> None:
    if not _bucket_exists(object_store, bucket, ctx):
        raise NotFound(f"Bucket not found: {bucket}", key=bucket, backend=object_store.name)


def connect(
    access_key: str,
    secret_key: str,
    endpoint: str,
    secure: bool = True,
    bucket: str = DEFAULT_BUCKET,
    *,
    context: Context | None = None,
    max_workers: int | None = None,
    region_name: str | None = None,
    client_options: dict[str, Any] | None = None,
) -> Store:
    """Connect to ``bucket`` on an S3-compatible endpoint.

    The bucket must already exist. The returned store owns its connection;
    close it (or use it as a context manager) when done.

    :param endpoint: ``host[:port]``, or a full URL.
    :param secure: Use HTTPS for endpoints given without a scheme.
    :raises NotFound: If the bucket does not exist.
    :raises BackendError: If the endpoint rejects or cannot serve the request.
    """
    ctx = context or Context.background()
    object_store = S3ObjectStore(
        endpoint_url=endpoint_url(endpoint, secure),
        key=access_key,
        secret=secret_key,
        region_name=region_name,
        client_options=client_options,
    )
    log.info("Connecting to bucket %r at %s", bucket, endpoint)
    try:
        _probe_bucket(object_store, bucket, ctx)
    except BaseException:
        object_store.close()
        raise
    log.info("Connected to bucket %r", bucket)
    return Store(object_store, bucket, context=ctx, max_workers=max_workers, close_object_store=True)


def connect_config(config: ConnectionConfig, **kwargs: Any) -> Store:
    """Validate ``config`` and :func:`connect` with its settings.

    :raises ValueError: If required settings are missing.
    """
    config.validate()
    return connect(
        config.access_key,
        config.secret_key,
        config.endpoint,
        config.secure,
        config.bucket,
        **kwargs,
    )
