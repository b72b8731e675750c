"""S3-compatible object store using s3fs."""

from __future__ import annotations

import contextlib
import dataclasses
import io
import itertools
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, BinaryIO

from s3kv._errors import (
    BackendError,
    BackendUnavailable,
    NotFound,
    PermissionDenied,
    S3KVError,
)
from s3kv._models import ObjectInfo, ObjectReader
from s3kv._object_store import ObjectStore, iter_chunks
from s3kv._options import StatObjectOptions

if TYPE_CHECKING:
    from collections.abc import Iterator

    from s3kv._context import Context
    from s3kv._options import (
        GetObjectOptions,
        ListObjectsOptions,
        PutObjectOptions,
        RemoveObjectOptions,
    )

# Multipart part size; S3 requires at least 5 MiB for every part but the last
_PART_SIZE = 8 * 1024 * 1024


class S3ObjectStore(ObjectStore):
    """S3-compatible object store using s3fs.

    Requests go through ``S3FileSystem.call_s3`` so keys reach S3 verbatim,
    trailing ``/`` included. Uploads are streamed: objects smaller than one
    part are sent with a single ``PutObject``, larger ones as a multipart
    upload holding at most two parts in memory.

    :param endpoint_url: Endpoint URL (e.g. ``https://play.min.io``).
    :param key: Access key ID.
    :param secret: Secret access key.
    :param region_name: Region name.
    :param client_options: Additional options passed to ``s3fs.S3FileSystem``.
    """

    def __init__(
        self,
        *,
        endpoint_url: str | None = None,
        key: str | None = None,
        secret: str | None = None,
        region_name: str | None = None,
        client_options: dict[str, Any] | None = None,
    ) -> None:
        self._endpoint_url = endpoint_url
        self._key = key
        self._secret = secret
        self._region_name = region_name
        self._client_options = client_options or {}
        self._fs_instance: Any = None

    @property
    def name(self) -> str:
        return "s3"

    def __repr__(self) -> str:
        return f"S3ObjectStore(endpoint_url={self._endpoint_url!r})"

    # region: lazy filesystem

    @property
    def _fs(self) -> Any:
        if self._fs_instance is None:
            import s3fs  # type: ignore[import-untyped]

            opts: dict[str, Any] = dict(self._client_options)
            if self._endpoint_url is not None:
                opts["endpoint_url"] = self._endpoint_url
            if self._key is not None:
                opts["key"] = self._key
            if self._secret is not None:
                opts["secret"] = self._secret
            if self._region_name is not None:
                client_kwargs: dict[str, Any] = opts.setdefault("client_kwargs", {})
                client_kwargs["region_name"] = self._region_name
            opts.setdefault("anon", False)
            # Instances are shared per argument set by default; keep ours private
            opts.setdefault("skip_instance_cache", True)
            self._fs_instance = s3fs.S3FileSystem(**opts)
        return self._fs_instance

    def _call(self, method: str, **kwargs: Any) -> Any:
        return self._fs.call_s3(method, **kwargs)

    # endregion

    # region: error mapping

    @contextmanager
    def _errors(self, key: str = "") -> Iterator[None]:
        """Map s3fs/botocore exceptions to s3kv errors."""
        try:
            yield
        except S3KVError:
            raise
        except FileNotFoundError:
            raise NotFound(f"Not found: {key}", key=key, backend=self.name) from None
        except PermissionError:  # pragma: no cover -- moto doesn't raise PermissionError
            raise PermissionDenied(f"Permission denied: {key}", key=key, backend=self.name) from None
        except Exception as exc:
            raise self._classify_error(exc, key) from exc

    def _classify_error(self, exc: Exception, key: str) -> S3KVError:
        """Classify an unknown exception into an s3kv error type."""
        msg = str(exc).lower()
        if "404" in msg or "nosuchkey" in msg or "nosuchbucket" in msg or "not found" in msg:
            return NotFound(f"Not found: {key}", key=key, backend=self.name)
        if "403" in msg or "accessdenied" in msg or "access denied" in msg:
            return PermissionDenied(f"Permission denied: {key}", key=key, backend=self.name)
        if any(kw in msg for kw in ("endpoint", "connect", "timeout", "dns", "name or service")):
            return BackendUnavailable(str(exc), key=key, backend=self.name)
        return BackendError(str(exc), key=key, backend=self.name)

    # endregion

    # region: helpers

    @staticmethod
    def _put_extra(opts: PutObjectOptions) -> dict[str, Any]:
        extra: dict[str, Any] = {}
        if opts.content_type is not None:
            extra["ContentType"] = opts.content_type
        if opts.metadata:
            extra["Metadata"] = dict(opts.metadata)
        if opts.cache_control is not None:
            extra["CacheControl"] = opts.cache_control
        if opts.storage_class is not None:
            extra["StorageClass"] = opts.storage_class
        return extra

    def _iter_parts(self, stream: BinaryIO, size: int, ctx: Context, key: str) -> Iterator[bytes]:
        """Regroup the upload stream into parts of ``_PART_SIZE`` bytes.

        Always yields at least one (possibly empty) part.
        """
        buf = bytearray()
        emitted = False
        for chunk in iter_chunks(stream, size, ctx, key=key, backend=self.name):
            buf += chunk
            if len(buf) >= _PART_SIZE:
                yield bytes(buf[:_PART_SIZE])
                del buf[:_PART_SIZE]
                emitted = True
        if buf or not emitted:
            yield bytes(buf)

    @staticmethod
    def _as_utc(value: Any) -> datetime | None:
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        if isinstance(value, datetime) and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value if isinstance(value, datetime) else None

    def _head_to_info(self, key: str, head: dict[str, Any]) -> ObjectInfo:
        return ObjectInfo(
            key=key,
            size=int(head.get("ContentLength", 0) or 0),
            last_modified=self._as_utc(head.get("LastModified")),
            etag=(head.get("ETag") or "").strip('"') or None,
            content_type=head.get("ContentType"),
            metadata=dict(head.get("Metadata") or {}),
        )

    def _entry_to_info(self, entry: dict[str, Any]) -> ObjectInfo:
        return ObjectInfo(
            key=entry["Key"],
            size=int(entry.get("Size", 0) or 0),
            last_modified=self._as_utc(entry.get("LastModified")),
            etag=(entry.get("ETag") or "").strip('"') or None,
        )

    async def _read_body(self, **kwargs: Any) -> bytes:
        resp = await self._fs._call_s3("get_object", **kwargs)
        body = resp["Body"]
        try:
            return bytes(await body.read())
        finally:
            body.close()

    # endregion

    def bucket_exists(self, bucket: str, ctx: Context) -> bool:
        ctx.raise_if_canceled(bucket)
        try:
            with self._errors(bucket):
                self._call("head_bucket", Bucket=bucket)
        except NotFound:
            return False
        return True

    # region: write

    def put_object(
        self,
        bucket: str,
        key: str,
        stream: BinaryIO,
        size: int,
        opts: PutObjectOptions,
        ctx: Context,
    ) -> None:
        extra = self._put_extra(opts)
        with self._errors(key):
            parts = self._iter_parts(stream, size, ctx, key)
            first = next(parts)
            second = next(parts, None)
            if second is None:
                ctx.raise_if_canceled(key)
                self._call("put_object", Bucket=bucket, Key=key, Body=first, **extra)
                return
            upload = self._call("create_multipart_upload", Bucket=bucket, Key=key, **extra)
            upload_id = upload["UploadId"]
            try:
                completed: list[dict[str, Any]] = []
                for number, body in enumerate(itertools.chain((first, second), parts), start=1):
                    ctx.raise_if_canceled(key)
                    resp = self._call(
                        "upload_part", Bucket=bucket, Key=key, UploadId=upload_id, PartNumber=number, Body=body
                    )
                    completed.append({"PartNumber": number, "ETag": resp["ETag"]})
                self._call(
                    "complete_multipart_upload",
                    Bucket=bucket,
                    Key=key,
                    UploadId=upload_id,
                    MultipartUpload={"Parts": completed},
                )
            except BaseException:
                with contextlib.suppress(Exception):
                    self._call("abort_multipart_upload", Bucket=bucket, Key=key, UploadId=upload_id)
                raise

    # endregion

    # region: read

    def get_object(self, bucket: str, key: str, opts: GetObjectOptions, ctx: Context) -> ObjectReader:
        info = self.stat_object(bucket, key, StatObjectOptions(version_id=opts.version_id), ctx)
        available = max(info.size - opts.offset, 0)
        length = available if opts.length is None else min(opts.length, available)
        sized = dataclasses.replace(info, size=length)
        ctx.raise_if_canceled(key)
        with self._errors(key):
            if key.endswith("/"):
                # s3fs strips trailing slashes from paths; fetch folder markers directly
                from fsspec.asyn import sync  # type: ignore[import-untyped]

                kwargs: dict[str, Any] = {"Bucket": bucket, "Key": key}
                if opts.version_id is not None:
                    kwargs["VersionId"] = opts.version_id
                data = sync(self._fs.loop, self._read_body, **kwargs)
                return ObjectReader(io.BytesIO(data[opts.offset :]), sized)
            open_kwargs: dict[str, Any] = {}
            if opts.version_id is not None:
                open_kwargs["version_id"] = opts.version_id
            stream = self._fs.open(f"{bucket}/{key}", "rb", **open_kwargs)
            if opts.offset:
                stream.seek(opts.offset)
            return ObjectReader(stream, sized)

    def stat_object(self, bucket: str, key: str, opts: StatObjectOptions, ctx: Context) -> ObjectInfo:
        ctx.raise_if_canceled(key)
        kwargs: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if opts.version_id is not None:
            kwargs["VersionId"] = opts.version_id
        with self._errors(key):
            head = self._call("head_object", **kwargs)
        return self._head_to_info(key, head)

    # endregion

    # region: delete, list and copy

    def remove_object(self, bucket: str, key: str, opts: RemoveObjectOptions, ctx: Context) -> None:
        ctx.raise_if_canceled(key)
        kwargs: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if opts.version_id is not None:
            kwargs["VersionId"] = opts.version_id
        with self._errors(key):
            self._call("delete_object", **kwargs)

    def list_objects(self, bucket: str, opts: ListObjectsOptions, ctx: Context) -> Iterator[ObjectInfo]:
        request: dict[str, Any] = {"Bucket": bucket, "Prefix": opts.prefix}
        if not opts.recursive:
            request["Delimiter"] = "/"
        if opts.start_after:
            request["StartAfter"] = opts.start_after
        if opts.max_keys > 0:
            request["MaxKeys"] = opts.max_keys
        while True:
            ctx.raise_if_canceled(opts.prefix)
            with self._errors(opts.prefix):
                page = self._call("list_objects_v2", **request)
            entries = [self._entry_to_info(entry) for entry in page.get("Contents", [])]
            entries.extend(
                ObjectInfo(key=common["Prefix"], size=0, is_prefix=True) for common in page.get("CommonPrefixes", [])
            )
            entries.sort(key=lambda info: info.key)
            yield from entries
            if not page.get("IsTruncated"):
                return
            request["ContinuationToken"] = page["NextContinuationToken"]

    def copy_object(self, bucket: str, src: str, dst: str, ctx: Context) -> None:
        ctx.raise_if_canceled(src)
        with self._errors(src):
            self._call("copy_object", Bucket=bucket, Key=dst, CopySource={"Bucket": bucket, "Key": src})

    # endregion

    def close(self) -> None:
        self._fs_instance = None
