"""Object store test fixtures -- parameterized for conformance testing."""

from __future__ import annotations

import socket
import uuid
from typing import TYPE_CHECKING, NamedTuple

import pytest

from s3kv.backends._memory import MemoryObjectStore

if TYPE_CHECKING:
    from collections.abc import Iterator

    from s3kv._object_store import ObjectStore

REGION = "us-east-1"
CREDENTIALS = {"aws_access_key_id": "testing", "aws_secret_access_key": "testing"}


class Target(NamedTuple):
    """An object store and a bucket that exists in it."""

    object_store: ObjectStore
    bucket: str


def _s3_available() -> bool:
    try:
        import boto3  # noqa: F401
        import moto  # noqa: F401
        import s3fs  # noqa: F401

        return True
    except ImportError:
        return False


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("", 0))
        return s.getsockname()[1]


def create_bucket(endpoint_url: str, prefix: str = "test") -> str:
    """Create a uniquely named bucket on the moto server and return its name."""
    import boto3

    bucket = f"{prefix}-{uuid.uuid4().hex[:8]}"
    client = boto3.client("s3", endpoint_url=endpoint_url, region_name=REGION, **CREDENTIALS)
    client.create_bucket(Bucket=bucket)
    return bucket


@pytest.fixture(scope="session")
def moto_server() -> Iterator[str | None]:
    """Start a moto HTTP server for the test session.

    Uses server mode instead of mock_aws() to avoid Python 3.13
    PEP 667 f_locals incompatibility with s3fs/aiobotocore.
    """
    if not _s3_available():
        yield None
        return
    from moto.moto_server.threaded_moto_server import ThreadedMotoServer

    port = _free_port()
    server = ThreadedMotoServer(port=port, verbose=False)
    server.start()
    yield f"http://127.0.0.1:{port}"
    server.stop()


_s3_param = pytest.param(
    "s3",
    marks=pytest.mark.skipif(not _s3_available(), reason="moto/s3fs/boto3 not installed"),
)


@pytest.fixture(params=["memory", _s3_param])
def target(request: pytest.FixtureRequest, moto_server: str | None) -> Iterator[Target]:
    """Parameterized object store fixture. Add new object stores here."""
    if request.param == "memory":
        yield Target(MemoryObjectStore(buckets=["conformance"]), "conformance")
    elif request.param == "s3":
        from s3kv.backends._s3 import S3ObjectStore

        assert moto_server is not None
        bucket = create_bucket(moto_server, "conformance")
        object_store = S3ObjectStore(
            endpoint_url=moto_server,
            key="testing",
            secret="testing",
            region_name=REGION,
        )
        yield Target(object_store, bucket)
        object_store.close()
    else:
        pytest.skip(f"Unknown object store: {request.param}")
