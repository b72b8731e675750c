"""Tests for Transfer — copying between local files and store keys."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from s3kv._errors import LocalIOError, NotFound
from s3kv._transfer import REMOTE_PREFIX, Transfer, TransferEndpoint

if TYPE_CHECKING:
    from pathlib import Path

    from s3kv._store import Store


class CountingConnector:
    def __init__(self, store: Store) -> None:
        self.store = store
        self.calls = 0

    def __call__(self) -> Store:
        self.calls += 1
        return self.store


class TestTransferEndpoint:
    def test_remote(self) -> None:
        assert TransferEndpoint.parse("s3:notes/a") == TransferEndpoint("notes/a", remote=True)

    def test_local(self) -> None:
        assert TransferEndpoint.parse("/tmp/file.txt") == TransferEndpoint("/tmp/file.txt")

    def test_strips_spaces_and_tabs(self) -> None:
        assert TransferEndpoint.parse(" \ts3:key\t ") == TransferEndpoint("key", remote=True)
        assert TransferEndpoint.parse("  local.txt") == TransferEndpoint("local.txt")

    def test_prefix_must_lead(self) -> None:
        assert TransferEndpoint.parse("dir/s3:x").remote is False

    def test_str(self) -> None:
        assert REMOTE_PREFIX == "s3:"
        assert str(TransferEndpoint("a/b", remote=True)) == "s3:a/b"
        assert str(TransferEndpoint("a/b")) == "a/b"


class TestTransfer:
    def test_upload_then_download(self, store: Store, tmp_path: Path) -> None:
        source = tmp_path / "hello.txt"
        source.write_bytes(b"hi")
        target = tmp_path / "hello2.txt"
        with Transfer(lambda: store) as transfer:
            transfer.run([str(source), "s3:notes/a"])
            transfer.run(["s3:notes/a", str(target)])
        assert store.get("notes/a") == b"hi"
        assert target.read_bytes() == b"hi"

    def test_remote_to_remote(self, store: Store) -> None:
        store.set("a", b"payload")
        with Transfer(lambda: store) as transfer:
            transfer.run(["s3:a", "s3:b"])
        assert store.get("b") == b"payload"

    def test_empty_file(self, store: Store, tmp_path: Path) -> None:
        source = tmp_path / "empty"
        source.write_bytes(b"")
        with Transfer(lambda: store) as transfer:
            transfer.run([str(source), "s3:empty"])
        assert store.get("empty") == b""

    def test_connects_once(self, store: Store, tmp_path: Path) -> None:
        connector = CountingConnector(store)
        source = tmp_path / "f"
        source.write_bytes(b"x")
        with Transfer(connector) as transfer:
            transfer.run([str(source), "s3:one"])
            transfer.run(["s3:one", "s3:two"])
        assert connector.calls == 1

    def test_local_copy_never_connects(self, tmp_path: Path) -> None:
        def refuse() -> Store:
            raise AssertionError("connector must not be called")

        source = tmp_path / "a"
        source.write_bytes(b"local only")
        target = tmp_path / "b"
        with Transfer(refuse) as transfer:
            transfer.run([str(source), str(target)])
        assert target.read_bytes() == b"local only"

    def test_extra_arguments_ignored(self, store: Store, tmp_path: Path) -> None:
        source = tmp_path / "f"
        source.write_bytes(b"x")
        with Transfer(lambda: store) as transfer:
            transfer.run([str(source), "s3:k", "ignored", "also ignored"])
        assert store.get("k") == b"x"

    @pytest.mark.parametrize("args", [[], ["only-source"]])
    def test_too_few_arguments(self, store: Store, args: list[str]) -> None:
        with Transfer(lambda: store) as transfer, pytest.raises(ValueError, match="source and a target"):
            transfer.run(args)

    def test_missing_local_source(self, store: Store, tmp_path: Path) -> None:
        missing = tmp_path / "missing.txt"
        with Transfer(lambda: store) as transfer, pytest.raises(LocalIOError) as exc_info:
            transfer.run([str(missing), "s3:k"])
        assert exc_info.value.key == str(missing)

    def test_unwritable_local_target(self, store: Store, tmp_path: Path) -> None:
        store.set("k", b"x")
        target = tmp_path / "no-such-dir" / "out"
        with Transfer(lambda: store) as transfer, pytest.raises(LocalIOError):
            transfer.run(["s3:k", str(target)])

    def test_missing_remote_source(self, store: Store, tmp_path: Path) -> None:
        target = tmp_path / "out"
        with Transfer(lambda: store) as transfer, pytest.raises(NotFound):
            transfer.run(["s3:missing", str(target)])
        assert not target.exists()

    def test_failure_is_logged(self, store: Store, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        with Transfer(lambda: store) as transfer, pytest.raises(NotFound):
            transfer.run(["s3:missing", str(tmp_path / "out")])
        assert "failed" in caplog.text
