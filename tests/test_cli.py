"""Tests for the s3cp command line."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

import s3kv.cli
from s3kv import __version__
from s3kv._errors import BackendUnavailable
from s3kv._store import Store
from s3kv.backends._memory import MemoryObjectStore

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from s3kv._config import ConnectionConfig

CREDENTIALS = ["--accesskey", "AKIA", "--secretkey", "s3cr3t", "--endpoint", "localhost:9000"]


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("ACCESSKEY", "SECRETKEY", "ENDPOINT", "BUCKET", "SECURE"):
        monkeypatch.delenv(f"S3KV_{name}", raising=False)


@pytest.fixture
def memory_store(monkeypatch: pytest.MonkeyPatch) -> Store:
    """Route the command's connection to an in-memory bucket."""
    store = Store(MemoryObjectStore(buckets=["teos3"]))
    seen: list[ConnectionConfig] = []

    def fake_connect(config: ConnectionConfig) -> Store:
        seen.append(config)
        return store

    monkeypatch.setattr(s3kv.cli, "connect_config", fake_connect)
    store.seen_configs = seen  # type: ignore[attr-defined]
    return store


class TestMain:
    def test_upload(self, memory_store: Store, tmp_path: Path) -> None:
        source = tmp_path / "hello.txt"
        source.write_bytes(b"hi")
        assert s3kv.cli.main([*CREDENTIALS, str(source), "s3:notes/a"]) == 0
        assert memory_store.get("notes/a") == b"hi"

    def test_flags_override_env(self, memory_store: Store, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("S3KV_ACCESSKEY", "from-env")
        monkeypatch.setenv("S3KV_SECRETKEY", "env-secret")
        monkeypatch.setenv("S3KV_ENDPOINT", "env:9000")
        source = tmp_path / "f"
        source.write_bytes(b"x")
        assert s3kv.cli.main(["--endpoint", "flag:9000", "--no-secure", str(source), "s3:k"]) == 0
        (config,) = memory_store.seen_configs  # type: ignore[attr-defined]
        assert config.access_key == "from-env"
        assert config.endpoint == "flag:9000"
        assert config.secure is False

    def test_missing_settings(self, memory_store: Store, capsys: pytest.CaptureFixture[str]) -> None:
        assert s3kv.cli.main(["a", "s3:b"]) == 2
        assert "Missing connection settings" in capsys.readouterr().err

    def test_missing_positionals(self, memory_store: Store, capsys: pytest.CaptureFixture[str]) -> None:
        assert s3kv.cli.main([*CREDENTIALS, "only-source"]) == 2
        assert "source and target are required" in capsys.readouterr().err

    def test_copy_failure(self, memory_store: Store, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert s3kv.cli.main([*CREDENTIALS, "s3:missing", str(tmp_path / "out")]) == 1
        assert "missing" in capsys.readouterr().err

    def test_connect_failure(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        def unreachable(config: ConnectionConfig) -> Store:
            raise BackendUnavailable("connection refused", backend="s3")

        monkeypatch.setattr(s3kv.cli, "connect_config", unreachable)
        source = tmp_path / "f"
        source.write_bytes(b"x")
        assert s3kv.cli.main([*CREDENTIALS, str(source), "s3:k"]) == 1

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            s3kv.cli.main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestParser:
    def test_secure_defaults_to_unset(self) -> None:
        args = s3kv.cli.build_parser().parse_args(["a", "b"])
        assert args.secure is None
        assert args.syslog is False

    def test_secure_flags(self) -> None:
        parser = s3kv.cli.build_parser()
        assert parser.parse_args(["--secure"]).secure is True
        assert parser.parse_args(["--no-secure"]).secure is False


class TestConfigureLogging:
    def test_repeated_calls_keep_one_handler(self) -> None:
        root = logging.getLogger()
        before = len(root.handlers)
        s3kv.cli.configure_logging()
        s3kv.cli.configure_logging(verbose=True)
        installed = [h for h in root.handlers if h.get_name() == s3kv.cli.APP_NAME]
        assert len(installed) == 1
        assert len(root.handlers) == before + 1
        assert root.level == logging.INFO
