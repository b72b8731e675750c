"""Configuration model — immutable connection settings with environment fallback."""

from __future__ import annotations

import dataclasses
import os
from typing import TYPE_CHECKING, Optional

from s3kv._store import DEFAULT_BUCKET

if TYPE_CHECKING:
    from collections.abc import Mapping

ENV_PREFIX = "S3KV_"

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


@dataclasses.dataclass(frozen=True)
class ConnectionConfig:
    """Describes how to reach a bucket.

    :param access_key: Access key ID.
    :param secret_key: Secret access key.
    :param endpoint: Endpoint host (``host[:port]``) or full URL.
    :param bucket: Bucket name.
    :param secure: Use HTTPS when ``endpoint`` carries no scheme.
    """

    access_key: str = ""
    secret_key: str = ""
    endpoint: str = ""
    bucket: str = DEFAULT_BUCKET
    secure: bool = True

    def __repr__(self) -> str:
        return (
            f"ConnectionConfig(access_key={self.access_key!r}, secret_key='***', "
            f"endpoint={self.endpoint!r}, bucket={self.bucket!r}, secure={self.secure!r})"
        )

    def validate(self) -> None:
        """Check that the required settings are present.

        :raises ValueError: Naming every missing setting.
        """
        missing = [name for name in ("access_key", "secret_key", "endpoint") if not getattr(self, name)]
        if not self.bucket:
            missing.append("bucket")
        if missing:
            raise ValueError(f"Missing connection settings: {', '.join(missing)}")

    def merge(
        self,
        *,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        bucket: Optional[str] = None,
        secure: Optional[bool] = None,
    ) -> ConnectionConfig:
        """Return a copy with every given (non-``None``, non-empty) value applied."""
        overrides = {
            "access_key": access_key,
            "secret_key": secret_key,
            "endpoint": endpoint,
            "bucket": bucket,
        }
        changes: dict[str, object] = {name: value for name, value in overrides.items() if value}
        if secure is not None:
            changes["secure"] = secure
        return dataclasses.replace(self, **changes)  # type: ignore[arg-type]

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> ConnectionConfig:
        """Read ``S3KV_ACCESSKEY``, ``S3KV_SECRETKEY``, ``S3KV_ENDPOINT``,
        ``S3KV_BUCKET`` and ``S3KV_SECURE``.

        :raises ValueError: If ``S3KV_SECURE`` is not a boolean.
        """
        env = os.environ if environ is None else environ
        secure_raw = env.get(f"{ENV_PREFIX}SECURE")
        return cls().merge(
            access_key=env.get(f"{ENV_PREFIX}ACCESSKEY"),
            secret_key=env.get(f"{ENV_PREFIX}SECRETKEY"),
            endpoint=env.get(f"{ENV_PREFIX}ENDPOINT"),
            bucket=env.get(f"{ENV_PREFIX}BUCKET"),
            secure=_parse_bool(f"{ENV_PREFIX}SECURE", secure_raw) if secure_raw else None,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ConnectionConfig:
        """Construct from a plain dict (e.g. parsed TOML/JSON).

        :raises TypeError: If a value has the wrong type.
        """
        unknown = sorted(set(data) - {f.name for f in dataclasses.fields(cls)})
        if unknown:
            raise TypeError(f"Unknown connection settings: {unknown}")
        secure = data.get("secure", True)
        if isinstance(secure, str):
            secure = _parse_bool("secure", secure)
        if not isinstance(secure, bool):
            raise TypeError("'secure' must be a boolean")
        return cls(
            access_key=str(data.get("access_key", "")),
            secret_key=str(data.get("secret_key", "")),
            endpoint=str(data.get("endpoint", "")),
            bucket=str(data.get("bucket", DEFAULT_BUCKET)),
            secure=secure,
        )
