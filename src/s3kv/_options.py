"""Per-operation options and their resolution against store defaults.

Each call kind has its own frozen options type. Backend-specific settings
live in a named ``object_options`` field rather than being merged into the
options type itself, so the object store's parameters never become part of
the key-value surface by accident.

Default values:

=================  ==============  ===================================================
Options type       Core fields     ``object_options``
=================  ==============  ===================================================
``SetOptions``     ``overwrite``   ``PutObjectOptions()`` (no content type, no metadata)
``GetOptions``     --              ``GetObjectOptions()`` (whole object)
``GetInfoOptions`` --              ``StatObjectOptions()``
``DelOptions``     --              ``RemoveObjectOptions()``
``ListOptions``    --              ``ListObjectsOptions()`` (non-recursive, no cap)
``CopyOptions``    --              --
=================  ==============  ===================================================

Every type also carries ``context``; ``None`` means "use the store's default".
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Optional, TypeVar

if TYPE_CHECKING:
    from s3kv._context import Context


# region: object store options


@dataclasses.dataclass(frozen=True)
class PutObjectOptions:
    """Parameters passed through to ``ObjectStore.put_object``.

    :param content_type: MIME type stored with the object.
    :param metadata: User metadata stored with the object.
    :param cache_control: ``Cache-Control`` header value.
    :param storage_class: Backend storage class name.
    """

    content_type: Optional[str] = None
    metadata: dict[str, str] = dataclasses.field(default_factory=dict)
    cache_control: Optional[str] = None
    storage_class: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class GetObjectOptions:
    """Parameters passed through to ``ObjectStore.get_object``.

    :param version_id: Object version to read.
    :param offset: First byte to return.
    :param length: Number of bytes to return, ``None`` for the rest of the object.
    """

    version_id: Optional[str] = None
    offset: int = 0
    length: Optional[int] = None


@dataclasses.dataclass(frozen=True)
class StatObjectOptions:
    version_id: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class RemoveObjectOptions:
    version_id: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class ListObjectsOptions:
    """Parameters passed through to ``ObjectStore.list_objects``.

    :param prefix: Key prefix to list. Always overwritten by the store.
    :param recursive: List every key below ``prefix`` instead of grouping at ``/``.
    :param max_keys: Maximum number of keys to return; ``0`` means unlimited.
    :param start_after: Only return keys that sort after this one.
    """

    prefix: str = ""
    recursive: bool = False
    max_keys: int = 0
    start_after: str = ""


# endregion


# region: store options


@dataclasses.dataclass(frozen=True)
class SetOptions:
    """Options for ``Store.set`` and ``Store.set_object``.

    :param overwrite: If ``False``, refuse to replace an existing key.
    """

    context: Optional[Context] = None
    overwrite: bool = True
    object_options: PutObjectOptions = dataclasses.field(default_factory=PutObjectOptions)


@dataclasses.dataclass(frozen=True)
class GetOptions:
    """Options for ``Store.get`` and ``Store.get_object``."""

    context: Optional[Context] = None
    object_options: GetObjectOptions = dataclasses.field(default_factory=GetObjectOptions)


@dataclasses.dataclass(frozen=True)
class GetInfoOptions:
    """Options for ``Store.get_info``."""

    context: Optional[Context] = None
    object_options: StatObjectOptions = dataclasses.field(default_factory=StatObjectOptions)


@dataclasses.dataclass(frozen=True)
class DelOptions:
    """Options for ``Store.delete``."""

    context: Optional[Context] = None
    object_options: RemoveObjectOptions = dataclasses.field(default_factory=RemoveObjectOptions)


@dataclasses.dataclass(frozen=True)
class ListOptions:
    """Options for the ``Store.list*`` family."""

    context: Optional[Context] = None
    object_options: ListObjectsOptions = dataclasses.field(default_factory=ListObjectsOptions)

    @property
    def max_keys(self) -> int:
        return self.object_options.max_keys

    @property
    def start_after(self) -> str:
        return self.object_options.start_after

    def with_max_keys(self, max_keys: int) -> ListOptions:
        """Return a copy limited to ``max_keys`` results."""
        if max_keys < 0:
            raise ValueError("max_keys must not be negative")
        return dataclasses.replace(self, object_options=dataclasses.replace(self.object_options, max_keys=max_keys))

    def with_start_after(self, start_after: str) -> ListOptions:
        """Return a copy that lists only keys sorting after ``start_after``."""
        return dataclasses.replace(
            self, object_options=dataclasses.replace(self.object_options, start_after=start_after)
        )

    def with_recursive(self, recursive: bool = True) -> ListOptions:
        """Return a copy that lists every key below the prefix."""
        return dataclasses.replace(self, object_options=dataclasses.replace(self.object_options, recursive=recursive))


@dataclasses.dataclass(frozen=True)
class CopyOptions:
    """Options for ``Store.copy`` and ``Store.move``."""

    context: Optional[Context] = None


# endregion


# region: resolution

_Opt = TypeVar("_Opt", SetOptions, GetOptions, GetInfoOptions, DelOptions, ListOptions, CopyOptions)


def resolve(kind: type[_Opt], default_context: Context, options: Optional[_Opt] = None) -> _Opt:
    """Return a fully populated copy of ``options``.

    Without ``options`` a fresh ``kind()`` carrying ``default_context`` is
    returned. With ``options`` only a missing context is filled in; all other
    fields pass through. The caller's object is never modified.

    :raises TypeError: If ``options`` is not an instance of ``kind``.
    """
    if options is None:
        return kind(context=default_context)
    if not isinstance(options, kind):
        raise TypeError(f"Expected {kind.__name__}, got {type(options).__name__}")
    if options.context is None:
        return dataclasses.replace(options, context=default_context)
    return options


def resolve_list(default_context: Context, prefix: str, options: Optional[ListOptions] = None) -> ListOptions:
    """Resolve list options and force ``object_options.prefix`` to ``prefix``."""
    resolved = resolve(ListOptions, default_context, options)
    if resolved.object_options.prefix == prefix:
        return resolved
    return dataclasses.replace(resolved, object_options=dataclasses.replace(resolved.object_options, prefix=prefix))


# endregion
