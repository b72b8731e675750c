"""s3cp — copy a file to or from an S3-compatible bucket.

Usage::

    s3cp [OPTION] source target

Prefix a source or target with ``s3:`` to name a key in the bucket, e.g.
``s3cp notes.txt s3:backup/notes.txt``. Connection settings not given as
options are read from ``S3KV_ACCESSKEY``, ``S3KV_SECRETKEY``,
``S3KV_ENDPOINT``, ``S3KV_BUCKET`` and ``S3KV_SECURE``.
"""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import sys
from typing import TYPE_CHECKING, Optional

from s3kv import __version__
from s3kv._config import ConnectionConfig
from s3kv._connect import connect_config
from s3kv._errors import S3KVError
from s3kv._transfer import Transfer

if TYPE_CHECKING:
    from collections.abc import Sequence

log = logging.getLogger("s3kv.cli")

APP_NAME = "s3cp"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=f"{APP_NAME} {__version__}: copy a file to or from S3 storage. "
        "Use s3:folder/object_name to name an object in the bucket.",
    )
    parser.add_argument("source", nargs="?", help="local path or s3:key to copy from")
    parser.add_argument("target", nargs="?", help="local path or s3:key to copy to")
    parser.add_argument("--accesskey", dest="access_key", help="S3 storage access key")
    parser.add_argument("--secretkey", dest="secret_key", help="S3 storage secret key")
    parser.add_argument("--endpoint", help="S3 storage endpoint (host[:port] or URL)")
    parser.add_argument("--bucket", help="S3 storage bucket")
    parser.add_argument(
        "--secure",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="use HTTPS; --no-secure enables insecure (HTTP) access (default: secure)",
    )
    parser.add_argument("--syslog", action="store_true", help="send log messages to syslog")
    parser.add_argument("-v", "--verbose", action="store_true", help="log progress messages")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(*, verbose: bool = False, use_syslog: bool = False) -> None:
    """Install the command's log handler on the root logger, replacing one installed earlier."""
    level = logging.INFO if verbose else logging.WARNING
    handler: logging.Handler
    if use_syslog:
        handler = logging.handlers.SysLogHandler(
            address="/dev/log", facility=logging.handlers.SysLogHandler.LOG_LOCAL7
        )
        handler.setFormatter(logging.Formatter(f"{APP_NAME}: %(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler.set_name(APP_NAME)
    root = logging.getLogger()
    for previous in [h for h in root.handlers if h.get_name() == APP_NAME]:
        root.removeHandler(previous)
        previous.close()
    root.addHandler(handler)
    root.setLevel(level)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = ConnectionConfig.from_env().merge(
            access_key=args.access_key,
            secret_key=args.secret_key,
            endpoint=args.endpoint,
            bucket=args.bucket,
            secure=args.secure,
        )
        config.validate()
    except ValueError as exc:
        parser.print_usage(sys.stderr)
        print(f"{APP_NAME}: error: {exc}; set them with options or environment variables", file=sys.stderr)
        return 2

    if args.source is None or args.target is None:
        parser.print_usage(sys.stderr)
        print(f"{APP_NAME}: error: source and target are required", file=sys.stderr)
        return 2

    configure_logging(verbose=args.verbose, use_syslog=args.syslog)
    log.info("copy %s to %s", args.source, args.target)

    try:
        with Transfer(lambda: connect_config(config)) as transfer:
            transfer.run([args.source, args.target])
    except (S3KVError, ValueError) as exc:
        log.error("%s", exc)
        print(f"{APP_NAME}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
