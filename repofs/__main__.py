"""CLI entry point for inspecting and localizing model repositories.

Usage:
    python -m repofs ls s3://my-bucket/models
    python -m repofs ls gs://my-bucket/models --dirs
    python -m repofs cat as://acct.blob.core.windows.net/models/resnet/config.pbtxt
    python -m repofs stat gs://my-bucket/models/resnet
    python -m repofs localize s3://my-bucket/models/resnet
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from repofs.lib.env import load_env_file
from repofs.lib.errors import StorageError
from repofs.lib.logging import setup_logging
from repofs.lib.storage import classify, file_system_type_string, get_storage

logger = logging.getLogger(__name__)


def ls_command(args: argparse.Namespace) -> None:
    with get_storage(args.path) as storage:
        if args.dirs:
            names = storage.list_subdirectories(args.path)
        elif args.files:
            names = storage.list_files(args.path)
        else:
            names = storage.list_directory(args.path)

    for name in sorted(names):
        if not args.all and name.startswith("."):
            continue
        print(name)


def cat_command(args: argparse.Namespace) -> None:
    with get_storage(args.path) as storage:
        data = storage.read_binary_file(args.path)
    sys.stdout.buffer.write(data)
    sys.stdout.flush()


def stat_command(args: argparse.Namespace) -> None:
    kind = classify(args.path)
    with get_storage(args.path) as storage:
        exists = storage.exists(args.path)
        info = {
            "path": args.path,
            "filesystem": file_system_type_string(kind),
            "exists": exists,
            "is_directory": exists and storage.is_directory(args.path),
            "modification_time_ns": storage.modification_time(args.path) if exists else None,
        }
    print(json.dumps(info, indent=2))


def localize_command(args: argparse.Namespace) -> None:
    """Copy a directory to local disk and print where it landed.

    The copy is kept; the caller is responsible for deleting it.
    """
    with get_storage(args.path) as storage:
        localized = storage.localize_directory(args.path)
    local_path = localized.detach()
    logger.info("Localized %s", args.path)
    print(local_path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repofs",
        description="Inspect and localize model repositories on local disk, GCS, S3 or Azure",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Credentials:
    Set REPOFS_CLOUD_CREDENTIAL_PATH to a JSON credential file, or use the
    provider environment variables (GOOGLE_APPLICATION_CREDENTIALS,
    AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY, AZURE_STORAGE_ACCOUNT/AZURE_STORAGE_KEY).
        """,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs in JSON format (for log aggregation systems)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to a file in addition to the console",
    )
    parser.add_argument(
        "--env-file",
        help="Load environment variables from this .env file first",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    ls_parser = subparsers.add_parser("ls", help="List a directory")
    ls_parser.add_argument("path")
    kind_group = ls_parser.add_mutually_exclusive_group()
    kind_group.add_argument("--dirs", action="store_true", help="Only subdirectories")
    kind_group.add_argument("--files", action="store_true", help="Only files")
    ls_parser.add_argument(
        "-a", "--all", action="store_true", help="Include names starting with '.'"
    )
    ls_parser.set_defaults(func=ls_command)

    cat_parser = subparsers.add_parser("cat", help="Print a file to stdout")
    cat_parser.add_argument("path")
    cat_parser.set_defaults(func=cat_command)

    stat_parser = subparsers.add_parser("stat", help="Show file or directory information")
    stat_parser.add_argument("path")
    stat_parser.set_defaults(func=stat_command)

    localize_parser = subparsers.add_parser(
        "localize", help="Copy a directory to a local temporary directory"
    )
    localize_parser.add_argument("path")
    localize_parser.set_defaults(func=localize_command)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.env_file:
        load_env_file(args.env_file, override=True)

    setup_logging(
        verbose=args.verbose,
        json_format=args.json_logs,
        log_file=args.log_file,
    )

    try:
        args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)
    except StorageError as e:
        logger.debug("Command failed", exc_info=True)
        logger.error("%s", e)
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
