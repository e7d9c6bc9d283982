from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from .adapter import MantaBlobStore, StorageEntry
from .config import load_settings, open_store
from .errors import BlobStoreError
from .paths import leaf_of
from .transfer import TransferHandle, TransferState

POLL_INTERVAL_SECONDS = 0.1

console = Console()
err_console = Console(stderr=True)


def format_size(size: int) -> str:
    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    value = float(size)
    for unit in units:
        if value < 1024 or unit == units[-1]:
            if unit == "B":
                return f"{int(value)} {unit}"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} PB"


def format_time(value: Optional[datetime]) -> str:
    if not value:
        return ""
    return value.strftime("%Y-%m-%d %H:%M")


def entries_table(title: str, entries: list[StorageEntry]) -> Table:
    table = Table(title=title)
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    for entry in entries:
        if entry.is_directory:
            name = leaf_of(entry.name.rstrip("/"))
            table.add_row(f"{name}/", "dir", "", format_time(entry.created_at))
        else:
            table.add_row(
                entry.name,
                "object",
                format_size(entry.size or 0),
                format_time(entry.created_at),
            )
    return table


def _cmd_ls(store: MantaBlobStore, args: argparse.Namespace) -> int:
    entries = store.list(args.directory)
    console.print(entries_table(args.directory, entries))
    return 0


def _cmd_mkdir(store: MantaBlobStore, args: argparse.Namespace) -> int:
    store.create_bucket(args.directory)
    return 0


def _cmd_rmdir(store: MantaBlobStore, args: argparse.Namespace) -> int:
    if args.clear:
        store.clear_bucket(args.directory)
    else:
        store.remove_bucket(args.directory)
    return 0


def _cmd_rm(store: MantaBlobStore, args: argparse.Namespace) -> int:
    store.remove_object(None, args.path)
    return 0


def _cmd_mv(store: MantaBlobStore, args: argparse.Namespace) -> int:
    store.rename_object(None, args.old, args.new)
    return 0


def _cmd_put(store: MantaBlobStore, args: argparse.Namespace) -> int:
    source = Path(args.file)
    entry = store.upload(source, args.directory, args.name or source.name)
    console.print(f"Uploaded {entry.path} ({format_size(entry.size or 0)})")
    return 0


def _cmd_get(store: MantaBlobStore, args: argparse.Namespace) -> int:
    handle = store.download(None, args.path, args.destination)
    return _follow_transfer(handle, args.path)


def _follow_transfer(handle: TransferHandle, label: str) -> int:
    with Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=err_console,
        transient=True,
    ) as progress:
        task = progress.add_task(leaf_of(label) or label, total=None)
        while not handle.wait(POLL_INTERVAL_SECONDS):
            snapshot = handle.snapshot()
            total = snapshot.bytes_transferred + snapshot.bytes_to_transfer
            progress.update(task, completed=snapshot.bytes_transferred, total=total or None)
        snapshot = handle.snapshot()
        progress.update(task, completed=snapshot.bytes_transferred, total=snapshot.bytes_transferred)
    if snapshot.state is TransferState.FAILED:
        err_console.print(f"[red]Download failed:[/red] {snapshot.error}")
        return 1
    console.print(
        f"Saved {snapshot.result} ({format_size(snapshot.bytes_transferred)}) "
        f"in {_elapsed(snapshot.start_time):.1f}s"
    )
    return 0


def _elapsed(start_time: datetime) -> float:
    return max(0.0, (datetime.now(timezone.utc) - start_time).total_seconds())


def _cmd_stat(store: MantaBlobStore, args: argparse.Namespace) -> int:
    entry = store.get_object(args.directory, args.name)
    if entry is None:
        return 1
    public = "public" if store.is_public(entry.container) else "private"
    console.print(f"{entry.path}  {format_size(entry.size or 0)}  {public}")
    return 0


def _cmd_check(store: MantaBlobStore, args: argparse.Namespace) -> int:
    subscribed = store.is_subscribed()
    table = Table(title=f"Account {store.account}", show_header=False)
    table.add_row("Subscribed", "yes" if subscribed else "no")
    table.add_row("Nested buckets", str(store.allows_nested_buckets()))
    table.add_row("Root objects", str(store.allows_root_objects()))
    table.add_row("Public sharing", str(store.allows_public_sharing()))
    table.add_row("Objects per directory", f"{store.max_objects_per_bucket():,}")
    console.print(table)
    return 0 if subscribed else 1


COMMANDS = {
    "ls": _cmd_ls,
    "mkdir": _cmd_mkdir,
    "rmdir": _cmd_rmdir,
    "rm": _cmd_rm,
    "mv": _cmd_mv,
    "put": _cmd_put,
    "get": _cmd_get,
    "stat": _cmd_stat,
    "check": _cmd_check,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mantablob",
        description="Bucket/object operations on a directory-based object store",
    )
    parser.add_argument("--account", help="Account (login) owning /<account>/stor")
    parser.add_argument("--region", help="Region identifier")
    parser.add_argument("--backend", choices=["s3", "local"], help="Storage backend")
    parser.add_argument("--config", type=Path, help="Path to config.json")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    ls = sub.add_parser("ls", help="List a directory")
    ls.add_argument("directory")

    mkdir = sub.add_parser("mkdir", help="Create a directory")
    mkdir.add_argument("directory")

    rmdir = sub.add_parser("rmdir", help="Remove a directory and its contents")
    rmdir.add_argument("directory")
    rmdir.add_argument(
        "--clear", action="store_true", help="Keep the directory, remove only its contents"
    )

    rm = sub.add_parser("rm", help="Remove an object")
    rm.add_argument("path")

    mv = sub.add_parser("mv", help="Rename an object")
    mv.add_argument("old")
    mv.add_argument("new")

    put = sub.add_parser("put", help="Upload a local file into a directory")
    put.add_argument("file")
    put.add_argument("directory")
    put.add_argument("--name", help="Object name (defaults to the file name)")

    get = sub.add_parser("get", help="Download an object")
    get.add_argument("path")
    get.add_argument("destination")

    stat = sub.add_parser("stat", help="Show object size and visibility")
    stat.add_argument("directory")
    stat.add_argument("name")

    sub.add_parser("check", help="Check access to the account")
    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    try:
        settings = load_settings(
            config_path=args.config,
            account=args.account,
            region_id=args.region,
            backend=args.backend,
        )
    except ValueError as exc:
        err_console.print(f"[red]Configuration error:[/red] {exc}")
        return 2
    store = open_store(settings)
    try:
        return COMMANDS[args.command](store, args)
    except BlobStoreError as exc:
        err_console.print(f"[red]{type(exc).__name__}:[/red] {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
