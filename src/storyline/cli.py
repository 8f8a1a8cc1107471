"""
Storyline command line entry point.

`add`, `list` and `run` work on the local catalog directly; every other
subcommand is sent to the running player over IPC.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

from rich.table import Table

from storyline import ipc
from storyline.core import config
from storyline.core.console import get_console, print_result
from storyline.domain.library import (
    Catalog,
    TitleFilter,
    TitleSort,
    extract_title_metadata,
    is_supported_format,
)
from storyline.utils.formatting import format_as_duration, format_progress


def send_ipc_command(command: str, args: list) -> int:
    """
    Send a command to the running player via IPC.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    success, message = ipc.send_command(command, args)
    return print_result(success, message)


def add_title(
    file_path: str, tags: list, config_path: Optional[Path] = None
) -> int:
    """Import an audio file into the catalog."""
    cfg = config.load_config(config_path)
    path = Path(file_path).expanduser().resolve()

    if not path.exists():
        return print_result(False, f"File not found: {path}")
    if not is_supported_format(path, cfg.library.supported_formats):
        return print_result(False, f"Unsupported format: {path.suffix}")

    metadata = extract_title_metadata(str(path))
    catalog = Catalog(config.get_database_path(cfg))
    title = catalog.create(
        title=metadata["title"],
        author=metadata["author"],
        narrator=metadata["narrator"],
        duration=metadata["duration"],
        resource_locator=str(path),
        tags=tags,
    )
    return print_result(True, f"Added {title.display_name} ({title.id})")


def list_titles(
    filter_name: str, sort_name: str, config_path: Optional[Path] = None
) -> int:
    """Print the catalog as a table."""
    cfg = config.load_config(config_path)
    catalog = Catalog(config.get_database_path(cfg))
    titles = catalog.query(TitleFilter(filter_name), TitleSort(sort_name))

    console = get_console()
    if not titles:
        console.print("[dim]No titles[/dim]")
        return 0

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title")
    table.add_column("Author")
    table.add_column("Length", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("", justify="center")

    for title in titles:
        marker = "✓" if title.is_finished else ("♥" if title.is_favorite else "")
        table.add_row(
            title.id,
            title.title,
            title.author,
            format_as_duration(title.duration),
            format_progress(title.progress),
            marker,
        )

    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storyline",
        description="Storyline - audiobook player",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config", type=Path, default=None, help="Path to config.toml"
    )

    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    # Library commands (run directly, not via IPC)
    add_parser = subparsers.add_parser("add", help="Add an audiobook file to the library")
    add_parser.add_argument("file", help="Audio file to import")
    add_parser.add_argument(
        "--tag", action="append", default=[], dest="tags", help="Tag to attach (repeatable)"
    )

    list_parser = subparsers.add_parser("list", help="List library titles")
    list_parser.add_argument(
        "--filter",
        choices=[f.value for f in TitleFilter],
        default=TitleFilter.ALL.value,
    )
    list_parser.add_argument(
        "--sort",
        choices=[s.value for s in TitleSort],
        default=TitleSort.DATE_ADDED.value,
    )

    run_parser = subparsers.add_parser("run", help="Start the player with a title")
    run_parser.add_argument("title_id", help="Title id from `storyline list`")

    # IPC commands for the running player
    subparsers.add_parser("play", help="Resume playback")
    subparsers.add_parser("pause", help="Pause playback")
    subparsers.add_parser("toggle", help="Toggle play/pause")
    subparsers.add_parser("stop", help="Stop and rewind")
    seek_parser = subparsers.add_parser("seek", help="Seek to a position in seconds")
    seek_parser.add_argument("seconds")
    subparsers.add_parser("forward", help="Skip forward")
    subparsers.add_parser("back", help="Skip backward")
    rate_parser = subparsers.add_parser("rate", help="Set playback speed")
    rate_parser.add_argument("rate")
    sleep_parser = subparsers.add_parser(
        "sleep", help='Pause after N minutes, or "chapter" for end of chapter'
    )
    sleep_parser.add_argument("minutes")
    subparsers.add_parser("cancel-sleep", help="Cancel the sleep timer")
    subparsers.add_parser("restart", help="Rewind the title to the start")
    subparsers.add_parser("finish", help="Mark the title finished")
    subparsers.add_parser("favorite", help="Toggle the title in favourites")
    subparsers.add_parser("cycle-rate", help="Step to the next playback speed")
    subparsers.add_parser("status", help="Show what is playing")
    subparsers.add_parser("now-playing", help="Show now-playing metadata")
    subparsers.add_parser("next", help="Next track (not supported)")
    subparsers.add_parser("previous", help="Previous track (not supported)")

    return parser


# Subcommand -> attribute holding its single IPC argument
_IPC_ARGUMENTS = {
    "seek": "seconds",
    "rate": "rate",
    "sleep": "minutes",
}


def main(argv: Optional[list] = None) -> None:
    """Main entry point for the storyline command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.subcommand is None:
        parser.print_help()
        sys.exit(1)

    if args.subcommand == "add":
        sys.exit(add_title(args.file, args.tags, args.config))

    if args.subcommand == "list":
        sys.exit(list_titles(args.filter, args.sort, args.config))

    if args.subcommand == "run":
        from .main import run_player

        sys.exit(run_player(args.title_id, args.config))

    attribute = _IPC_ARGUMENTS.get(args.subcommand)
    ipc_args = [getattr(args, attribute)] if attribute else []
    sys.exit(send_ipc_command(args.subcommand, ipc_args))


if __name__ == "__main__":
    main()
