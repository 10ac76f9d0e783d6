"""
Command line entry-point: blame a file and show who last touched each line.
"""

import argparse
import os
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.padding import Padding
from rich.table import Table

from blameme.config import get_config, parse_options
from blameme.git_tools import GitError, blame_file, pick_lines
from blameme.porcelain import BlameParsingError, BlameRecord, parse_blame

CONSOLE = Console(highlight=False)


def boldify(string: str) -> str:
    """Turn text to bold format."""
    return f"[bold]{string}[/bold]"


def colorize(string: str, old: bool) -> str:
    """Mark lines older than the age limit."""
    if old:
        return f"[grey85 on red3]{string}[/grey85 on red3]"
    return f"[dark_sea_green4]{string}[/dark_sea_green4]"


def log_warning(msg: str, verbose: bool = False) -> None:
    """Log warning if verbose is set to True."""
    if verbose:
        CONSOLE.print(f"WARNING: {msg}", markup=False, soft_wrap=True)


def log_error(msg: str) -> None:
    CONSOLE.print(f"ERROR: {msg}", markup=False, soft_wrap=True)


def is_old(record: BlameRecord, age_limit: int) -> bool:
    return record.timestamp < datetime.now(timezone.utc) - timedelta(days=age_limit)


def get_plain_line(line_number: int, record: BlameRecord, max_digits: int) -> str:
    return " ".join(
        (
            str(line_number).rjust(max_digits),
            record.hash[:8],
            record.author,
            record.timestamp.isoformat(),
            record.text,
        )
    )


def select_lines(records: List[BlameRecord], lines: Optional[List[int]], verbose: bool) -> Dict[int, BlameRecord]:
    """Pick the requested 1-indexed lines, or all of them."""
    if not lines:
        return dict(enumerate(records, start=1))
    selected = pick_lines(records, lines)
    for line in lines:
        if line not in selected:
            log_warning(f"line {line} is out of range (file has {len(records)} lines)", verbose)
    return selected


def print_records(file: str, selected: Dict[int, BlameRecord], args: argparse.Namespace) -> None:
    """Print blame records with rich text formatting."""
    if not selected:
        log_warning(f"no blame records for {file}", args.verbose)
        return

    max_digits = len(str(max(selected)))
    if args.style == "plain":
        for line_number, record in selected.items():
            CONSOLE.print(
                get_plain_line(line_number, record, max_digits),
                markup=False,
                emoji=False,
                soft_wrap=True,
            )
        return

    CONSOLE.print(boldify(f"• {escape(file)}") + f" ({len(selected)} lines):")
    grid = Table.grid(expand=False, pad_edge=True, padding=(0, 1))
    grid.add_column(justify="right", width=max_digits)
    grid.add_column(justify="left", no_wrap=True, min_width=8)
    grid.add_column(justify="left")
    grid.add_column(justify="left")
    grid.add_column(justify="left", no_wrap=True)
    for line_number, record in selected.items():
        author = escape(record.author)
        if args.style == "full":
            author = colorize(author, is_old(record, args.age_limit))
        grid.add_row(
            str(line_number),
            record.hash[:8],
            author,
            record.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            escape(record.text),
        )
    CONSOLE.print(Padding(grid, (0, 0, 0, 2)))
    CONSOLE.print()


def main(raw_args=None):
    """Run blameme."""
    parser = argparse.ArgumentParser(prog="blameme")
    parser.add_argument("path", type=str, help="Path to the file to be blamed.")
    parser.add_argument("--rev", "-r", type=str, default=None, help="Revision to blame at.")
    parser.add_argument(
        "--lines",
        "-n",
        nargs="+",
        type=int,
        default=None,
        help="Only show these 1-indexed line numbers.",
    )
    parser.add_argument(
        "--age-limit",
        "-l",
        type=int,
        default=60,
        help="Age limit in days. Lines last changed before this limit are marked.",
    )
    parser.add_argument(
        "--stop-on-blank",
        action="store_const",
        const=True,
        default=None,
        dest="stop_on_blank_line",
        help="Stop reading blame output at the first blank header line.",
    )
    parser.add_argument(
        "--abbreviated",
        action="store_true",
        help="Ask git for --porcelain instead of --line-porcelain output.",
    )
    parser.add_argument("--verbose", "-v", action="store_true")
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument("--email", "-e", action="store_const", dest="mode", const="mail")
    mode_group.add_argument("--name", "-N", action="store_const", dest="mode", const="name")
    style_group = parser.add_mutually_exclusive_group()
    style_group.add_argument(
        "--full", action="store_const", dest="style", const="full", default="full"
    )
    style_group.add_argument("--bw", "-b", action="store_const", dest="style", const="bw")
    style_group.add_argument("--plain", "-p", action="store_const", dest="style", const="plain")
    args = parser.parse_args(raw_args)

    try:
        options = parse_options(
            get_config(),
            mode=args.mode,
            stop_on_blank_line=args.stop_on_blank_line,
            reuse_commit_headers=args.abbreviated or None,
        )
    except ValueError as exc:
        log_error(f"invalid configuration: {exc}")
        return 1
    abbreviated = options["reuse_commit_headers"]

    path = os.path.abspath(args.path)
    try:
        blame = blame_file(path, args.rev, abbreviated)
        records = parse_blame(blame, **options)
    except (GitError, BlameParsingError) as exc:
        log_error(str(exc))
        return 1

    print_records(os.path.basename(path), select_lines(records, args.lines, args.verbose), args)
    return 0
