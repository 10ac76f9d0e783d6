"""
Git integration tools.
"""

import os
import subprocess
from typing import Dict, List, Optional

from blameme.porcelain import MAIL_MODE, BlameMode, BlameRecord, parse_blame


class GitError(Exception):
    """Running git blame failed."""


def blame_args(file_path: str, revision: Optional[str] = None, abbreviated: bool = False) -> List[str]:
    """Return the git command line used to blame file_path."""
    args = ["git", "blame"]
    if revision:
        args.append(revision)
    args.append("--porcelain" if abbreviated else "--line-porcelain")
    args.extend(["--", os.path.basename(file_path)])
    return args


def blame_file(file_path: str, revision: Optional[str] = None, abbreviated: bool = False) -> str:
    """Return the raw porcelain git blame output for the given file."""
    file_path = os.path.abspath(file_path)
    cmd = blame_args(file_path, revision, abbreviated)
    try:
        process_out = subprocess.run(
            cmd, cwd=os.path.dirname(file_path), capture_output=True, check=False
        )
    except OSError as exc:
        raise GitError(f"could not run {' '.join(cmd)}: {exc}") from exc

    git_error = process_out.stderr.decode("utf-8", errors="replace").strip()
    if process_out.returncode != 0 or git_error.startswith("fatal"):
        raise GitError(f"failed to execute git blame on {file_path}: {git_error}")
    return process_out.stdout.decode("utf-8", errors="replace")


def blame_records(
    file_path: str,
    revision: Optional[str] = None,
    mode: BlameMode = MAIL_MODE,
    stop_on_blank_line: bool = False,
    abbreviated: bool = False,
) -> List[BlameRecord]:
    """Blame file_path and parse the result, one record per line."""
    blame = blame_file(file_path, revision, abbreviated)
    return parse_blame(
        blame,
        mode=mode,
        stop_on_blank_line=stop_on_blank_line,
        reuse_commit_headers=abbreviated,
    )


def blame_lines(file_path: str, lines: List[int], **kwargs) -> Dict[int, BlameRecord]:
    """Return the blame records of the given 1-indexed lines that exist in the file."""
    return pick_lines(blame_records(file_path, **kwargs), lines)


def pick_lines(records: List[BlameRecord], lines: List[int]) -> Dict[int, BlameRecord]:
    """Map the given 1-indexed line numbers to their records, skipping missing lines."""
    return {line: records[line - 1] for line in lines if 0 < line <= len(records)}
