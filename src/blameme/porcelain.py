"""
Porcelain git blame parser.

Turns the output of `git blame --line-porcelain` (or `--porcelain`) into an
ordered list of BlameRecord, one per line of the blamed file.
"""

import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

SHA1_REGEX = re.compile(r"^[a-fA-F0-9]{40}")
HEADER_LINE_REGEX = re.compile(r"^[a-fA-F0-9]{40}( [0-9]+){2,3}$")
TIMESTAMP_REGEX = re.compile(r"^[+-]?[0-9]+$")
TIMEZONE_REGEX = re.compile(r"^[+-][0-9]{4}$")

TIME_MARKER = "author-time "
TIMEZONE_MARKER = "author-tz "
TEXT_MARKER = "\t"


class BlameParsingError(Exception):
    """Porcelain blame output could not be parsed."""

    def __init__(self, msg: str, line_number: Optional[int] = None):
        if line_number is not None:
            msg = f"{msg} (input line {line_number})"
        super().__init__(msg)
        self.line_number = line_number


class MalformedAuthorField(BlameParsingError):
    """Author header missing or not shaped as expected."""


class MalformedTimestamp(BlameParsingError):
    """author-time payload is not an integer."""


class MalformedTimezone(BlameParsingError):
    """author-tz payload is not a +HHMM/-HHMM offset."""


class MalformedHashField(BlameParsingError):
    """Hash header line missing or empty."""


def is_sha_line(line: str) -> bool:
    """Loose record start: a 40 hex prefix followed by anything."""
    parts = line.split(" ")
    return len(parts) > 1 and bool(SHA1_REGEX.match(parts[0]))


def is_header_line(line: str) -> bool:
    """Strict record start: `<sha> <orig-line> <final-line> [<group-size>]`."""
    return bool(HEADER_LINE_REGEX.match(line))


@dataclass(frozen=True)
class BlameMode:
    """Which author header is honoured and how a new record is detected."""

    name: str
    author_marker: str
    strip_brackets: bool
    is_record_start: Callable[[str], bool]


MAIL_MODE = BlameMode("mail", "author-mail ", True, is_sha_line)
NAME_MODE = BlameMode("name", "author ", False, is_header_line)
MODES: Dict[str, BlameMode] = {mode.name: mode for mode in (MAIL_MODE, NAME_MODE)}


def get_mode(name: str) -> BlameMode:
    """Return the BlameMode registered under name."""
    try:
        return MODES[name]
    except KeyError:
        raise ValueError(f"unknown blame mode {name!r}, expected one of {sorted(MODES)}") from None


@dataclass(frozen=True)
class BlameRecord:
    """Attribution of a single line of the blamed file."""

    author: str
    text: str
    timestamp: datetime
    hash: str


@dataclass(frozen=True)
class ParseState:
    """Fields collected so far for the record being assembled."""

    hash_line: Optional[str] = None
    author_line: Optional[str] = None
    time_line: Optional[str] = None
    timezone_line: Optional[str] = None
    text: Optional[str] = None
    line_number: Optional[int] = None

    @property
    def complete(self) -> bool:
        """A record is flushed only once its text line was consumed."""
        return self.text is not None


def parse_author(line: Optional[str], mode: BlameMode, line_number: Optional[int] = None) -> str:
    if line is None or not line.startswith(mode.author_marker):
        raise MalformedAuthorField(f"missing {mode.author_marker.strip()} header", line_number)
    author = line[len(mode.author_marker) :]
    if mode.strip_brackets:
        author = author.removeprefix("<").removesuffix(">")
    return author


def parse_timestamp(
    time_line: Optional[str], timezone_line: Optional[str], line_number: Optional[int] = None
) -> datetime:
    """Combine author-time and author-tz headers into a UTC datetime."""
    if time_line is None or not time_line.startswith(TIME_MARKER):
        raise MalformedTimestamp("missing author-time header", line_number)
    seconds = time_line[len(TIME_MARKER) :]
    if not TIMESTAMP_REGEX.match(seconds):
        raise MalformedTimestamp(f"invalid author-time {seconds!r}", line_number)

    if timezone_line is None or not timezone_line.startswith(TIMEZONE_MARKER):
        raise MalformedTimezone("missing author-tz header", line_number)
    offset = timezone_line[len(TIMEZONE_MARKER) :]
    # the offset is only validated, epoch seconds are already absolute
    if len(offset) != 5 or not TIMEZONE_REGEX.match(offset):
        raise MalformedTimezone(f"invalid author-tz {offset!r}", line_number)

    try:
        return datetime.fromtimestamp(int(seconds), tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise MalformedTimestamp(f"author-time {seconds!r} out of range", line_number) from exc


def parse_hash(line: Optional[str], line_number: Optional[int] = None) -> str:
    parts = line.split() if line is not None else []
    if not parts:
        raise MalformedHashField("missing commit hash header", line_number)
    return parts[0]


def build_record(state: ParseState, mode: BlameMode) -> BlameRecord:
    """Validate the accumulated fields and turn them into a BlameRecord."""
    author = parse_author(state.author_line, mode, state.line_number)
    timestamp = parse_timestamp(state.time_line, state.timezone_line, state.line_number)
    commit = parse_hash(state.hash_line, state.line_number)
    return BlameRecord(author=author, text=state.text, timestamp=timestamp, hash=commit)


def parse_line(line: str, state: ParseState, mode: BlameMode) -> ParseState:
    """Fold one header or text line into the current state."""
    if line.startswith(TEXT_MARKER):
        return replace(state, text=line[len(TEXT_MARKER) :])
    if line.startswith(mode.author_marker):
        return replace(state, author_line=line)
    if line.startswith(TIME_MARKER):
        return replace(state, time_line=line)
    if line.startswith(TIMEZONE_MARKER):
        return replace(state, timezone_line=line)
    # committer*, summary, previous, filename, boundary and the like
    return state


def parse_blame(
    raw_text: str,
    mode: BlameMode = MAIL_MODE,
    stop_on_blank_line: bool = False,
    reuse_commit_headers: bool = False,
) -> List[BlameRecord]:
    """
    Parse porcelain git blame output.

    Records come out in input order. Any malformed field aborts the whole
    parse with a BlameParsingError, no partial result is returned.

    With reuse_commit_headers the author headers seen for a commit are
    remembered and used for later blocks of the same commit that omit them,
    which is how plain `--porcelain` output is abbreviated.
    """
    records: List[BlameRecord] = []
    commit_headers: Dict[str, ParseState] = {}
    state = ParseState()

    def flush(state: ParseState) -> None:
        if not state.complete:
            return
        records.append(build_record(state, mode))
        if reuse_commit_headers:
            commit_headers[parse_hash(state.hash_line)] = state

    for line_number, line in enumerate(raw_text.split("\n"), start=1):
        if mode.is_record_start(line):
            flush(state)
            state = ParseState(hash_line=line, line_number=line_number)
            seen = commit_headers.get(parse_hash(line, line_number))
            if seen is not None:
                state = replace(
                    state,
                    author_line=seen.author_line,
                    time_line=seen.time_line,
                    timezone_line=seen.timezone_line,
                )
            continue
        if stop_on_blank_line and not line.strip() and not line.startswith(TEXT_MARKER):
            break
        state = parse_line(line, state, mode)

    flush(state)
    return records
