"""Helpers shared by the filesystem service."""

from __future__ import annotations

import functools
import os
import re
import stat
import zipfile
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]

_SYSTEM_METADATA_FILES = frozenset({".DS_Store", "Thumbs.db"})
_FILE_ATTRIBUTE_READONLY = 0x1

_SIZE_UNITS = (
    (1024**4, "TB"),
    (1024**3, "GB"),
    (1024**2, "MB"),
    (1024, "KB"),
)


class OutputFormat(str, Enum):
    """Output format a caller may ask for."""

    TEXT = "text"
    JSON = "json"


def format_system_time(timestamp: float) -> str:
    """Format a POSIX timestamp in local time, e.g. ``Sat Apr 12 2025 14:30:45 +02:00``."""
    moment = datetime.fromtimestamp(timestamp).astimezone()
    offset = moment.utcoffset() or timedelta(0)
    total_seconds = int(offset.total_seconds())
    sign = "-" if total_seconds < 0 else "+"
    hours, remainder = divmod(abs(total_seconds), 3600)
    return moment.strftime("%a %b %d %Y %H:%M:%S ") + f"{sign}{hours:02d}:{remainder // 60:02d}"


def format_permissions(stat_result: os.stat_result) -> str:
    """Describe permissions: octal mode on POSIX, ``d``/``-`` plus ``r``/``w`` on Windows."""
    if os.name == "nt":
        attributes = getattr(stat_result, "st_file_attributes", 0)
        kind = "d" if stat.S_ISDIR(stat_result.st_mode) else "-"
        access = "r" if attributes & _FILE_ATTRIBUTE_READONLY else "w"
        return kind + access
    return f"0{stat_result.st_mode & 0o777:o}"


def normalize_path(path: PathLike) -> Path:
    """Return the canonical form of an existing path, or the path unchanged."""
    candidate = Path(path)
    try:
        return candidate.resolve(strict=True)
    except (OSError, RuntimeError):
        return candidate


def expand_home(path: PathLike) -> Path:
    """Replace a leading ``~`` component with the user's home directory."""
    candidate = Path(path)
    if not candidate.parts or candidate.parts[0] != "~":
        return candidate
    try:
        home = Path.home()
    except RuntimeError:
        return candidate
    return home.joinpath(*candidate.parts[1:])


def format_bytes(num_bytes: int) -> str:
    """Render a byte count with a binary unit and two decimals."""
    for threshold, unit in _SIZE_UNITS:
        if num_bytes >= threshold:
            return f"{num_bytes / threshold:.2f} {unit}"
    return f"{num_bytes} bytes"


def write_zip_entry(filename: str, input_path: PathLike, zip_file: zipfile.ZipFile) -> None:
    """Add the whole of ``input_path`` to ``zip_file`` as a deflated entry."""
    data = Path(input_path).read_bytes()
    zip_file.writestr(filename, data, compress_type=zipfile.ZIP_DEFLATED)


def normalize_line_endings(text: str) -> str:
    """Turn ``\\r\\n`` and lone ``\\r`` into ``\\n``."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def contains_symlink(path: PathLike) -> bool:
    """Tell whether any existing leading part of ``path`` is a symbolic link."""
    current = Path()
    for part in Path(path).parts:
        current = current / part
        if not current.exists():
            break
        if stat.S_ISLNK(os.lstat(current).st_mode):
            return True
    return False


def is_system_metadata_file(filename: str) -> bool:
    """Tell whether a file name is ``.DS_Store`` or ``Thumbs.db``."""
    return os.fsdecode(filename) in _SYSTEM_METADATA_FILES


def glob_match(pattern: str, text: str) -> bool:
    """Match ``text`` against a glob pattern.

    Supports ``*`` and ``?`` (not crossing ``/``), ``**`` as a whole path
    segment (any number of segments), ``[...]`` classes with ``!`` or ``^``
    negation, ``{a,b}`` alternatives and ``\\`` escapes. Case-sensitive.
    """
    return _compile_glob(pattern).fullmatch(text) is not None


@functools.lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    body, _ = _translate(pattern, 0, nested=False)
    return re.compile(body, re.DOTALL)


def _translate(pattern: str, pos: int, nested: bool) -> tuple[str, int]:
    out: list[str] = []
    length = len(pattern)
    while pos < length:
        char = pattern[pos]
        if nested and char == "}":
            return "".join(out), pos + 1
        if nested and char == ",":
            out.append("|")
            pos += 1
        elif char == "\\":
            if pos + 1 < length:
                out.append(re.escape(pattern[pos + 1]))
                pos += 2
            else:
                out.append(re.escape(char))
                pos += 1
        elif char == "*":
            pos = _translate_star(pattern, pos, out)
        elif char == "?":
            out.append("[^/]")
            pos += 1
        elif char == "[":
            pos = _translate_class(pattern, pos, out)
        elif char == "{":
            alternatives, pos = _translate(pattern, pos + 1, nested=True)
            out.append(f"(?:{alternatives})")
        else:
            out.append(re.escape(char))
            pos += 1
    return "".join(out), pos


def _translate_star(pattern: str, pos: int, out: list[str]) -> int:
    if not pattern.startswith("**", pos):
        out.append("[^/]*")
        return pos + 1
    end = pos + 2
    while end < len(pattern) and pattern[end] == "*":
        end += 1
    segment_start = pos == 0 or pattern[pos - 1] == "/"
    if segment_start and end < len(pattern) and pattern[end] == "/":
        out.append("(?:.*/)?")
        return end + 1
    if segment_start and end == len(pattern):
        if out and out[-1] == "/":
            out[-1] = "(?:/.*)?"
        else:
            out.append(".*")
        return end
    out.append("[^/]*")
    return end


def _translate_class(pattern: str, pos: int, out: list[str]) -> int:
    start = pos + 1
    negate = start < len(pattern) and pattern[start] in "!^"
    if negate:
        start += 1
    search_from = start + 1 if start < len(pattern) and pattern[start] == "]" else start
    close = pattern.find("]", search_from)
    if close == -1:
        out.append(re.escape("["))
        return pos + 1
    content = pattern[start:close]
    escaped = (
        content.replace("\\", "\\\\")
        .replace("[", "\\[")
        .replace("]", "\\]")
        .replace("^", "\\^")
    )
    out.append(f"[{'^' if negate else ''}{escaped}]")
    return close + 1