"""Searching file names and contents inside the allowed directories."""

from __future__ import annotations

import hashlib
import itertools
import os
import re
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence, Union

from .errors import ServiceError
from .reading import ReadingOps
from .utils import glob_match, is_system_metadata_file

PathLike = Union[str, "os.PathLike[str]"]

SNIPPET_MAX_LENGTH = 200
SNIPPET_BACKWARD_CHARS = 30

_QUICK_HASH_SIZE = 4096
_HASH_CHUNK_SIZE = 8192
_REGEX_SPECIAL_CHARS = frozenset(".^$*+?()[]{}\\|/")


@dataclass(frozen=True)
class ContentMatchResult:
    """One matching line in a file."""

    line_number: int
    """1-based number of the matching line."""
    start_pos: int
    """Character offset of the match within the line."""
    line_text: str
    """The line, or a snippet of it around the match when it is long."""


@dataclass
class FileSearchResult:
    """All matching lines found in one file."""

    file_path: Path
    matches: list[ContentMatchResult] = field(default_factory=list)


def _name_pattern(pattern: str) -> str:
    lowered = pattern.lower()
    return lowered if "*" in lowered else f"**/*{lowered}*"


def _exclude_pattern(pattern: str) -> str:
    if "*" in pattern:
        return pattern.removeprefix("/")
    return f"*{pattern}*"


def _relative_text(path: Path, root: Path) -> str:
    try:
        relative = path.relative_to(root)
    except ValueError:
        return path.as_posix()
    return "" if relative == Path(".") else relative.as_posix()


def _walk(
    top: Path, keep: Callable[[Path, os.stat_result], bool]
) -> Iterator[Path]:
    """Walk ``top`` depth-first, following links and pruning rejected entries."""

    def visit(path: Path, ancestors: frozenset) -> Iterator[Path]:
        try:
            metadata = os.stat(path)
        except OSError:
            return
        is_dir = stat.S_ISDIR(metadata.st_mode)
        key = (metadata.st_dev, metadata.st_ino)
        if is_dir and key in ancestors:
            return
        if not keep(path, metadata):
            return
        yield path
        if not is_dir:
            return
        try:
            names = sorted(os.listdir(path))
        except OSError:
            return
        inner = ancestors | {key}
        for name in names:
            yield from visit(path / name, inner)

    return visit(top, frozenset())


def _holds_real_files(directory: Path) -> bool:
    """Tell whether a tree holds a regular file other than OS metadata files."""
    try:
        entries = list(os.scandir(directory))
    except OSError:
        return False
    for entry in entries:
        try:
            if entry.is_file(follow_symlinks=False):
                if not is_system_metadata_file(entry.name):
                    return True
            elif entry.is_dir(follow_symlinks=False) and _holds_real_files(Path(entry.path)):
                return True
        except OSError:
            continue
    return False


def _hash_file(path: str, limit: Optional[int] = None) -> Optional[bytes]:
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as fh:
            if limit is not None:
                digest.update(fh.read(limit))
            else:
                for chunk in iter(lambda: fh.read(_HASH_CHUNK_SIZE), b""):
                    digest.update(chunk)
    except OSError:
        return None
    return digest.digest()


def _regroup(
    groups: Iterable[list[str]], key: Callable[[str], Optional[bytes]]
) -> list[list[str]]:
    buckets: dict[bytes, list[str]] = {}
    for group in groups:
        for path in group:
            value = key(path)
            if value is not None:
                buckets.setdefault(value, []).append(path)
    return [paths for paths in buckets.values() if len(paths) > 1]


class SearchOps(ReadingOps):
    """Name search, content search and tree analysis over allowed paths."""

    def search_files(
        self,
        root_path: PathLike,
        pattern: str,
        exclude_patterns: Optional[Sequence[str]] = None,
        min_bytes: Optional[int] = None,
        max_bytes: Optional[int] = None,
    ) -> list[Path]:
        """Return every path under ``root_path`` whose name matches ``pattern``."""
        return list(
            self.search_files_iter(root_path, pattern, exclude_patterns, min_bytes, max_bytes)
        )

    def search_files_iter(
        self,
        root_path: PathLike,
        pattern: str,
        exclude_patterns: Optional[Sequence[str]] = None,
        min_bytes: Optional[int] = None,
        max_bytes: Optional[int] = None,
    ) -> Iterator[Path]:
        """Yield paths under ``root_path`` whose names match ``pattern``.

        The name pattern is case-insensitive; without a ``*`` it matches any
        name containing it. Exclude patterns are matched, case-sensitively,
        against the path relative to the root and prune whole subtrees.
        """
        allowed = self.allowed_directories()
        valid_path = self.validate_path(root_path, allowed)
        name_pattern = _name_pattern(pattern)
        excludes = [_exclude_pattern(p) for p in exclude_patterns or ()]
        enforce_size = min_bytes is None or max_bytes is None

        def keep(path: Path, metadata: os.stat_result) -> bool:
            try:
                self.validate_path(path, allowed)
            except (ServiceError, OSError):
                return False
            relative = _relative_text(path, valid_path)
            if any(glob_match(p, relative) for p in excludes):
                return False
            if enforce_size and not self.filesize_in_range(
                metadata.st_size, min_bytes, max_bytes
            ):
                return False
            return True

        return (
            path
            for path in _walk(valid_path, keep)
            if path != valid_path and glob_match(name_pattern, path.name.lower())
        )

    def directory_tree(
        self,
        root_path: PathLike,
        max_depth: Optional[int] = None,
        max_files: Optional[int] = None,
        allowed_directories: Optional[Sequence[PathLike]] = None,
    ) -> tuple[list[dict[str, Any]], bool]:
        """Describe a directory tree as nested ``name``/``type``/``children`` dicts.

        Returns the tree and whether ``max_depth`` cut any part of it off.
        Entries beyond ``max_files`` are left out.
        """
        allowed = (
            self.allowed_directories()
            if allowed_directories is None
            else tuple(Path(d) for d in allowed_directories)
        )
        counter = itertools.count(1)

        def build(path: PathLike, depth: Optional[int]) -> tuple[list[dict[str, Any]], bool]:
            valid_path = self.validate_path(path, allowed)
            if not stat.S_ISDIR(os.stat(valid_path).st_mode):
                raise ServiceError("Root path must be a directory")
            if depth == 0:
                return [], True
            children: list[dict[str, Any]] = []
            reached_max_depth = False
            for name in sorted(os.listdir(valid_path)):
                child = valid_path / name
                try:
                    metadata = os.stat(child)
                except OSError:
                    continue
                position = next(counter)
                if max_files is not None and position > max_files:
                    continue
                is_dir = stat.S_ISDIR(metadata.st_mode)
                entry: dict[str, Any] = {
                    "name": name,
                    "type": "directory" if is_dir else "file",
                }
                if is_dir:
                    sub_tree, sub_reached = build(
                        child, None if depth is None else depth - 1
                    )
                    entry["children"] = sub_tree
                    reached_max_depth |= sub_reached
                children.append(entry)
            return children, reached_max_depth

        return build(root_path, max_depth)

    def escape_regex(self, text: str) -> str:
        """Backslash-escape characters that are special in common regex dialects."""
        return "".join(f"\\{ch}" if ch in _REGEX_SPECIAL_CHARS else ch for ch in text)

    def content_search(
        self, query: str, file_path: PathLike, is_regex: Optional[bool] = False
    ) -> Optional[FileSearchResult]:
        """Find lines of a file matching ``query``, case-insensitively.

        Returns ``None`` when nothing matches or the file looks binary.
        """
        expression = query if is_regex else self.escape_regex(query)
        try:
            matcher = re.compile(expression, re.IGNORECASE)
        except re.error as exc:
            raise ServiceError(f"Invalid search pattern: {exc}") from exc

        path = Path(file_path)
        data = path.read_bytes()
        if b"\x00" in data:
            return None
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ServiceError(f"{path} is not valid UTF-8: {exc}") from exc

        lines = text.split("\n")
        if lines[-1] == "":
            lines.pop()

        result = FileSearchResult(file_path=path)
        for number, line in enumerate(lines, start=1):
            found = matcher.search(line)
            if found is None:
                continue
            result.matches.append(
                ContentMatchResult(
                    line_number=number,
                    start_pos=found.start(),
                    line_text=self.extract_snippet(line, found.start(), found.end()),
                )
            )
        return result if result.matches else None

    def extract_snippet(
        self,
        line: str,
        match_start: int,
        match_end: int,
        max_length: Optional[int] = None,
        backward_chars: Optional[int] = None,
    ) -> str:
        """Cut a snippet of the trimmed line around a match.

        The snippet starts ``backward_chars`` characters before the match and
        holds at most ``max_length`` characters; ``...`` marks each side that
        was cut.
        """
        max_length = SNIPPET_MAX_LENGTH if max_length is None else max_length
        backward_chars = SNIPPET_BACKWARD_CHARS if backward_chars is None else backward_chars

        leading = len(line) - len(line.lstrip())
        trimmed = line.strip()
        desired_start = max(match_start - leading - backward_chars, 0)
        start = min(desired_start, len(trimmed))
        end = min(start + max_length, len(trimmed))

        prefix = "..." if start > 0 else ""
        suffix = "..." if end < len(trimmed) else ""
        return f"{prefix}{trimmed[start:end]}{suffix}"

    def search_files_content(
        self,
        root_path: PathLike,
        pattern: str,
        query: str,
        is_regex: bool = False,
        exclude_patterns: Optional[Sequence[str]] = None,
        min_bytes: Optional[int] = None,
        max_bytes: Optional[int] = None,
    ) -> list[FileSearchResult]:
        """Search the content of every file whose name matches ``pattern``."""
        results = []
        for path in self.search_files_iter(
            root_path, pattern, exclude_patterns, min_bytes, max_bytes
        ):
            try:
                found = self.content_search(query, path, is_regex)
            except (ServiceError, OSError):
                continue
            if found is not None:
                results.append(found)
        return results

    def calculate_directory_size(self, root_path: PathLike) -> int:
        """Return the total size in bytes of all files under ``root_path``."""
        total = 0
        for path in self.search_files_iter(root_path, "**/*"):
            try:
                metadata = os.stat(path)
            except OSError:
                continue
            if stat.S_ISREG(metadata.st_mode):
                total += metadata.st_size
        return total

    def find_empty_directories(
        self, root_path: PathLike, exclude_patterns: Optional[Sequence[str]] = None
    ) -> list[str]:
        """Return directories under ``root_path`` that hold no files.

        Empty subdirectories and ``.DS_Store``/``Thumbs.db`` files do not
        count as content.
        """
        return [
            str(path)
            for path in self.search_files_iter(root_path, "**/*", exclude_patterns)
            if path.is_dir() and not _holds_real_files(path)
        ]

    def find_duplicate_files(
        self,
        root_path: PathLike,
        pattern: Optional[str] = None,
        exclude_patterns: Optional[Sequence[str]] = None,
        min_bytes: Optional[int] = None,
        max_bytes: Optional[int] = None,
    ) -> list[list[str]]:
        """Return groups of files with identical size and SHA-256 content hash."""
        valid_path = self.validate_path(root_path)

        by_size: dict[int, list[str]] = {}
        for path in self.search_files_iter(
            valid_path, pattern or "**/*", exclude_patterns, min_bytes, max_bytes
        ):
            try:
                metadata = os.stat(path)
            except OSError:
                continue
            if stat.S_ISREG(metadata.st_mode):
                by_size.setdefault(metadata.st_size, []).append(str(path))

        size_groups = [paths for paths in by_size.values() if len(paths) > 1]
        quick_groups = _regroup(size_groups, lambda p: _hash_file(p, _QUICK_HASH_SIZE))
        return _regroup(quick_groups, _hash_file)