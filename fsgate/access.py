"""Access control over the set of allowed directories."""

from __future__ import annotations

import os
import re
import stat
import threading
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from .errors import AccessDeniedError
from .file_info import FileInfo
from .utils import contains_symlink, expand_home, normalize_path

PathLike = Union[str, "os.PathLike[str]"]

# Unresolved template placeholders from container gateways are read as ".".
_GATEWAY_PLACEHOLDER = re.compile(
    r"\{\{[\w.-]+\.allowed_directories\|volume-target\|into\}\}"
)


def _resolve_placeholder(directory: str) -> str:
    return "." if _GATEWAY_PLACEHOLDER.search(directory) else directory


def _parse_file_path(text: str) -> str:
    """Accept a raw path or a ``file://`` URI."""
    return text.removeprefix("file://").strip()


def _creation_time(metadata: os.stat_result) -> Optional[float]:
    birth = getattr(metadata, "st_birthtime", None)
    return birth if birth is not None else metadata.st_ctime


class AccessControl:
    """Keeps the allowed directories and checks paths against them."""

    def __init__(self, allowed_directories: Iterable[str]) -> None:
        directories = []
        for raw in allowed_directories:
            directory = _resolve_placeholder(raw)
            expanded = expand_home(directory)
            if not directory or not expanded.is_dir():
                raise NotADirectoryError(f"Error: {directory} is not a directory")
            directories.append(expanded)
        self._lock = threading.Lock()
        self._allowed: tuple[Path, ...] = tuple(directories)

    def allowed_directories(self) -> tuple[Path, ...]:
        """Return a snapshot of the allowed directories."""
        with self._lock:
            return self._allowed

    def valid_roots(self, roots: Iterable[str]) -> tuple[list[Path], Optional[str]]:
        """Split client roots into existing directories and a warning for the rest."""
        valid: dict[Path, None] = {}
        invalid: set[str] = set()
        for root in roots:
            text = _parse_file_path(root)
            path = expand_home(text) if text else None
            if path is not None and path.is_dir():
                valid.setdefault(path, None)
            else:
                invalid.add(str(path) if path is not None else text)
        warning = f"Warning: skipped {len(invalid)} invalid roots." if invalid else None
        return list(valid), warning

    def update_allowed_paths(self, valid_roots: Iterable[PathLike]) -> None:
        """Replace the allowed directories."""
        with self._lock:
            self._allowed = tuple(Path(root) for root in valid_roots)

    def validate_path(
        self,
        requested_path: PathLike,
        allowed_directories: Optional[Sequence[PathLike]] = None,
    ) -> Path:
        """Return the absolute form of ``requested_path`` if it is allowed.

        Raises ``AccessDeniedError`` when the path lies outside every allowed
        directory or when no directory is allowed at all.
        """
        if allowed_directories is None:
            allowed = self.allowed_directories()
        else:
            allowed = tuple(Path(directory) for directory in allowed_directories)
        if not allowed:
            raise AccessDeniedError(
                "Allowed directories list is empty. Client did not provide any "
                "valid root directories."
            )

        expanded = expand_home(requested_path)
        absolute = expanded if expanded.is_absolute() else Path.cwd() / expanded
        normalized = normalize_path(absolute)

        if any(
            normalized.is_relative_to(directory)
            or normalized.is_relative_to(normalize_path(directory))
            for directory in allowed
        ):
            return absolute

        kind = "a symlink target path" if contains_symlink(absolute) else "path"
        listed = ",\n".join(str(directory) for directory in allowed)
        raise AccessDeniedError(
            f"Access denied - {kind} is outside allowed directories: "
            f"{absolute} not in {listed}"
        )

    def get_file_stats(self, file_path: PathLike) -> FileInfo:
        """Return size, timestamps, kind and permissions of an allowed path."""
        valid_path = self.validate_path(file_path)
        metadata = os.stat(valid_path)
        return FileInfo(
            size=metadata.st_size,
            created=_creation_time(metadata),
            modified=metadata.st_mtime,
            accessed=metadata.st_atime,
            is_directory=stat.S_ISDIR(metadata.st_mode),
            is_file=stat.S_ISREG(metadata.st_mode),
            metadata=metadata,
        )