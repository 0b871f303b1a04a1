"""File metadata as reported to clients."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .utils import format_permissions, format_system_time


def _format_optional_time(timestamp: Optional[float]) -> str:
    return "" if timestamp is None else format_system_time(timestamp)


@dataclass(frozen=True)
class FileInfo:
    """Size, timestamps, kind and permissions of a filesystem entry."""

    size: int
    created: Optional[float]
    modified: Optional[float]
    accessed: Optional[float]
    is_directory: bool
    is_file: bool
    metadata: os.stat_result

    def __str__(self) -> str:
        return (
            f"size: {self.size}\n"
            f"created: {_format_optional_time(self.created)}\n"
            f"modified: {_format_optional_time(self.modified)}\n"
            f"accessed: {_format_optional_time(self.accessed)}\n"
            f"isDirectory: {str(self.is_directory).lower()}\n"
            f"isFile: {str(self.is_file).lower()}\n"
            f"permissions: {format_permissions(self.metadata)}\n"
        )