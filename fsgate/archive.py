"""Creating and extracting zip archives inside the allowed directories."""

from __future__ import annotations

import os
import shutil
import stat
import zipfile
from pathlib import Path
from typing import Iterator, Sequence, Union

from .access import AccessControl
from .utils import format_bytes, glob_match, write_zip_entry

PathLike = Union[str, "os.PathLike[str]"]


def _plural(count: int) -> str:
    return "file" if count == 1 else "files"


def _archive_size(path: Path) -> str:
    try:
        return format_bytes(os.stat(path).st_size)
    except OSError:
        return "unknown"


def _walk_following_links(top: Path) -> Iterator[Path]:
    """Yield ``top`` and everything under it, following links but not loops."""

    def visit(path: Path, ancestors: frozenset) -> Iterator[Path]:
        try:
            metadata = os.stat(path)
        except OSError:
            return
        yield path
        if not stat.S_ISDIR(metadata.st_mode):
            return
        key = (metadata.st_dev, metadata.st_ino)
        if key in ancestors:
            return
        try:
            names = sorted(os.listdir(path))
        except OSError:
            return
        inner = ancestors | {key}
        for name in names:
            yield from visit(path / name, inner)

    return visit(top, frozenset())


def _directory_pattern(pattern: str) -> str:
    lowered = pattern.lower()
    return lowered if "*" in pattern else f"*{lowered}*"


class ArchiveOps(AccessControl):
    """Zip and unzip operations restricted to allowed paths."""

    def zip_directory(self, input_dir: str, pattern: str, target_zip_file: str) -> str:
        """Compress the files under ``input_dir`` whose full paths match ``pattern``.

        Without a ``*`` the pattern matches any path containing it. Returns a
        message naming the archive and its size.
        """
        allowed = self.allowed_directories()
        valid_dir = self.validate_path(input_dir, allowed)
        target_path = self.validate_path(target_zip_file, allowed)
        if target_path.exists():
            raise FileExistsError(f"'{target_zip_file}' already exists!")

        glob_pattern = _directory_pattern(pattern)
        selected = []
        for path in _walk_following_links(valid_dir):
            try:
                valid = self.validate_path(path, allowed)
            except Exception:
                continue
            if valid != valid_dir and glob_match(glob_pattern, str(valid)):
                selected.append(valid)

        base = str(valid_dir)
        with zipfile.ZipFile(target_path, "w") as archive:
            for entry in selected:
                if entry.is_dir():
                    continue
                entry_text = str(entry)
                if not entry_text.startswith(base):
                    raise ValueError(
                        "Entry file path does not start with base input directory path."
                    )
                write_zip_entry(entry_text[len(base) + 1:], entry, archive)

        return (
            f"Successfully compressed '{input_dir}' directory into "
            f"'{target_path}' ({_archive_size(target_path)})."
        )

    def zip_files(self, input_files: Sequence[str], target_zip_file: str) -> str:
        """Compress the given files, each stored under its own file name."""
        file_count = len(input_files)
        if file_count == 0:
            raise ValueError("No file(s) to zip. The input files array is empty.")

        allowed = self.allowed_directories()
        target_path = self.validate_path(target_zip_file, allowed)
        if target_path.exists():
            raise FileExistsError(f"'{target_zip_file}' already exists!")

        sources = [self.validate_path(path, allowed) for path in input_files]

        with zipfile.ZipFile(target_path, "w") as archive:
            for source in sources:
                if not source.name:
                    raise ValueError("Invalid path!")
                write_zip_entry(source.name, source, archive)

        return (
            f"Successfully compressed {file_count} {_plural(file_count)} into "
            f"'{target_path}' ({_archive_size(target_path)})."
        )

    def unzip_file(self, zip_file: str, target_dir: str) -> str:
        """Extract every entry of ``zip_file`` into the new directory ``target_dir``."""
        allowed = self.allowed_directories()
        zip_path = self.validate_path(zip_file, allowed)
        target_path = self.validate_path(target_dir, allowed)
        if not zip_path.exists():
            raise FileNotFoundError("Zip file does not exists.")
        if target_path.exists():
            raise FileExistsError(f"'{target_dir}' directory already exists!")

        with zipfile.ZipFile(zip_path) as archive:
            entries = archive.infolist()
            for info in entries:
                entry_path = self.validate_path(target_path / info.filename, allowed)
                if info.is_dir():
                    entry_path.mkdir(parents=True, exist_ok=True)
                    continue
                entry_path.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(info) as source, open(entry_path, "wb") as destination:
                    shutil.copyfileobj(source, destination)

        file_count = len(entries)
        return (
            f"Successfully extracted {file_count} {_plural(file_count)} "
            f"into '{target_path}'."
        )