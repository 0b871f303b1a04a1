"""Reading, writing and moving files inside the allowed directories."""

from __future__ import annotations

import base64
import itertools
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from .access import AccessControl
from .errors import FileTooLargeError, FileTooSmallError, ServiceError

PathLike = Union[str, "os.PathLike[str]"]

MAX_CONCURRENT_FILE_READ = 5
_TAIL_CHUNK_SIZE = 8192
_SNIFF_SIZE = 8192


@dataclass(frozen=True)
class MediaType:
    """A detected file type: broad category, MIME type and usual extension."""

    category: str
    mime_type: str
    extension: str


_SVG = MediaType("image", "image/svg+xml", "svg")


def _ftyp_brand(data: bytes) -> Optional[bytes]:
    if len(data) >= 12 and data[4:8] == b"ftyp":
        return data[8:12]
    return None


def _brand_in(*brands: bytes) -> Callable[[bytes], bool]:
    return lambda data: _ftyp_brand(data) in brands


def _riff(kind: bytes) -> Callable[[bytes], bool]:
    return lambda data: data[:4] == b"RIFF" and data[8:12] == kind


def _prefix(*prefixes: bytes) -> Callable[[bytes], bool]:
    return lambda data: any(data.startswith(p) for p in prefixes)


_SIGNATURES: tuple[tuple[Callable[[bytes], bool], MediaType], ...] = (
    (_prefix(b"\x89PNG\r\n\x1a\n"), MediaType("image", "image/png", "png")),
    (_prefix(b"\xff\xd8\xff"), MediaType("image", "image/jpeg", "jpg")),
    (_prefix(b"GIF87a", b"GIF89a"), MediaType("image", "image/gif", "gif")),
    (_riff(b"WEBP"), MediaType("image", "image/webp", "webp")),
    (_prefix(b"II*\x00", b"MM\x00*"), MediaType("image", "image/tiff", "tif")),
    (_brand_in(b"avif", b"avis"), MediaType("image", "image/avif", "avif")),
    (
        _brand_in(b"heic", b"heix", b"mif1", b"msf1", b"heim", b"heis"),
        MediaType("image", "image/heif", "heif"),
    ),
    (_prefix(b"\x00\x00\x01\x00"), MediaType("image", "image/vnd.microsoft.icon", "ico")),
    (_prefix(b"BM"), MediaType("image", "image/bmp", "bmp")),
    (_riff(b"WAVE"), MediaType("audio", "audio/x-wav", "wav")),
    (_prefix(b"fLaC"), MediaType("audio", "audio/x-flac", "flac")),
    (_prefix(b"OggS"), MediaType("audio", "audio/ogg", "ogg")),
    (_prefix(b"MThd"), MediaType("audio", "audio/midi", "mid")),
    (_prefix(b"#!AMR"), MediaType("audio", "audio/amr", "amr")),
    (
        lambda data: data[:4] == b"FORM" and data[8:12] in (b"AIFF", b"AIFC"),
        MediaType("audio", "audio/x-aiff", "aif"),
    ),
    (_brand_in(b"M4A "), MediaType("audio", "audio/m4a", "m4a")),
    (_prefix(b"ID3", b"\xff\xfb", b"\xff\xf3", b"\xff\xf2"), MediaType("audio", "audio/mpeg", "mp3")),
    (_prefix(b"\xff\xf1", b"\xff\xf9"), MediaType("audio", "audio/aac", "aac")),
    (
        _brand_in(b"isom", b"iso2", b"mp41", b"mp42", b"avc1", b"dash", b"MSNV"),
        MediaType("video", "video/mp4", "mp4"),
    ),
    (_brand_in(b"qt  "), MediaType("video", "video/quicktime", "mov")),
    (_prefix(b"\x1aE\xdf\xa3"), MediaType("video", "video/x-matroska", "mkv")),
    (_riff(b"AVI "), MediaType("video", "video/x-msvideo", "avi")),
    (_prefix(b"%PDF"), MediaType("document", "application/pdf", "pdf")),
    (_prefix(b"PK\x03\x04"), MediaType("archive", "application/zip", "zip")),
    (_prefix(b"\x1f\x8b"), MediaType("archive", "application/gzip", "gz")),
    (_prefix(b"7z\xbc\xaf\x27\x1c"), MediaType("archive", "application/x-7z-compressed", "7z")),
)


def _detect(data: bytes) -> Optional[MediaType]:
    return next((kind for matches, kind in _SIGNATURES if matches(data)), None)


def _decode(chunks: Iterable[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace")


def _start_of_last_lines(fh, size: int, newlines_needed: int) -> int:
    """Offset just past the ``newlines_needed``-th newline from the end, or 0."""
    pos = size
    seen = 0
    while pos > 0:
        read_size = min(_TAIL_CHUNK_SIZE, pos)
        pos -= read_size
        fh.seek(pos)
        chunk = fh.read(read_size)
        index = len(chunk)
        while (index := chunk.rfind(b"\n", 0, index)) != -1:
            seen += 1
            if seen == newlines_needed:
                return pos + index + 1
    return 0


class ReadingOps(AccessControl):
    """File reading, writing and media operations restricted to allowed paths."""

    def read_text_file(self, file_path: PathLike) -> str:
        """Return the whole content of a UTF-8 text file."""
        valid_path = self.validate_path(file_path)
        with open(valid_path, encoding="utf-8", newline="") as fh:
            return fh.read()

    def create_directory(self, file_path: PathLike) -> None:
        """Create a directory and any missing parents."""
        self.validate_path(file_path).mkdir(parents=True, exist_ok=True)

    def move_file(self, src_path: PathLike, dest_path: PathLike) -> None:
        """Move or rename a file or directory."""
        valid_src = self.validate_path(src_path)
        valid_dest = self.validate_path(dest_path)
        os.rename(valid_src, valid_dest)

    def list_directory(self, dir_path: PathLike) -> list[os.DirEntry]:
        """Return the entries of a directory."""
        valid_path = self.validate_path(dir_path)
        with os.scandir(valid_path) as entries:
            return list(entries)

    def write_file(self, file_path: PathLike, content: str) -> None:
        """Write ``content`` to a file, replacing what was there."""
        valid_path = self.validate_path(file_path)
        with open(valid_path, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)

    def head_file(self, file_path: PathLike, n: int) -> str:
        """Return the first ``n`` lines, keeping their line endings."""
        valid_path = self.validate_path(file_path)
        with open(valid_path, "rb") as fh:
            return _decode(itertools.islice(fh, n))

    def tail_file(self, file_path: PathLike, n: int) -> str:
        """Return the last ``n`` lines, keeping their line endings."""
        valid_path = self.validate_path(file_path)
        with open(valid_path, "rb") as fh:
            size = os.fstat(fh.fileno()).st_size
            if size == 0 or n == 0:
                return ""
            fh.seek(size - 1)
            trailing_newline = fh.read(1) == b"\n"
            start = _start_of_last_lines(fh, size, n + int(trailing_newline))
            fh.seek(start)
            return _decode([fh.read()])

    def read_file_lines(
        self, path: PathLike, offset: int, limit: Optional[int] = None
    ) -> str:
        """Return up to ``limit`` lines after skipping ``offset`` lines."""
        valid_path = self.validate_path(path)
        with open(valid_path, "rb") as fh:
            size = os.fstat(fh.fileno()).st_size
            if size == 0 or limit == 0:
                return ""
            skipped = sum(1 for _ in itertools.islice(fh, offset))
            if skipped < offset:
                return ""
            return _decode(itertools.islice(fh, limit))

    def mime_from_path(self, path: PathLike) -> MediaType:
        """Detect a file's type from its extension (SVG) or leading bytes."""
        candidate = Path(path)
        if candidate.suffix == ".svg":
            return _SVG
        with open(candidate, "rb") as fh:
            kind = _detect(fh.read(_SNIFF_SIZE))
        if kind is None:
            raise ServiceError("File type is unknown!")
        return kind

    def filesize_in_range(
        self,
        file_size: int,
        min_bytes: Optional[int] = None,
        max_bytes: Optional[int] = None,
    ) -> bool:
        """Tell whether a size lies within the optional bounds."""
        if max_bytes is not None and file_size > max_bytes:
            return False
        if min_bytes is not None and file_size < min_bytes:
            return False
        return True

    def validate_file_size(
        self,
        path: PathLike,
        min_bytes: Optional[int] = None,
        max_bytes: Optional[int] = None,
    ) -> None:
        """Raise if the file at ``path`` is outside the optional bounds."""
        if min_bytes is None and max_bytes is None:
            return
        file_size = os.stat(path).st_size
        if max_bytes is not None and file_size > max_bytes:
            raise FileTooLargeError(max_bytes)
        if min_bytes is not None and file_size < min_bytes:
            raise FileTooSmallError(min_bytes)

    def read_media_file(
        self, file_path: PathLike, max_bytes: Optional[int] = None
    ) -> tuple[MediaType, str]:
        """Return a file's detected type and its base64-encoded content."""
        valid_path = self.validate_path(file_path)
        self.validate_file_size(valid_path, None, max_bytes)
        kind = self.mime_from_path(valid_path)
        content = base64.b64encode(valid_path.read_bytes()).decode("ascii")
        return kind, content

    def read_media_files(
        self, paths: Iterable[PathLike], max_bytes: Optional[int] = None
    ) -> list[tuple[MediaType, str]]:
        """Read several media files concurrently, leaving out those that fail."""

        def read_one(path: PathLike) -> Optional[tuple[MediaType, str]]:
            try:
                return self.read_media_file(path, max_bytes)
            except (ServiceError, OSError):
                return None

        with ThreadPoolExecutor(max_workers=MAX_CONCURRENT_FILE_READ) as pool:
            return [result for result in pool.map(read_one, paths) if result is not None]