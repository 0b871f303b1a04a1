"""The complete filesystem service offered to clients."""

from __future__ import annotations

from .archive import ArchiveOps
from .editing import EditOps
from .search import SearchOps


class FileSystemService(SearchOps, EditOps, ArchiveOps):
    """Every filesystem operation, restricted to a set of allowed directories.

    It is built from a list of directories, each of which must exist; a
    leading ``~`` is expanded to the home directory. The directories may be
    replaced later with ``update_allowed_paths``, for instance from the roots
    a client reports.
    """

    def __repr__(self) -> str:
        directories = ", ".join(str(d) for d in self.allowed_directories())
        return f"{type(self).__name__}([{directories}])"