"""Editing text files in place and describing the change as a unified diff."""

from __future__ import annotations

import difflib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

from .access import AccessControl
from .errors import EditError
from .utils import normalize_line_endings

PathLike = Union[str, "os.PathLike[str]"]

DIFF_CONTEXT_LINES = 4
_NO_NEWLINE_MARKER = "\n\\ No newline at end of file\n"


@dataclass(frozen=True)
class EditOperation:
    """Replace the first occurrence of ``old_text`` with ``new_text``."""

    old_text: str
    new_text: str


def _leading_whitespace(text: str) -> str:
    return text[: len(text) - len(text.lstrip())]


def _diff_lines(lines: Iterable[str]) -> Iterator[str]:
    for line in lines:
        if line.endswith("\n"):
            yield line
        else:
            yield line + _NO_NEWLINE_MARKER


def _reindent(new_text: str, old_lines: list[str], original_indent: str) -> list[str]:
    """Re-indent replacement lines relative to the matched block's first line."""
    indent_char = "\t" if "\t" in original_indent else " "
    result = []
    for index, line in enumerate(new_text.split("\n")):
        if index == 0:
            result.append(original_indent + line.lstrip())
            continue
        old_indent = _leading_whitespace(old_lines[index]) if index < len(old_lines) else ""
        new_indent = _leading_whitespace(line)
        relative = max(len(new_indent) - len(old_indent), 0)
        result.append(original_indent + indent_char * relative + line.lstrip())
    return result


def _apply_edit(content: str, edit: EditOperation) -> str:
    old_text = normalize_line_endings(edit.old_text)
    new_text = normalize_line_endings(edit.new_text)
    if old_text in content:
        return content.replace(old_text, new_text, 1)

    old_lines = old_text.rstrip().split("\n")
    content_lines = content.rstrip().split("\n")
    if len(old_lines) > len(content_lines):
        raise EditError(
            "Cannot apply edit: the original text spans more lines "
            f"({len(old_lines)}) than the file content ({len(content_lines)})."
        )

    window = len(old_lines)
    for start in range(len(content_lines) - window + 1):
        candidate = content_lines[start : start + window]
        if all(old.strip() == line.strip() for old, line in zip(old_lines, candidate)):
            original_indent = _leading_whitespace(content_lines[start])
            replacement = _reindent(new_text, old_lines, original_indent)
            updated = content_lines[:start] + replacement + content_lines[start + window :]
            return "\n".join(updated)

    raise EditError(f"Could not find exact match for edit:\n{edit.old_text}")


class EditOps(AccessControl):
    """Text edits with diffs, restricted to allowed paths."""

    def detect_line_ending(self, text: str) -> str:
        """Return the line ending used by ``text``: ``\\r\\n``, ``\\r`` or ``\\n``."""
        if "\r\n" in text:
            return "\r\n"
        if "\r" in text:
            return "\r"
        return "\n"

    def create_unified_diff(
        self,
        original_content: str,
        new_content: str,
        filepath: Optional[str] = None,
    ) -> str:
        """Return an ``Index:``-headed unified diff between two texts."""
        original = normalize_line_endings(original_content).splitlines(keepends=True)
        modified = normalize_line_endings(new_content).splitlines(keepends=True)
        file_name = "file" if filepath is None else filepath
        patch = "".join(
            _diff_lines(
                difflib.unified_diff(
                    original,
                    modified,
                    fromfile=file_name,
                    tofile=file_name,
                    fromfiledate="original",
                    tofiledate="modified",
                    n=DIFF_CONTEXT_LINES,
                )
            )
        )
        return f"Index: {file_name}\n{'=' * 68}\n{patch}"

    def apply_file_edits(
        self,
        file_path: PathLike,
        edits: Iterable[EditOperation],
        dry_run: Optional[bool] = False,
        save_to: Optional[PathLike] = None,
    ) -> str:
        """Apply edits in order and return the diff fenced as a markdown block.

        Unless ``dry_run`` is set, the result is written to ``save_to`` or back
        to the file, keeping the file's original line ending.
        """
        valid_path = self.validate_path(file_path)
        with open(valid_path, encoding="utf-8", newline="") as fh:
            raw = fh.read()
        line_ending = self.detect_line_ending(raw)
        original = normalize_line_endings(raw)

        modified = original
        for edit in edits:
            modified = _apply_edit(modified, edit)

        diff = self.create_unified_diff(original, modified, str(valid_path))
        fence_length = 3
        while "`" * fence_length in diff:
            fence_length += 1
        fence = "`" * fence_length
        formatted = f"{fence}diff\n{diff}{fence}\n\n"

        if not dry_run:
            target = Path(save_to) if save_to is not None else valid_path
            with open(target, "w", encoding="utf-8", newline="") as fh:
                fh.write(modified.replace("\n", line_ending))
        return formatted