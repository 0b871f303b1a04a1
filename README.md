# fsgate

`fsgate` performs filesystem operations while keeping every path it touches
inside a configured set of allowed directories. A requested path has a leading
`~` expanded to the home directory and is made absolute; it is then resolved
(symlinks followed, where the path exists) and accepted only if the result
lies under one of the allowed directories. A symlink that leads outside the
allowed tree is therefore refused.

It has no third-party dependencies.

## What it can do

`fsgate.service.FileSystemService` gathers every operation:

- `read_text_file`, `head_file`, `tail_file`, `read_file_lines`: read a text
  file whole, its first or last lines, or a range of lines, keeping line endings
- `read_media_file`, `read_media_files`: return a file's detected type
  (`MediaType`, from an `.svg` extension or the file's leading bytes) and its
  content as base64, with an optional size cap; `read_media_files` reads
  several files concurrently and leaves out the ones that fail
- `write_file`, `create_directory`, `move_file`, `list_directory`,
  `get_file_stats` (a `FileInfo` whose `str()` lists size, times, kind and
  permissions)
- `search_files` / `search_files_iter`: find entries by a case-insensitive
  name glob, with exclusion patterns matched against the relative path and
  optional size bounds
- `content_search`, `search_files_content`: search file contents by literal
  text or regular expression, case-insensitively, with a snippet around each
  match (`FileSearchResult`, `ContentMatchResult`)
- `directory_tree`: nested `name`/`type`/`children` dicts with optional depth
  and entry limits, plus whether the depth limit cut anything off
- `apply_file_edits`: apply `EditOperation`s (exact match first, then
  line-by-line matching that ignores surrounding whitespace and re-indents the
  replacement), returning a fenced unified diff; it can be a dry run or write
  to a different path, and keeps the file's line ending
- `zip_directory`, `zip_files`, `unzip_file`
- `calculate_directory_size`, `find_empty_directories` (ignoring `.DS_Store`
  and `Thumbs.db`), `find_duplicate_files` (same size and SHA-256 hash)

## Using it

```python
from fsgate.service import FileSystemService
from fsgate.editing import EditOperation

service = FileSystemService(["~/projects"])

text = service.read_text_file("~/projects/notes.txt")
first = service.head_file("~/projects/notes.txt", 10)

for entry in service.search_files("~/projects", "*.py", ["/build/**"], None, None):
    print(entry)

diff = service.apply_file_edits(
    "~/projects/notes.txt",
    [EditOperation(old_text="draft", new_text="final")],
    True,   # dry run: only return the diff
    None,
)
print(diff)
```

Every directory passed to the constructor must exist, or `NotADirectoryError`
is raised.

## Errors

A path outside the allowed directories, or any path when no directory is
allowed, raises `fsgate.errors.AccessDeniedError`. Errors the service reports
itself derive from `fsgate.errors.ServiceError`: `EditError` when an edit
cannot be applied, `FileTooLargeError` and `FileTooSmallError` for size
bounds. Operating-system failures come through as the usual exceptions
(`FileNotFoundError`, `FileExistsError` for an existing zip target or unzip
directory, and so on), and `zip_files` with an empty list raises `ValueError`.

## Allowed directories

The allowed set can be replaced at run time. `valid_roots` accepts plain paths
or `file://` URIs, keeps those that are existing directories and returns a
warning naming how many were skipped; `update_allowed_paths` installs the
result:

```python
roots, warning = service.valid_roots(["file:///srv/data", "/srv/shared"])
service.update_allowed_paths(roots)
```

## Command-line arguments

`fsgate.cli.parse_args` parses a list of arguments into `CommandArguments`:
`-w/--allow-write` (or `ALLOW_WRITE=true`), `-t/--enable-roots` (or
`ENABLE_ROOTS=true`) and a list of allowed directories. `-h/--help`,
`-V/--version` and unknown options raise `ArgumentParseError`, whose `kind`
is a `ParseErrorKind`. `CommandArguments.validate` raises when no directories
are given and roots are not enabled.

## What it does not do

`fsgate` is a library. It installs no command, runs no server and speaks no
client protocol: the parsed arguments are not wired to anything, and the
`allow_write` option is not enforced by `FileSystemService`, whose write
operations always run (`NoWriteAccessError` exists for a caller that wants to
enforce read-only mode itself).

## Running the tests

Install the `test` extra and run `pytest` from the project root.