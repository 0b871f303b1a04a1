import base64
from pathlib import Path

import pytest

from fsgate.errors import (
    AccessDeniedError,
    FileTooLargeError,
    FileTooSmallError,
    ServiceError,
)
from fsgate.reading import MediaType, ReadingOps

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


@pytest.fixture
def setup(tmp_path):
    allowed = tmp_path / "dir1"
    allowed.mkdir()
    return tmp_path, ReadingOps([str(allowed)])


def create_temp_file(directory: Path, name: str, content: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(content.encode("utf-8"))
    return path


def create_test_file_with_line_ending(root: Path, relative: str, lines, ending: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(ending.join(lines).encode("utf-8"))
    return path


def create_test_file(root: Path, relative: str, lines) -> Path:
    return create_test_file_with_line_ending(root, relative, lines, "\n")


def test_read_file(setup):
    tmp, ops = setup
    path = create_temp_file(tmp / "dir1", "test.txt", "content")
    assert ops.read_text_file(path) == "content"


def test_read_file_keeps_crlf(setup):
    tmp, ops = setup
    path = create_temp_file(tmp / "dir1", "test.txt", "a\r\nb")
    assert ops.read_text_file(path) == "a\r\nb"


def test_create_directory(setup):
    tmp, ops = setup
    new_dir = tmp / "dir1" / "new_dir"
    ops.create_directory(new_dir)
    assert new_dir.is_dir()


def test_move_file(setup):
    tmp, ops = setup
    src = create_temp_file(tmp / "dir1", "src.txt", "content")
    dest = tmp / "dir1" / "dest.txt"
    ops.move_file(src, dest)
    assert not src.exists()
    assert dest.read_text() == "content"


def test_list_directory(setup):
    tmp, ops = setup
    create_temp_file(tmp / "dir1", "file1.txt", "content1")
    create_temp_file(tmp / "dir1", "file2.txt", "content2")
    names = sorted(entry.name for entry in ops.list_directory(tmp / "dir1"))
    assert names == ["file1.txt", "file2.txt"]


def test_write_file(setup):
    tmp, ops = setup
    path = tmp / "dir1" / "test.txt"
    ops.write_file(path, "new content")
    assert path.read_text() == "new content"


def test_write_file_outside_denied(setup):
    tmp, ops = setup
    with pytest.raises(AccessDeniedError):
        ops.write_file(tmp / "dir2" / "x.txt", "data")


def test_head_file_normal(setup):
    tmp, ops = setup
    path = create_test_file_with_line_ending(
        tmp, "dir1/test.txt", ["line1", "line2", "line3", "line4", "line5"], "\n"
    )
    assert ops.head_file(path, 3) == "line1\nline2\nline3\n"


def test_head_file_empty_file(setup):
    tmp, ops = setup
    path = create_test_file_with_line_ending(tmp, "dir1/empty.txt", [], "\n")
    assert ops.head_file(path, 5) == ""


def test_head_file_n_zero(setup):
    tmp, ops = setup
    path = create_test_file_with_line_ending(tmp, "dir1/test.txt", ["line1", "line2", "line3"], "\n")
    assert ops.head_file(path, 0) == ""


def test_head_file_n_larger_than_file(setup):
    tmp, ops = setup
    path = create_test_file_with_line_ending(tmp, "dir1/test.txt", ["line1", "line2"], "\n")
    assert ops.head_file(path, 5) == "line1\nline2"


def test_head_file_no_trailing_newline(setup):
    tmp, ops = setup
    path = tmp / "dir1" / "test.txt"
    path.write_bytes(b"line1\nline2\nline3")
    assert ops.head_file(path, 3) == "line1\nline2\nline3"


def test_head_file_single_line(setup):
    tmp, ops = setup
    path = create_test_file_with_line_ending(tmp, "dir1/test.txt", ["line1"], "\n")
    assert ops.head_file(path, 1) == "line1"


def test_head_file_windows_line_endings(setup):
    tmp, ops = setup
    path = create_test_file_with_line_ending(tmp, "dir1/test.txt", ["line1", "line2", "line3"], "\r\n")
    assert ops.head_file(path, 2) == "line1\r\nline2\r\n"


def test_head_file_invalid_path(setup):
    tmp, ops = setup
    with pytest.raises(AccessDeniedError):
        ops.head_file(tmp / "dir2" / "test.txt", 3)


def test_tail_file_normal(setup):
    tmp, ops = setup
    path = create_test_file_with_line_ending(
        tmp, "dir1/test.txt", ["line1", "line2", "line3", "line4", "line5"], "\n"
    )
    assert ops.tail_file(path, 3) == "line3\nline4\nline5"


def test_tail_file_empty_file(setup):
    tmp, ops = setup
    path = create_test_file_with_line_ending(tmp, "dir1/empty.txt", [], "\n")
    assert ops.tail_file(path, 5) == ""


def test_tail_file_n_zero(setup):
    tmp, ops = setup
    path = create_test_file_with_line_ending(tmp, "dir1/test.txt", ["line1", "line2", "line3"], "\n")
    assert ops.tail_file(path, 0) == ""


def test_tail_file_n_larger_than_file(setup):
    tmp, ops = setup
    path = create_test_file_with_line_ending(tmp, "dir1/test.txt", ["line1", "line2"], "\n")
    assert ops.tail_file(path, 5) == "line1\nline2"


def test_tail_file_no_newline_at_end(setup):
    tmp, ops = setup
    path = create_temp_file(tmp / "dir1", "test.txt", "line1\nline2\nline3")
    assert ops.tail_file(path, 2) == "line2\nline3"


def test_tail_file_single_line(setup):
    tmp, ops = setup
    path = create_test_file_with_line_ending(tmp, "dir1/test.txt", ["line1"], "\n")
    assert ops.tail_file(path, 1) == "line1"


def test_tail_file_windows_line_endings(setup):
    tmp, ops = setup
    path = create_test_file_with_line_ending(tmp, "dir1/test.txt", ["line1", "line2", "line3"], "\r\n")
    assert ops.tail_file(path, 2) == "line2\r\nline3"


def test_tail_file_trailing_newline(setup):
    tmp, ops = setup
    path = create_temp_file(tmp / "dir1", "test.txt", "a\nb\nc\n")
    assert ops.tail_file(path, 2) == "b\nc\n"


def test_tail_file_spanning_chunks(setup):
    tmp, ops = setup
    lines = [f"line{i:05d}" for i in range(3000)]
    path = create_test_file(tmp, "dir1/big.txt", lines)
    assert ops.tail_file(path, 2) == "line02998\nline02999"
    assert ops.tail_file(path, 3000).split("\n") == lines


def test_tail_file_invalid_path(setup):
    tmp, ops = setup
    with pytest.raises(AccessDeniedError):
        ops.tail_file(tmp / "dir2" / "test.txt", 3)


def test_read_file_lines_normal(setup):
    tmp, ops = setup
    path = create_test_file(tmp, "dir1/test.txt", ["line1", "line2", "line3", "line4", "line5"])
    assert ops.read_file_lines(path, 1, 2) == "line2\nline3\n"


def test_read_file_lines_empty_file(setup):
    tmp, ops = setup
    path = create_test_file(tmp, "dir1/empty.txt", [])
    assert ops.read_file_lines(path, 0, 5) == ""


def test_read_file_lines_offset_beyond_file(setup):
    tmp, ops = setup
    path = create_test_file(tmp, "dir1/test.txt", ["line1", "line2"])
    assert ops.read_file_lines(path, 5, 3) == ""


def test_read_file_lines_no_limit(setup):
    tmp, ops = setup
    path = create_test_file(tmp, "dir1/test.txt", ["line1", "line2", "line3", "line4"])
    assert ops.read_file_lines(path, 2, None) == "line3\nline4"


def test_read_file_lines_limit_zero(setup):
    tmp, ops = setup
    path = create_test_file(tmp, "dir1/test.txt", ["line1", "line2", "line3"])
    assert ops.read_file_lines(path, 1, 0) == ""


def test_read_file_lines_exact_file_length(setup):
    tmp, ops = setup
    path = create_test_file(tmp, "dir1/test.txt", ["line1", "line2", "line3"])
    assert ops.read_file_lines(path, 0, 3) == "line1\nline2\nline3"


def test_read_file_lines_no_newline_at_end(setup):
    tmp, ops = setup
    path = create_temp_file(tmp / "dir1", "test.txt", "line1\nline2\nline3")
    assert ops.read_file_lines(path, 1, 2) == "line2\nline3"


def test_read_file_lines_windows_line_endings(setup):
    tmp, ops = setup
    path = create_temp_file(tmp / "dir1", "test.txt", "line1\r\nline2\r\nline3")
    assert ops.read_file_lines(path, 1, 2) == "line2\r\nline3"


def test_read_file_lines_invalid_path(setup):
    tmp, ops = setup
    with pytest.raises(AccessDeniedError):
        ops.read_file_lines(tmp / "dir2" / "test.txt", 0, 3)


def test_mime_from_path_png(setup):
    tmp, ops = setup
    path = tmp / "dir1" / "image.bin"
    path.write_bytes(PNG_BYTES)
    assert ops.mime_from_path(path) == MediaType("image", "image/png", "png")


def test_mime_from_path_svg_by_extension(setup):
    tmp, ops = setup
    path = create_temp_file(tmp / "dir1", "drawing.svg", "<svg></svg>")
    assert ops.mime_from_path(path).mime_type == "image/svg+xml"


def test_mime_from_path_wav(setup):
    tmp, ops = setup
    path = tmp / "dir1" / "sound"
    path.write_bytes(b"RIFF\x24\x00\x00\x00WAVEfmt ")
    kind = ops.mime_from_path(path)
    assert (kind.category, kind.mime_type) == ("audio", "audio/x-wav")


def test_mime_from_path_unknown(setup):
    tmp, ops = setup
    path = create_temp_file(tmp / "dir1", "plain.txt", "just text")
    with pytest.raises(ServiceError):
        ops.mime_from_path(path)


@pytest.mark.parametrize(
    "size, low, high, expected",
    [
        (10, None, None, True),
        (10, 5, 15, True),
        (20, 5, 15, False),
        (2, 5, 15, False),
        (2, None, 15, True),
        (20, 5, None, True),
        (15, 15, 15, True),
    ],
)
def test_filesize_in_range(setup, size, low, high, expected):
    _, ops = setup
    assert ops.filesize_in_range(size, low, high) is expected


def test_validate_file_size(setup):
    tmp, ops = setup
    path = create_temp_file(tmp / "dir1", "f.txt", "0123456789")
    with pytest.raises(FileTooLargeError) as large:
        ops.validate_file_size(path, None, 5)
    assert large.value.limit == 5
    with pytest.raises(FileTooSmallError) as small:
        ops.validate_file_size(path, 20, None)
    assert "20 bytes" in str(small.value)


def test_read_media_file(setup):
    tmp, ops = setup
    path = tmp / "dir1" / "pic.png"
    path.write_bytes(PNG_BYTES)
    kind, content = ops.read_media_file(path)
    assert kind.mime_type == "image/png"
    assert base64.b64decode(content) == PNG_BYTES


def test_read_media_file_too_large(setup):
    tmp, ops = setup
    path = tmp / "dir1" / "pic.png"
    path.write_bytes(PNG_BYTES)
    with pytest.raises(FileTooLargeError):
        ops.read_media_file(path, 4)


def test_read_media_files_skips_failures(setup):
    tmp, ops = setup
    good = tmp / "dir1" / "pic.png"
    good.write_bytes(PNG_BYTES)
    unknown = create_temp_file(tmp / "dir1", "notes.txt", "text")
    missing = tmp / "dir1" / "missing.png"
    outside = tmp / "elsewhere.png"
    results = ops.read_media_files([str(good), str(unknown), str(missing), str(outside)])
    assert len(results) == 1
    assert results[0][0].extension == "png"
    assert base64.b64decode(results[0][1]) == PNG_BYTES