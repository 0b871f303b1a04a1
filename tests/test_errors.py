import pytest

from fsgate.errors import (
    AccessDeniedError,
    EditError,
    FileTooLargeError,
    FileTooSmallError,
    InvalidMediaFileError,
    NoWriteAccessError,
    ServiceError,
)


def test_no_write_access_message():
    error = NoWriteAccessError()
    assert str(error) == (
        "Service is running in read-only mode. To enable write access, "
        "please run with the --allow-write flag."
    )


def test_file_too_large_carries_limit():
    error = FileTooLargeError(1024)
    assert error.limit == 1024
    assert str(error) == "File size exceeds the maximum allowed limit of 1024 bytes"


def test_file_too_small_carries_limit():
    error = FileTooSmallError(10)
    assert error.limit == 10
    assert str(error) == "File size is below the minimum required limit of 10 bytes"


def test_invalid_media_file_mentions_mime():
    error = InvalidMediaFileError("text/plain")
    assert error.mime == "text/plain"
    assert str(error) == (
        "The file is either not an image/audio type or is unsupported "
        "(mime:text/plain)."
    )


@pytest.mark.parametrize(
    "error",
    [
        NoWriteAccessError(),
        AccessDeniedError("denied"),
        EditError("edit failed"),
        FileTooLargeError(5),
        FileTooSmallError(5),
        InvalidMediaFileError("application/zip"),
    ],
)
def test_all_errors_are_service_errors(error):
    with pytest.raises(ServiceError) as caught:
        raise error
    assert caught.value is error


def test_message_errors_keep_their_text():
    assert str(AccessDeniedError("outside")) == "outside"
    assert str(EditError("no match")) == "no match"