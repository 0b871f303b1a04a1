"""Command-line argument handling."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import NoReturn, Optional, Sequence

PROGRAM_NAME = "fsgate"
PROGRAM_VERSION = "0.3.5"

_DESCRIPTION = (
    "A lightning-fast, asynchronous, and lightweight MCP server designed for "
    "efficient handling of various filesystem operations"
)
_ALLOW_WRITE_HELP = (
    "Enables write mode for the app, allowing both reading and writing. "
    "Defaults to disabled."
)
_ENABLE_ROOTS_HELP = (
    "Enables dynamic directory access control via Roots from the MCP client side. "
    "Defaults to disabled. When enabled, MCP clients that support Roots can "
    "dynamically update the allowed directories. Any directories provided by the "
    "client will completely replace the initially configured allowed directories "
    "on the server."
)
_DIRECTORIES_HELP = (
    "List of directories that are permitted for the operation. It is required "
    "when 'enable-roots' is not provided OR client does not support Roots."
)


class ParseErrorKind(Enum):
    """Why argument parsing stopped."""

    DISPLAY_HELP = "display_help"
    DISPLAY_VERSION = "display_version"
    UNKNOWN_ARGUMENT = "unknown_argument"
    INVALID_VALUE = "invalid_value"
    MISSING_REQUIRED_ARGUMENT = "missing_required_argument"


class ArgumentParseError(ValueError):
    """Argument parsing stopped; ``message`` is the text to show the user."""

    def __init__(self, kind: ParseErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass
class CommandArguments:
    """Options the server is started with."""

    allow_write: bool = False
    enable_roots: bool = False
    allowed_directories: list[str] = field(default_factory=list)

    def validate(self) -> None:
        """Raise if no directories were given and roots are not enabled."""
        if not self.enable_roots and not self.allowed_directories:
            raise ArgumentParseError(
                ParseErrorKind.MISSING_REQUIRED_ARGUMENT,
                " <ALLOWED_DIRECTORIES> is required when `--enable-roots` is not provided.\n"
                f" Run `{PROGRAM_NAME} --help` to view the usage instructions.",
            )


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise ArgumentParseError(ParseErrorKind.INVALID_VALUE, message)


class _StopAction(argparse.Action):
    kind = ParseErrorKind.DISPLAY_HELP

    def __init__(self, option_strings, dest=argparse.SUPPRESS,
                 default=argparse.SUPPRESS, help=None):
        super().__init__(option_strings, dest=dest, default=default, nargs=0, help=help)

    def _text(self, parser: argparse.ArgumentParser) -> str:
        return parser.format_help()

    def __call__(self, parser, namespace, values, option_string=None):
        raise ArgumentParseError(self.kind, self._text(parser))


class _VersionAction(_StopAction):
    kind = ParseErrorKind.DISPLAY_VERSION

    def _text(self, parser: argparse.ArgumentParser) -> str:
        return f"{PROGRAM_NAME} {PROGRAM_VERSION}"


def _build_parser() -> _Parser:
    parser = _Parser(prog=PROGRAM_NAME, description=_DESCRIPTION, add_help=False)
    parser.add_argument("-h", "--help", action=_StopAction, help="Print help")
    parser.add_argument("-V", "--version", action=_VersionAction, help="Print version")
    parser.add_argument("-w", "--allow-write", action="store_true",
                        help=f"{_ALLOW_WRITE_HELP} [env: ALLOW_WRITE]")
    parser.add_argument("-t", "--enable-roots", action="store_true",
                        help=f"{_ENABLE_ROOTS_HELP} [env: ENABLE_ROOTS]")
    parser.add_argument("allowed_directories", nargs="*", metavar="ALLOWED_DIRECTORIES",
                        help=_DIRECTORIES_HELP)
    return parser


def _env_flag(name: str) -> bool:
    value = os.environ.get(name)
    if value is None:
        return False
    if value == "true":
        return True
    if value == "false":
        return False
    raise ArgumentParseError(
        ParseErrorKind.INVALID_VALUE,
        f"invalid value '{value}' for '{name}': expected 'true' or 'false'",
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> CommandArguments:
    """Parse command-line arguments (without the program name).

    ``ALLOW_WRITE`` and ``ENABLE_ROOTS`` environment variables set the
    matching flags when they are not given on the command line.
    """
    parser = _build_parser()
    namespace, extras = parser.parse_known_intermixed_args(argv)
    if extras:
        raise ArgumentParseError(
            ParseErrorKind.UNKNOWN_ARGUMENT, f"unexpected argument '{extras[0]}' found"
        )
    return CommandArguments(
        allow_write=namespace.allow_write or _env_flag("ALLOW_WRITE"),
        enable_roots=namespace.enable_roots or _env_flag("ENABLE_ROOTS"),
        allowed_directories=list(namespace.allowed_directories),
    )