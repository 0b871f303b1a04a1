"""Filesystem operations confined to a set of allowed directories."""

__version__ = "0.3.5"