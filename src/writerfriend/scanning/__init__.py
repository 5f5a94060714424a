"""Manuscript tree enumeration."""

from .walker import DirectoryWalker, ErrorCallback, WalkEntry, is_utf8_name, printable

__all__ = ["DirectoryWalker", "ErrorCallback", "WalkEntry", "is_utf8_name", "printable"]
