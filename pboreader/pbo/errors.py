"""Exceptions raised while reading PBO archives.

Each error also derives from the builtin a caller would otherwise expect,
so ``except ValueError`` / ``except OSError`` still catch them.
"""
from __future__ import annotations


class PboError(Exception):
    """Base class for all PBO reader errors."""


class IoFailure(PboError, OSError):
    """The archive could not be opened, or a read came up short."""


class CorruptHeader(PboError, ValueError):
    """The header table ended early or a record could not be decoded."""


class InvalidSeek(PboError, ValueError):
    """Seek outside an entry's content window, or an unsupported whence."""


class UnsupportedFeature(PboError, NotImplementedError):
    """The operation needs a feature this reader does not implement."""
