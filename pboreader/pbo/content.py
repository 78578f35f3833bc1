"""Bounded file-like view over one entry's stored bytes."""
from __future__ import annotations

import io
from typing import TYPE_CHECKING

from pboreader.pbo.errors import InvalidSeek, IoFailure

if TYPE_CHECKING:
    from pboreader.pbo.entry import Entry
    from pboreader.pbo.reader import PboReader


class EntryContent(io.RawIOBase):
    """Read-only stream over ``[content_offset, content_offset + data_block_size)``.

    All EntryContent objects from one PboReader share its file handle. Every
    read seeks to its own absolute position first, so interleaving accessors
    on one thread is safe; using one reader from several threads is not.
    """

    def __init__(self, reader: PboReader, entry: Entry):
        super().__init__()
        if entry.content_offset is None:
            raise IoFailure(f"Entry {entry.name!r} has no content offset")
        self._reader = reader
        self._entry = entry
        self._pos = 0

    @property
    def name(self) -> str:
        return self._entry.name

    @property
    def entry(self) -> Entry:
        return self._entry

    @property
    def size(self) -> int:
        return self._entry.data_block_size

    @property
    def remaining(self) -> int:
        return max(self.size - self._pos, 0)

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def _check_usable(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed entry stream")
        if self._reader.closed:
            raise IoFailure(f"Archive {self._reader.path} is closed")

    def readinto(self, buffer) -> int:
        """Read into ``buffer``, never past the end of the entry. Returns 0 at EOF."""
        self._check_usable()
        remaining = self.remaining
        if remaining == 0:
            return 0

        view = memoryview(buffer).cast("B")
        want = min(len(view), remaining)
        if want == 0:
            return 0

        f = self._reader._file
        try:
            f.seek(self._entry.content_offset + self._pos)
            n = f.readinto(view[:want])
        except OSError as exc:
            raise IoFailure(f"Read failed for {self._entry.name!r}: {exc}") from exc

        if not n:
            raise IoFailure(
                f"Unexpected end of archive reading {self._entry.name!r} "
                f"at offset {self._pos} of {self.size}"
            )
        self._pos += n
        return n

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """Move to ``offset`` bytes from the start of the entry.

        Only SEEK_SET is supported. The offset may equal the entry size
        (the next read then returns EOF) but not exceed it.
        """
        self._check_usable()
        if whence != io.SEEK_SET:
            raise InvalidSeek(f"Unsupported whence {whence} (only SEEK_SET)")
        if offset < 0 or offset > self.size:
            raise InvalidSeek(
                f"Seek to {offset} outside {self._entry.name!r} (size {self.size})"
            )

        try:
            self._reader._file.seek(self._entry.content_offset + offset)
        except OSError as exc:
            raise IoFailure(f"Seek failed for {self._entry.name!r}: {exc}") from exc
        self._pos = offset
        return offset

    def tell(self) -> int:
        self._check_usable()
        return self._pos

    def __repr__(self) -> str:
        return f"<EntryContent {self._entry.name!r} pos={self._pos} size={self.size}>"
