"""Header record dataclasses and their binary codec.

A PBO header table is a run of records, each laid out as:

    name            null-terminated byte string
    flag            uint32 (little-endian)
    unpacked_size   uint32
    reserved        uint32
    timestamp       uint32 (seconds since epoch)
    data_block_size uint32

A record flagged ``FLAG_PRODUCT_ENTRY`` is followed by key/value string
pairs, ended by a lone null byte. A record with every field zero ends
the table.
"""
from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, BinaryIO, Optional, Union

from pboreader.pbo.constants import (
    ENTRY_FIELDS,
    ENTRY_FIELDS_SIZE,
    FLAG_PACKED,
    FLAG_PRODUCT_ENTRY,
    flag_name,
)
from pboreader.pbo.errors import CorruptHeader, IoFailure

if TYPE_CHECKING:
    from pboreader.pbo.content import EntryContent
    from pboreader.pbo.reader import PboReader

log = logging.getLogger(__name__)

# surrogateescape keeps arbitrary name bytes round-trippable
NAME_ENCODING = "utf-8"
NAME_ERRORS = "surrogateescape"


def _encode_str(text: str) -> bytes:
    return text.encode(NAME_ENCODING, NAME_ERRORS)


def _decode_str(raw: bytes) -> str:
    return raw.decode(NAME_ENCODING, NAME_ERRORS)


@dataclass(slots=True)
class Entry:
    """One header record describing a file stored in the archive."""
    name: str
    flag: int
    unpacked_size: int
    reserved: int
    timestamp: int
    data_block_size: int

    # Filled in by PboReader once the whole header table is known
    content_offset: Optional[int] = None
    index: Optional[int] = None
    _reader: Optional[weakref.ref] = field(default=None, repr=False, compare=False)

    @property
    def header_size(self) -> int:
        """Size of this record in the header table (name + null + 5 uint32)."""
        return len(_encode_str(self.name)) + 1 + ENTRY_FIELDS_SIZE

    @property
    def is_null(self) -> bool:
        return (self.name == "" and self.flag == 0 and self.unpacked_size == 0
                and self.reserved == 0 and self.timestamp == 0
                and self.data_block_size == 0)

    @property
    def is_packed(self) -> bool:
        return self.flag == FLAG_PACKED

    @property
    def flag_name(self) -> str:
        return flag_name(self.flag)

    @property
    def modified(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)

    @property
    def path(self) -> str:
        """Archive name with forward slashes."""
        return self.name.replace("\\", "/")

    def attach(self, reader: PboReader, index: int, content_offset: int) -> None:
        self._reader = weakref.ref(reader)
        self.index = index
        self.content_offset = content_offset

    def open_content(self) -> EntryContent:
        """Open a bounded reader over this entry's stored bytes."""
        reader = self._reader() if self._reader is not None else None
        if reader is None:
            raise IoFailure(f"Entry {self.name!r} is not attached to an open archive")
        return reader.open_content(self)

    def __str__(self) -> str:
        return (
            f"Name: {self.name}\n"
            f"Flag: 0x{self.flag:08X} ({self.flag_name})\n"
            f"Original Size: {self.unpacked_size}\n"
            f"Reserved: {self.reserved}\n"
            f"Timestamp: {self.timestamp} ({self.modified:%Y-%m-%d %H:%M:%S} UTC)\n"
            f"Data Size: {self.data_block_size}"
        )


@dataclass(slots=True)
class HeaderExtension:
    """The archive-level product record and its key/value fields."""
    entry: Entry
    fields: dict[str, str] = field(default_factory=dict)
    # Pairs in file order, repeated keys included; empty when built by hand
    pairs: list[tuple[str, str]] = field(default_factory=list, repr=False, compare=False)

    def iter_pairs(self) -> list[tuple[str, str]]:
        """Key/value pairs as stored on disk, falling back to ``fields``."""
        return self.pairs or list(self.fields.items())

    @property
    def header_size(self) -> int:
        size = self.entry.header_size
        for key, value in self.iter_pairs():
            # + 2 for the null terminator on key and value
            size += len(_encode_str(key)) + len(_encode_str(value)) + 2
        # Trailing null ends the block
        return size + 1

    @property
    def name(self) -> str:
        return self.entry.name

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.fields.get(key, default)


HeaderRecord = Union[Entry, HeaderExtension]


def _read(stream: BinaryIO, size: int) -> bytes:
    try:
        return stream.read(size)
    except OSError as exc:
        raise IoFailure(f"Read failed in header table: {exc}") from exc


def read_cstring(stream: BinaryIO) -> bytes:
    """Read a null-terminated byte string, consuming the terminator."""
    buf = bytearray()
    while True:
        char = _read(stream, 1)
        if not char:
            raise CorruptHeader("Unexpected end of file while reading a string")
        if char == b"\x00":
            return bytes(buf)
        buf += char


def read_entry(stream: BinaryIO) -> Entry:
    """Decode one header record (name plus the five fixed fields)."""
    name = _decode_str(read_cstring(stream))
    raw = _read(stream, ENTRY_FIELDS_SIZE)
    if len(raw) != ENTRY_FIELDS_SIZE:
        raise CorruptHeader(
            f"Truncated header record {name!r}: expected {ENTRY_FIELDS_SIZE} bytes, got {len(raw)}"
        )
    flag, unpacked_size, reserved, timestamp, data_block_size = ENTRY_FIELDS.unpack(raw)
    return Entry(
        name=name,
        flag=flag,
        unpacked_size=unpacked_size,
        reserved=reserved,
        timestamp=timestamp,
        data_block_size=data_block_size,
    )


def read_extension_pairs(stream: BinaryIO) -> list[tuple[str, str]]:
    """Decode key/value pairs up to and including the closing null byte."""
    pairs: list[tuple[str, str]] = []
    while True:
        first = _read(stream, 1)
        if not first:
            raise CorruptHeader("Unexpected end of file in header extension")
        if first == b"\x00":
            return pairs
        key = _decode_str(first + read_cstring(stream))
        value = _decode_str(read_cstring(stream))
        pairs.append((key, value))


def read_extension_fields(stream: BinaryIO) -> dict[str, str]:
    """Decode the extension block as a mapping; later duplicate keys win."""
    return dict(read_extension_pairs(stream))


def read_record(stream: BinaryIO) -> HeaderRecord:
    """Decode the next header record, with its extension block if it has one."""
    entry = read_entry(stream)
    if entry.flag == FLAG_PRODUCT_ENTRY:
        pairs = read_extension_pairs(stream)
        ext = HeaderExtension(entry=entry, fields=dict(pairs), pairs=pairs)
        log.debug("Header extension %r: %d field(s)", entry.name, len(ext.fields))
        return ext
    return entry


def encode_entry(entry: Entry) -> bytes:
    """Encode a header record exactly as read_entry expects it."""
    return _encode_str(entry.name) + b"\x00" + ENTRY_FIELDS.pack(
        entry.flag,
        entry.unpacked_size,
        entry.reserved,
        entry.timestamp,
        entry.data_block_size,
    )


def encode_extension(ext: HeaderExtension) -> bytes:
    """Encode a product record followed by its fields and terminator."""
    parts = [encode_entry(ext.entry)]
    for key, value in ext.iter_pairs():
        parts.append(_encode_str(key) + b"\x00" + _encode_str(value) + b"\x00")
    parts.append(b"\x00")
    return b"".join(parts)


def encode_record(record: HeaderRecord) -> bytes:
    if isinstance(record, HeaderExtension):
        return encode_extension(record)
    return encode_entry(record)


def null_entry() -> Entry:
    """The all-zero record that ends a header table."""
    return Entry(name="", flag=0, unpacked_size=0, reserved=0, timestamp=0, data_block_size=0)
