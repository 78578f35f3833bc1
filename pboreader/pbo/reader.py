"""PBO (Bohemia Interactive packed file) archive reader."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from pboreader.pbo.content import EntryContent
from pboreader.pbo.entry import (
    Entry,
    HeaderExtension,
    encode_entry,
    encode_record,
    null_entry,
    read_record,
)
from pboreader.pbo.errors import CorruptHeader, IoFailure, UnsupportedFeature

log = logging.getLogger(__name__)


class PboReader:
    """Reader for PBO archives.

    The header table is scanned once on construction. Entry payloads are
    read lazily through ``open_content`` against the reader's own file
    handle, which stays open until ``close``.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.entries: list[Entry] = []
        self.extension: Optional[HeaderExtension] = None
        self.header_size = 0
        self._name_index: Optional[dict[str, Entry]] = None
        # Number of entries declared before the product record
        self._extension_position = 0

        try:
            self._file: BinaryIO = self.path.open("rb")
        except OSError as exc:
            raise IoFailure(f"Cannot open PBO {self.path}: {exc}") from exc

        try:
            self._parse_header()
        except BaseException:
            self._file.close()
            raise
        self._assign_offsets()

        log.info(
            "Opened %s: %d entries, header %d bytes, data %d bytes",
            self.path.name, len(self.entries), self.header_size, self.data_size,
        )

    def _parse_header(self):
        f = self._file
        header_bytes = 0

        while True:
            record = read_record(f)

            if isinstance(record, HeaderExtension):
                if self.extension is not None:
                    raise CorruptHeader(
                        f"Second product entry {record.name!r} in {self.path.name}"
                    )
                if self.entries:
                    log.warning(
                        "Product entry %r is not the first header record in %s",
                        record.name, self.path.name,
                    )
                self.extension = record
                self._extension_position = len(self.entries)
                header_bytes += record.header_size
                continue

            header_bytes += record.header_size
            if record.is_null:
                break
            if record.name == "":
                raise CorruptHeader(
                    f"Unnamed header record after {len(self.entries)} entries "
                    f"in {self.path.name}"
                )

            log.debug("Header entry %r: %d bytes stored", record.name, record.data_block_size)
            self.entries.append(record)

        self.header_size = header_bytes

    def _assign_offsets(self):
        # Only possible once the whole header is read: names and the
        # extension block make the header length variable.
        offset = self.header_size
        for index, entry in enumerate(self.entries):
            entry.attach(self, index, offset)
            offset += entry.data_block_size

    @property
    def closed(self) -> bool:
        return self._file.closed

    @property
    def data_size(self) -> int:
        """Total bytes of the data section declared by the header."""
        return sum(e.data_block_size for e in self.entries)

    @property
    def fields(self) -> dict[str, str]:
        """Header extension fields (prefix, product, version...), empty if none."""
        if self.extension is None:
            return {}
        return self.extension.fields

    def open_content(self, entry: Entry) -> EntryContent:
        """Open a bounded stream over one entry's stored bytes."""
        if self.closed:
            raise IoFailure(f"Archive {self.path} is closed")
        if entry.index is None or entry.index >= len(self.entries) or self.entries[entry.index] is not entry:
            raise IoFailure(f"Entry {entry.name!r} does not belong to {self.path.name}")
        return EntryContent(self, entry)

    def read_file(self, entry: Entry) -> bytes:
        """Return an entry's bytes exactly as stored (still compressed if packed)."""
        with self.open_content(entry) as stream:
            data = stream.read()
        if len(data) != entry.data_block_size:
            raise IoFailure(
                f"Short read for {entry.name!r}: {len(data)} of {entry.data_block_size} bytes"
            )
        return data

    def unpack_file(self, entry: Entry) -> bytes:
        """Return an entry's logical content. Packed entries are not supported."""
        if entry.is_packed:
            raise UnsupportedFeature(
                f"{entry.name!r} is packed; decompression is not implemented"
            )
        return self.read_file(entry)

    def _build_name_index(self):
        if self._name_index is None:
            self._name_index = {e.path.lower(): e for e in self.entries}

    def find_by_path(self, path: str) -> Optional[Entry]:
        """Find entry by exact path (case-insensitive, either slash style)."""
        self._build_name_index()
        return self._name_index.get(path.replace("\\", "/").lower())

    def find(self, name_fragment: str) -> Optional[Entry]:
        """Find first entry whose name contains the fragment (case-insensitive)."""
        fragment_lower = name_fragment.replace("\\", "/").lower()
        for entry in self.entries:
            if fragment_lower in entry.path.lower():
                return entry
        return None

    def find_all(self, name_fragment: str) -> list[Entry]:
        """Find all entries matching a name fragment."""
        fragment_lower = name_fragment.replace("\\", "/").lower()
        return [e for e in self.entries if fragment_lower in e.path.lower()]

    def list_files(self) -> list[str]:
        """List all file names in the archive, in header order."""
        return [e.name for e in self.entries]

    def encode_header(self) -> bytes:
        """Re-encode the header table in its original record order."""
        parts = [encode_entry(e) for e in self.entries]
        if self.extension is not None:
            parts.insert(self._extension_position, encode_record(self.extension))
        parts.append(encode_entry(null_entry()))
        return b"".join(parts)

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> PboReader:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"<PboReader {self.path.name!r} entries={len(self.entries)}>"


def open(path: Path | str) -> PboReader:
    """Open a PBO archive and index its header table."""
    return PboReader(path)
