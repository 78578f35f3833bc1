import io

import pytest

from conftest import SAMPLE_FILES
from pboreader.pbo.errors import InvalidSeek, IoFailure
from pboreader.pbo.reader import PboReader

INIT_DATA = SAMPLE_FILES[1][1]
ICON_DATA = SAMPLE_FILES[3][1]


@pytest.fixture
def reader(sample_pbo):
    with PboReader(sample_pbo) as r:
        yield r


def test_full_read_then_eof(reader):
    entry = reader.find_by_path("scripts/init.sqf")
    stream = entry.open_content()

    assert stream.read() == INIT_DATA
    assert stream.tell() == entry.data_block_size
    assert stream.read() == b""
    assert stream.read(10) == b""
    buf = bytearray(8)
    assert stream.readinto(buf) == 0


def test_large_buffer_reads_only_window(reader):
    entry = reader.find_by_path("config.cpp")
    stream = reader.open_content(entry)
    buf = bytearray(4096)

    n = stream.readinto(buf)
    assert n == entry.data_block_size
    assert bytes(buf[:n]) == SAMPLE_FILES[0][1]
    # Neighbouring entry's bytes are untouched
    assert buf[n:] == bytearray(4096 - n)


def test_chunked_reads(reader):
    stream = reader.find_by_path("data/icon.paa").open_content()
    chunks = []
    while True:
        chunk = stream.read(100)
        if not chunk:
            break
        chunks.append(chunk)
    assert [len(c) for c in chunks] == [100, 100, 56]
    assert b"".join(chunks) == ICON_DATA


def test_empty_entry(reader):
    stream = reader.find_by_path("data/empty.paa").open_content()
    assert stream.size == 0
    assert stream.read() == b""
    assert stream.seek(0) == 0


def test_seek_within_window(reader):
    stream = reader.find_by_path("data/icon.paa").open_content()
    assert stream.seek(200) == 200
    assert stream.remaining == 56
    assert stream.read(4) == bytes([200, 201, 202, 203])
    assert stream.seek(0) == 0
    assert stream.read(2) == b"\x00\x01"


def test_seek_to_end_then_eof(reader):
    entry = reader.find_by_path("data/icon.paa")
    stream = entry.open_content()
    assert stream.seek(entry.data_block_size) == 256
    assert stream.read() == b""


@pytest.mark.parametrize("offset", [-1, 257, 10_000])
def test_seek_out_of_range(reader, offset):
    stream = reader.find_by_path("data/icon.paa").open_content()
    stream.seek(10)
    with pytest.raises(InvalidSeek):
        stream.seek(offset)
    # Cursor unchanged after a failed seek
    assert stream.tell() == 10
    assert stream.read(1) == bytes([10])


@pytest.mark.parametrize("whence", [io.SEEK_CUR, io.SEEK_END])
def test_other_whence_unsupported(reader, whence):
    stream = reader.find_by_path("data/icon.paa").open_content()
    with pytest.raises(InvalidSeek, match="whence"):
        stream.seek(0, whence)


def test_invalid_seek_is_value_error(reader):
    stream = reader.find_by_path("data/icon.paa").open_content()
    with pytest.raises(ValueError):
        stream.seek(-5)


def test_interleaved_accessors(reader):
    icon = reader.find_by_path("data/icon.paa").open_content()
    init = reader.find_by_path("scripts/init.sqf").open_content()

    a1 = icon.read(10)
    b1 = init.read(10)
    a2 = icon.read(10)
    init.seek(5)
    a3 = icon.read(10)
    b2 = init.read(5)

    assert a1 + a2 + a3 == ICON_DATA[:30]
    assert b1 == INIT_DATA[:10]
    assert b2 == INIT_DATA[5:10]


def test_stream_is_file_like(reader):
    stream = reader.find_by_path("scripts/init.sqf").open_content()
    assert stream.readable()
    assert stream.seekable()
    assert not stream.writable()
    assert stream.name == "scripts\\init.sqf"
    assert io.BufferedReader(stream).readline() == b'hint "hello";\n'


def test_closing_stream_keeps_archive_open(reader):
    entry = reader.find_by_path("config.cpp")
    with entry.open_content() as stream:
        stream.read()
    assert stream.closed
    assert not reader.closed
    with pytest.raises(ValueError):
        stream.read()
    assert reader.read_file(entry) == SAMPLE_FILES[0][1]


def test_stream_fails_after_archive_closed(sample_pbo):
    reader = PboReader(sample_pbo)
    stream = reader.entries[0].open_content()
    reader.close()
    with pytest.raises(IoFailure):
        stream.read()


def test_truncated_data_section(make_pbo):
    path = make_pbo()
    raw = path.read_bytes()
    path.write_bytes(raw[:-10])
    with PboReader(path) as reader:
        entry = reader.find_by_path("data/icon.paa")
        with pytest.raises(IoFailure, match="Unexpected end"):
            reader.read_file(entry)
