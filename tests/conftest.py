"""Byte-exact PBO fixtures, built with struct rather than the code under test."""
from __future__ import annotations

import struct
from pathlib import Path

import pytest

VERS = 0x56657273
CPRS = 0x43707273


def record(name: bytes, flag: int = 0, unpacked: int = 0, reserved: int = 0,
           timestamp: int = 0, size: int = 0) -> bytes:
    return name + b"\x00" + struct.pack("<5I", flag, unpacked, reserved, timestamp, size)


def product(fields: dict[str, str], name: bytes = b"") -> bytes:
    body = b"".join(k.encode() + b"\x00" + v.encode() + b"\x00" for k, v in fields.items())
    return record(name, flag=VERS) + body + b"\x00"


SENTINEL = record(b"")


def build_pbo(files: list[tuple[str, bytes]], fields: dict[str, str] | None = None,
              packed: tuple[str, ...] = (), timestamp: int = 1_600_000_000) -> bytes:
    header = product(fields) if fields is not None else b""
    for name, data in files:
        flag = CPRS if name in packed else 0
        # Packed entries declare a larger logical size than stored
        unpacked = len(data) * 2 if name in packed else len(data)
        header += record(name.encode(), flag=flag, unpacked=unpacked,
                         timestamp=timestamp, size=len(data))
    header += SENTINEL
    return header + b"".join(data for _, data in files)


SAMPLE_FILES = [
    ("config.cpp", b"class CfgPatches {};\n"),
    ("scripts\\init.sqf", b"hint \"hello\";\n" * 20),
    ("data\\empty.paa", b""),
    ("data\\icon.paa", bytes(range(256))),
]
SAMPLE_FIELDS = {"prefix": "x\\sample", "product": "arma3", "version": "1.0"}


@pytest.fixture
def make_pbo(tmp_path: Path):
    """Factory writing an archive to tmp_path and returning its path."""
    counter = iter(range(1000))

    def _make(files=SAMPLE_FILES, fields=SAMPLE_FIELDS, raw: bytes | None = None, **kwargs) -> Path:
        path = tmp_path / f"archive{next(counter)}.pbo"
        path.write_bytes(raw if raw is not None else build_pbo(files, fields, **kwargs))
        return path

    return _make


@pytest.fixture
def sample_pbo(make_pbo) -> Path:
    return make_pbo()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch):
    """Keep config reads/writes inside the test directory."""
    path = tmp_path / "appdir" / "config.toml"
    monkeypatch.setattr("pboreader.config.get_config_path", lambda: path)
    monkeypatch.setattr("pboreader.cli.get_config_path", lambda: path)
    return path
