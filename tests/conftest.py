"""
Shared fixtures: synthetic MTF archives assembled with the same
construct records the reader parses.
"""
import io

import pytest

from mtftool.mtfstructs import MTFCount, MTFEntry, CompressedHeader, HEADER_SIZE


class FailingStream(io.BytesIO):
    """In-memory file whose reads fail with EIO once past `fail_at`."""

    def __init__(self, data, fail_at):
        super().__init__(data)
        self.fail_at = fail_at

    def read(self, n=-1):
        if self.tell() >= self.fail_at:
            raise OSError(5, "Input/output error")
        return super().read(n)


class FullDisk(io.BytesIO):
    def write(self, data):
        raise OSError(28, "No space left on device")


class ShortWrite(io.BytesIO):
    def write(self, data):
        return super().write(data[:-1])


def compressed(stream, size, magic1=0xAE):
    """Prefix a token stream with a compression header."""
    header = CompressedHeader.build(dict(
        magic1=magic1,
        magic2=0xBE,
        unknown=0x0101,
        compressed_size=HEADER_SIZE + len(stream),
        decompressed_size=size,
    ))
    return header + stream


def build_mtf(entries):
    """
    Assemble an archive image.

    Each entry is (name, payload), (name, payload, size) or
    (name, payload, size, offset). Payloads are laid out in list order
    right after the table; an explicit offset is stored as-is and its
    payload is not written.
    """
    entries = [tuple(e) + (None,) * (4 - len(e)) for e in entries]
    table_size = MTFCount.sizeof() + sum(12 + len(name) for name, *_ in entries)

    table = MTFCount.build(len(entries))
    data = b""
    for name, payload, size, offset in entries:
        if size is None:
            size = len(payload)
        if offset is None:
            offset = table_size + len(data)
            data += payload
        table += MTFEntry.build(dict(
            filename_length=len(name),
            filename=name,
            data_offset=offset,
            decompressed_size=size,
        ))
    return table + data


@pytest.fixture
def make_mtf(tmp_path):
    def make(entries, name="TEST.MTF"):
        path = tmp_path / name
        path.write_bytes(build_mtf(entries))
        return path
    return make


@pytest.fixture
def out_dir(tmp_path):
    return tmp_path / "out"
