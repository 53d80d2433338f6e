"""
Tests for MTFFile: entry table loading, header detection and
single-entry decoding.
"""
import io
from struct import pack

import pytest

from conftest import build_mtf, compressed
from mtftool.mtf import MTFFile, Entry, read_entries, read_compressed_header, is_compressed, read_raw
from mtftool.mtferrors import OpenError, ReadError, EmptyArchiveError


# ------------------------------------------------------------ entry table

def test_entries_sorted_bytewise(make_mtf):
    path = make_mtf([
        (b"b.txt", b"1"),
        (b"B.txt", b"2"),
        (b"a\\z", b"3"),
        (b"a", b"4"),
    ])
    with MTFFile(path) as mtf:
        assert [e.filename for e in mtf] == [b"B.txt", b"a", b"a\\z", b"b.txt"]
        assert len(mtf) == 4


def test_single_entry(make_mtf):
    path = make_mtf([(b"ONLY.TXT", b"data")])
    with MTFFile(path) as mtf:
        assert mtf.entries == [Entry(b"ONLY.TXT", 4 + 12 + 8, 4)]


def test_offsets_survive_sorting(make_mtf):
    path = make_mtf([(b"Z", b"zzzz"), (b"A", b"aa")])
    with MTFFile(path) as mtf:
        a, z = mtf.entries
        assert mtf.read(a) == b"aa"
        assert mtf.read(z) == b"zzzz"
        assert z.data_offset < a.data_offset


def test_stored_terminator_is_dropped(make_mtf):
    path = make_mtf([(b"FOO.TXT\x00", b"x")])
    with MTFFile(path) as mtf:
        assert mtf.entries[0].filename == b"FOO.TXT"


def test_zero_entries(tmp_path):
    path = tmp_path / "EMPTY.MTF"
    path.write_bytes(pack("<I", 0))
    with pytest.raises(EmptyArchiveError):
        MTFFile(path)


def test_missing_entry_count(tmp_path):
    path = tmp_path / "SHORT.MTF"
    path.write_bytes(b"\x01\x00")
    with pytest.raises(ReadError):
        MTFFile(path)


@pytest.mark.parametrize("cut", [6, 4 + 4 + 3, 4 + 4 + 8 + 2, 4 + 4 + 8 + 6])
def test_truncated_table(cut):
    # count, name length, name, offset, size
    image = build_mtf([(b"FILE.BIN", b"payload")])
    with pytest.raises(ReadError):
        read_entries(io.BytesIO(image[:cut]))


def test_truncated_second_entry():
    image = build_mtf([(b"A", b"1"), (b"B", b"2")])
    table_end = 4 + 2 * (12 + 1)
    with pytest.raises(ReadError, match="entry 1 of 2"):
        read_entries(io.BytesIO(image[:table_end - 1]))


def test_missing_file(tmp_path):
    with pytest.raises(OpenError):
        MTFFile(tmp_path / "NOPE.MTF")


def test_close_is_idempotent(make_mtf):
    mtf = MTFFile(make_mtf([(b"A", b"1")]))
    mtf.close()
    mtf.close()
    assert mtf.fd is None
    assert len(mtf) == 0


# ------------------------------------------------------------ detection

@pytest.mark.parametrize("magic1", [0xAE, 0xAF])
def test_compressed_magic(magic1):
    fd = io.BytesIO(b"junk" + compressed(b"", 0, magic1=magic1))
    header = read_compressed_header(fd, Entry(b"X", 4, 0))
    assert is_compressed(header)
    assert fd.tell() == 4 + 12


@pytest.mark.parametrize("magic", [b"\xae\x00", b"\xad\xbe", b"\xbe\xae", b"\x00\x00"])
def test_not_compressed(magic):
    fd = io.BytesIO(magic + b"\x00" * 10)
    assert not is_compressed(read_compressed_header(fd, Entry(b"X", 0, 12)))


def test_header_fields():
    header = read_compressed_header(io.BytesIO(compressed(b"abc", 99)), Entry(b"X", 0, 99))
    assert header.compressed_size == 12 + 3
    assert header.decompressed_size == 99


def test_header_past_end_of_archive():
    with pytest.raises(ReadError):
        read_compressed_header(io.BytesIO(b"\x00" * 16), Entry(b"X", 10, 8))


def test_short_stored_entry_at_end_of_archive():
    fd = io.BytesIO(b"\x00" * 10 + b"HELLO")
    assert read_compressed_header(fd, Entry(b"X", 10, 5)) is None


def test_read_raw_truncated():
    with pytest.raises(ReadError):
        read_raw(io.BytesIO(b"HELLO"), Entry(b"X", 2, 5))


# ------------------------------------------------------------ read()

def test_read_compressed_and_stored(make_mtf):
    path = make_mtf([
        (b"A.TXT", compressed(b"\xff" + b"ABCDEFGH", 8), 8),
        (b"B.TXT", b"HELLO"),
    ])
    with MTFFile(path) as mtf:
        a, b = mtf.entries
        assert mtf.is_compressed(a)
        assert not mtf.is_compressed(b)
        assert mtf.read(a) == b"ABCDEFGH"
        assert mtf.read(b) == b"HELLO"


def test_stored_entry_rereads_from_offset(make_mtf):
    # stored data longer than a header comes back whole
    payload = b"0123456789abcdefghij"
    path = make_mtf([(b"RAW.BIN", payload)])
    with MTFFile(path) as mtf:
        assert mtf.read(mtf.entries[0]) == payload


def test_read_by_name(make_mtf):
    path = make_mtf([(b"DATA\\SUB\\FILE.TXT", b"contents")])
    with MTFFile(path) as mtf:
        assert mtf.read("DATA/SUB/FILE.TXT") == b"contents"
        assert mtf.read(b"DATA\\SUB\\FILE.TXT") == b"contents"
        with pytest.raises(KeyError):
            mtf.find("DATA/OTHER.TXT")


def test_find_name_outside_latin1(make_mtf):
    path = make_mtf([(b"MODELS\\KNIGHT.O3D", b"x")])
    with MTFFile(path) as mtf:
        with pytest.raises(KeyError):
            mtf.find("MODELS/РЫЦАРЬ.O3D")
