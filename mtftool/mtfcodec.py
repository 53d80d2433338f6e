import logging
from struct import unpack

from mtftool.mtferrors import ReadError, SizeMismatchError, BackReferenceError

logger = logging.getLogger(__name__)

MAX_OFFSET = 0x3FF
MIN_COUNT = 3

def bits(byte):
    return ((byte >> 0) & 1,
            (byte >> 1) & 1,
            (byte >> 2) & 1,
            (byte >> 3) & 1,
            (byte >> 4) & 1,
            (byte >> 5) & 1,
            (byte >> 6) & 1,
            (byte >> 7) & 1)

def _read(fd, n):
    try:
        data = fd.read(n)
    except OSError as err:
        raise ReadError("Can't read token stream: %s" % err.strerror) from err
    if len(data) != n:
        raise ReadError("Token stream ended early (wanted %d bytes, got %d)" % (n, len(data)))
    return data

def decompress(fd, size):
    """Decode one compressed entry.

    `fd` must sit right after the 12 byte compressed header. Each control
    byte is read LSB first: a set bit is a literal byte, a clear bit is a
    little-endian word holding a 6 bit count and a 10 bit back distance.
    A zero word ends the current control byte. Back-references are copied
    one byte at a time so a short distance repeats the bytes it has just
    written.

    Returns exactly `size` bytes.
    """
    out = bytearray(size)
    pos = 0
    remaining = size

    while remaining > 0:
        control = _read(fd, 1)[0]
        for literal in bits(control):
            if literal:
                if remaining == 0:
                    raise SizeMismatchError("Literal past declared size %d" % size)
                out[pos] = _read(fd, 1)[0]
                pos += 1
                remaining -= 1
                continue

            word, = unpack("<H", _read(fd, 2))
            if word == 0:
                # padding
                break

            count = (word >> 10) + MIN_COUNT
            offset = word & MAX_OFFSET
            if count > remaining:
                raise SizeMismatchError(
                    "Back-reference of %d bytes at %d overruns declared size %d" % (count, pos, size))
            if offset > pos:
                raise BackReferenceError(
                    "Back-reference distance %d at output position %d" % (offset, pos))

            for x in range(pos, pos + count):
                out[x] = out[x - offset]
            pos += count
            remaining -= count

    logger.debug("decompressed %d bytes", size)
    return bytes(out)
