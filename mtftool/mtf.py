"""DarkStone MTF archive reader.

An MTF archive starts with an entry table (count, then name/offset/size
records) followed by the entry data. Each entry is either stored raw or
prefixed by a 12 byte compression header, in which case the data that
follows is a token stream for mtfcodec.decompress.

    with MTFFile("DATA.MTF") as mtf:
        for entry in mtf:
            data = mtf.read(entry)
"""
import logging
from collections import namedtuple

from construct import StreamError

from mtftool.mtfstructs import MTFCount, MTFEntry, CompressedHeader, HEADER_SIZE, MAGIC1, MAGIC2
from mtftool.mtferrors import OpenError, ReadError, EmptyArchiveError
from mtftool.mtfcodec import decompress

logger = logging.getLogger(__name__)

Entry = namedtuple("Entry", "filename data_offset decompressed_size")

def _cstring(raw):
    # stored names may or may not carry their terminator
    return raw.split(b"\x00", 1)[0]

def read_entries(fd):
    """Read the entry table from the start of `fd`, sorted by filename."""
    try:
        count = MTFCount.parse_stream(fd)
    except (StreamError, OSError) as err:
        raise ReadError("Failed to read file entry count") from err

    if count == 0:
        raise EmptyArchiveError("MTF appears to have no files, entry count is 0")

    entries = []
    for idx in range(count):
        try:
            record = MTFEntry.parse_stream(fd)
        except (StreamError, OSError) as err:
            raise ReadError("Failed to read file entry %d of %d" % (idx, count)) from err
        entries.append(Entry(_cstring(record.filename), record.data_offset, record.decompressed_size))

    entries.sort(key=lambda entry: entry.filename)
    return entries

def read_compressed_header(fd, entry):
    """Parse the 12 bytes at the entry's offset, leaving `fd` just past them.

    Returns None for a stored entry that ends the archive and is too
    short to carry a header at all.
    """
    try:
        fd.seek(entry.data_offset)
        raw = fd.read(HEADER_SIZE)
    except OSError as err:
        raise ReadError("Failed to read a compression info header at 0x%x" % entry.data_offset) from err

    if len(raw) < HEADER_SIZE:
        if len(raw) >= entry.decompressed_size:
            return None
        raise ReadError("Failed to read a compression info header at 0x%x (%d of %d bytes)"
                        % (entry.data_offset, len(raw), HEADER_SIZE))
    return CompressedHeader.parse(raw)

def is_compressed(header):
    if header is None:
        return False
    return header.magic1 in MAGIC1 and header.magic2 == MAGIC2

def read_raw(fd, entry):
    try:
        fd.seek(entry.data_offset)
        data = fd.read(entry.decompressed_size)
    except OSError as err:
        raise ReadError("Can't read stored entry at 0x%x" % entry.data_offset) from err
    if len(data) != entry.decompressed_size:
        raise ReadError("Stored entry at 0x%x is truncated (%d of %d bytes)"
                        % (entry.data_offset, len(data), entry.decompressed_size))
    return data

def decode_entry(fd, entry, header):
    """Decode an entry whose header was just read from `fd`."""
    if is_compressed(header):
        return decompress(fd, entry.decompressed_size)
    return read_raw(fd, entry)

class MTFFile:
    def __init__(self, path):
        self.path = path
        try:
            self.fd = open(path, "rb")
        except OSError as err:
            raise OpenError("Can't open input MTF file %s: %s" % (path, err.strerror)) from err

        try:
            self.entries = read_entries(self.fd)
        except Exception:
            self.close()
            raise

        logger.debug("%s: %d entries", path, len(self.entries))

    def close(self):
        if self.fd is not None:
            self.fd.close()
            self.fd = None
        self.entries = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def find(self, name):
        if isinstance(name, str):
            try:
                name = name.encode("latin-1")
            except UnicodeEncodeError:
                raise KeyError(name) from None
        key = name.replace(b"/", b"\\")
        for entry in self.entries:
            if entry.filename.replace(b"/", b"\\") == key:
                return entry
        raise KeyError(name)

    def is_compressed(self, entry):
        return is_compressed(read_compressed_header(self.fd, entry))

    def read(self, entry):
        if not isinstance(entry, Entry):
            entry = self.find(entry)
        header = read_compressed_header(self.fd, entry)
        return decode_entry(self.fd, entry, header)
