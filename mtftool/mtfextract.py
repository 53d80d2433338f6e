"""Write the contents of an MTF archive to the local file system.

The archive's internal directory structure is preserved and existing
files are overwritten. An entry that fails to decode is skipped and
reported in the result; anything that leaves the archive or the output
tree in doubt (unreadable header, unwritable output) stops the batch with
ExtractionAborted, which still carries the number of files written.
"""
import logging
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from mtftool.mtf import MTFFile, read_compressed_header, decode_entry
from mtftool.mtferrors import MTFError, OpenError, DirectoryError, WriteError, ExtractionAborted

logger = logging.getLogger(__name__)

EXTRACT_ALL = None
BATCH_PER_WORKER = 4

BatchResult = namedtuple("BatchResult", "extracted failures")

# DarkStone used Windows paths, and a few names carry extended ASCII
_PATH_TABLE = bytes(
    0x2F if x == 0x5C else x if 0x20 <= x < 0x7F else 0x3F
    for x in range(256))

def normalize_path(filename):
    return filename.translate(_PATH_TABLE).decode("ascii")

def output_path(dest, filename):
    parts = []
    for part in normalize_path(filename).split("/"):
        if part in ("", "."):
            continue
        parts.append("_" if part == ".." else part)
    if not parts:
        raise OpenError("Entry %r has no usable file name" % filename)
    return Path(dest).joinpath(*parts)

def make_path(path):
    """Create every missing directory above `path`."""
    for parent in reversed(Path(path).parents):
        try:
            if parent.is_dir():
                continue
            if parent.exists():
                raise DirectoryError("Can't create directory %s, path points to a file" % parent)
            parent.mkdir(exist_ok=True)
        except OSError as err:
            raise DirectoryError("Can't create directory %s: %s" % (parent, err.strerror)) from err

def write_entry(path, data):
    try:
        fd = open(path, "wb")
    except OSError as err:
        raise OpenError("Can't create output file %s: %s" % (path, err.strerror)) from err

    try:
        with fd:
            written = fd.write(data)
    except OSError as err:
        raise WriteError("Failed to write %s: %s" % (path, err.strerror)) from err

    if written != len(data):
        raise WriteError("Short write to %s (%d of %d bytes)" % (path, written, len(data)))

def materialize(dest, entry, data):
    path = output_path(dest, entry.filename)
    make_path(path)
    write_entry(path, data)
    return path

def _decode(fd, entry):
    # header failures propagate, decode failures are returned
    header = read_compressed_header(fd, entry)
    try:
        return decode_entry(fd, entry, header), None
    except MTFError as err:
        return None, err

def _decode_at(archive_path, entry):
    try:
        fd = open(archive_path, "rb")
    except OSError as err:
        raise OpenError("Can't reopen MTF file %s: %s" % (archive_path, err.strerror)) from err
    with fd:
        return _decode(fd, entry)

def _decode_serial(fd, entries):
    for entry in entries:
        yield (entry,) + _decode(fd, entry)

def _decode_parallel(archive_path, entries, workers):
    size = workers * BATCH_PER_WORKER
    with ThreadPoolExecutor(max_workers=workers) as pool:
        for start in range(0, len(entries), size):
            batch = entries[start:start + size]
            futures = [pool.submit(_decode_at, archive_path, entry) for entry in batch]
            try:
                for entry, future in zip(batch, futures):
                    yield (entry,) + future.result()
            finally:
                for future in futures:
                    future.cancel()

def extract_batch(archive_path, dest, max_files=EXTRACT_ALL, workers=1):
    """Extract up to `max_files` entries of `archive_path` below `dest`.

    Returns a BatchResult of the number of files written and a list of
    (entry, error) pairs for entries that could not be decoded. With
    `workers` > 1 entries are decoded on a thread pool, each task with its
    own file handle; files are still written in entry order so the
    outcome is the same as a serial run.
    """
    if max_files is not EXTRACT_ALL and max_files <= 0:
        raise ValueError("max_files must be positive or EXTRACT_ALL, got %r" % max_files)
    if workers < 1:
        raise ValueError("workers must be at least 1, got %r" % workers)

    try:
        mtf = MTFFile(archive_path)
    except MTFError as err:
        raise ExtractionAborted(str(err), 0) from err

    extracted = 0
    failures = []

    with mtf:
        if workers > 1:
            decoded = _decode_parallel(archive_path, mtf.entries, workers)
        else:
            decoded = _decode_serial(mtf.fd, mtf.entries)

        try:
            for entry, data, error in decoded:
                if error is not None:
                    logger.warning("%s: %s", entry.filename.decode("latin-1"), error)
                    failures.append((entry, error))
                    continue

                path = materialize(dest, entry, data)
                logger.debug("%s -> %s (%d bytes)", entry.filename.decode("latin-1"), path, len(data))

                extracted += 1
                if max_files is not EXTRACT_ALL and extracted == max_files:
                    break
        except MTFError as err:
            logger.error("%s: extraction aborted after %d files: %s", archive_path, extracted, err)
            raise ExtractionAborted(str(err), extracted, failures) from err
        finally:
            decoded.close()

    logger.info("%s: extracted %d files, %d failed", archive_path, extracted, len(failures))
    return BatchResult(extracted, failures)
