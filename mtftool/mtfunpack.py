#!/usr/bin/env python3
import sys
import logging
from pathlib import Path
from argparse import ArgumentParser

from mtftool.mtf import MTFFile
from mtftool.mtferrors import MTFError, ExtractionAborted
from mtftool.mtfextract import extract_batch, normalize_path, EXTRACT_ALL

argparser = ArgumentParser(
    description="Decompresses each file in a DarkStone MTF archive to the given path. "
                "Creates directories as needed. Existing files are overwritten.")
argparser.add_argument("file", type=Path, help="input MTF archive")
argparser.add_argument("out", type=Path, nargs="?", help="output directory")
argparser.add_argument("-l", "--list", action="store_true",
                       help="list the archive contents instead of extracting")
argparser.add_argument("-n", "--max-files", type=int, default=EXTRACT_ALL,
                       help="stop after this many files have been extracted")
argparser.add_argument("-j", "--workers", type=int, default=1,
                       help="decode entries on this many threads")
argparser.add_argument("-v", "--verbose", action="store_true")

def list_archive(path):
    with MTFFile(path) as mtf:
        print("Offset", "Size", "Compressed", "Name", sep='\t')
        for entry in mtf:
            print(hex(entry.data_offset), entry.decompressed_size,
                  int(mtf.is_compressed(entry)), normalize_path(entry.filename), sep='\t')

def main(argv=None):
    args = argparser.parse_args(argv)

    if not args.list and args.out is None:
        argparser.error("the following arguments are required: out")
    if args.max_files is not None and args.max_files <= 0:
        argparser.error("--max-files must be positive")
    if args.workers < 1:
        argparser.error("--workers must be at least 1")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s")

    if args.list:
        try:
            list_archive(args.file)
        except MTFError as err:
            print('Error while reading "%s": %s' % (args.file, err), file=sys.stderr)
            return 1
        return 0

    try:
        result = extract_batch(args.file, args.out, args.max_files, args.workers)
    except ExtractionAborted as err:
        print('Error while extracting "%s": %s' % (args.file, err), file=sys.stderr)
        print("Managed to extract %d files." % err.files_extracted, file=sys.stderr)
        return 1

    if not result.failures:
        print('Successfully extracted %d files from MTF archive "%s".' % (result.extracted, args.file))
        return 0

    for entry, error in result.failures:
        print("Failed to decode %s: %s" % (normalize_path(entry.filename), error), file=sys.stderr)
    print('Extracted %d files from MTF archive "%s", %d could not be decoded.'
          % (result.extracted, args.file, len(result.failures)))
    return 1

if __name__ == "__main__":
    sys.exit(main())
