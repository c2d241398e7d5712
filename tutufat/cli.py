"""Command line tool that lists a directory or reads a file inside a FAT12 image."""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from .disk import DiskError, DiskImage
from .fat import FatError, FatFile, FatFileSystem

MAX_LISTED_ENTRIES = 10
READ_CHUNK_SIZE = 100


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fat",
        description="Browse a file or directory stored in a FAT12 disk image.",
    )
    parser.add_argument("image", help="path of the disk image")
    parser.add_argument("file_path", help="path inside the image, e.g. /mydir")
    return parser


def _list_directory(fs: FatFileSystem, directory: FatFile) -> None:
    for _ in range(MAX_LISTED_ENTRIES):
        entry = fs.read_entry(directory)
        if entry is None:
            break
        sys.stdout.write("  " + entry.name.decode("latin-1") + "\r\n")


def _drain_file(fs: FatFileSystem, file: FatFile) -> int:
    total = 0
    while chunk := fs.read(file, READ_CHUNK_SIZE):
        total += len(chunk)
    return total


def main(argv: Sequence[str] | None = None) -> int:
    """Run the tool; returns the process exit status."""
    args = _build_parser().parse_args(argv)

    try:
        disk = DiskImage(args.image)
    except DiskError:
        print("Disk init error")
        return 1

    with disk:
        try:
            fs = FatFileSystem(disk)
        except (FatError, DiskError):
            print("FAT init error")
            return 1

        try:
            handle = fs.open(args.file_path)
        except FatError as exc:
            print(f"FAT: {exc}", file=sys.stderr)
            return 1

        try:
            if handle.is_directory:
                _list_directory(fs, handle)
            else:
                _drain_file(fs, handle)
        finally:
            fs.close(handle)

    return 0


if __name__ == "__main__":
    sys.exit(main())