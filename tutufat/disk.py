"""Sector-level access to a raw disk image."""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO

SECTOR_SIZE = 512


class DiskError(OSError):
    """Raised when a disk image cannot be opened or read."""


def lba_to_chs(lba: int, sectors_per_track: int, heads: int) -> tuple[int, int, int]:
    """Convert a logical block address to a ``(cylinder, sector, head)`` triple.

    Sectors are numbered from 1, cylinders and heads from 0.
    """
    if sectors_per_track <= 0 or heads <= 0:
        raise ValueError("sectors_per_track and heads must be positive")
    if lba < 0:
        raise ValueError("lba must not be negative")
    track, sector_index = divmod(lba, sectors_per_track)
    cylinder, head = divmod(track, heads)
    return cylinder, sector_index + 1, head


class DiskImage:
    """A disk image file read in whole sectors."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        try:
            self._file: BinaryIO | None = open(self.path, "rb")
        except OSError as exc:
            raise DiskError(f"cannot open disk image {self.path}: {exc}") from exc

    @property
    def closed(self) -> bool:
        return self._file is None

    def read_sectors(self, lba: int, count: int) -> bytes:
        """Read ``count`` sectors starting at ``lba``.

        At least one whole sector must be available; the returned data may be
        shorter than requested when the image ends early.
        """
        if self._file is None:
            raise DiskError("disk image is closed")
        if lba < 0:
            raise ValueError("lba must not be negative")
        if count < 1:
            raise ValueError("count must be at least 1")
        self._file.seek(lba * SECTOR_SIZE)
        data = self._file.read(count * SECTOR_SIZE)
        if len(data) < SECTOR_SIZE:
            raise DiskError(f"cannot read sector {lba} of {self.path}")
        return data

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> DiskImage:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()