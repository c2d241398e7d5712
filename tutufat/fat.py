"""Read-only access to FAT12 volumes stored in disk images."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Protocol

from .disk import SECTOR_SIZE, DiskError

MAX_FILE_HANDLES = 10
ROOT_DIRECTORY_HANDLE = -1
MEMORY_FAT_SIZE = 0x10000
# Bookkeeping that shares the FAT memory window: boot sector plus root and handle state.
_FAT_DATA_SIZE = 6496
END_OF_CHAIN = 0xFF8
DIRECTORY_ENTRY_SIZE = 32


class FatError(Exception):
    """Raised when a FAT volume cannot be read or a request cannot be served."""


class FileNotFoundInImage(FatError):
    """Raised when a path component does not exist in its directory."""


class NotADirectoryInImage(FatError):
    """Raised when a path passes through something that is not a directory."""


class OutOfHandles(FatError):
    """Raised when every file handle is already in use."""


class Attribute(IntFlag):
    READ_ONLY = 0x01
    HIDDEN = 0x02
    SYSTEM = 0x04
    VOLUME_ID = 0x08
    DIRECTORY = 0x10
    ARCHIVE = 0x20
    LFN = READ_ONLY | HIDDEN | SYSTEM | VOLUME_ID


class SectorReader(Protocol):
    def read_sectors(self, lba: int, count: int) -> bytes: ...


_BOOT_FORMAT = struct.Struct("<3s8sHBHBHHBHHHIIBBBI11s8s")
_ENTRY_FORMAT = struct.Struct("<11sBBBHHHHHHHI")


@dataclass(frozen=True)
class BootSector:
    """The BIOS parameter block and extended boot record of a FAT volume."""

    boot_jump_instruction: bytes
    oem_identifier: bytes
    bytes_per_sector: int
    sectors_per_cluster: int
    reserved_sectors: int
    fat_count: int
    dir_entry_count: int
    total_sectors: int
    media_descriptor_type: int
    sectors_per_fat: int
    sectors_per_track: int
    heads: int
    hidden_sectors: int
    large_sector_count: int
    drive_number: int
    reserved: int
    signature: int
    volume_id: int
    volume_label: bytes
    system_id: bytes

    @classmethod
    def parse(cls, data: bytes) -> BootSector:
        if len(data) < _BOOT_FORMAT.size:
            raise FatError("boot sector is too short")
        return cls(*_BOOT_FORMAT.unpack_from(data))


@dataclass(frozen=True)
class DirectoryEntry:
    """One 32-byte directory entry."""

    name: bytes
    attributes: int
    reserved: int
    created_time_tenths: int
    created_time: int
    created_date: int
    accessed_date: int
    first_cluster_high: int
    modified_time: int
    modified_date: int
    first_cluster_low: int
    size: int

    @classmethod
    def parse(cls, data: bytes) -> DirectoryEntry:
        if len(data) < _ENTRY_FORMAT.size:
            raise FatError("directory entry is too short")
        return cls(*_ENTRY_FORMAT.unpack_from(data))

    def is_directory(self) -> bool:
        return bool(self.attributes & Attribute.DIRECTORY)

    def first_cluster(self) -> int:
        return self.first_cluster_low + (self.first_cluster_high << 16)


def to_fat_name(name: str) -> bytes:
    """Convert a file name to its 11-byte, space padded, upper case 8.3 form."""
    raw = name.encode("latin-1")
    dot = raw.find(b".")
    if dot < 0:
        base, ext = raw[:8], b""
    else:
        base, ext = raw[:min(dot, 8)], raw[dot + 1:dot + 4]
    return base.upper().ljust(8, b" ") + ext.upper().ljust(3, b" ")


@dataclass
class FatFile:
    """An open file or directory on a FAT volume."""

    handle: int
    is_directory: bool
    position: int = 0
    size: int = 0
    first_cluster: int = field(default=0, repr=False)
    current_cluster: int = field(default=0, repr=False)
    sector_in_cluster: int = field(default=0, repr=False)
    _buffer: bytes | None = field(default=None, repr=False)


class FatFileSystem:
    """A FAT12 volume read through a sector reader such as a disk image."""

    def __init__(self, disk: SectorReader) -> None:
        self.disk = disk
        try:
            boot = disk.read_sectors(0, 1)
        except DiskError as exc:
            raise FatError("read boot sector failed") from exc
        self.boot_sector = bs = BootSector.parse(boot)
        if bs.bytes_per_sector == 0:
            raise FatError("invalid boot sector: zero bytes per sector")

        fat_size = bs.bytes_per_sector * bs.sectors_per_fat
        if _FAT_DATA_SIZE + fat_size >= MEMORY_FAT_SIZE:
            raise FatError(
                f"not enough memory to read FAT! Required {_FAT_DATA_SIZE + fat_size}, "
                f"only have {MEMORY_FAT_SIZE}"
            )
        if bs.sectors_per_fat == 0:
            raise FatError("read FAT failed")
        try:
            fat = disk.read_sectors(bs.reserved_sectors, bs.sectors_per_fat)
        except DiskError as exc:
            raise FatError("read FAT failed") from exc
        self._fat = bytes(fat) + bytes(SECTOR_SIZE)

        root_lba = bs.reserved_sectors + bs.sectors_per_fat * bs.fat_count
        root_size = DIRECTORY_ENTRY_SIZE * bs.dir_entry_count
        self.root_directory = FatFile(
            handle=ROOT_DIRECTORY_HANDLE,
            is_directory=True,
            size=root_size,
            first_cluster=root_lba,
            current_cluster=root_lba,
        )
        try:
            self._load_sector(self.root_directory)
        except DiskError as exc:
            raise FatError("read root directory failed") from exc

        root_sectors = -(-root_size // bs.bytes_per_sector)
        self.data_section_lba = root_lba + root_sectors
        self._handles: list[FatFile | None] = [None] * MAX_FILE_HANDLES

    def cluster_to_lba(self, cluster: int) -> int:
        return self.data_section_lba + (cluster - 2) * self.boot_sector.sectors_per_cluster

    def next_cluster(self, cluster: int) -> int:
        """Return the FAT12 entry that follows ``cluster`` in its chain."""
        index = cluster * 3 // 2
        value = int.from_bytes(self._fat[index:index + 2].ljust(2, b"\0"), "little")
        return value & 0x0FFF if cluster % 2 == 0 else value >> 4

    def _is_root(self, file: FatFile) -> bool:
        return file.handle == ROOT_DIRECTORY_HANDLE

    def _load_sector(self, file: FatFile) -> None:
        if self._is_root(file):
            lba = file.current_cluster
        else:
            lba = self.cluster_to_lba(file.current_cluster) + file.sector_in_cluster
        file._buffer = self.disk.read_sectors(lba, 1)[:SECTOR_SIZE]

    def _check_open(self, file: FatFile) -> None:
        if self._is_root(file):
            if file is not self.root_directory:
                raise FatError("file is not open")
            return
        if not 0 <= file.handle < MAX_FILE_HANDLES or self._handles[file.handle] is not file:
            raise FatError("file is not open")

    def _open_entry(self, entry: DirectoryEntry) -> FatFile:
        handle = next((i for i, slot in enumerate(self._handles) if slot is None), None)
        if handle is None:
            raise OutOfHandles("out of file handles")
        cluster = entry.first_cluster()
        file = FatFile(
            handle=handle,
            is_directory=entry.is_directory(),
            size=entry.size,
            first_cluster=cluster,
            current_cluster=cluster,
        )
        try:
            self._load_sector(file)
        except DiskError as exc:
            raise FatError(
                f"open entry failed - read error cluster={cluster} "
                f"lba={self.cluster_to_lba(cluster)}"
            ) from exc
        self._handles[handle] = file
        return file

    def open(self, path: str) -> FatFile:
        """Open a file or directory by its slash separated path."""
        if path.startswith("/"):
            path = path[1:]
        current = self.root_directory
        if not path:
            return current
        components = path.split("/")
        trailing = components[-1] == ""
        if trailing:
            components.pop()
        for index, name in enumerate(components):
            is_last = not trailing and index == len(components) - 1
            try:
                entry = self.find_file(current, name)
            finally:
                self.close(current)
            if not is_last and not entry.is_directory():
                raise NotADirectoryInImage(f"{name} not a directory")
            current = self._open_entry(entry)
        return current

    def read(self, file: FatFile, count: int) -> bytes:
        """Read up to ``count`` bytes from the current position of ``file``."""
        self._check_open(file)
        if count < 0:
            raise ValueError("count must not be negative")
        if not file.is_directory or file.size != 0:
            count = max(0, min(count, file.size - file.position))

        out = bytearray()
        while count > 0:
            if file._buffer is None:
                try:
                    self._load_sector(file)
                except DiskError:
                    break
            offset = file.position % SECTOR_SIZE
            left = SECTOR_SIZE - offset
            take = min(count, left)
            out += file._buffer[offset:offset + take]
            file.position += take
            count -= take
            if take != left:
                continue
            if self._is_root(file):
                file.current_cluster += 1
            else:
                file.sector_in_cluster += 1
                if file.sector_in_cluster >= self.boot_sector.sectors_per_cluster:
                    file.sector_in_cluster = 0
                    file.current_cluster = self.next_cluster(file.current_cluster)
                if file.current_cluster >= END_OF_CHAIN:
                    file.size = file.position
                    file._buffer = None
                    break
            try:
                self._load_sector(file)
            except DiskError:
                file._buffer = None
                break
        return bytes(out)

    def read_entry(self, file: FatFile) -> DirectoryEntry | None:
        """Read the next directory entry, or None when the directory is exhausted."""
        data = self.read(file, DIRECTORY_ENTRY_SIZE)
        if len(data) != DIRECTORY_ENTRY_SIZE:
            return None
        return DirectoryEntry.parse(data)

    def find_file(self, file: FatFile, name: str) -> DirectoryEntry:
        """Scan ``file`` from its current position for an entry called ``name``."""
        fat_name = to_fat_name(name)
        while (entry := self.read_entry(file)) is not None:
            if entry.name == fat_name:
                return entry
        raise FileNotFoundInImage(f"{name} not found")

    def close(self, file: FatFile) -> None:
        """Release a file handle; the root directory is rewound instead."""
        if self._is_root(file):
            file.position = 0
            file.current_cluster = file.first_cluster
            file._buffer = None
        elif 0 <= file.handle < MAX_FILE_HANDLES and self._handles[file.handle] is file:
            self._handles[file.handle] = None