import struct

import pytest

from tutufat.disk import DiskImage
from tutufat.fat import (
    Attribute,
    BootSector,
    DirectoryEntry,
    FatError,
    FatFileSystem,
    FileNotFoundInImage,
    NotADirectoryInImage,
    OutOfHandles,
    to_fat_name,
)

SECTOR = 512
SPC = 1
RESERVED = 1
FAT_COUNT = 2
SPF = 1
DIR_ENTRIES = 16
ROOT_LBA = RESERVED + FAT_COUNT * SPF
DATA_LBA = ROOT_LBA + 1
TOTAL = 64
END = 0xFFF

KERNEL = bytes(range(256)) * 4 + b"tail" * 19
TEST_TXT = b"Hello from a test file\n"
NESTED = b"nested file\n"
README = b"no extension\n"

BOOT_FORMAT = "<3s8sHBHBHHBHHHIIBBBI11s8s"


def boot_sector_bytes(sectors_per_fat=SPF):
    packed = struct.pack(
        BOOT_FORMAT,
        b"\xeb\x3c\x90", b"MSWIN4.1", SECTOR, SPC, RESERVED, FAT_COUNT,
        DIR_ENTRIES, TOTAL, 0xF0, sectors_per_fat, 18, 2, 0, 0,
        0, 0, 0x29, 0x12345678, b"TUTU OS    ", b"FAT12   ",
    )
    return packed.ljust(SECTOR, b"\0")


def entry_bytes(name, attributes, cluster, size):
    return struct.pack(
        "<11sBBBHHHHHHHI", name, attributes, 0, 0, 0, 0, 0,
        cluster >> 16, 0, 0, cluster & 0xFFFF, size,
    )


def set_fat12(fat, cluster, value):
    i = cluster * 3 // 2
    if cluster % 2 == 0:
        fat[i] = value & 0xFF
        fat[i + 1] = (fat[i + 1] & 0xF0) | (value >> 8)
    else:
        fat[i] = (fat[i] & 0x0F) | ((value << 4) & 0xF0)
        fat[i + 1] = value >> 4


def write_chain(image, fat, clusters, data):
    for position, (cluster, following) in enumerate(zip(clusters, clusters[1:] + [END])):
        set_fat12(fat, cluster, following)
        chunk = data[position * SECTOR:(position + 1) * SECTOR]
        offset = (DATA_LBA + cluster - 2) * SECTOR
        image[offset:offset + len(chunk)] = chunk


def build_image(path):
    image = bytearray(TOTAL * SECTOR)
    image[:SECTOR] = boot_sector_bytes()
    fat = bytearray(SECTOR)
    set_fat12(fat, 0, 0xFF0)
    set_fat12(fat, 1, END)
    write_chain(image, fat, [2, 3, 4], KERNEL)
    write_chain(image, fat, [5], TEST_TXT)
    subdir = (
        entry_bytes(b".          ", Attribute.DIRECTORY, 6, 0)
        + entry_bytes(b"..         ", Attribute.DIRECTORY, 0, 0)
        + entry_bytes(b"TEST    TXT", Attribute.ARCHIVE, 7, len(NESTED))
    )
    write_chain(image, fat, [6], subdir)
    write_chain(image, fat, [7], NESTED)
    write_chain(image, fat, [8], README)
    for copy in range(FAT_COUNT):
        start = (RESERVED + copy * SPF) * SECTOR
        image[start:start + SECTOR] = fat
    root = (
        entry_bytes(b"TUTU OS    ", Attribute.VOLUME_ID, 0, 0)
        + entry_bytes(b"KERNEL  BIN", Attribute.ARCHIVE, 2, len(KERNEL))
        + entry_bytes(b"TEST    TXT", Attribute.ARCHIVE, 5, len(TEST_TXT))
        + entry_bytes(b"MYDIR      ", Attribute.DIRECTORY, 6, 0)
        + entry_bytes(b"README     ", Attribute.ARCHIVE, 8, len(README))
    )
    image[ROOT_LBA * SECTOR:ROOT_LBA * SECTOR + len(root)] = root
    path.write_bytes(bytes(image))


class MemoryDisk:
    def __init__(self, data):
        self.data = data

    def read_sectors(self, lba, count):
        return self.data[lba * SECTOR:(lba + count) * SECTOR].ljust(count * SECTOR, b"\0")


@pytest.fixture
def fs(tmp_path):
    path = tmp_path / "floppy.img"
    build_image(path)
    disk = DiskImage(path)
    yield FatFileSystem(disk)
    disk.close()


def read_all(fs, file, chunk=100):
    return b"".join(iter(lambda: fs.read(file, chunk), b""))


def test_boot_sector_parse():
    bs = BootSector.parse(boot_sector_bytes())
    assert bs.bytes_per_sector == SECTOR
    assert bs.reserved_sectors == RESERVED
    assert bs.fat_count == FAT_COUNT
    assert bs.dir_entry_count == DIR_ENTRIES
    assert bs.volume_label == b"TUTU OS    "


def test_boot_sector_too_short():
    with pytest.raises(FatError):
        BootSector.parse(b"\0" * 10)


def test_directory_entry_parse():
    entry = DirectoryEntry.parse(entry_bytes(b"MYDIR      ", Attribute.DIRECTORY, 6, 0))
    assert entry.name == b"MYDIR      "
    assert entry.is_directory()
    assert entry.first_cluster() == 6
    plain = DirectoryEntry.parse(entry_bytes(b"TEST    TXT", Attribute.ARCHIVE, 5, 23))
    assert not plain.is_directory()
    assert plain.size == 23


def test_lfn_entry_is_not_a_directory():
    lfn = DirectoryEntry.parse(entry_bytes(b"AB         ", Attribute.LFN, 0, 0))
    assert not lfn.is_directory()
    both = DirectoryEntry.parse(
        entry_bytes(b"AB         ", Attribute.LFN | Attribute.DIRECTORY, 0x10002, 0)
    )
    assert both.is_directory()
    assert both.first_cluster() == 0x10002


@pytest.mark.parametrize(
    "name, expected",
    [
        ("kernel.bin", b"KERNEL  BIN"),
        ("test.txt", b"TEST    TXT"),
        ("mydir", b"MYDIR      "),
        ("averylongname.text", b"AVERYLONTEX"),
    ],
)
def test_to_fat_name(name, expected):
    assert to_fat_name(name) == expected


def test_next_cluster_follows_chain(fs):
    assert fs.next_cluster(2) == 3
    assert fs.next_cluster(3) == 4
    assert fs.next_cluster(4) == END
    assert fs.next_cluster(0) == 0xFF0
    assert fs.next_cluster(6) == END


def test_cluster_to_lba(fs):
    assert fs.cluster_to_lba(2) == DATA_LBA
    assert fs.cluster_to_lba(3) - fs.cluster_to_lba(2) == SPC


def test_read_multi_cluster_file(fs):
    f = fs.open("/kernel.bin")
    assert not f.is_directory
    assert read_all(fs, f) == KERNEL
    assert f.position == f.size == len(KERNEL)


def test_read_in_one_call_and_past_end(fs):
    f = fs.open("/test.txt")
    assert fs.read(f, 10_000) == TEST_TXT
    assert fs.read(f, 10) == b""


def test_open_without_leading_slash_and_no_extension(fs):
    f = fs.open("readme")
    assert read_all(fs, f) == README


def test_open_nested_path(fs):
    f = fs.open("/mydir/test.txt")
    assert read_all(fs, f, chunk=5) == NESTED


def test_missing_file(fs):
    with pytest.raises(FileNotFoundInImage):
        fs.open("/nothere.txt")


def test_file_used_as_directory(fs):
    with pytest.raises(NotADirectoryInImage):
        fs.open("/test.txt/inner")


def test_root_listing(fs):
    root = fs.open("/")
    assert root is fs.root_directory
    names = []
    while (entry := fs.read_entry(root)) is not None:
        names.append(entry.name)
    assert len(names) == DIR_ENTRIES
    assert b"KERNEL  BIN" in names
    assert b"MYDIR      " in names


def test_subdirectory_listing_ends_at_chain_end(fs):
    d = fs.open("/mydir")
    assert d.is_directory
    entries = []
    while (entry := fs.read_entry(d)) is not None:
        entries.append(entry)
    assert len(entries) == SECTOR // 32
    assert entries[2].name == b"TEST    TXT"
    assert d.size == d.position


def test_out_of_handles_and_release(fs):
    files = [fs.open("/test.txt") for _ in range(10)]
    with pytest.raises(OutOfHandles):
        fs.open("/test.txt")
    fs.close(files[3])
    again = fs.open("/test.txt")
    assert again.handle == files[3].handle
    assert read_all(fs, again) == TEST_TXT


def test_repeated_open_close(fs):
    for _ in range(25):
        f = fs.open("/mydir/test.txt")
        assert read_all(fs, f) == NESTED
        fs.close(f)


def test_read_after_close(fs):
    f = fs.open("/test.txt")
    fs.close(f)
    with pytest.raises(FatError):
        fs.read(f, 10)


def test_negative_count(fs):
    f = fs.open("/test.txt")
    with pytest.raises(ValueError):
        fs.read(f, -1)


def test_fat_too_large():
    disk = MemoryDisk(boot_sector_bytes(sectors_per_fat=128))
    with pytest.raises(FatError, match="not enough memory"):
        FatFileSystem(disk)


def test_zero_bytes_per_sector_rejected():
    data = bytearray(boot_sector_bytes())
    data[11:13] = b"\0\0"
    with pytest.raises(FatError):
        FatFileSystem(MemoryDisk(bytes(data)))