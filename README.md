# tutufat

`tutufat` reads FAT12 floppy disk images, such as a standard 1.44 MB boot floppy.
It opens files and directories by path, reads directory entries and reads file
contents. It needs no third-party libraries.

It also has `tutufat.console`, an in-memory model of an 80x25 text-mode screen.
The model includes a small `printf`-style formatter.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

```
tutufat <image> <path>
```

If `<path>` names a directory, the command prints up to ten of its entries. Each
entry is printed as its raw 11-character FAT name, indented by two spaces.
If `<path>` names a file, the command reads the whole file through the file
system to check that it can be read. It does not print the contents.

```
tutufat main_floppy.img /
tutufat main_floppy.img /mydir/test.txt
```

On success the command exits with status 0. It exits with status 1 in these cases:

- The image cannot be opened. It prints `Disk init error`.
- The volume cannot be read. It prints `FAT init error`.
- The path cannot be opened. The reason goes to standard error.

## Library use

```python
from tutufat.disk import DiskImage
from tutufat.fat import FatFileSystem, to_fat_name

with DiskImage("main_floppy.img") as disk:
    fs = FatFileSystem(disk)

    root = fs.open("/")
    while (entry := fs.read_entry(root)) is not None:
        print(entry.name, entry.is_directory())
    fs.close(root)

    handle = fs.open("/mydir/test.txt")
    data = fs.read(handle, 4096)
    fs.close(handle)

print(to_fat_name("test.txt"))   # b'TEST    TXT'
```

`DiskImage.read_sectors(lba, count)` returns raw 512-byte sectors.
`lba_to_chs(lba, sectors_per_track, heads)` converts a logical block address to
a `(cylinder, sector, head)` triple.

`FatFileSystem` has these methods:

- `open(path)` returns a `FatFile`.
- `read(file, count)` returns up to `count` bytes.
- `read_entry(file)` returns a `DirectoryEntry`, or `None` at the end of the directory.
- `find_file(file, name)` returns the matching `DirectoryEntry`.
- `close(file)` releases a file. For the root directory it rewinds it instead.

`cluster_to_lba` and `next_cluster` expose the volume's cluster arithmetic.
`BootSector.parse` and `DirectoryEntry.parse` decode the on-disk structures.
`Attribute` holds the entry attribute flags.

At most ten files can be open at the same time. The root directory does not use
one of these handles. Errors are raised as exceptions:

- `DiskError` when the image cannot be opened or read.
- `FileNotFoundInImage` when a path component does not exist.
- `NotADirectoryInImage` when a path goes through something that is not a directory.
- `OutOfHandles` when all ten handles are already in use.
- `FatError` is the base class of the FAT errors above.

### Console emulator

```python
from tutufat.console import Screen, sprintf

print(sprintf("%d %x %s", -42, 255, "ok"))   # '-42 ff ok'

screen = Screen(80, 25, 0x07)
screen.printf("Hello %s!\n", "world")
print(screen.lines()[0])                     # 'Hello world!'
```

`sprintf` supports `%c %s %% %d %i %u %x %X %p %o`. Each may take an optional
`h`, `hh`, `l` or `ll` length prefix. Unknown specifiers are dropped, and hex
digits are always lowercase.

`Screen` has these methods:

- `putc`, `puts`, `printf` write text at the cursor.
- `print_buffer(msg, data)` writes `msg`, then `data` as hex, then a newline.
- `clrscr` clears the screen.
- `scrollback(lines)` scrolls the contents up.
- `char_at` and `color_at` read a single cell.
- `lines()` returns each row as text.

Newlines, tabs and carriage returns move the cursor. The cursor wraps at the end
of a line, and the screen scrolls when output goes past the last row.

## Limitations

- Access to images is read-only. Nothing can be created, written or deleted.
- Cluster chains are followed as FAT12 only. FAT16 and FAT32 volumes are not supported.
- Long file names are not supported. Names are matched in their 8.3 form.
- The console is an in-memory model only. It draws nothing to a real terminal.