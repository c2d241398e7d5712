"""Read FAT12 disk images, with a command line tool and an in-memory text-mode console model."""

__version__ = "0.1.0"
__all__ = ["disk", "console", "fat", "cli"]