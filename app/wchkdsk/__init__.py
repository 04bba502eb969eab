"""wchkdsk - Filesystem check supervisor for NTFS, exFAT and FAT volumes."""

__version__ = "0.1.0"
