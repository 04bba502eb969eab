"""Boot sector classification.

Reads the first sector of a device and answers two questions: does the OEM
signature match a filesystem type, and is the volume marked dirty.

Layout used (shared by NTFS and exFAT boot sectors):
- offset 3, 8 bytes: OEM name ("NTFS    ", "EXFAT   ")
- offset 106: exFAT VolumeFlags, bit 1 = VolumeDirty
"""

import logging
import os

from wchkdsk.core.errors import BootSectorReadError
from wchkdsk.models.filesystem import CheckerSpec

logger = logging.getLogger(__name__)

BOOT_SECTOR_SIZE = 512
SIGNATURE_OFFSET = 3
SIGNATURE_LENGTH = 8
DIRTY_FLAG_OFFSET = 106


def read_boot_sector(path: str | os.PathLike[str], length: int = BOOT_SECTOR_SIZE) -> bytes:
    """Read the leading bytes of a device or image.

    Args:
        path: Device or image file.
        length: Number of bytes to read from offset 0.

    Returns:
        Exactly ``length`` bytes.

    Raises:
        BootSectorReadError: If the file cannot be opened or is too short.
    """
    try:
        with open(path, "rb", buffering=0) as f:
            data = f.read(length)
    except OSError as e:
        msg = f"Failed to open {os.fspath(path)} to read its boot sector: {e.strerror or e}"
        raise BootSectorReadError(msg) from e

    if len(data) != length:
        msg = f"Short read on {os.fspath(path)}: got {len(data)} of {length} bytes"
        raise BootSectorReadError(msg)
    return data


def matches_signature(sector: bytes, spec: CheckerSpec) -> bool:
    """Compare the OEM signature window against a filesystem type.

    Filesystems without a fixed signature always match; callers must not
    use this to classify them.
    """
    if spec.signature is None:
        return True
    window = sector[SIGNATURE_OFFSET : SIGNATURE_OFFSET + SIGNATURE_LENGTH]
    return window == spec.signature


def is_dirty(sector: bytes, spec: CheckerSpec) -> bool:
    """Test the boot sector dirty bit of a filesystem type.

    Raises:
        ValueError: If the filesystem keeps no dirty bit in its boot sector.
    """
    if spec.dirty_flag_mask is None:
        msg = f"{spec.display_name} has no dirty flag in its boot sector"
        raise ValueError(msg)
    if len(sector) <= DIRTY_FLAG_OFFSET:
        msg = f"Boot sector too short for dirty flag: {len(sector)} bytes"
        raise ValueError(msg)
    return bool(sector[DIRTY_FLAG_OFFSET] & spec.dirty_flag_mask)


def volume_matches(path: str | os.PathLike[str], spec: CheckerSpec) -> bool:
    """Check if a device still carries the signature of a filesystem type.

    An unreadable device counts as a mismatch.
    """
    try:
        sector = read_boot_sector(path)
    except BootSectorReadError as e:
        logger.warning("%s", e)
        return False
    matched = matches_signature(sector, spec)
    logger.debug("Signature check of %s for %s: %s", path, spec.display_name, matched)
    return matched
