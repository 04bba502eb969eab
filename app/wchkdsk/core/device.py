"""Device state inspection.

Read-only detection through sysfs, writability of the device node, and the
stat check that notices a device removed while the checker ran.
"""

import errno
import logging
import os
import stat
from pathlib import Path

from wchkdsk.core.errors import DeviceError
from wchkdsk.models.status import SupervisorExitCode

logger = logging.getLogger(__name__)

SYSFS_BLOCK_DIR = Path("/sys/dev/block")


def _stat_device(path: str) -> os.stat_result:
    try:
        return os.stat(path)
    except OSError as e:
        msg = f"Cannot stat {path}: {e.strerror or e}"
        raise DeviceError(msg) from e


def is_read_only_device(path: str, sysfs_dir: Path = SYSFS_BLOCK_DIR) -> bool:
    """Check if a block device is flagged read-only by the kernel.

    Regular files (disk images) are never reported read-only here.

    Args:
        path: Device node or image file.
        sysfs_dir: Root of the per-device sysfs entries.

    Returns:
        True if the kernel marks the block device read-only.

    Raises:
        DeviceError: If the path cannot be stat'ed, is neither a block device
            nor a regular file, or its sysfs entry cannot be read.
    """
    st = _stat_device(path)

    if not stat.S_ISBLK(st.st_mode):
        if not stat.S_ISREG(st.st_mode):
            msg = f"{path} is not a block device or file"
            raise DeviceError(msg)
        return False

    ro_path = sysfs_dir / f"{os.major(st.st_rdev)}:{os.minor(st.st_rdev)}" / "ro"
    try:
        flag = ro_path.read_text().strip()
    except OSError as e:
        msg = f"Cannot read {ro_path}: {e.strerror or e}"
        raise DeviceError(msg) from e

    logger.debug("%s read-only flag: %r", ro_path, flag)
    return flag.startswith("1")


def is_writable(path: str) -> bool:
    """Check the owner-write bit of a device node or image.

    Raises:
        DeviceError: If the path cannot be stat'ed.
    """
    return bool(_stat_device(path).st_mode & stat.S_IWUSR)


def device_vanished(path: str) -> SupervisorExitCode | None:
    """Check if the device disappeared while the checker was running.

    Returns:
        None if the device is still there, USER_CANCEL if it was removed,
        FAILURE if it cannot be stat'ed for another reason.
    """
    try:
        os.stat(path)
    except OSError as e:
        logger.warning("Device %s is gone after the check: %s", path, e.strerror or e)
        if e.errno == errno.ENOENT:
            return SupervisorExitCode.USER_CANCEL
        return SupervisorExitCode.FAILURE
    return None
