"""Checker registry.

Maps every supported filesystem type to the checker program that handles
it, the three argument variants of that program, and the quirks of its
exit status.
"""

import dataclasses
import logging
import shutil
from collections.abc import Mapping
from types import MappingProxyType

from wchkdsk.models.filesystem import (
    ArgumentVariant,
    CheckerSpec,
    CheckInvocation,
    FilesystemType,
)
from wchkdsk.models.status import FAT_NOT_SUPPORTED, LEGACY_NEED_REBOOT, RawExitStatus

logger = logging.getLogger(__name__)

CHECKERS: Mapping[FilesystemType, CheckerSpec] = MappingProxyType(
    {
        FilesystemType.NTFS: CheckerSpec(
            fstype=FilesystemType.NTFS,
            display_name="NTFS",
            program="ntfsck",
            repair_args=("-a",),
            check_args=("-C",),
            interactive_args=("-r",),
            signature=b"NTFS    ",
            # ntfsck reports a non-NTFS target as an operation error
            signature_recheck_status=RawExitStatus.OPERATION_ERROR,
        ),
        FilesystemType.EXFAT: CheckerSpec(
            fstype=FilesystemType.EXFAT,
            display_name="exFAT",
            program="fsck.exfat",
            repair_args=("-ys",),
            # fsck.exfat has no dirty-only mode; VolumeFlags is read directly
            check_args=None,
            interactive_args=("-r",),
            signature=b"EXFAT   ",
            dirty_flag_mask=0x02,
            # fsck.exfat reports a non-exFAT target as errors left
            signature_recheck_status=RawExitStatus.ERRORS_LEFT,
        ),
        FilesystemType.FAT: CheckerSpec(
            fstype=FilesystemType.FAT,
            display_name="FAT",
            program="dosfsck",
            repair_args=("-afw",),
            check_args=("-C",),
            interactive_args=("-r",),
            not_supported_statuses=frozenset({LEGACY_NEED_REBOOT, FAT_NOT_SUPPORTED}),
            readonly_on_operation_error=True,
        ),
    }
)


def get_checker(fstype: FilesystemType) -> CheckerSpec:
    """Look up the registry row for a filesystem type.

    Args:
        fstype: Filesystem type selected by the caller.

    Returns:
        The CheckerSpec for that type.

    Raises:
        KeyError: If no checker is registered for the type.
    """
    return CHECKERS[fstype]


def with_program(spec: CheckerSpec, program: str | None) -> CheckerSpec:
    """Return a copy of a registry row that runs a different executable.

    Args:
        spec: Registry row to copy.
        program: Replacement executable. None or empty keeps the registry default.

    Returns:
        The same row, or a copy with the program replaced.
    """
    if not program or program == spec.program:
        return spec
    logger.debug("Using %s instead of %s for %s", program, spec.program, spec.fstype.value)
    return dataclasses.replace(spec, program=program)


def build_invocation(
    spec: CheckerSpec,
    variant: ArgumentVariant,
    device: str,
) -> CheckInvocation:
    """Build the command line for one checker run.

    Args:
        spec: Registry row of the filesystem being checked.
        variant: Which argument set to use.
        device: Target device or image path.

    Returns:
        A fresh CheckInvocation.

    Raises:
        ValueError: If the variant is not supported by the checker.
    """
    return CheckInvocation(
        program=spec.program,
        arguments=spec.arguments_for(variant),
        device=device,
        variant=variant,
    )


def checker_available(spec: CheckerSpec) -> bool:
    """Check if the checker executable is on PATH."""
    return shutil.which(spec.program) is not None
