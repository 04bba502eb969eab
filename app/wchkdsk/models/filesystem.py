"""Filesystem and checker data models.

This module defines the supported filesystem types and the immutable
description of the checker program used for each of them.
"""

from dataclasses import dataclass, field
from enum import Enum

from wchkdsk.models.status import RawExitStatus


class FilesystemType(str, Enum):
    """Filesystem types a checker is registered for."""

    NTFS = "ntfs"
    EXFAT = "exfat"
    FAT = "fat"


class ArgumentVariant(str, Enum):
    """Argument set used to launch a checker.

    Attributes:
        REPAIR: Unattended repair (the default run).
        CHECK: Read-only dirty flag probe, no repair.
        INTERACTIVE: Ask the operator before fixing each issue.
    """

    REPAIR = "repair"
    CHECK = "check"
    INTERACTIVE = "interactive"


@dataclass(frozen=True, slots=True)
class CheckerSpec:
    """One row of the checker registry.

    Attributes:
        fstype: Filesystem type this row handles.
        display_name: Human-readable filesystem name.
        program: Checker executable, resolved through PATH.
        repair_args: Arguments for an unattended repair run.
        check_args: Arguments for a dirty-flag-only run. None when the
            checker has no such mode.
        interactive_args: Arguments for an interactive run.
        signature: 8-byte OEM signature at boot sector offset 3, or None
            when the filesystem has no fixed signature.
        dirty_flag_mask: Bit of boot sector byte 106 that marks the volume
            dirty, or None when the flag is not readable from the sector.
        signature_recheck_status: Raw status the checker also returns for a
            foreign filesystem; seeing it triggers a signature re-check.
        not_supported_statuses: Raw statuses that always mean the device is
            not this filesystem.
        readonly_on_operation_error: Disambiguate an operation error by the
            writability of the device file.
    """

    fstype: FilesystemType
    display_name: str
    program: str
    repair_args: tuple[str, ...]
    check_args: tuple[str, ...] | None
    interactive_args: tuple[str, ...]
    signature: bytes | None = field(default=None)
    dirty_flag_mask: int | None = field(default=None)
    signature_recheck_status: RawExitStatus | None = field(default=None)
    not_supported_statuses: frozenset[int] = field(default=frozenset())
    readonly_on_operation_error: bool = field(default=False)

    def __post_init__(self) -> None:
        """Validate the row after initialization."""
        if not self.program:
            msg = f"Checker program for {self.fstype.value} cannot be empty"
            raise ValueError(msg)
        if self.signature is not None and len(self.signature) != 8:
            msg = f"Signature must be 8 bytes, got {len(self.signature)}"
            raise ValueError(msg)
        if self.dirty_flag_mask is not None and not (0 < self.dirty_flag_mask <= 0xFF):
            msg = f"Dirty flag mask must fit in one byte, got {self.dirty_flag_mask:#x}"
            raise ValueError(msg)

    @property
    def has_signature(self) -> bool:
        """Check if the filesystem can be recognised by its boot sector."""
        return self.signature is not None

    @property
    def has_sector_dirty_flag(self) -> bool:
        """Check if the dirty flag can be read straight from the boot sector."""
        return self.dirty_flag_mask is not None

    @property
    def supports_check_run(self) -> bool:
        """Check if the checker has a dirty-flag-only mode."""
        return self.check_args is not None

    def arguments_for(self, variant: ArgumentVariant) -> tuple[str, ...]:
        """Return the argument set for a variant.

        Args:
            variant: Requested argument variant.

        Returns:
            Tuple of checker arguments (without program and device).

        Raises:
            ValueError: If the checker has no check-only mode.
        """
        if variant == ArgumentVariant.REPAIR:
            return self.repair_args
        if variant == ArgumentVariant.INTERACTIVE:
            return self.interactive_args
        if self.check_args is None:
            msg = f"{self.program} has no dirty-flag-only mode"
            raise ValueError(msg)
        return self.check_args


@dataclass(frozen=True, slots=True)
class CheckInvocation:
    """Concrete command line for one checker run.

    Attributes:
        program: Checker executable name.
        arguments: Arguments of the chosen variant.
        device: Target device or image path.
        variant: Variant the arguments were taken from.
    """

    program: str
    arguments: tuple[str, ...]
    device: str
    variant: ArgumentVariant = ArgumentVariant.REPAIR

    @property
    def argv(self) -> list[str]:
        """Full argument vector passed to exec."""
        return [self.program, *self.arguments, self.device]

    def __str__(self) -> str:
        return " ".join(self.argv)
