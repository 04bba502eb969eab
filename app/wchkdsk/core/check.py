"""Check orchestration.

Drives one wchkdsk invocation: read-only rejection, the dirty flag probe,
the repair run, and translation of its result into a single verdict.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from time import monotonic

from wchkdsk.core.classifier import is_dirty, read_boot_sector
from wchkdsk.core.device import is_read_only_device
from wchkdsk.core.errors import BootSectorReadError, DeviceError
from wchkdsk.core.registry import build_invocation, checker_available
from wchkdsk.core.supervisor import Supervisor
from wchkdsk.core.translator import detect_foreign_volume, outcome_verdict, translate_exit_status
from wchkdsk.models.filesystem import ArgumentVariant, CheckerSpec, FilesystemType
from wchkdsk.models.status import MAX_TIMEOUT_SECONDS, SupervisorExitCode, Verdict
from wchkdsk.utils.formatting import print_info, print_warning

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CheckRequest:
    """Parameters of one invocation.

    Attributes:
        fstype: Filesystem type selected with -f.
        device: Device or image path.
        force: Skip the dirty probe (-y).
        interactive: Use the interactive argument variant (-r).
        timeout_seconds: Time limit for the whole invocation, probe and
            repair run together (0 = none).
    """

    fstype: FilesystemType
    device: str
    force: bool = field(default=False)
    interactive: bool = field(default=False)
    timeout_seconds: int = field(default=0)

    def __post_init__(self) -> None:
        """Validate request values."""
        if not self.device:
            msg = "Device path cannot be empty"
            raise ValueError(msg)
        if not 0 <= self.timeout_seconds <= MAX_TIMEOUT_SECONDS:
            msg = f"Timeout out of range 0-{MAX_TIMEOUT_SECONDS}: {self.timeout_seconds}"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class DirtyProbe:
    """Result of the dirty flag probe.

    Attributes:
        dirty: The volume needs a repair run.
        verdict: Set when the probe already decided the invocation.
    """

    dirty: bool
    verdict: Verdict | None = field(default=None)


class DeviceChecker:
    """Runs the checker of one filesystem type against a device.

    Example:
        >>> checker = DeviceChecker(get_checker(FilesystemType.FAT))
        >>> verdict = checker.check(CheckRequest(FilesystemType.FAT, "/dev/sdb1"))
        >>> raise SystemExit(verdict.code)
    """

    def __init__(self, spec: CheckerSpec, supervisor: Supervisor | None = None) -> None:
        """Initialize the checker.

        Args:
            spec: Registry row of the filesystem to check.
            supervisor: Supervisor used for checker runs.
        """
        self._spec = spec
        self._supervisor = supervisor or Supervisor()

    @property
    def spec(self) -> CheckerSpec:
        """Registry row this checker runs."""
        return self._spec

    def check(self, request: CheckRequest) -> Verdict:
        """Run one full invocation.

        Args:
            request: What to check and how.

        Returns:
            The verdict; its code is the process exit code.

        Raises:
            ValueError: If the request targets another filesystem type.
        """
        if request.fstype != self._spec.fstype:
            msg = f"Request for {request.fstype.value} sent to {self._spec.fstype.value} checker"
            raise ValueError(msg)

        device = request.device
        try:
            if is_read_only_device(device):
                return Verdict(SupervisorExitCode.READ_ONLY_DEVICE, f"{device} is read-only device!")
        except DeviceError as e:
            return Verdict(SupervisorExitCode.FAILURE, str(e))

        if not checker_available(self._spec):
            print_warning(f"{self._spec.program} not found in PATH")

        # One deadline covers the probe and the repair run
        deadline = monotonic() + request.timeout_seconds if request.timeout_seconds else None

        if not request.force:
            probe = self.probe_dirty(device, request.timeout_seconds)
            if probe.verdict is not None:
                return probe.verdict
            if not probe.dirty:
                return Verdict(SupervisorExitCode.SUCCESS, f"{device} is clean, check skipped")

        timeout_seconds = 0
        if deadline is not None:
            timeout_seconds = math.ceil(deadline - monotonic())
            if timeout_seconds <= 0:
                return Verdict(
                    SupervisorExitCode.TIMEOUT,
                    f"timer expired after {request.timeout_seconds}s, "
                    f"{self._spec.program} was not started",
                )

        variant = ArgumentVariant.INTERACTIVE if request.interactive else ArgumentVariant.REPAIR
        return self.repair(device, variant, timeout_seconds)

    def probe_dirty(self, device: str, timeout_seconds: int = 0) -> DirtyProbe:
        """Find out whether the volume needs a repair run.

        The boot sector is used when the filesystem keeps its dirty flag
        there; otherwise the checker runs in its dirty-flag-only mode.

        Args:
            device: Device or image path.
            timeout_seconds: Time limit for the check-only run.

        Returns:
            DirtyProbe; its verdict is set when the invocation must end here.
        """
        spec = self._spec

        if spec.has_sector_dirty_flag:
            try:
                dirty = is_dirty(read_boot_sector(device), spec)
            except BootSectorReadError as e:
                logger.warning("%s; letting %s decide", e, spec.program)
                return DirtyProbe(dirty=True)
            logger.debug("%s dirty flag of %s: %s", spec.display_name, device, dirty)
            return DirtyProbe(dirty=dirty)

        if not spec.supports_check_run:
            print_warning(
                f"{spec.program} cannot probe the dirty flag, treating {device} as clean"
            )
            return DirtyProbe(dirty=False)

        invocation = build_invocation(spec, ArgumentVariant.CHECK, device)
        result = self._supervisor.run(invocation, timeout_seconds)
        if not result.completed:
            return DirtyProbe(dirty=True, verdict=outcome_verdict(result))

        raw = int(result.raw_status or 0)
        print_info(f"EXIT STATUS: {raw}")
        if raw == 0:
            return DirtyProbe(dirty=False)
        if detect_foreign_volume(raw, spec, device):
            return DirtyProbe(
                dirty=True,
                verdict=Verdict(
                    SupervisorExitCode.NOT_SUPPORTED,
                    f"{device} is not a {spec.display_name} volume",
                ),
            )
        return DirtyProbe(dirty=True)

    def repair(
        self,
        device: str,
        variant: ArgumentVariant = ArgumentVariant.REPAIR,
        timeout_seconds: int = 0,
    ) -> Verdict:
        """Run the checker in repair or interactive mode and translate the result.

        Args:
            device: Device or image path.
            variant: REPAIR or INTERACTIVE.
            timeout_seconds: Time limit for the run.

        Returns:
            Verdict for the run.
        """
        invocation = build_invocation(self._spec, variant, device)
        result = self._supervisor.run(invocation, timeout_seconds)
        if not result.completed:
            return outcome_verdict(result)

        raw = int(result.raw_status or 0)
        print_info(f"EXIT STATUS: {raw}")
        return translate_exit_status(raw, self._spec, device)
