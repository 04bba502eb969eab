"""Exit status models.

This module defines the raw status bits reported by checker programs,
the exit codes wchkdsk itself returns, and the result of a supervised run.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum, IntFlag


class RawExitStatus(IntFlag):
    """Exit status bits shared by ntfsck, fsck.exfat and dosfsck.

    The bit layout is a compatibility contract with the checker programs.
    """

    NO_ERRORS = 0x00
    CORRECTED = 0x01
    NOT_SUPPORT = 0x02
    ERRORS_LEFT = 0x04
    OPERATION_ERROR = 0x08
    SYNTAX_ERROR = 0x10
    USER_CANCEL = 0x20
    SYSCALL_ERROR = 0x40


# dosfsck up to v2.13.0 exits with 0x02 ("need reboot" in its own numbering)
# for a non-FAT target; newer builds exit with 0x40.
LEGACY_NEED_REBOOT = 0x02
FAT_NOT_SUPPORTED = 0x40

# Largest timeout signal.alarm() accepts (C int)
MAX_TIMEOUT_SECONDS = 2**31 - 1


class SupervisorExitCode(IntEnum):
    """Exit codes returned to the caller of wchkdsk.

    These values are stable and consumed by scripts.
    """

    SUCCESS = 0
    FAILURE = 1
    SYNTAX_ERROR = 2
    NOT_SUPPORTED = 3
    READ_ONLY_DEVICE = 23
    VOLUME_DIRTY = 100
    USER_CANCEL = 160
    TIMEOUT = 161


class RunOutcome(str, Enum):
    """How a supervised checker run ended.

    Attributes:
        COMPLETED: The checker exited on its own.
        TIMED_OUT: The alarm fired and the checker was terminated.
        CANCELLED: SIGINT/SIGTERM arrived and the checker was terminated.
        SPAWN_FAILED: The checker could not be started.
        ABNORMAL: The checker died from a signal or could not be waited for.
    """

    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    SPAWN_FAILED = "spawn_failed"
    ABNORMAL = "abnormal"


@dataclass(frozen=True, slots=True)
class RunResult:
    """Result of one supervised checker run.

    Attributes:
        outcome: Terminal outcome of the run.
        raw_status: Checker exit status, only set for COMPLETED.
        signal: Cancelling signal number, only set for CANCELLED.
        detail: Diagnostic text for failed runs.
    """

    outcome: RunOutcome
    raw_status: RawExitStatus | None = field(default=None)
    signal: int | None = field(default=None)
    detail: str | None = field(default=None)

    def __post_init__(self) -> None:
        """Validate that only completed runs carry a raw status."""
        if (self.outcome == RunOutcome.COMPLETED) != (self.raw_status is not None):
            msg = "raw_status must be set exactly for completed runs"
            raise ValueError(msg)

    @property
    def completed(self) -> bool:
        """Check if the checker exited on its own."""
        return self.outcome == RunOutcome.COMPLETED


@dataclass(frozen=True, slots=True)
class Verdict:
    """Final decision of one wchkdsk invocation.

    Attributes:
        code: Exit code to return.
        reason: Human-readable explanation.
        show_usage: Print usage before exiting (checker reported a syntax error).
    """

    code: SupervisorExitCode
    reason: str
    show_usage: bool = field(default=False)

    @property
    def success(self) -> bool:
        """Check if the invocation succeeded."""
        return self.code == SupervisorExitCode.SUCCESS
