"""Data models for wchkdsk.

This module exports the core data structures used throughout the application.
"""

from wchkdsk.models.filesystem import (
    ArgumentVariant,
    CheckerSpec,
    CheckInvocation,
    FilesystemType,
)
from wchkdsk.models.status import (
    RawExitStatus,
    RunOutcome,
    RunResult,
    SupervisorExitCode,
    Verdict,
)

__all__ = [
    "ArgumentVariant",
    "CheckInvocation",
    "CheckerSpec",
    "FilesystemType",
    "RawExitStatus",
    "RunOutcome",
    "RunResult",
    "SupervisorExitCode",
    "Verdict",
]
