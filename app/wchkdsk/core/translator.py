"""Exit status translation.

Turns a checker's raw exit status, together with the state of the device,
into the exit code wchkdsk returns. Checker programs are not consistent
about how they report a device that holds a different filesystem, so the
registry row of each filesystem carries the quirks needed to tell
"not this filesystem" apart from a real failure.
"""

import logging

from wchkdsk.core.classifier import volume_matches
from wchkdsk.core.device import device_vanished, is_writable
from wchkdsk.core.errors import DeviceError
from wchkdsk.models.filesystem import CheckerSpec
from wchkdsk.models.status import (
    RawExitStatus,
    RunOutcome,
    RunResult,
    SupervisorExitCode,
    Verdict,
)

logger = logging.getLogger(__name__)

_CLEAN_STATUSES = frozenset({RawExitStatus.NO_ERRORS, RawExitStatus.CORRECTED})


def detect_foreign_volume(raw: int, spec: CheckerSpec, device: str) -> bool:
    """Check if a checker status means the device holds another filesystem.

    Args:
        raw: Raw exit status of the checker.
        spec: Registry row of the filesystem that was checked.
        device: Device or image path, re-read for the signature check.

    Returns:
        True if the device should be reported as not supported.
    """
    if raw in spec.not_supported_statuses:
        logger.debug("%s status %#x means not %s", spec.program, raw, spec.display_name)
        return True
    if spec.signature_recheck_status is not None and raw == spec.signature_recheck_status:
        return not volume_matches(device, spec)
    return False


def translate_exit_status(raw: int, spec: CheckerSpec, device: str) -> Verdict:
    """Translate the exit status of a completed checker run.

    A checker reporting USER_CANCEL (0x20) itself falls through to FAILURE
    on purpose: only a cancel signal seen by the supervisor exits with 160,
    and only its own alarm exits with 161.

    Args:
        raw: Raw exit status (low byte of the checker's exit code).
        spec: Registry row of the filesystem that was checked.
        device: Device or image path that was checked.

    Returns:
        The verdict for this invocation.
    """
    vanished = device_vanished(device)
    if vanished is not None:
        return Verdict(vanished, f"{device} disappeared during the check")

    program = spec.program

    if raw in _CLEAN_STATUSES:
        return Verdict(SupervisorExitCode.SUCCESS, f"{program} finished without errors left")

    if detect_foreign_volume(raw, spec, device):
        return Verdict(
            SupervisorExitCode.NOT_SUPPORTED,
            f"{device} is not a {spec.display_name} volume",
        )

    if raw == RawExitStatus.OPERATION_ERROR and spec.readonly_on_operation_error:
        try:
            writable = is_writable(device)
        except DeviceError as e:
            return Verdict(SupervisorExitCode.FAILURE, str(e))
        if not writable:
            return Verdict(SupervisorExitCode.READ_ONLY_DEVICE, f"{device} is not writable")

    if raw == RawExitStatus.SYNTAX_ERROR:
        return Verdict(
            SupervisorExitCode.SYNTAX_ERROR,
            f"{program} rejected its arguments",
            show_usage=True,
        )

    return Verdict(
        SupervisorExitCode.FAILURE,
        f"{program} exited with status {raw:#04x}",
    )


def outcome_verdict(result: RunResult) -> Verdict:
    """Map a run that did not complete to its fixed verdict.

    Raises:
        ValueError: If the run completed; completed runs go through
            translate_exit_status instead.
    """
    detail = result.detail or result.outcome.value
    if result.outcome == RunOutcome.TIMED_OUT:
        return Verdict(SupervisorExitCode.TIMEOUT, detail)
    if result.outcome == RunOutcome.CANCELLED:
        return Verdict(SupervisorExitCode.USER_CANCEL, detail)
    if result.outcome in (RunOutcome.SPAWN_FAILED, RunOutcome.ABNORMAL):
        return Verdict(SupervisorExitCode.FAILURE, detail)
    msg = "Completed runs must be translated from their exit status"
    raise ValueError(msg)
