"""Checker process supervision.

Runs one checker child to completion, bounded by an optional one-shot
alarm and cancellable through SIGINT/SIGTERM. Every way out of run(), an
exception included, leaves the child reaped, the alarm disarmed, and the
caller's signal handlers and mask restored.

Signal handlers must be installed from the main thread, so Supervisor.run
raises ValueError when called from any other thread.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from types import FrameType
from typing import Any, ClassVar

from wchkdsk.models.filesystem import CheckInvocation
from wchkdsk.models.status import MAX_TIMEOUT_SECONDS, RawExitStatus, RunOutcome, RunResult

logger = logging.getLogger(__name__)

# Signals left deliverable while the checker runs
SUPERVISED_SIGNALS = frozenset({signal.SIGCHLD, signal.SIGALRM, signal.SIGINT, signal.SIGTERM})
CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SessionState(str, Enum):
    """Lifecycle of a supervision session."""

    IDLE = "idle"
    SPAWNING = "spawning"
    RUNNING = "running"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    SPAWN_FAILED = "spawn_failed"
    ABNORMAL = "abnormal"


_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.SPAWNING}),
    SessionState.SPAWNING: frozenset({SessionState.RUNNING, SessionState.SPAWN_FAILED}),
    SessionState.RUNNING: frozenset(
        {
            SessionState.COMPLETED,
            SessionState.TIMED_OUT,
            SessionState.CANCELLED,
            SessionState.ABNORMAL,
        }
    ),
}


class WaitInterrupted(Exception):
    """Raised from a signal handler to break out of the blocking wait."""


@dataclass(slots=True)
class SupervisionSession:
    """State of the one checker run in flight.

    The signal handlers are bound methods of the session, so the child pid
    reaches them without any module-level state.

    Attributes:
        invocation: Command line being run.
        timeout_seconds: One-shot alarm in seconds, 0 for none.
        pid: Child pid once spawned.
        state: Current lifecycle state.
        cancel_signal: First SIGINT/SIGTERM received while running.
        timer_expired: The alarm fired while running.
        draining: The child is being terminated and reaped; handlers no
            longer interrupt the wait.
        reaped: The wait returned; the pid may already belong to another
            process.
    """

    invocation: CheckInvocation
    timeout_seconds: int = 0
    pid: int | None = field(default=None)
    state: SessionState = field(default=SessionState.IDLE)
    cancel_signal: int | None = field(default=None)
    timer_expired: bool = field(default=False)
    draining: bool = field(default=False)
    reaped: bool = field(default=False)

    def transition(self, new_state: SessionState) -> None:
        """Move to a new lifecycle state.

        Raises:
            RuntimeError: If the transition is not allowed.
        """
        if new_state not in _TRANSITIONS.get(self.state, frozenset()):
            msg = f"Illegal session transition {self.state.value} -> {new_state.value}"
            raise RuntimeError(msg)
        logger.debug("Session %s: %s -> %s", self.pid, self.state.value, new_state.value)
        self.state = new_state

    @property
    def is_terminal(self) -> bool:
        """Check if the session reached a final state."""
        return self.state not in _TRANSITIONS

    def handle_cancel(self, signum: int, frame: FrameType | None) -> None:
        """SIGINT/SIGTERM handler: terminate the child and break the wait."""
        if self.cancel_signal is None:
            self.cancel_signal = signum
        if self.state != SessionState.RUNNING or self.draining or self.reaped:
            return
        self.draining = True
        if self.pid is not None:
            try:
                os.kill(self.pid, signal.SIGTERM)
            except ProcessLookupError:
                pass  # already exited, the wait collects it
        raise WaitInterrupted(f"signal {signum}")

    def handle_alarm(self, signum: int, frame: FrameType | None) -> None:
        """SIGALRM handler: mark the timer expired and break the wait."""
        if self.state != SessionState.RUNNING or self.draining or self.reaped:
            return
        self.timer_expired = True
        self.draining = True
        raise WaitInterrupted("timer expired")


class Supervisor:
    """Runs checker programs one at a time.

    Example:
        >>> supervisor = Supervisor(niceness=19)
        >>> result = supervisor.run(invocation, timeout_seconds=600)
        >>> if result.completed:
        ...     print(result.raw_status)
    """

    _live_session: ClassVar[SupervisionSession | None] = None

    def __init__(self, niceness: int = 19) -> None:
        """Initialize the supervisor.

        Args:
            niceness: nice(2) increment applied to the child (0 = unchanged).
        """
        self._niceness = niceness

    @property
    def niceness(self) -> int:
        """Priority increment applied to checker children."""
        return self._niceness

    def run(self, invocation: CheckInvocation, timeout_seconds: int = 0) -> RunResult:
        """Run a checker and wait for it.

        Args:
            invocation: Command line to execute.
            timeout_seconds: Terminate the checker after this many seconds
                (0 = no limit).

        Returns:
            RunResult describing how the run ended.

        Raises:
            ValueError: If the timeout is negative or larger than
                MAX_TIMEOUT_SECONDS, or when not called from the main thread.
            RuntimeError: If another checker run is still in flight.
        """
        if timeout_seconds < 0:
            msg = f"Timeout must be non-negative, got {timeout_seconds}"
            raise ValueError(msg)
        if timeout_seconds > MAX_TIMEOUT_SECONDS:
            msg = f"Timeout must be at most {MAX_TIMEOUT_SECONDS}, got {timeout_seconds}"
            raise ValueError(msg)
        if Supervisor._live_session is not None:
            msg = f"Checker already running: {Supervisor._live_session.invocation}"
            raise RuntimeError(msg)

        session = SupervisionSession(invocation=invocation, timeout_seconds=timeout_seconds)
        Supervisor._live_session = session
        try:
            return self._supervise(session)
        finally:
            Supervisor._live_session = None

    def _supervise(self, session: SupervisionSession) -> RunResult:
        # Hold every signal until the child pid is known
        previous_mask = signal.pthread_sigmask(signal.SIG_BLOCK, signal.valid_signals())
        previous_handlers: dict[int, Any] = {}
        try:
            for signum in CANCEL_SIGNALS:
                previous_handlers[signum] = signal.signal(signum, session.handle_cancel)
            if session.timeout_seconds:
                previous_handlers[signal.SIGALRM] = signal.signal(
                    signal.SIGALRM, session.handle_alarm
                )

            session.transition(SessionState.SPAWNING)
            try:
                process = self._spawn(session.invocation)
            except (OSError, subprocess.SubprocessError) as e:
                session.transition(SessionState.SPAWN_FAILED)
                detail = f"failed to exec {session.invocation.program}: {e}"
                logger.error("%s", detail)
                return RunResult(outcome=RunOutcome.SPAWN_FAILED, detail=detail)

            session.pid = process.pid
            session.transition(SessionState.RUNNING)
            return self._wait(session, process)
        finally:
            if session.timeout_seconds:
                signal.alarm(0)
            # Pending signals reach the session handlers, which ignore them by now
            signal.pthread_sigmask(signal.SIG_SETMASK, previous_mask)
            for signum, handler in previous_handlers.items():
                signal.signal(signum, handler if handler is not None else signal.SIG_DFL)

    def _spawn(self, invocation: CheckInvocation) -> subprocess.Popen[bytes]:
        logger.debug("Spawning %s", invocation)
        return subprocess.Popen(invocation.argv, preexec_fn=self._prepare_child)  # nosec: B603

    def _prepare_child(self) -> None:
        """Runs in the child between fork and exec."""
        signal.pthread_sigmask(signal.SIG_SETMASK, set())
        if self._niceness:
            try:
                os.nice(self._niceness)
            except OSError as e:
                os.write(2, f"failed to lower schedule priority: {e}\n".encode())

    def _wait(self, session: SupervisionSession, process: subprocess.Popen[bytes]) -> RunResult:
        program = session.invocation.program
        try:
            # A cancel that arrived while spawning is delivered right here
            signal.pthread_sigmask(
                signal.SIG_SETMASK, set(signal.valid_signals()) - SUPERVISED_SIGNALS
            )
            if session.timeout_seconds:
                signal.alarm(session.timeout_seconds)
            returncode = process.wait()
            session.reaped = True
            signal.pthread_sigmask(signal.SIG_BLOCK, SUPERVISED_SIGNALS)
        except WaitInterrupted:
            self._drain(session, process, terminate=session.cancel_signal is None)
            if session.timer_expired:
                session.transition(SessionState.TIMED_OUT)
                logger.warning("Timer expired, %s (pid %d) killed", program, process.pid)
                return RunResult(
                    outcome=RunOutcome.TIMED_OUT,
                    detail=f"timer expired after {session.timeout_seconds}s, {program} is killed",
                )
            session.transition(SessionState.CANCELLED)
            logger.warning("Killed by signal %s", session.cancel_signal)
            return RunResult(
                outcome=RunOutcome.CANCELLED,
                signal=session.cancel_signal,
                detail=f"killed by signal {session.cancel_signal}",
            )
        except OSError as e:
            session.draining = True
            self._drain(session, process, terminate=True)
            session.transition(SessionState.ABNORMAL)
            return RunResult(
                outcome=RunOutcome.ABNORMAL, detail=f"failed to wait for {program}: {e}"
            )
        except BaseException:
            session.draining = True
            self._drain(session, process, terminate=True)
            raise

        if returncode < 0:
            session.transition(SessionState.ABNORMAL)
            return RunResult(
                outcome=RunOutcome.ABNORMAL,
                detail=f"{program} terminated by signal {-returncode}",
            )

        session.transition(SessionState.COMPLETED)
        logger.debug("%s exited with status %d", program, returncode)
        return RunResult(
            outcome=RunOutcome.COMPLETED,
            raw_status=RawExitStatus(returncode & 0xFF),
        )

    def _drain(
        self,
        session: SupervisionSession,
        process: subprocess.Popen[bytes],
        *,
        terminate: bool,
    ) -> None:
        """Terminate (optionally) and reap the child."""
        if session.timeout_seconds:
            signal.alarm(0)
        if terminate:
            process.terminate()
        process.wait()
