"""Process-level pause/resume."""

import os
import time
from collections.abc import Callable

from pausectl.backend import OsBackend
from pausectl.config import PauseOptions
from pausectl.errors import OsCallError, SelfTargetError
from pausectl.log import get_logger
from pausectl.models import (
    Direction,
    Mechanism,
    ProcessReport,
    ResultCode,
    TargetProcess,
    WarningKind,
)
from pausectl.threads import resume_thread, suspend_thread

logger = get_logger("pausectl.controller")

# Non-interactive session hosting services
SYSTEM_SESSION_ID = 0


class ProcessController:
    """
    Suspends or resumes every thread of a process.

    Optionally minimizes the main window before pausing, restores it after
    resuming, and trims the working set once all threads are suspended.
    Per-thread and per-process failures are recorded on the returned
    ProcessReport; only targeting the controller itself raises.
    """

    def __init__(
        self,
        backend: OsBackend,
        options: PauseOptions | None = None,
        own_pid: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the ProcessController.

        Args:
            backend: OS primitives.
            options: Invocation options. Defaults to PauseOptions().
            own_pid: PID that must never be touched. Defaults to os.getpid().
            sleep: Used between window polls.
        """
        self._backend = backend
        self._options = options or PauseOptions()
        self._own_pid = os.getpid() if own_pid is None else own_pid
        self._sleep = sleep

    @property
    def options(self) -> PauseOptions:
        return self._options

    def apply(self, target: TargetProcess, direction: Direction) -> ProcessReport:
        if direction is Direction.PAUSE:
            return self.pause(target)
        return self.resume(target)

    def pause(self, target: TargetProcess) -> ProcessReport:
        report = self._start(target, Direction.PAUSE)
        if report.code is ResultCode.ABORTED:
            return report

        if self._options.window_control and target.main_window:
            # Must finish before suspension, a frozen process cannot handle the message
            report.window_minimized = self._minimize(target, report)

        if self._options.mechanism is Mechanism.DEBUG_ATTACH:
            self._attach(target, report)
        else:
            self._suspend_threads(target, report)

        if self._options.trim and (report.acted or report.held_thread_ids()):
            report.trimmed = self._trim(target, report)

        logger.debug(
            "process_paused",
            pid=target.pid,
            code=report.code.name,
            changed=report.changed_count,
        )
        return report

    def resume(self, target: TargetProcess) -> ProcessReport:
        report = self._start(target, Direction.RESUME)
        if report.code is ResultCode.ABORTED:
            return report

        if self._options.mechanism is Mechanism.DEBUG_ATTACH:
            self._detach(target, report)
        else:
            self._resume_threads(target, report)

        if self._options.window_control and target.main_window:
            try:
                self._backend.restore_window(target.main_window)
            except OsCallError as exc:
                logger.debug("window_restore_failed", pid=target.pid, error_code=exc.winerror)

        logger.debug(
            "process_resumed",
            pid=target.pid,
            code=report.code.name,
            changed=report.changed_count,
        )
        return report

    def _start(self, target: TargetProcess, direction: Direction) -> ProcessReport:
        if target.pid == self._own_pid:
            raise SelfTargetError(f"refusing to {direction.value} own process {target.pid}")

        report = ProcessReport(
            target=target,
            direction=direction,
            mechanism=self._options.mechanism,
            code=ResultCode.IN_PROGRESS,
        )

        if (
            self._options.mechanism is Mechanism.DEBUG_ATTACH
            and target.session_id == SYSTEM_SESSION_ID
        ):
            report.code = ResultCode.ABORTED
            report.warn(
                WarningKind.PROTECTED_SESSION,
                f"{target.name} ({target.pid}) runs in session 0; debug-attach refused",
            )
        elif self._options.mechanism is Mechanism.THREAD_SUSPEND and not target.thread_ids:
            report.code = ResultCode.ABORTED
            report.warn(WarningKind.PROCESS_GONE, f"{target.name} ({target.pid}) has no threads")

        return report

    def _minimize(self, target: TargetProcess, report: ProcessReport) -> bool:
        hwnd = target.main_window
        try:
            self._backend.minimize_window(hwnd)
            for attempt in range(self._options.minimize_retries):
                if self._backend.is_iconic(hwnd):
                    return True
                if attempt < self._options.minimize_retries - 1:
                    self._sleep(self._options.minimize_interval)
        except OsCallError as exc:
            logger.debug("window_minimize_failed", pid=target.pid, error_code=exc.winerror)

        report.warn(
            WarningKind.WINDOW_MINIMIZE,
            f"window of {target.name} ({target.pid}) not minimized after "
            f"{self._options.minimize_retries} checks",
        )
        return False

    def _suspend_threads(self, target: TargetProcess, report: ProcessReport) -> None:
        # Bitness is a property of the process, checked once
        try:
            wow64 = self._backend.is_wow64_process(target.pid)
        except OsCallError as exc:
            logger.debug("bitness_query_failed", pid=target.pid, error_code=exc.winerror)
            wow64 = False

        for thread_id in target.thread_ids:
            result = suspend_thread(self._backend, thread_id, wow64=wow64)
            report.threads.append(result)
            if result.open_failed:
                report.warn(
                    WarningKind.OPEN_FAILED,
                    f"could not open thread {thread_id} of {target.pid}",
                    thread_id=thread_id,
                    error_code=result.error_code,
                )
            elif result.op_failed:
                report.warn(
                    WarningKind.OPERATION_FAILED,
                    f"could not suspend thread {thread_id} of {target.pid}",
                    thread_id=thread_id,
                    error_code=result.error_code,
                )
            elif result.already_suspended:
                report.warn(
                    WarningKind.ALREADY_SUSPENDED,
                    f"thread {thread_id} of {target.pid} was already suspended "
                    f"(count {result.previous_count})",
                    thread_id=thread_id,
                )

        report.code = self._thread_code(report)

    def _resume_threads(self, target: TargetProcess, report: ProcessReport) -> None:
        for thread_id in target.thread_ids:
            result = resume_thread(self._backend, thread_id)
            report.threads.append(result)
            if result.open_failed:
                report.warn(
                    WarningKind.OPEN_FAILED,
                    f"could not open thread {thread_id} of {target.pid}",
                    thread_id=thread_id,
                    error_code=result.error_code,
                )
            elif result.op_failed:
                report.warn(
                    WarningKind.OPERATION_FAILED,
                    f"could not resume thread {thread_id} of {target.pid}",
                    thread_id=thread_id,
                    error_code=result.error_code,
                )
            elif result.was_running:
                report.warn(
                    WarningKind.NOT_SUSPENDED,
                    f"thread {thread_id} of {target.pid} was not suspended",
                    thread_id=thread_id,
                )
            elif result.still_suspended:
                report.warn(
                    WarningKind.STILL_SUSPENDED,
                    f"thread {thread_id} of {target.pid} is still paused "
                    f"(count {result.resulting_count})",
                    thread_id=thread_id,
                )

        report.code = self._thread_code(report)

    @staticmethod
    def _thread_code(report: ProcessReport) -> ResultCode:
        changed = report.changed_count
        if changed == 0:
            return ResultCode.FAILED
        if changed == len(report.threads):
            return ResultCode.SUCCEEDED
        return ResultCode.SUCCEEDED_WITH_ERRORS

    def _attach(self, target: TargetProcess, report: ProcessReport) -> None:
        try:
            self._backend.debug_attach(target.pid)
        except OsCallError as exc:
            report.code = ResultCode.FAILED
            report.warn(
                WarningKind.ATTACH_FAILED,
                f"could not attach to {target.name} ({target.pid})",
                error_code=exc.winerror,
            )
            return
        report.code = ResultCode.SUCCEEDED

    def _detach(self, target: TargetProcess, report: ProcessReport) -> None:
        try:
            self._backend.debug_detach(target.pid)
        except OsCallError as exc:
            report.code = ResultCode.FAILED
            report.warn(
                WarningKind.ATTACH_FAILED,
                f"could not detach from {target.name} ({target.pid})",
                error_code=exc.winerror,
            )
            return
        report.code = ResultCode.SUCCEEDED

    def _trim(self, target: TargetProcess, report: ProcessReport) -> bool:
        try:
            self._backend.trim_working_set(target.pid)
        except OsCallError as exc:
            report.warn(
                WarningKind.TRIM_FAILED,
                f"could not trim working set of {target.name} ({target.pid})",
                error_code=exc.winerror,
            )
            return False
        return True
