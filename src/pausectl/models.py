"""Data models for pausectl."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum


class Direction(Enum):
    """Which way a batch moves its targets."""

    PAUSE = "pause"
    RESUME = "resume"


class Mechanism(Enum):
    """How a process is paused."""

    THREAD_SUSPEND = "thread-suspend"
    DEBUG_ATTACH = "debug-attach"


class ResultCode(IntEnum):
    """Per-process outcome, numbered like the Windows Update OperationResultCode table."""

    NOT_STARTED = 0
    IN_PROGRESS = 1
    SUCCEEDED = 2
    SUCCEEDED_WITH_ERRORS = 3
    FAILED = 4
    ABORTED = 5


class ErrorKind(Enum):
    """Why a single thread operation did not go through."""

    OPEN_FAILED = "open-failed"
    OPERATION_FAILED = "operation-failed"


class WarningKind(Enum):
    """Operator-facing warning categories."""

    OPEN_FAILED = "open-failed"
    OPERATION_FAILED = "operation-failed"
    NOT_SUSPENDED = "not-suspended"
    ALREADY_SUSPENDED = "already-suspended"
    STILL_SUSPENDED = "still-suspended"
    WINDOW_MINIMIZE = "window-minimize"
    TRIM_FAILED = "trim-failed"
    PROTECTED_SESSION = "protected-session"
    PROCESS_GONE = "process-gone"
    ATTACH_FAILED = "attach-failed"

    @property
    def suppressible(self) -> bool:
        """Partial-state warnings are shown even with --quiet."""
        return self not in (WarningKind.ALREADY_SUSPENDED, WarningKind.STILL_SUSPENDED)


@dataclass(slots=True, frozen=True)
class TargetProcess:
    """Snapshot of a process selected for pause/resume."""

    pid: int
    name: str
    session_id: int
    thread_ids: tuple[int, ...] = ()
    main_window: int = 0  # 0 when the process has no main window


@dataclass(slots=True, frozen=True)
class SuspendResult:
    """Outcome of one suspend call against one thread."""

    thread_id: int
    previous_count: int = 0  # suspend count before this call
    open_failed: bool = False
    op_failed: bool = False
    error_code: int = 0

    @property
    def ok(self) -> bool:
        return not (self.open_failed or self.op_failed)

    @property
    def error_kind(self) -> ErrorKind | None:
        if self.open_failed:
            return ErrorKind.OPEN_FAILED
        if self.op_failed:
            return ErrorKind.OPERATION_FAILED
        return None

    @property
    def resulting_count(self) -> int:
        return self.previous_count + 1 if self.ok else self.previous_count

    @property
    def changed(self) -> bool:
        """True when this call moved the thread from running to suspended."""
        return self.ok and self.previous_count == 0

    @property
    def already_suspended(self) -> bool:
        return self.ok and self.previous_count > 0


@dataclass(slots=True, frozen=True)
class ResumeResult:
    """Outcome of one resume call against one thread."""

    thread_id: int
    previous_count: int = 0  # raw OS return value, the count before this call
    open_failed: bool = False
    op_failed: bool = False
    error_code: int = 0

    @property
    def ok(self) -> bool:
        return not (self.open_failed or self.op_failed)

    @property
    def error_kind(self) -> ErrorKind | None:
        if self.open_failed:
            return ErrorKind.OPEN_FAILED
        if self.op_failed:
            return ErrorKind.OPERATION_FAILED
        return None

    @property
    def resulting_count(self) -> int:
        return max(self.previous_count - 1, 0)

    @property
    def changed(self) -> bool:
        """True when this call left the thread running again."""
        return self.ok and self.previous_count == 1

    @property
    def still_suspended(self) -> bool:
        return self.ok and self.resulting_count > 0

    @property
    def was_running(self) -> bool:
        return self.ok and self.previous_count == 0


ThreadResult = SuspendResult | ResumeResult


@dataclass(slots=True, frozen=True)
class Diagnostic:
    """A warning attached to a process report."""

    kind: WarningKind
    pid: int
    message: str
    thread_id: int | None = None
    error_code: int = 0


@dataclass(slots=True)
class ProcessReport:
    """Result of pausing or resuming one process."""

    target: TargetProcess
    direction: Direction
    mechanism: Mechanism = Mechanism.THREAD_SUSPEND
    code: ResultCode = ResultCode.NOT_STARTED
    threads: list[ThreadResult] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    window_minimized: bool | None = None
    trimmed: bool | None = None

    @property
    def pid(self) -> int:
        return self.target.pid

    @property
    def changed_count(self) -> int:
        return sum(1 for result in self.threads if result.changed)

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.threads if not result.ok)

    @property
    def unchanged_count(self) -> int:
        return len(self.threads) - self.changed_count - self.failed_count

    @property
    def acted(self) -> bool:
        return self.code in (ResultCode.SUCCEEDED, ResultCode.SUCCEEDED_WITH_ERRORS)

    def held_thread_ids(self) -> tuple[int, ...]:
        """Threads whose suspend count this report incremented."""
        if self.direction is not Direction.PAUSE:
            return ()
        return tuple(result.thread_id for result in self.threads if result.ok)

    def warn(
        self,
        kind: WarningKind,
        message: str,
        thread_id: int | None = None,
        error_code: int = 0,
    ) -> None:
        self.diagnostics.append(
            Diagnostic(
                kind=kind,
                pid=self.pid,
                message=message,
                thread_id=thread_id,
                error_code=error_code,
            )
        )


@dataclass(slots=True)
class BatchReport:
    """Totals for one pass over a set of processes."""

    direction: Direction
    processes: list[ProcessReport] = field(default_factory=list)

    @property
    def considered(self) -> int:
        return len(self.processes)

    @property
    def succeeded(self) -> int:
        return sum(1 for report in self.processes if report.acted)

    @property
    def threads(self) -> list[ThreadResult]:
        return [result for report in self.processes for result in report.threads]

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return [diag for report in self.processes for diag in report.diagnostics]
