"""Shared fixtures: an in-memory OS backend and fake psutil processes."""

from collections import namedtuple
from itertools import count

import psutil
import pytest

from pausectl.errors import OsCallError
from pausectl.models import TargetProcess

ERROR_INVALID_PARAMETER = 87
ERROR_ACCESS_DENIED = 5

pthread = namedtuple("pthread", ["id", "user_time", "system_time"])


class FakeBackend:
    """
    In-memory OS backend with reference-counted thread suspension.

    Each thread id maps to its suspend count. Threads that are not known
    (or were marked unopenable) fail to open, like an exited thread would.
    """

    def __init__(self, current_session: int = 1, default_session: int | None = None) -> None:
        self.current_session = current_session
        self.default_session = default_session
        self.suspend_counts: dict[int, int] = {}
        self.process_threads: dict[int, tuple[int, ...]] = {}
        self.sessions: dict[int, int] = {}
        self.windows: dict[int, int] = {}
        self.iconic: dict[int, bool] = {}
        self.minimize_works = True
        self.wow64: set[int] = set()
        self.trim_error: int | None = None
        self.trimmed: list[int] = []
        self.attached: set[int] = set()
        self.unopenable: dict[int, int] = {}
        self.failing_ops: dict[int, int] = {}
        self.calls: list[tuple] = []
        self._handles: dict[int, int] = {}
        self._next_handle = count(100)

    def add_process(
        self,
        pid: int,
        thread_ids: tuple[int, ...],
        session: int = 1,
        hwnd: int = 0,
        wow64: bool = False,
    ) -> None:
        self.process_threads[pid] = tuple(thread_ids)
        self.sessions[pid] = session
        for thread_id in thread_ids:
            self.suspend_counts[thread_id] = 0
        if hwnd:
            self.windows[pid] = hwnd
            self.iconic[hwnd] = False
        if wow64:
            self.wow64.add(pid)

    def target(self, pid: int, name: str = "app.exe") -> TargetProcess:
        return TargetProcess(
            pid=pid,
            name=name,
            session_id=self.sessions[pid],
            thread_ids=self.process_threads[pid],
            main_window=self.windows.get(pid, 0),
        )

    @property
    def open_handles(self) -> int:
        return len(self._handles)

    def open_thread(self, thread_id: int) -> int:
        if thread_id in self.unopenable:
            raise OsCallError("OpenThread", self.unopenable[thread_id])
        if thread_id not in self.suspend_counts:
            raise OsCallError("OpenThread", ERROR_INVALID_PARAMETER)
        handle = next(self._next_handle)
        self._handles[handle] = thread_id
        return handle

    def close_handle(self, handle: int) -> None:
        del self._handles[handle]

    def suspend_thread(self, handle: int, wow64: bool = False) -> int:
        thread_id = self._handles[handle]
        self.calls.append(("suspend", thread_id, wow64))
        if thread_id in self.failing_ops:
            raise OsCallError("SuspendThread", self.failing_ops[thread_id])
        previous = self.suspend_counts[thread_id]
        self.suspend_counts[thread_id] = previous + 1
        return previous

    def resume_thread(self, handle: int) -> int:
        thread_id = self._handles[handle]
        self.calls.append(("resume", thread_id))
        if thread_id in self.failing_ops:
            raise OsCallError("ResumeThread", self.failing_ops[thread_id])
        previous = self.suspend_counts[thread_id]
        if previous > 0:
            self.suspend_counts[thread_id] = previous - 1
        return previous

    def is_wow64_process(self, pid: int) -> bool:
        self.calls.append(("is_wow64", pid))
        return pid in self.wow64

    def trim_working_set(self, pid: int) -> None:
        if self.trim_error is not None:
            raise OsCallError("EmptyWorkingSet", self.trim_error)
        self.trimmed.append(pid)

    def main_window(self, pid: int) -> int:
        return self.windows.get(pid, 0)

    def is_iconic(self, hwnd: int) -> bool:
        self.calls.append(("is_iconic", hwnd))
        return self.iconic.get(hwnd, False)

    def minimize_window(self, hwnd: int) -> None:
        self.calls.append(("minimize", hwnd))
        if self.minimize_works:
            self.iconic[hwnd] = True

    def restore_window(self, hwnd: int) -> None:
        self.calls.append(("restore", hwnd))
        self.iconic[hwnd] = False

    def session_id(self, pid: int) -> int:
        if pid in self.sessions:
            return self.sessions[pid]
        if self.default_session is not None:
            return self.default_session
        raise OsCallError("ProcessIdToSessionId", ERROR_INVALID_PARAMETER)

    def current_session_id(self) -> int:
        return self.current_session

    def debug_attach(self, pid: int) -> None:
        self.calls.append(("attach", pid))
        if pid in self.attached:
            raise OsCallError("DebugActiveProcess", ERROR_ACCESS_DENIED)
        self.attached.add(pid)

    def debug_detach(self, pid: int) -> None:
        self.calls.append(("detach", pid))
        if pid not in self.attached:
            raise OsCallError("DebugActiveProcessStop", ERROR_INVALID_PARAMETER)
        self.attached.remove(pid)


class FakeProc:
    """Stands in for psutil.Process in enumeration tests."""

    def __init__(self, pid: int, name: str, thread_ids: tuple[int, ...] = (), gone: bool = False):
        self.pid = pid
        self.info = {"pid": pid, "name": name}
        self._name = name
        self._thread_ids = thread_ids
        self._gone = gone

    def name(self) -> str:
        if self._gone:
            raise psutil.NoSuchProcess(self.pid)
        return self._name

    def threads(self) -> list[pthread]:
        if self._gone:
            raise psutil.NoSuchProcess(self.pid)
        return [pthread(thread_id, 0.0, 0.0) for thread_id in self._thread_ids]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def fake_processes(monkeypatch):
    """
    Replace psutil enumeration with a controllable process table.

    Returns the list to fill with FakeProc instances.
    """
    table: list[FakeProc] = []

    def process_iter(attrs=None):
        return iter(list(table))

    def process(pid):
        for proc in table:
            if proc.pid == pid:
                return proc
        raise psutil.NoSuchProcess(pid)

    monkeypatch.setattr(psutil, "process_iter", process_iter)
    monkeypatch.setattr(psutil, "Process", process)
    return table
