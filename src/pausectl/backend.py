"""OS primitives used by the pause/resume core."""

import sys
from typing import Protocol

from pausectl.errors import UnsupportedPlatformError


class OsBackend(Protocol):
    """
    Thin surface over the OS calls pausectl needs.

    Every method raises OsCallError with the OS error code on failure.
    Handles are opaque integers and must be closed with close_handle().
    """

    def open_thread(self, thread_id: int) -> int: ...

    def close_handle(self, handle: int) -> None: ...

    def suspend_thread(self, handle: int, wow64: bool = False) -> int:
        """Suspend the thread and return its suspend count before the call."""
        ...

    def resume_thread(self, handle: int) -> int:
        """Resume the thread and return its suspend count before the call."""
        ...

    def is_wow64_process(self, pid: int) -> bool: ...

    def trim_working_set(self, pid: int) -> None: ...

    def main_window(self, pid: int) -> int:
        """Return the main top-level window of pid, or 0."""
        ...

    def is_iconic(self, hwnd: int) -> bool: ...

    def minimize_window(self, hwnd: int) -> None: ...

    def restore_window(self, hwnd: int) -> None: ...

    def session_id(self, pid: int) -> int: ...

    def current_session_id(self) -> int: ...

    def debug_attach(self, pid: int) -> None: ...

    def debug_detach(self, pid: int) -> None: ...


def get_backend() -> OsBackend:
    """Return the backend for the running platform."""
    if sys.platform != "win32":
        raise UnsupportedPlatformError(
            f"thread suspension requires Windows (running on {sys.platform})"
        )

    from pausectl.win32 import Win32Backend

    return Win32Backend()
