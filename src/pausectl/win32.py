"""ctypes implementation of the OS backend for Windows."""

import ctypes
import os
from ctypes import wintypes

from pausectl.errors import OsCallError

# Access rights
THREAD_SUSPEND_RESUME = 0x0002
PROCESS_QUERY_LIMITED_INFORMATION = 0x1000
PROCESS_SET_QUOTA = 0x0100

# ShowWindow commands
SW_FORCEMINIMIZE = 11
SW_RESTORE = 9

GW_OWNER = 4

# SuspendThread/ResumeThread return (DWORD)-1 on failure
_SUSPEND_FAILED = 0xFFFFFFFF

_EnumWindowsProc = ctypes.WINFUNCTYPE(wintypes.BOOL, wintypes.HWND, wintypes.LPARAM)


def _bind() -> tuple[ctypes.WinDLL, ctypes.WinDLL, ctypes.WinDLL]:
    kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
    user32 = ctypes.WinDLL("user32", use_last_error=True)
    psapi = ctypes.WinDLL("psapi", use_last_error=True)

    kernel32.OpenThread.argtypes = [wintypes.DWORD, wintypes.BOOL, wintypes.DWORD]
    kernel32.OpenThread.restype = wintypes.HANDLE
    kernel32.OpenProcess.argtypes = [wintypes.DWORD, wintypes.BOOL, wintypes.DWORD]
    kernel32.OpenProcess.restype = wintypes.HANDLE
    kernel32.CloseHandle.argtypes = [wintypes.HANDLE]
    kernel32.CloseHandle.restype = wintypes.BOOL
    kernel32.SuspendThread.argtypes = [wintypes.HANDLE]
    kernel32.SuspendThread.restype = wintypes.DWORD
    kernel32.Wow64SuspendThread.argtypes = [wintypes.HANDLE]
    kernel32.Wow64SuspendThread.restype = wintypes.DWORD
    kernel32.ResumeThread.argtypes = [wintypes.HANDLE]
    kernel32.ResumeThread.restype = wintypes.DWORD
    kernel32.IsWow64Process.argtypes = [wintypes.HANDLE, ctypes.POINTER(wintypes.BOOL)]
    kernel32.IsWow64Process.restype = wintypes.BOOL
    kernel32.ProcessIdToSessionId.argtypes = [wintypes.DWORD, ctypes.POINTER(wintypes.DWORD)]
    kernel32.ProcessIdToSessionId.restype = wintypes.BOOL
    kernel32.DebugActiveProcess.argtypes = [wintypes.DWORD]
    kernel32.DebugActiveProcess.restype = wintypes.BOOL
    kernel32.DebugActiveProcessStop.argtypes = [wintypes.DWORD]
    kernel32.DebugActiveProcessStop.restype = wintypes.BOOL
    kernel32.DebugSetProcessKillOnExit.argtypes = [wintypes.BOOL]
    kernel32.DebugSetProcessKillOnExit.restype = wintypes.BOOL

    user32.EnumWindows.argtypes = [_EnumWindowsProc, wintypes.LPARAM]
    user32.EnumWindows.restype = wintypes.BOOL
    user32.GetWindowThreadProcessId.argtypes = [wintypes.HWND, ctypes.POINTER(wintypes.DWORD)]
    user32.GetWindowThreadProcessId.restype = wintypes.DWORD
    user32.GetWindow.argtypes = [wintypes.HWND, ctypes.c_uint]
    user32.GetWindow.restype = wintypes.HWND
    user32.IsWindowVisible.argtypes = [wintypes.HWND]
    user32.IsWindowVisible.restype = wintypes.BOOL
    user32.IsIconic.argtypes = [wintypes.HWND]
    user32.IsIconic.restype = wintypes.BOOL
    user32.ShowWindow.argtypes = [wintypes.HWND, ctypes.c_int]
    user32.ShowWindow.restype = wintypes.BOOL
    user32.ShowWindowAsync.argtypes = [wintypes.HWND, ctypes.c_int]
    user32.ShowWindowAsync.restype = wintypes.BOOL

    psapi.EmptyWorkingSet.argtypes = [wintypes.HANDLE]
    psapi.EmptyWorkingSet.restype = wintypes.BOOL

    return kernel32, user32, psapi


class Win32Backend:
    """OS backend talking to kernel32, user32 and psapi through ctypes."""

    def __init__(self) -> None:
        self._kernel32, self._user32, self._psapi = _bind()
        self._kill_on_exit_cleared = False

    def _fail(self, call: str) -> OsCallError:
        return OsCallError(call, ctypes.get_last_error())

    def _open_process(self, pid: int, access: int) -> int:
        handle = self._kernel32.OpenProcess(access, False, pid)
        if not handle:
            raise self._fail("OpenProcess")
        return handle

    def open_thread(self, thread_id: int) -> int:
        handle = self._kernel32.OpenThread(THREAD_SUSPEND_RESUME, False, thread_id)
        if not handle:
            raise self._fail("OpenThread")
        return handle

    def close_handle(self, handle: int) -> None:
        self._kernel32.CloseHandle(handle)

    def suspend_thread(self, handle: int, wow64: bool = False) -> int:
        if wow64:
            count = self._kernel32.Wow64SuspendThread(handle)
            call = "Wow64SuspendThread"
        else:
            count = self._kernel32.SuspendThread(handle)
            call = "SuspendThread"
        if count == _SUSPEND_FAILED:
            raise self._fail(call)
        return count

    def resume_thread(self, handle: int) -> int:
        count = self._kernel32.ResumeThread(handle)
        if count == _SUSPEND_FAILED:
            raise self._fail("ResumeThread")
        return count

    def is_wow64_process(self, pid: int) -> bool:
        handle = self._open_process(pid, PROCESS_QUERY_LIMITED_INFORMATION)
        try:
            result = wintypes.BOOL()
            if not self._kernel32.IsWow64Process(handle, ctypes.byref(result)):
                raise self._fail("IsWow64Process")
            return bool(result.value)
        finally:
            self.close_handle(handle)

    def trim_working_set(self, pid: int) -> None:
        handle = self._open_process(pid, PROCESS_SET_QUOTA | PROCESS_QUERY_LIMITED_INFORMATION)
        try:
            if not self._psapi.EmptyWorkingSet(handle):
                raise self._fail("EmptyWorkingSet")
        finally:
            self.close_handle(handle)

    def main_window(self, pid: int) -> int:
        """First visible, unowned top-level window belonging to pid."""
        found: list[int] = []

        def callback(hwnd, _lparam):
            owner = wintypes.DWORD()
            self._user32.GetWindowThreadProcessId(hwnd, ctypes.byref(owner))
            if (
                owner.value == pid
                and self._user32.IsWindowVisible(hwnd)
                and not self._user32.GetWindow(hwnd, GW_OWNER)
            ):
                found.append(hwnd)
                return False
            return True

        self._user32.EnumWindows(_EnumWindowsProc(callback), 0)
        return found[0] if found else 0

    def is_iconic(self, hwnd: int) -> bool:
        return bool(self._user32.IsIconic(hwnd))

    def minimize_window(self, hwnd: int) -> None:
        # Returns the previous visibility, not success
        self._user32.ShowWindow(hwnd, SW_FORCEMINIMIZE)

    def restore_window(self, hwnd: int) -> None:
        if not self._user32.ShowWindowAsync(hwnd, SW_RESTORE):
            raise self._fail("ShowWindowAsync")

    def session_id(self, pid: int) -> int:
        session = wintypes.DWORD()
        if not self._kernel32.ProcessIdToSessionId(pid, ctypes.byref(session)):
            raise self._fail("ProcessIdToSessionId")
        return session.value

    def current_session_id(self) -> int:
        return self.session_id(os.getpid())

    def debug_attach(self, pid: int) -> None:
        if not self._kernel32.DebugActiveProcess(pid):
            raise self._fail("DebugActiveProcess")
        if not self._kill_on_exit_cleared:
            # Detach instead of killing the debuggee when we exit
            self._kernel32.DebugSetProcessKillOnExit(False)
            self._kill_on_exit_cleared = True

    def debug_detach(self, pid: int) -> None:
        if not self._kernel32.DebugActiveProcessStop(pid):
            raise self._fail("DebugActiveProcessStop")
