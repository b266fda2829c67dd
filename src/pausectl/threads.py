"""Single-thread suspend/resume primitive.

Each call opens the thread, issues exactly one suspend or resume, and
closes the handle. Failures are returned as data with the OS error code.
There are no retries: a thread that has exited will never succeed.
"""

from pausectl.backend import OsBackend
from pausectl.errors import OsCallError
from pausectl.log import get_logger
from pausectl.models import ResumeResult, SuspendResult

logger = get_logger("pausectl.threads")


def suspend_thread(backend: OsBackend, thread_id: int, wow64: bool = False) -> SuspendResult:
    """
    Suspend one thread.

    Args:
        backend: OS primitives.
        thread_id: Target thread.
        wow64: Use the suspend call for 32-bit threads under emulation.
    """
    try:
        handle = backend.open_thread(thread_id)
    except OsCallError as exc:
        logger.debug("thread_open_failed", thread_id=thread_id, error_code=exc.winerror)
        return SuspendResult(thread_id=thread_id, open_failed=True, error_code=exc.winerror)

    try:
        previous = backend.suspend_thread(handle, wow64=wow64)
    except OsCallError as exc:
        logger.debug("thread_suspend_failed", thread_id=thread_id, error_code=exc.winerror)
        return SuspendResult(thread_id=thread_id, op_failed=True, error_code=exc.winerror)
    finally:
        backend.close_handle(handle)

    return SuspendResult(thread_id=thread_id, previous_count=previous)


def resume_thread(backend: OsBackend, thread_id: int) -> ResumeResult:
    """Resume one thread."""
    try:
        handle = backend.open_thread(thread_id)
    except OsCallError as exc:
        logger.debug("thread_open_failed", thread_id=thread_id, error_code=exc.winerror)
        return ResumeResult(thread_id=thread_id, open_failed=True, error_code=exc.winerror)

    try:
        previous = backend.resume_thread(handle)
    except OsCallError as exc:
        logger.debug("thread_resume_failed", thread_id=thread_id, error_code=exc.winerror)
        return ResumeResult(thread_id=thread_id, op_failed=True, error_code=exc.winerror)
    finally:
        backend.close_handle(handle)

    return ResumeResult(thread_id=thread_id, previous_count=previous)
