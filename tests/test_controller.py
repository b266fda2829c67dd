"""Tests for the process-level pause/resume controller."""

import pytest

from pausectl.config import PauseOptions
from pausectl.controller import ProcessController
from pausectl.errors import SelfTargetError
from pausectl.models import Direction, Mechanism, ResultCode, WarningKind

OWN_PID = 4242


def make_controller(backend, **options) -> ProcessController:
    sleeps: list[float] = []
    controller = ProcessController(
        backend,
        PauseOptions(**options),
        own_pid=OWN_PID,
        sleep=sleeps.append,
    )
    controller.sleeps = sleeps
    return controller


def kinds(report) -> list[WarningKind]:
    return [diag.kind for diag in report.diagnostics]


class TestPauseResume:
    """Pausing and resuming whole processes."""

    def test_three_running_threads(self, backend):
        """Pause then resume a 3-thread process with no outside holders."""
        backend.add_process(10, (1, 2, 3))
        controller = make_controller(backend)
        target = backend.target(10)

        paused = controller.pause(target)
        assert paused.changed_count == 3
        assert paused.code is ResultCode.SUCCEEDED
        assert WarningKind.ALREADY_SUSPENDED not in kinds(paused)
        assert all(backend.suspend_counts[tid] == 1 for tid in (1, 2, 3))

        resumed = controller.resume(target)
        assert resumed.changed_count == 3
        assert resumed.code is ResultCode.SUCCEEDED
        assert WarningKind.STILL_SUSPENDED not in kinds(resumed)
        assert all(backend.suspend_counts[tid] == 0 for tid in (1, 2, 3))

    def test_thread_held_by_another_actor(self, backend):
        """A pre-suspended thread is reported on pause and stays paused after resume."""
        backend.add_process(10, (1, 2))
        backend.suspend_counts[2] = 1
        controller = make_controller(backend)
        target = backend.target(10)

        paused = controller.pause(target)
        held = [result for result in paused.threads if result.thread_id == 2][0]
        assert held.previous_count == 1
        assert kinds(paused).count(WarningKind.ALREADY_SUSPENDED) == 1

        resumed = controller.resume(target)
        still = [result for result in resumed.threads if result.thread_id == 2][0]
        assert still.resulting_count == 1
        assert kinds(resumed).count(WarningKind.STILL_SUSPENDED) == 1
        assert backend.suspend_counts[2] == 1

    def test_resume_without_pause(self, backend):
        """Resuming a running process changes nothing and only warns."""
        backend.add_process(10, (1, 2))
        controller = make_controller(backend)

        report = controller.resume(backend.target(10))

        assert report.changed_count == 0
        assert report.code is ResultCode.FAILED
        assert not report.acted
        assert kinds(report) == [WarningKind.NOT_SUSPENDED, WarningKind.NOT_SUSPENDED]

    def test_double_pause_single_resume(self, backend):
        """Suspend counts are additive; one resume after two pauses leaves threads paused."""
        backend.add_process(10, (1, 2))
        controller = make_controller(backend)
        target = backend.target(10)

        controller.pause(target)
        second = controller.pause(target)
        resumed = controller.resume(target)

        assert second.changed_count == 0
        assert all(result.still_suspended for result in resumed.threads)
        assert kinds(resumed).count(WarningKind.STILL_SUSPENDED) == 2
        assert backend.suspend_counts == {1: 1, 2: 1}

    def test_round_trip_restores_running_state(self, backend):
        backend.add_process(10, (1, 2, 3, 4))
        backend.add_process(11, (5,))
        controller = make_controller(backend)

        for pid in (10, 11):
            paused = controller.pause(backend.target(pid))
            assert all(result.previous_count == 0 for result in paused.threads)
        for pid in (10, 11):
            resumed = controller.resume(backend.target(pid))
            assert all(result.resulting_count == 0 for result in resumed.threads)

        assert set(backend.suspend_counts.values()) == {0}

    def test_exited_thread_is_skipped(self, backend):
        backend.add_process(10, (1, 2))
        controller = make_controller(backend)
        target = backend.target(10)
        del backend.suspend_counts[2]

        report = controller.pause(target)

        assert report.code is ResultCode.SUCCEEDED_WITH_ERRORS
        assert report.failed_count == 1
        assert kinds(report) == [WarningKind.OPEN_FAILED]
        assert backend.suspend_counts[1] == 1

    def test_process_without_threads_is_aborted(self, backend):
        backend.add_process(10, ())
        controller = make_controller(backend)

        report = controller.pause(backend.target(10))

        assert report.code is ResultCode.ABORTED
        assert kinds(report) == [WarningKind.PROCESS_GONE]

    def test_apply_dispatches_direction(self, backend):
        backend.add_process(10, (1,))
        controller = make_controller(backend)

        assert controller.apply(backend.target(10), Direction.PAUSE).direction is Direction.PAUSE
        assert controller.apply(backend.target(10), Direction.RESUME).direction is Direction.RESUME


class TestSafetyRules:
    """Hard-coded refusals."""

    def test_refuses_own_process(self, backend):
        backend.add_process(OWN_PID, (1,))
        controller = make_controller(backend)

        with pytest.raises(SelfTargetError):
            controller.pause(backend.target(OWN_PID))
        assert backend.suspend_counts[1] == 0

    def test_debug_attach_refuses_session_zero(self, backend):
        backend.add_process(10, (1,), session=0)
        controller = make_controller(backend, mechanism=Mechanism.DEBUG_ATTACH)

        report = controller.pause(backend.target(10))

        assert report.code is ResultCode.ABORTED
        assert kinds(report) == [WarningKind.PROTECTED_SESSION]
        assert 10 not in backend.attached

    def test_thread_suspend_allows_session_zero(self, backend):
        backend.add_process(10, (1,), session=0)
        controller = make_controller(backend)

        report = controller.pause(backend.target(10))

        assert report.code is ResultCode.SUCCEEDED


class TestBitness:
    """The 32-bit suspend call is chosen per process."""

    def test_wow64_process_uses_wow64_suspend(self, backend):
        backend.add_process(10, (1, 2, 3), wow64=True)
        controller = make_controller(backend)

        controller.pause(backend.target(10))

        assert backend.calls.count(("is_wow64", 10)) == 1
        suspends = [call for call in backend.calls if call[0] == "suspend"]
        assert suspends == [("suspend", 1, True), ("suspend", 2, True), ("suspend", 3, True)]

    def test_native_process_uses_plain_suspend(self, backend):
        backend.add_process(10, (1,))
        controller = make_controller(backend)

        controller.pause(backend.target(10))

        assert ("suspend", 1, False) in backend.calls


class TestWindowControl:
    """Minimize before pausing, restore after resuming."""

    def test_minimize_happens_before_suspend(self, backend):
        backend.add_process(10, (1, 2), hwnd=500)
        controller = make_controller(backend, window_control=True)

        report = controller.pause(backend.target(10))

        assert report.window_minimized is True
        first_suspend = next(i for i, call in enumerate(backend.calls) if call[0] == "suspend")
        assert backend.calls.index(("minimize", 500)) < first_suspend
        assert report.diagnostics == []

    def test_window_never_iconic(self, backend):
        """Pause still completes, with exactly one window warning."""
        backend.add_process(10, (1, 2, 3), hwnd=500)
        backend.minimize_works = False
        controller = make_controller(backend, window_control=True, minimize_retries=4)

        report = controller.pause(backend.target(10))

        assert report.code is ResultCode.SUCCEEDED
        assert report.changed_count == 3
        assert report.window_minimized is False
        assert kinds(report) == [WarningKind.WINDOW_MINIMIZE]
        assert backend.calls.count(("is_iconic", 500)) == 4
        # no wait after the last check
        assert len(controller.sleeps) == 3

    def test_no_window_no_minimize(self, backend):
        backend.add_process(10, (1,))
        controller = make_controller(backend, window_control=True)

        report = controller.pause(backend.target(10))

        assert report.window_minimized is None
        assert not [call for call in backend.calls if call[0] == "minimize"]

    def test_resume_restores_window(self, backend):
        backend.add_process(10, (1,), hwnd=500)
        controller = make_controller(backend, window_control=True)

        controller.pause(backend.target(10))
        controller.resume(backend.target(10))

        assert backend.calls[-1] == ("restore", 500)
        assert backend.iconic[500] is False

    def test_window_left_alone_without_flag(self, backend):
        backend.add_process(10, (1,), hwnd=500)
        controller = make_controller(backend)

        controller.pause(backend.target(10))

        assert ("minimize", 500) not in backend.calls


class TestWorkingSetTrim:
    """Trimming after suspension."""

    def test_trim_after_pause(self, backend):
        backend.add_process(10, (1,))
        controller = make_controller(backend, trim=True)

        report = controller.pause(backend.target(10))

        assert report.trimmed is True
        assert backend.trimmed == [10]

    def test_trim_failure_is_warning(self, backend):
        backend.add_process(10, (1,))
        backend.trim_error = 5
        controller = make_controller(backend, trim=True)

        report = controller.pause(backend.target(10))

        assert report.code is ResultCode.SUCCEEDED
        assert report.trimmed is False
        assert kinds(report) == [WarningKind.TRIM_FAILED]
        assert backend.suspend_counts[1] == 1

    def test_no_trim_on_resume(self, backend):
        backend.add_process(10, (1,))
        controller = make_controller(backend, trim=True)

        controller.pause(backend.target(10))
        report = controller.resume(backend.target(10))

        assert report.trimmed is None
        assert backend.trimmed == [10]


class TestDebugAttach:
    """The whole-process debug-attach variant."""

    def test_attach_and_detach(self, backend):
        backend.add_process(10, (1, 2), session=2)
        controller = make_controller(backend, mechanism=Mechanism.DEBUG_ATTACH)

        paused = controller.pause(backend.target(10))
        assert paused.code is ResultCode.SUCCEEDED
        assert paused.threads == []
        assert 10 in backend.attached

        resumed = controller.resume(backend.target(10))
        assert resumed.code is ResultCode.SUCCEEDED
        assert 10 not in backend.attached

    def test_detach_without_attach_fails(self, backend):
        backend.add_process(10, (1,), session=2)
        controller = make_controller(backend, mechanism=Mechanism.DEBUG_ATTACH)

        report = controller.resume(backend.target(10))

        assert report.code is ResultCode.FAILED
        assert kinds(report) == [WarningKind.ATTACH_FAILED]
