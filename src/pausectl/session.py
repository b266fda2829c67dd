"""Pause, wait for a signal, then put everything back."""

from collections.abc import Callable
from dataclasses import dataclass, field, replace

from pausectl.batch import BatchDriver
from pausectl.log import get_logger
from pausectl.models import BatchReport, Direction, Mechanism, ProcessReport, TargetProcess
from pausectl.rendezvous import RendezvousChannel

logger = get_logger("pausectl.session")


@dataclass(slots=True)
class SessionOutcome:
    pause: BatchReport
    resume: BatchReport | None = None
    message: str | None = None


@dataclass(slots=True)
class PauseSession:
    """
    Holds the suspensions made by this invocation until signaled.

    The resume pass only touches what the pause pass took: for thread
    suspension, the threads whose suspend call succeeded (once each); for
    debug-attach, the processes that were attached.
    """

    driver: BatchDriver
    channel: RendezvousChannel
    paused: list[TargetProcess] = field(default_factory=list)
    on_paused: Callable[[BatchReport], None] | None = None  # runs before the wait

    @property
    def paused_pids(self) -> list[int]:
        return [target.pid for target in self.paused]

    def hold(self, targets: list[TargetProcess]) -> SessionOutcome:
        """Pause targets, block on the channel, and resume in all cases."""
        # Listen first so a signaler never finds the channel missing
        self.channel.listen()

        outcome = SessionOutcome(pause=BatchReport(direction=Direction.PAUSE))
        try:
            outcome.pause = self.driver.run(targets, Direction.PAUSE, on_report=self._track)
            if self.on_paused is not None:
                self.on_paused(outcome.pause)
            logger.info("session_waiting", channel=self.channel.name, pids=self.paused_pids)
            outcome.message = self.channel.wait_for_signal()
        finally:
            self.channel.close()
            outcome.resume = self.release()
        return outcome

    def release(self) -> BatchReport:
        """Resume what this session paused. Safe to call more than once."""
        paused, self.paused = self.paused, []
        report = self.driver.resume(paused)
        logger.info("session_released", channel=self.channel.name, resumed=report.succeeded)
        return report

    def _track(self, report: ProcessReport) -> None:
        if report.mechanism is Mechanism.DEBUG_ATTACH:
            if report.acted:
                self.paused.append(report.target)
            return
        thread_ids = report.held_thread_ids()
        if thread_ids:
            self.paused.append(replace(report.target, thread_ids=thread_ids))
