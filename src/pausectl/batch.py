"""Multi-process batch driver."""

from collections.abc import Callable, Iterable

from pausectl.controller import ProcessController
from pausectl.log import get_logger
from pausectl.models import BatchReport, Direction, ProcessReport, TargetProcess

logger = get_logger("pausectl.batch")


class BatchDriver:
    """Runs the process controller over a list of targets and totals the results."""

    def __init__(self, controller: ProcessController) -> None:
        self._controller = controller

    @property
    def controller(self) -> ProcessController:
        return self._controller

    def run(
        self,
        targets: Iterable[TargetProcess],
        direction: Direction,
        on_report: Callable[[ProcessReport], None] | None = None,
    ) -> BatchReport:
        """
        Apply direction to each target in order.

        Args:
            targets: Resolved processes.
            direction: Pause or resume.
            on_report: Called with each process report as soon as it exists.
        """
        batch = BatchReport(direction=direction)
        for target in targets:
            report = self._controller.apply(target, direction)
            batch.processes.append(report)
            if on_report is not None:
                on_report(report)

        logger.info(
            "batch_complete",
            direction=direction.value,
            considered=batch.considered,
            succeeded=batch.succeeded,
            threads=len(batch.threads),
        )
        return batch

    def pause(self, targets: Iterable[TargetProcess]) -> BatchReport:
        return self.run(targets, Direction.PAUSE)

    def resume(self, targets: Iterable[TargetProcess]) -> BatchReport:
        return self.run(targets, Direction.RESUME)
