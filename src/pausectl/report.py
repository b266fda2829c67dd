"""Operator-facing output: warnings and diagnostic tables."""

from rich.console import Console
from rich.table import Table

from pausectl.log import get_logger
from pausectl.models import (
    BatchReport,
    Diagnostic,
    ProcessReport,
    ResultCode,
    ResumeResult,
    WarningKind,
)

logger = get_logger("pausectl.report")

_CODE_STYLE = {
    ResultCode.SUCCEEDED: "green",
    ResultCode.SUCCEEDED_WITH_ERRORS: "yellow",
    ResultCode.FAILED: "red",
    ResultCode.ABORTED: "red",
}


def visible_warnings(batch: BatchReport, quiet: bool = False) -> list[Diagnostic]:
    """Diagnostics to show; quiet hides all but partial-state warnings."""
    if not quiet:
        return batch.diagnostics
    return [diag for diag in batch.diagnostics if not diag.kind.suppressible]


def emit_warnings(batch: BatchReport, quiet: bool = False) -> int:
    """Log the visible warnings and return how many were logged."""
    shown = visible_warnings(batch, quiet)
    for diag in shown:
        logger.warning(
            diag.message,
            kind=diag.kind.value,
            pid=diag.pid,
            thread_id=diag.thread_id,
            error_code=diag.error_code or None,
        )
    return len(shown)


def format_code(code: ResultCode, errored: bool = True) -> str:
    """Rich markup for a result code. FAILED without errors means nothing changed."""
    style = _CODE_STYLE.get(code)
    if code is ResultCode.FAILED and not errored:
        style = "dim"
    label = code.name.lower().replace("_", "-")
    return f"[{style}]{label}[/{style}]" if style else label


def _errored(report: ProcessReport) -> bool:
    return report.failed_count > 0 or any(
        diag.kind is WarningKind.ATTACH_FAILED for diag in report.diagnostics
    )


def process_table(batch: BatchReport) -> Table:
    """One row per process."""
    table = Table(title=f"{batch.direction.value}: {batch.succeeded}/{batch.considered} processes")
    table.add_column("PID", justify="right")
    table.add_column("Name")
    table.add_column("Result")
    table.add_column("Changed", justify="right")
    table.add_column("Unchanged", justify="right")
    table.add_column("Failed", justify="right")

    for report in batch.processes:
        table.add_row(
            str(report.pid),
            report.target.name,
            format_code(report.code, errored=_errored(report)),
            str(report.changed_count),
            str(report.unchanged_count),
            str(report.failed_count),
        )
    return table


def thread_table(batch: BatchReport) -> Table:
    """One row per thread touched, with the suspend counts seen."""
    table = Table(title="threads")
    table.add_column("PID", justify="right")
    table.add_column("TID", justify="right")
    table.add_column("Previous", justify="right")
    table.add_column("Resulting", justify="right")
    table.add_column("Error", justify="right")

    for report in batch.processes:
        for result in report.threads:
            if result.ok:
                previous, resulting, error = (
                    str(result.previous_count),
                    str(result.resulting_count),
                    "",
                )
            else:
                previous, resulting = "-", "-"
                error = f"{result.error_kind.value} ({result.error_code})"
            table.add_row(str(report.pid), str(result.thread_id), previous, resulting, error)
    return table


def render_batch(batch: BatchReport, console: Console) -> None:
    console.print(process_table(batch))
    if batch.threads:
        console.print(thread_table(batch))


def summary_line(batch: BatchReport) -> str:
    """Short human summary for the log."""
    still = sum(
        1 for result in batch.threads if isinstance(result, ResumeResult) and result.still_suspended
    )
    text = f"{batch.direction.value}d {batch.succeeded} of {batch.considered} processes"
    if still:
        text += f", {still} threads still paused"
    return text
