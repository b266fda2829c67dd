"""pausectl - pause and resume processes by suspending their threads."""

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console

from pausectl.backend import OsBackend, get_backend
from pausectl.batch import BatchDriver
from pausectl.config import PauseOptions
from pausectl.controller import ProcessController
from pausectl.errors import PausectlError
from pausectl.log import get_logger, setup_logging
from pausectl.models import BatchReport, Mechanism
from pausectl.rendezvous import RendezvousChannel
from pausectl.report import emit_warnings, render_batch, summary_line
from pausectl.selection import ProcessResolver, Selector
from pausectl.session import PauseSession

logger = get_logger("pausectl.cli")

EXIT_OK = 0
EXIT_USAGE = 2


def int_list(value: str) -> list[int]:
    """Parse '1,2, 3' into [1, 2, 3]."""
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma-separated integers, got {value!r}")


def str_list(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pausectl",
        description="Pause or resume processes by suspending every thread.",
    )

    selectors = parser.add_mutually_exclusive_group()
    selectors.add_argument("--id", dest="ids", type=int_list, action="extend", default=[],
                           metavar="PID[,PID...]", help="process ids")
    selectors.add_argument("--name", dest="names", type=str_list, action="extend", default=[],
                           metavar="PATTERN[,...]", help="process names, wildcards allowed")
    parser.add_argument("--session-ids", type=int_list, action="extend", default=[],
                        metavar="ID[,ID...]",
                        help="session ids; filters --name matches, or selects on its own")

    parser.add_argument("--resume", action="store_true", help="resume instead of pause")
    parser.add_argument("--all-sessions", action="store_true",
                        help="with --name, match processes in every session")
    parser.add_argument("--trim", action="store_true", help="trim the working set after pausing")
    parser.add_argument("--window-control", action="store_true",
                        help="minimize the main window on pause, restore it on resume")
    parser.add_argument("--debug-attach", action="store_true",
                        help="pause by attaching as debugger (needs --pipe-name)")
    parser.add_argument("--quiet", action="store_true", help="suppress per-thread warnings")
    parser.add_argument("--verbose", action="store_true", help="debug logging")
    parser.add_argument("--details", action="store_true", help="print diagnostic tables")

    parser.add_argument("--pipe-name", help="rendezvous channel: pause, then wait for a signal")
    parser.add_argument("--signal", metavar="MESSAGE",
                        help="send MESSAGE on --pipe-name and exit")

    parser.add_argument("--log-file", type=Path, help="transcript file")
    parser.add_argument("--append", action="store_true", help="append to --log-file")
    return parser


def validate(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if args.signal is not None:
        if not args.pipe_name:
            parser.error("--signal requires --pipe-name")
        return
    if args.ids and args.session_ids:
        parser.error("--id cannot be combined with --session-ids")
    if args.all_sessions and args.session_ids:
        parser.error("--all-sessions cannot be combined with --session-ids")
    if not (args.ids or args.names or args.session_ids):
        parser.error("one of --id, --name or --session-ids is required")
    if args.debug_attach and args.resume:
        parser.error("--debug-attach pauses can only be resumed by the pausing invocation")
    if args.debug_attach and not args.pipe_name:
        parser.error("--debug-attach requires --pipe-name")
    if args.resume and args.pipe_name:
        parser.error("--pipe-name waits before resuming; it cannot be combined with --resume")
    if args.append and not args.log_file:
        parser.error("--append requires --log-file")


def run(args: argparse.Namespace, backend: OsBackend, console: Console) -> int:
    """Resolve, act, report. Returns the number of processes acted on."""
    options = PauseOptions(
        mechanism=Mechanism.DEBUG_ATTACH if args.debug_attach else Mechanism.THREAD_SUSPEND,
        trim=args.trim,
        window_control=args.window_control,
        quiet=args.quiet,
    ).with_env()

    selector = Selector(
        ids=tuple(args.ids),
        names=tuple(args.names),
        session_ids=tuple(args.session_ids),
        all_sessions=args.all_sessions,
    )
    targets = ProcessResolver(backend).resolve(selector)
    driver = BatchDriver(ProcessController(backend, options))

    def show(batch: BatchReport) -> None:
        emit_warnings(batch, quiet=options.quiet)
        logger.info(summary_line(batch))
        if args.details:
            render_batch(batch, console)

    if args.resume:
        batch = driver.resume(targets)
        show(batch)
        return batch.succeeded

    if args.pipe_name:
        if options.mechanism is Mechanism.DEBUG_ATTACH:
            logger.warning(
                "debug_attach_hazard",
                detail="terminating this process resumes every attached target",
            )
        else:
            logger.warning(
                "thread_suspend_hazard",
                detail="terminating this process leaves the targets paused until --resume",
            )
        # Pause results are shown before blocking, the wait may never return
        session = PauseSession(
            driver=driver,
            channel=RendezvousChannel(args.pipe_name),
            on_paused=show,
        )
        outcome = session.hold(targets)
        show(outcome.resume)
        return outcome.pause.succeeded

    batch = driver.pause(targets)
    show(batch)
    return batch.succeeded


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the pausectl command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    validate(parser, args)

    try:
        transcript = setup_logging(
            level="DEBUG" if args.verbose else "INFO",
            log_file=args.log_file,
            append=args.append,
        )
    except OSError as exc:
        parser.error(f"cannot open --log-file {args.log_file}: {exc.strerror or exc}")
    console = Console()
    logger.info("transcript_started", argv=list(sys.argv[1:] if argv is None else argv))

    try:
        if args.signal is not None:
            RendezvousChannel(args.pipe_name).send_signal(args.signal)
            return EXIT_OK

        count = run(args, get_backend(), console)
        console.print(count)
        return EXIT_OK
    except PausectlError as exc:
        logger.error(exc.message, code=exc.code)
        return exc.exit_code
    finally:
        logger.info("transcript_stopped")
        if transcript is not None:
            transcript.close()


if __name__ == "__main__":
    sys.exit(main())
