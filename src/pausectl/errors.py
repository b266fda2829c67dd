"""Exceptions for pausectl.

Only a handful of conditions abort an invocation. Everything that can go
wrong with a single thread or process is recorded on the report instead.
"""


class PausectlError(Exception):
    """Base exception for fatal pausectl errors."""

    code: str = "PAUSECTL_ERROR"
    default_message: str = "pausectl failed"
    exit_code: int = 1

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ResolutionError(PausectlError):
    """The selector matched no processes."""

    code = "NO_MATCHING_PROCESSES"
    default_message = "no matching processes"
    exit_code = 1


class SelfTargetError(ResolutionError):
    """The only requested target was the running controller itself."""

    code = "SELF_TARGET"
    default_message = "refusing to operate on the controlling process"


class UnsupportedPlatformError(PausectlError):
    code = "UNSUPPORTED_PLATFORM"
    default_message = "thread suspension requires Windows"
    exit_code = 3


class ChannelError(PausectlError):
    """The rendezvous channel could not be created, reused or reached."""

    code = "CHANNEL_ERROR"
    default_message = "rendezvous channel failure"
    exit_code = 4


class OsCallError(PausectlError):
    """A single OS call failed.

    Raised by the backend and turned into report data by the callers, so
    it never reaches the top level.
    """

    code = "OS_CALL_FAILED"
    default_message = "OS call failed"

    def __init__(self, call: str, winerror: int = 0) -> None:
        self.call = call
        self.winerror = winerror
        super().__init__(f"{call} failed (error {winerror})")
