"""Named one-shot rendezvous channel.

A pauser blocks in wait_for_signal() until a signaler, started separately
with the same channel name, connects and writes one line. On Windows the
channel is a named pipe; elsewhere it is a unix domain socket (abstract on
Linux, a file in the temp directory otherwise).
"""

import sys
import tempfile
import time
from enum import Enum
from multiprocessing.connection import Client, Connection, Listener
from pathlib import Path

from pausectl.errors import ChannelError
from pausectl.log import get_logger

logger = get_logger("pausectl.rendezvous")

ENCODING = "utf-8"


class ChannelState(Enum):
    """Lifecycle of a rendezvous channel."""

    IDLE = "idle"
    WAITING_FOR_CONNECTION = "waiting-for-connection"
    CONNECTED_READING = "connected-reading"
    CONNECTED_WRITING = "connected-writing"
    SIGNALED = "signaled"
    CLOSED = "closed"


def channel_address(name: str, platform: str | None = None) -> tuple[str, str]:
    """Return (address, family) for a channel name on the given platform."""
    platform = platform or sys.platform
    if not name or any(sep in name for sep in ("/", "\\", "\0")):
        raise ChannelError(f"invalid channel name {name!r}")

    if platform == "win32":
        return rf"\\.\pipe\pausectl-{name}", "AF_PIPE"
    if platform.startswith("linux"):
        return f"\0pausectl-{name}", "AF_UNIX"
    return str(Path(tempfile.gettempdir()) / f"pausectl-{name}.sock"), "AF_UNIX"


def encode_line(message: str) -> bytes:
    return (message.splitlines()[0] if message else "").encode(ENCODING) + b"\n"


def decode_line(payload: bytes) -> str:
    text = payload.decode(ENCODING, errors="replace")
    return text.splitlines()[0] if text else ""


class RendezvousChannel:
    """
    Point-to-point, single-message channel identified by name.

    One instance plays one role, pauser (wait_for_signal) or signaler
    (send_signal), once. There is no timeout on the pauser side; the only
    way to abandon the wait is to terminate the process.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._address, self._family = channel_address(name)
        self._listener: Listener | None = None
        self._state = ChannelState.IDLE

    @property
    def name(self) -> str:
        return self._name

    @property
    def address(self) -> str:
        return self._address

    @property
    def state(self) -> ChannelState:
        return self._state

    def listen(self) -> None:
        """Create the channel endpoint so signalers can connect."""
        if self._state is not ChannelState.IDLE:
            raise ChannelError(f"channel {self._name!r} is {self._state.value}")
        try:
            self._listener = Listener(self._address, family=self._family)
        except OSError as exc:
            self._state = ChannelState.CLOSED
            raise ChannelError(f"cannot create channel {self._name!r}: {exc}") from exc
        self._state = ChannelState.WAITING_FOR_CONNECTION
        logger.info("channel_listening", channel=self._name)

    def wait_for_signal(self) -> str | None:
        """
        Block until a peer connects and sends one line.

        Returns the line, or None when the connection broke before any data
        arrived. Either way the channel ends up SIGNALED, so the caller's
        reversion always runs.
        """
        if self._state is ChannelState.IDLE:
            self.listen()
        elif self._state is not ChannelState.WAITING_FOR_CONNECTION:
            raise ChannelError(f"channel {self._name!r} is {self._state.value}")

        message = None
        try:
            connection = self._listener.accept()
            self._state = ChannelState.CONNECTED_READING
            with connection:
                message = decode_line(connection.recv_bytes())
            logger.info("channel_signaled", channel=self._name, message=message)
        except (OSError, EOFError) as exc:
            logger.warning("channel_broken", channel=self._name, error=str(exc))
        finally:
            self._state = ChannelState.SIGNALED
            self._close_listener()
        return message

    def send_signal(
        self,
        message: str,
        timeout: float | None = None,
        poll_interval: float = 0.1,
    ) -> None:
        """
        Connect to the waiting pauser and deliver one line.

        Args:
            message: Text to send; only its first line is delivered.
            timeout: Seconds to keep trying to connect. None waits forever.
            poll_interval: Delay between connection attempts.
        """
        if self._state is not ChannelState.IDLE:
            raise ChannelError(f"channel {self._name!r} is {self._state.value}")

        connection = self._connect(timeout, poll_interval)
        self._state = ChannelState.CONNECTED_WRITING
        try:
            with connection:
                connection.send_bytes(encode_line(message))
        except OSError as exc:
            raise ChannelError(f"cannot write to channel {self._name!r}: {exc}") from exc
        finally:
            self._state = ChannelState.CLOSED
        logger.info("channel_signal_sent", channel=self._name)

    def _connect(self, timeout: float | None, poll_interval: float) -> Connection:
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            try:
                return Client(self._address, family=self._family)
            except (FileNotFoundError, ConnectionRefusedError) as exc:
                if deadline is not None and time.monotonic() >= deadline:
                    self._state = ChannelState.CLOSED
                    raise ChannelError(
                        f"no pauser listening on channel {self._name!r}"
                    ) from exc
                time.sleep(poll_interval)

    def _close_listener(self) -> None:
        if self._listener is not None:
            self._listener.close()
            self._listener = None

    def close(self) -> None:
        self._close_listener()
        if self._state is not ChannelState.SIGNALED:
            self._state = ChannelState.CLOSED
