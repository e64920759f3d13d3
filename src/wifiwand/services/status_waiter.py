"""
Polling waiter for radio and internet state.
Re-evaluates its predicate on every iteration, since the state it watches
is changed by processes outside this program.
"""

import logging
import threading
import time
from concurrent.futures import Future
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

from wifiwand.config import DEFAULT_POLL_INTERVAL_SECS
from wifiwand.errors import WaitCancelledError, WaitTimeoutError

logger = logging.getLogger(__name__)


class WaitTarget(Enum):
    ON = "on"
    OFF = "off"
    CONNECTED = "conn"
    DISCONNECTED = "disc"

    @classmethod
    def parse(cls, value: Union['WaitTarget', str]) -> 'WaitTarget':
        """
        Accept a WaitTarget or one of: on, off, conn, connected, disc, disconnected.

        Raises:
            ValueError: For any other value
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key in _ALIASES:
            return _ALIASES[key]
        raise ValueError(
            f"Option must be one of {sorted(_ALIASES)}. Was: {value!r}")


_ALIASES: Dict[str, WaitTarget] = {
    'on': WaitTarget.ON,
    'off': WaitTarget.OFF,
    'conn': WaitTarget.CONNECTED,
    'connected': WaitTarget.CONNECTED,
    'disc': WaitTarget.DISCONNECTED,
    'disconnected': WaitTarget.DISCONNECTED,
}


class PendingWait:
    """A wait running on a worker thread; cancel() stops it at its next check."""

    def __init__(self, future: Future, cancel_event: threading.Event):
        self.future = future
        self.cancel_event = cancel_event

    def cancel(self) -> None:
        self.cancel_event.set()
        self.future.cancel()

    def result(self, timeout: Optional[float] = None) -> None:
        return self.future.result(timeout)

    def done(self) -> bool:
        return self.future.done()


class StatusWaiter:
    """
    Waits for the radio or the internet connection to reach a target state.

    The model passed in must provide `is_wifi_on()` and `connected_to_internet()`.
    """

    def __init__(self, model, poll_interval_secs: float = DEFAULT_POLL_INTERVAL_SECS):
        self.model = model
        self.poll_interval_secs = poll_interval_secs
        self._pending: List[PendingWait] = []

    def predicate_for(self, target: WaitTarget) -> Callable[[], bool]:
        predicates = {
            WaitTarget.ON: lambda: self.model.is_wifi_on(),
            WaitTarget.OFF: lambda: not self.model.is_wifi_on(),
            WaitTarget.CONNECTED: lambda: self.model.connected_to_internet(),
            WaitTarget.DISCONNECTED: lambda: not self.model.connected_to_internet(),
        }
        return predicates[target]

    def wait_for(
            self,
            target: Union[WaitTarget, str],
            timeout_secs: Optional[float] = None,
            poll_interval_secs: Optional[float] = None,
            cancel_event: Optional[threading.Event] = None) -> None:
        """
        Block until the target state is observed.

        Args:
            target: on, off, conn(ected) or disc(onnected)
            timeout_secs: Give up after this long; None waits without bound
            poll_interval_secs: Sleep between checks; None uses the default (0.5s)
            cancel_event: When set, the wait stops at its next check

        Raises:
            ValueError: If target is not recognized (before any polling)
            WaitTimeoutError: If timeout_secs elapses first
            WaitCancelledError: If cancel_event is set first
        """
        target = WaitTarget.parse(target)
        interval = self.poll_interval_secs if poll_interval_secs is None else poll_interval_secs
        predicate = self.predicate_for(target)

        logger.debug(f"Waiting for {target.value}, interval (seconds): {interval}, "
                     f"timeout (seconds): {timeout_secs}")

        if predicate():
            logger.debug(f"{target.value}: completed without needing to wait")
            return None

        start = time.monotonic()
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise WaitCancelledError(target.value)

            elapsed = time.monotonic() - start
            if timeout_secs is not None and elapsed >= timeout_secs:
                raise WaitTimeoutError(target.value, timeout_secs)

            pause = interval
            if timeout_secs is not None:
                pause = min(interval, timeout_secs - elapsed)
            if cancel_event is not None:
                cancel_event.wait(pause)
            else:
                time.sleep(pause)

            if predicate():
                break
            logger.debug(f"Still waiting for {target.value}")

        logger.debug(f"{target.value} wait time (seconds): {time.monotonic() - start:.3f}")
        return None

    def submit(
            self,
            target: Union[WaitTarget, str],
            timeout_secs: Optional[float] = None,
            poll_interval_secs: Optional[float] = None) -> PendingWait:
        """
        Run wait_for on its own daemon thread and return a cancellable handle.

        Submitted waits run concurrently. An abandoned wait does not keep the
        interpreter alive, but an unbounded one polls until cancelled.
        """
        target = WaitTarget.parse(target)
        cancel_event = threading.Event()
        future: Future = Future()

        def run():
            if not future.set_running_or_notify_cancel():
                return
            try:
                self.wait_for(target, timeout_secs, poll_interval_secs, cancel_event)
            except Exception as e:
                future.set_exception(e)
            else:
                future.set_result(None)

        pending = PendingWait(future, cancel_event)
        self._pending = [p for p in self._pending if not p.done()] + [pending]
        threading.Thread(target=run, name=f"wifiwand-wait-{target.value}", daemon=True).start()
        return pending

    def shutdown(self) -> None:
        """Cancel every submitted wait that is still running."""
        for pending in self._pending:
            pending.cancel()
        self._pending = []
