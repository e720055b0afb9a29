from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from one_shot.exceptions import ProtocolViolation
from one_shot.log import get_logger
from one_shot.shared.state import (
    CompletionState,
    Consumed,
    Done,
    Invalid,
    NotStarted,
    Pending,
)
from one_shot.typedefs import Ready, not_ready

if TYPE_CHECKING:
    from one_shot.typedefs import Poll, Waker

logger = get_logger(__name__)


@dataclass(slots=True, kw_only=True, eq=False)
class SharedCompletion[T]:
    """The one place a completion event is recorded.

    Shared by exactly one completer (the producer) and one continuation (the
    consumer). Every transition takes the current state out under the lock,
    leaves Invalid behind, and writes the next state back before the lock is
    released. complete() may run on any thread, poll() only ever on the thread
    currently driving the continuation.
    """

    """Union encompassing where the completion event stands."""
    _state: CompletionState[T] = field(default_factory=NotStarted, init=False)

    """Serializes complete() and poll() against each other."""
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def complete(self, value: T) -> None:
        """Stores value and wakes the last poller, if any."""
        self._deliver(Done(value=value))

    def fail(self, error: BaseException) -> None:
        """Stores error in place of a value and wakes the last poller, if any."""
        if not isinstance(error, BaseException):
            msg = f"error must be an exception, got {type(error).__name__}"
            raise TypeError(msg)
        self._deliver(Done(error=error))

    def _deliver(self, done: Done[T]) -> None:
        waker: Waker | None = None
        with self._lock:
            state, self._state = self._state, Invalid()
            match state:
                case NotStarted():
                    self._state = done
                case Pending(waker=waker):
                    self._state = done
                case _:
                    self._state = state
                    logger.error("Completion delivered twice", state=state)
                    msg = f"Completion delivered more than once (state was {state})"
                    raise ProtocolViolation(msg)

        logger.debug("Completion delivered", woke=waker is not None)
        # The waker may poll again on this very thread, so call it unlocked.
        if waker is not None:
            waker()

    def poll(self, waker: Waker) -> Poll[T]:
        """Takes the result if one was delivered, otherwise remembers waker."""
        with self._lock:
            state, self._state = self._state, Invalid()
            match state:
                case Done(value=value, error=error):
                    self._state = Consumed()
                    return Ready(value=value, error=error)
                case NotStarted() | Pending():
                    self._state = Pending(waker=waker)
                    return not_ready
                case Consumed():
                    self._state = state
                    logger.error("Polled after the result was taken")
                    raise ProtocolViolation("Polled after the result was taken")
                case Invalid():
                    logger.error("Observed a transition in progress")
                    raise ProtocolViolation("Completion state is corrupted")

    @property
    def state(self) -> CompletionState[T]:
        """Snapshot of the current state."""
        with self._lock:
            return self._state

    @property
    def is_done(self) -> bool:
        """If a result was delivered, whether or not it was taken yet."""
        return isinstance(self.state, Done | Consumed)

    @property
    def delivered(self) -> bool:
        """Like is_done, but reads the state without taking the lock.

        For finalizers, which may run during a collection triggered while this
        thread already holds the lock.
        """
        return isinstance(self._state, Done | Consumed)
