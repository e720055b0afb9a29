from __future__ import annotations

import asyncio
import weakref
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self, override

from one_shot.completer import Completer
from one_shot.exceptions import ProtocolViolation
from one_shot.log import get_logger
from one_shot.shared import SharedCompletion
from one_shot.typedefs import Ready

if TYPE_CHECKING:
    from collections.abc import Generator
    from types import TracebackType

    from one_shot.typedefs import Begin, Poll, Waker

logger = get_logger(__name__)


@dataclass(slots=True, kw_only=True)
class NotBegun[T, B]:
    """Deferred continuation that has not been polled yet."""

    begin: Begin[T, B] = field(repr=False)


@dataclass(slots=True, kw_only=True)
class Begun[T]:
    """A completer for the shared state has been handed out."""

    shared: SharedCompletion[T]


@dataclass(slots=True, kw_only=True)
class Finished:
    """The result has been yielded. Nothing more to poll."""


type Phase[T, B] = NotBegun[T, B] | Begun[T] | Finished


@dataclass(slots=True, kw_only=True)
class _Owned:
    """Values a continuation keeps alive until it is torn down."""

    attached: list[Any] = field(default_factory=list)
    begun: Any = None

    def release(self) -> None:
        """Closes whatever can be closed, last attached first."""
        values = [*reversed(self.attached)]
        if self.begun is not None:
            values.insert(0, self.begun)
        self.attached.clear()
        self.begun = None

        errors: list[BaseException] = []
        for value in values:
            close = getattr(value, "close", None)
            if not callable(close):
                continue
            logger.debug("Closing owned value", value=value)
            try:
                close()
            except BaseException as e:  # noqa: BLE001
                errors.append(e)

        if errors:
            raise BaseExceptionGroup("errors closing continuation values", errors)


class Continuation[T, B]:
    """The pollable side of a one-shot completion.

    A deferred continuation is built from a begin routine. The first poll
    creates the shared state, calls begin with a completer for it, keeps
    whatever begin returns alive, and then checks for a result, so a begin
    that completes synchronously is ready on that very poll. A direct
    continuation comes paired with its completer up front.

    Values handed to accept() and the value begin returned are torn down
    (closed, when they have a close method) exactly once: by close(), on
    leaving a with block, or when the continuation is garbage collected. Wrap
    a cancellation request in such a value to cancel the producer by dropping
    a pending continuation.
    """

    __slots__ = ("__weakref__", "_finalizer", "_owned", "phase")

    def __init__(self, begin: Begin[T, B]) -> None:
        self._setup(NotBegun(begin=begin))

    def _setup(self, phase: Phase[T, B]) -> None:
        self.phase = phase
        self._owned = _Owned()
        # Must not reference self, or the continuation would never be collected.
        self._finalizer = weakref.finalize(self, self._owned.release)
        # Owned values are not closed at interpreter shutdown, same as Completer.
        self._finalizer.atexit = False

    @classmethod
    def direct(cls) -> tuple[Continuation[T, None], Completer[T]]:
        """Creates an already begun continuation together with its completer."""
        shared: SharedCompletion[T] = SharedCompletion()
        continuation: Continuation[T, None] = cls.__new__(cls)
        continuation._setup(Begun(shared=shared))
        return continuation, Completer(shared)

    def poll(self, waker: Waker) -> Poll[T]:
        """Checks for the result, beginning the operation on the first call.

        Args:
            waker: called once the result arrives, if this poll returns NotReady.
                Replaces the waker of any earlier poll.

        Returns:
            Ready with the result, exactly once, otherwise not_ready
        """
        match self.phase:
            case NotBegun(begin=begin):
                shared = self._begin(begin)
            case Begun(shared=shared):
                pass
            case Finished():
                logger.error("Continuation polled after it finished")
                raise ProtocolViolation("Continuation polled after it finished")

        polled = shared.poll(waker)
        if isinstance(polled, Ready):
            self.phase = Finished()
            logger.debug("Continuation ready", failed=polled.error is not None)
        return polled

    def _begin(self, begin: Begin[T, B]) -> SharedCompletion[T]:
        shared: SharedCompletion[T] = SharedCompletion()
        self.phase = Begun(shared=shared)

        logger.debug("Beginning continuation", begin=begin)
        try:
            self._owned.begun = begin(Completer(shared))
        except BaseException:
            self.phase = Finished()
            raise

        return shared

    def accept(self, value: object) -> None:
        """Attaches value, to be torn down together with the continuation.

        Args:
            value: anything; its close method is called on teardown if it has one
        """
        if isinstance(self.phase, Finished):
            raise ProtocolViolation("Cannot attach to a finished continuation")
        if not self._finalizer.alive:
            raise ProtocolViolation("Cannot attach to a closed continuation")

        self._owned.attached.append(value)

    def close(self) -> None:
        """Tears down attached and begun values. Does nothing the second time."""
        self._finalizer()

    def __enter__(self) -> Self:
        """Nop enter."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Closes the continuation."""
        self.close()

    def __await__(self) -> Generator[Any, None, T]:
        """Waits on the continuation from an asyncio task.

        Each poll gets a waker that resolves a fresh future on the running loop,
        so completion may come from any thread. Cancelling the awaiting task
        closes the continuation.
        """
        loop = asyncio.get_running_loop()
        while True:
            future: asyncio.Future[None] = loop.create_future()
            polled = self.poll(_loop_waker(loop, future))
            if isinstance(polled, Ready):
                return polled.unwrap()

            try:
                yield from future.__await__()
            except asyncio.CancelledError:
                try:
                    self.close()
                except BaseException:  # noqa: BLE001
                    logger.exception("Closing cancelled continuation failed")
                raise

    @property
    def begun(self) -> B | None:
        """The value returned by begin, once it has run."""
        return self._owned.begun

    @property
    def is_begun(self) -> bool:
        """If a completer has been handed out."""
        return not isinstance(self.phase, NotBegun)

    @property
    def is_finished(self) -> bool:
        """If the result has been yielded."""
        return isinstance(self.phase, Finished)

    @property
    def is_closed(self) -> bool:
        """If owned values have been torn down."""
        return not self._finalizer.alive

    @override
    def __repr__(self) -> str:
        """Pretty printing."""
        return f"Continuation(phase={self.phase})"


def _loop_waker(
    loop: asyncio.AbstractEventLoop, future: asyncio.Future[None]
) -> Waker:
    """Builds a waker that resolves future on loop from any thread."""

    def _resolve() -> None:
        if not future.done():
            future.set_result(None)

    def _wake() -> None:
        try:
            loop.call_soon_threadsafe(_resolve)
        except RuntimeError:
            # Nobody is left to await the result.
            logger.debug("Completion arrived after the event loop closed")

    return _wake
