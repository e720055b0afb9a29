"""The producer side of a continuation."""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, override

from one_shot.log import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from one_shot.shared import SharedCompletion

logger = get_logger(__name__)


def _report_abandoned(shared: SharedCompletion) -> None:
    """Finalizer for completers that were collected without being used."""
    if not shared.delivered:
        logger.warning("Completer dropped without completing", shared=shared)


class Completer[T]:
    """One-shot capability that delivers a result into a SharedCompletion.

    Safe to hand to foreign code and to call from any thread. It holds a strong
    reference to the shared state, so that state stays alive and keeps its
    identity for as long as anything can still complete it.

    Using it a second time raises ProtocolViolation and leaves the first
    result untouched. Dropping it unused leaves the continuation pending
    forever; a warning is logged when that happens.
    """

    __slots__ = ("__weakref__", "_finalizer", "_shared", "_used")

    def __init__(self, shared: SharedCompletion[T]) -> None:
        self._shared = shared
        self._used = False
        self._finalizer = weakref.finalize(self, _report_abandoned, shared)
        self._finalizer.atexit = False

    def complete(self, value: T) -> None:
        """Delivers value to the continuation.

        Args:
            value: the result the continuation's poll will yield
        """
        self._used = True
        self._finalizer.detach()
        self._shared.complete(value)

    def fail(self, error: BaseException) -> None:
        """Delivers error to the continuation, raised from its result.

        Args:
            error: the exception the continuation's result will raise
        """
        if not isinstance(error, BaseException):
            msg = f"error must be an exception, got {type(error).__name__}"
            raise TypeError(msg)
        self._used = True
        self._finalizer.detach()
        self._shared.fail(error)

    def __call__(self, value: T) -> None:
        """Allows passing the completer itself as a one-argument callback."""
        self.complete(value)

    def callback(self) -> Callable[..., None]:
        """Returns a (value, error) callback for APIs that report errors inline.

        The returned callable completes with value unless error is not None.
        """

        def _callback(
            value: T | None = None, error: BaseException | None = None
        ) -> None:
            if error is not None:
                self.fail(error)
            else:
                self.complete(value)  # type: ignore[arg-type]

        return _callback

    @property
    def used(self) -> bool:
        """If complete or fail was called on this handle."""
        return self._used

    @override
    def __repr__(self) -> str:
        """Pretty printing."""
        return f"Completer(used={self._used})"
