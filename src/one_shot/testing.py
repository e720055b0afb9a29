"""Helpers for driving continuations without a scheduler."""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING, Any

from one_shot.log import get_logger
from one_shot.typedefs import Ready

if TYPE_CHECKING:
    from one_shot.continuation import Continuation

logger = get_logger(__name__)


def block_on[T](
    continuation: Continuation[T, Any], timeout: float | None = None
) -> T:
    """Polls continuation on the calling thread until it yields its result.

    Args:
        continuation: the continuation to drive
        timeout: seconds to wait in total, or None to wait forever

    Returns:
        The result of the continuation

    Raises:
        TimeoutError: if no completion arrived in time
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    woken = threading.Event()
    while True:
        woken.clear()
        polled = continuation.poll(woken.set)
        if isinstance(polled, Ready):
            return polled.unwrap()

        remaining = None if deadline is None else max(deadline - time.monotonic(), 0)
        if not woken.wait(remaining):
            logger.info("Timed out waiting on continuation", timeout=timeout)
            msg = f"Continuation not completed within {timeout}s"
            raise TimeoutError(msg)
