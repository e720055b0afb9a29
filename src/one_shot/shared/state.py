from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from one_shot.typedefs import Waker


@dataclass(slots=True, kw_only=True)
class NotStarted:
    """Nobody has polled yet and nothing has been delivered."""


@dataclass(slots=True, kw_only=True)
class Pending:
    """A poll found no result. Woken through the most recent waker."""

    waker: Waker


@dataclass(slots=True, kw_only=True)
class Done[T]:
    """A result was delivered and is waiting to be polled."""

    value: T | None = None
    error: BaseException | None = None


@dataclass(slots=True, kw_only=True)
class Consumed:
    """The result was handed to a poll."""


@dataclass(slots=True, kw_only=True)
class Invalid:
    """Written while a transition holds the lock. Never seen outside of it."""


type CompletionState[T] = NotStarted | Pending | Done[T] | Consumed | Invalid
