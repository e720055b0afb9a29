from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, override

if TYPE_CHECKING:
    from one_shot.completer import Completer


class NotReady:
    """Sentinel returned by a poll that found no result yet."""

    __slots__ = ()

    @override
    def __repr__(self) -> str:
        """Pretty printing."""
        return "NotReady"


not_ready = NotReady()


@dataclass(frozen=True, slots=True)
class Ready[T]:
    """The outcome handed out by the one poll that observed completion."""

    value: T | None = None
    error: BaseException | None = None

    def unwrap(self) -> T:
        """Rust style unwrapping of results."""
        if self.error is not None:
            raise self.error

        return self.value  # type: ignore[return-value]


type Waker = Callable[[], object]
type Begin[T, B] = Callable[[Completer[T]], B]
type Poll[T] = Ready[T] | NotReady
