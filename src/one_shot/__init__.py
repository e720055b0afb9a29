"""Bridges one-shot callback completions into pollable continuations."""

__version__ = "0.1.0"

from one_shot.completer import Completer
from one_shot.continuation import Continuation
from one_shot.exceptions import ProtocolViolation
from one_shot.shared import SharedCompletion
from one_shot.typedefs import NotReady, Ready, not_ready

__all__ = [
    "Completer",
    "Continuation",
    "NotReady",
    "ProtocolViolation",
    "Ready",
    "SharedCompletion",
    "not_ready",
]
