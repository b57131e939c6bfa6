"""Base handler interface for queue messages.

A handler receives one Message and returns an Outcome: Success, Recoverable
or Unrecoverable. Raising RecoverableError or UnrecoverableError has the same
effect as returning the matching outcome, and returning None counts as
Success. Any other exception is treated as an unrecoverable handler fault.

The processor calls process from several dispatch threads at once, so
handlers must be thread-safe.
"""

from abc import ABC, abstractmethod
from typing import Callable

from queue_processor.model import Message, Outcome


class BaseHandler(ABC):
    """Abstract base for message handlers."""

    @abstractmethod
    def process(self, message: Message) -> Outcome | None:
        """Do the work for message and report how it went."""


class FunctionHandler(BaseHandler):
    """Adapt a plain function taking a Message into a handler."""

    def __init__(self, fn: Callable[[Message], Outcome | None]) -> None:
        self.fn = fn

    def process(self, message: Message) -> Outcome | None:
        return self.fn(message)

    def __repr__(self) -> str:
        return f"FunctionHandler({getattr(self.fn, '__qualname__', self.fn)!r})"
