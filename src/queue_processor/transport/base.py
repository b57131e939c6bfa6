"""Abstract base for queue transports.

A transport is bound to one queue when it is built and is never mutated after
that, so the poll loop and every dispatch thread share a single instance
without locking. Implementations convert their client library's errors into
TransportError.
"""

from abc import ABC, abstractmethod
from typing import Any

from queue_processor.model import Message


class TransportBase(ABC):
    """Fetch, delete and resend against one named queue."""

    queue_name: str

    @abstractmethod
    def fetch_batch(self) -> list[Message]:
        """Return up to the configured batch size of pending messages. An empty list is not an error."""

    @abstractmethod
    def delete(self, handle: str) -> None:
        """Permanently delete the delivery identified by handle."""

    @abstractmethod
    def resend(self, body: str, delay_seconds: int) -> None:
        """Enqueue body as a new message, visible after delay_seconds. Leaves existing messages alone."""

    @abstractmethod
    def metrics(self) -> Any:
        """Return backend-specific counters for the queue (e.g. visible, in flight)."""

    def close(self) -> None:
        """Release connections; call when done to avoid shutdown warnings."""
        return None

    def __enter__(self) -> "TransportBase":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
