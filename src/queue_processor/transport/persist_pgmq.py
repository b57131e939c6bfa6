"""PostgreSQL-backed queue transport using PGMQ.

Uses the pgmq library to read batches of messages with a visibility timeout,
delete them by id and send delayed copies. pgmq stores JSON documents, so
bodies are JSON text on the way out and must be JSON text on the way back in.
"""

import json
import logging
from typing import Any
from urllib.parse import urlparse

import psycopg
from pgmq import PGMQueue
from pydantic import PostgresDsn

from queue_processor.config import Settings
from queue_processor.errors import TransportError
from queue_processor.model import Message
from queue_processor.transport.base import TransportBase

logger = logging.getLogger(__name__)


class PersistPGMQ(TransportBase):
    """Queue transport implementation using PGMQ (PostgreSQL Message Queue).

    Connects via a Postgres DSN and delegates to PGMQueue. The message id
    doubles as the acknowledgment handle.
    """

    def __init__(
        self,
        dsn: PostgresDsn | str,
        queue_name: str,
        batch_size: int = 10,
        visibility_timeout: int = 30,
    ) -> None:
        """Connect to PostgreSQL using the given DSN."""
        # parse as a standard URL; PGMQueue wants the parts, not a conninfo string
        parts = urlparse(str(dsn))

        # noinspection PyTypeChecker
        self.queue = PGMQueue(
            host=parts.hostname or "localhost",
            port=str(parts.port or 5432),
            database=parts.path.lstrip("/"),
            username=parts.username,
            password=parts.password,
        )
        self.queue_name = queue_name
        self.batch_size = batch_size
        self.visibility_timeout = visibility_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "PersistPGMQ":
        logger.info("Using %s", settings.describe_target())
        return cls(
            dsn=settings.pgmq_dsn,
            queue_name=settings.queue,
            batch_size=settings.batch_size,
            visibility_timeout=settings.visibility_timeout,
        )

    def fetch_batch(self) -> list[Message]:
        try:
            messages = self.queue.read_batch(
                queue=self.queue_name,
                vt=self.visibility_timeout,
                batch_size=self.batch_size,
            )
        except psycopg.Error as e:
            raise TransportError(f"Error reading from pgmq queue {self.queue_name}: {e}") from e
        return [
            Message(id=str(m.msg_id), handle=str(m.msg_id), body=json.dumps(m.message))
            for m in messages or []
        ]

    def delete(self, handle: str) -> None:
        """Permanently delete the message whose id is handle."""
        try:
            self.queue.delete(queue=self.queue_name, msg_id=int(handle))
        except psycopg.Error as e:
            raise TransportError(f"Error deleting message {handle} from {self.queue_name}: {e}") from e

    def resend(self, body: str, delay_seconds: int) -> None:
        """Send a new copy of body, hidden for delay_seconds."""
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise TransportError(f"pgmq messages must be JSON, cannot resend: {body!r}") from e
        try:
            self.queue.send(queue=self.queue_name, message=payload, delay=delay_seconds)
        except psycopg.Error as e:
            raise TransportError(f"Error sending to pgmq queue {self.queue_name}: {e}") from e

    def metrics(self) -> Any:
        """Get pgmq metrics (queue length, message ages, total messages) for the queue."""
        try:
            return self.queue.metrics(self.queue_name)
        except psycopg.Error as e:
            raise TransportError(f"Error reading metrics of {self.queue_name}: {e}") from e

    def close(self) -> None:
        """Close the connection pool."""
        if hasattr(self.queue, "pool") and self.queue.pool:
            self.queue.pool.close()
