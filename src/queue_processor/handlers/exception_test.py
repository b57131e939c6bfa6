"""Exception-test handler.

Used to verify that a handler fault is caught, logged and the message
deleted instead of crashing the consumer.
"""

from queue_processor.handlers.base import BaseHandler
from queue_processor.model import Message


class Handler(BaseHandler):
    """Handler that always raises."""

    def process(self, message: Message) -> None:
        """Raise to test fault handling."""
        raise Exception("Testing Handle Exception")
