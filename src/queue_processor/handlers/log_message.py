"""Default handler: log the body and report success."""

import logging

from queue_processor.handlers.base import BaseHandler
from queue_processor.model import Message, Success

logger = logging.getLogger(__name__)


class Handler(BaseHandler):
    """Logs every message it receives."""

    def process(self, message: Message) -> Success:
        if message.body:
            logger.info("Received message %s: %s", message.id or "<No ID Found>", message.body)
        else:
            logger.info("Message %s had no workload", message.id or "<No ID Found>")
        return Success()
