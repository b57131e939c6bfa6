"""Handler used by the end-to-end CLI tests; accepts every message."""

from queue_processor.handlers.base import BaseHandler
from queue_processor.model import Success


class Handler(BaseHandler):
    def process(self, message):
        return Success()
