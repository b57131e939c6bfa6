"""Latency handler for load tests.

Expects a WorkLoad JSON body (the shape queue-load sends) and logs how many
milliseconds passed between its creation and its processing.
"""

import logging
import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field, ValidationError

from queue_processor.handlers.base import BaseHandler
from queue_processor.model import Message, Outcome, Success, Unrecoverable

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkLoad(BaseModel):
    """Body of a load-test message."""

    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    creation: datetime = Field(default_factory=utcnow)


def millis_since(created: datetime, now: datetime | None = None) -> int:
    now = now or utcnow()
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return int((now - created).total_seconds() * 1000)


class Handler(BaseHandler):
    """Logs the end-to-end latency of each workload."""

    def process(self, message: Message) -> Outcome:
        if not message.body:
            return Unrecoverable(reason="Message contains no body")
        try:
            workload = WorkLoad.model_validate_json(message.body)
        except ValidationError as e:
            return Unrecoverable(reason=f"Invalid Workload {e}")
        logger.info(
            "Message %s took %d millis to process",
            workload.message_id,
            millis_since(workload.creation),
        )
        return Success()
