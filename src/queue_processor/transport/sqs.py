"""Amazon SQS (or a local ElasticMQ server) as the queue service.

Uses boto3 with short polling: ReceiveMessage for fetch, DeleteMessage for
delete and SendMessage with DelaySeconds for resend.
"""

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from queue_processor.config import SQS_MAX_BATCH_SIZE, Settings
from queue_processor.errors import TransportError
from queue_processor.model import Message
from queue_processor.transport.base import TransportBase

logger = logging.getLogger(__name__)

# ElasticMQ accepts any credentials but boto3 refuses to sign without some
LOCAL_ACCESS_KEY = "fakeKey"
LOCAL_SECRET_KEY = "fakeSecret"

METRIC_ATTRIBUTES = [
    "ApproximateNumberOfMessages",
    "ApproximateNumberOfMessagesNotVisible",
    "ApproximateNumberOfMessagesDelayed",
]


def build_sqs_client(settings: Settings):
    """Return a boto3 SQS client for the local endpoint or the configured AWS region."""
    if settings.is_local:
        return boto3.client(
            "sqs",
            region_name=settings.region_name,
            endpoint_url=settings.endpoint_url,
            aws_access_key_id=LOCAL_ACCESS_KEY,
            aws_secret_access_key=LOCAL_SECRET_KEY,
        )
    return boto3.client("sqs", region_name=settings.region_name)


def resolve_queue_url(client, queue: str) -> str:
    """Return queue unchanged if it is already a URL, otherwise look it up by name."""
    if queue.startswith(("http://", "https://")):
        return queue
    try:
        return client.get_queue_url(QueueName=queue)["QueueUrl"]
    except (BotoCoreError, ClientError) as e:
        raise TransportError(f"Could not resolve queue {queue}: {e}") from e


class SqsTransport(TransportBase):
    """Queue transport backed by an SQS queue URL."""

    def __init__(
        self,
        client,
        queue_url: str,
        batch_size: int = SQS_MAX_BATCH_SIZE,
        visibility_timeout: int | None = None,
    ) -> None:
        self.client = client
        self.queue_url = queue_url
        self.queue_name = queue_url.rstrip("/").rsplit("/", 1)[-1]
        self.batch_size = min(batch_size, SQS_MAX_BATCH_SIZE)
        self.visibility_timeout = visibility_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SqsTransport":
        client = build_sqs_client(settings)
        queue_url = resolve_queue_url(client, settings.queue)
        logger.info("Using %s (%s)", settings.describe_target(), queue_url)
        return cls(
            client,
            queue_url,
            batch_size=settings.batch_size,
            visibility_timeout=settings.visibility_timeout,
        )

    def fetch_batch(self) -> list[Message]:
        request: dict[str, Any] = {
            "QueueUrl": self.queue_url,
            "MaxNumberOfMessages": self.batch_size,
            "WaitTimeSeconds": 0,
        }
        if self.visibility_timeout is not None:
            request["VisibilityTimeout"] = self.visibility_timeout
        try:
            response = self.client.receive_message(**request)
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"Error receiving SQS messages from {self.queue_name}: {e}") from e
        return [
            Message(id=m.get("MessageId"), handle=m.get("ReceiptHandle"), body=m.get("Body") or "")
            for m in response.get("Messages", [])
        ]

    def delete(self, handle: str) -> None:
        logger.debug("delete_message called. receipt_handle: %s", handle)
        try:
            self.client.delete_message(QueueUrl=self.queue_url, ReceiptHandle=handle)
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"Error deleting SQS message from {self.queue_name}: {e}") from e

    def resend(self, body: str, delay_seconds: int) -> None:
        try:
            self.client.send_message(
                QueueUrl=self.queue_url,
                MessageBody=body,
                DelaySeconds=delay_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"Error sending SQS message to {self.queue_name}: {e}") from e

    def metrics(self) -> dict[str, Any]:
        try:
            response = self.client.get_queue_attributes(
                QueueUrl=self.queue_url,
                AttributeNames=METRIC_ATTRIBUTES,
            )
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"Error reading SQS attributes of {self.queue_name}: {e}") from e
        attributes = response.get("Attributes", {})
        return {
            "queue_name": self.queue_name,
            "visible": int(attributes.get("ApproximateNumberOfMessages", 0)),
            "in_flight": int(attributes.get("ApproximateNumberOfMessagesNotVisible", 0)),
            "delayed": int(attributes.get("ApproximateNumberOfMessagesDelayed", 0)),
        }

    def close(self) -> None:
        self.client.close()
