"""Queue processor: poll a queue, hand each message to a handler, acknowledge the outcome."""

from queue_processor.errors import (
    ConfigurationError,
    ProcessorError,
    ProcessorStateError,
    RecoverableError,
    TransportError,
    UnrecoverableError,
)
from queue_processor.model import Delete, Message, Recoverable, Requeue, Success, Unrecoverable
from queue_processor.policy import DEFAULT_REQUEUE_DELAY, decide
from queue_processor.processor import Processor, ProcessorState

__all__ = [
    "DEFAULT_REQUEUE_DELAY",
    "ConfigurationError",
    "Delete",
    "Message",
    "Processor",
    "ProcessorError",
    "ProcessorState",
    "ProcessorStateError",
    "Recoverable",
    "RecoverableError",
    "Requeue",
    "Success",
    "TransportError",
    "Unrecoverable",
    "UnrecoverableError",
    "decide",
]
