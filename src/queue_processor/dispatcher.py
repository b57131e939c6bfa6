"""Dispatch one fetched message: run the handler, apply the policy, acknowledge.

Every message ends with exactly one transport call (delete or resend), or with
none and a log line when it carries no handle. dispatch never raises; failures
stop at this boundary and are only logged.
"""

import logging

from queue_processor.errors import RecoverableError, TransportError, UnrecoverableError
from queue_processor.handlers.base import BaseHandler
from queue_processor.model import Delete, Message, Outcome, Recoverable, Requeue, Success, Unrecoverable
from queue_processor.policy import AckPolicy, fixed_delay_policy
from queue_processor.transport.base import TransportBase

logger = logging.getLogger(__name__)


def describe(message: Message) -> str:
    return message.id or "<No ID Found>"


class Dispatcher:
    """Runs the handler for a message and issues the matching ack call."""

    def __init__(
        self,
        transport: TransportBase,
        handler: BaseHandler,
        policy: AckPolicy | None = None,
    ) -> None:
        self.transport = transport
        self.handler = handler
        self.policy = policy or fixed_delay_policy()

    def dispatch(self, message: Message) -> None:
        try:
            outcome = self.invoke(message)
            action = self.policy(outcome)
            self.acknowledge(message, outcome, action)
        except Exception:
            # a misbehaving policy must not take the dispatch thread down
            logger.exception("Dispatch of message %s failed", describe(message))

    def invoke(self, message: Message) -> Outcome:
        """Call the handler and normalise whatever it does into an Outcome."""
        try:
            result = self.handler.process(message)
        except RecoverableError as e:
            return Recoverable(reason=str(e) or type(e).__name__)
        except UnrecoverableError as e:
            return Unrecoverable(reason=str(e) or type(e).__name__)
        except Exception as e:
            logger.exception("Handler raised while processing message %s", describe(message))
            return Unrecoverable(reason=f"Handler raised {type(e).__name__}: {e}")

        if result is None:
            return Success()
        if isinstance(result, (Success, Recoverable, Unrecoverable)):
            return result
        return Unrecoverable(reason=f"Handler returned {type(result).__name__}, not an outcome")

    def acknowledge(self, message: Message, outcome: Outcome, action: Delete | Requeue) -> None:
        if message.handle is None:
            logger.error(
                "No receipt handle found for message %s, cannot acknowledge (outcome %s)",
                describe(message),
                outcome.kind,
            )
            return

        match outcome:
            case Success():
                logger.info("Message %s processed", describe(message))
            case Recoverable(reason=reason):
                logger.error("Recoverable from error: %s, message %s", reason, describe(message))
            case Unrecoverable(reason=reason):
                logger.error("No way to recover from error: %s, message %s", reason, describe(message))

        match action:
            case Delete():
                self.delete(message)
            case Requeue(delay_seconds=delay):
                self.requeue(message, delay)
            case _:
                raise TypeError(f"Not an ack action: {action!r}")

    def delete(self, message: Message) -> None:
        try:
            self.transport.delete(message.handle)
        except TransportError as e:
            # the queue redelivers it once the visibility timeout lapses
            logger.error("Could not delete message %s: %s", describe(message), e)
            return
        logger.debug("Deleted message %s", describe(message))

    def requeue(self, message: Message, delay_seconds: int) -> None:
        try:
            self.transport.resend(message.body, delay_seconds)
        except TransportError as e:
            logger.error("Could not requeue message %s: %s", describe(message), e)
            return
        logger.info("Requeued message %s with a %ds delay", describe(message), delay_seconds)
