"""Acknowledgment policy: map a handler outcome to what happens to the message.

This is the only place where retry-vs-drop is decided. A different policy is a
different callable with the same signature handed to the Processor; the
dispatcher never looks at outcomes itself.
"""

from typing import Callable

from queue_processor.model import AckAction, Delete, Outcome, Recoverable, Requeue, Success, Unrecoverable

# seconds before a requeued copy becomes visible again
DEFAULT_REQUEUE_DELAY = 10

AckPolicy = Callable[[Outcome], AckAction]


def decide(outcome: Outcome, requeue_delay: int = DEFAULT_REQUEUE_DELAY) -> AckAction:
    """Return Delete for Success and Unrecoverable, Requeue(requeue_delay) for Recoverable."""
    match outcome:
        case Success() | Unrecoverable():
            return Delete()
        case Recoverable():
            return Requeue(delay_seconds=requeue_delay)
        case _:
            raise TypeError(f"Not a handler outcome: {outcome!r}")


def fixed_delay_policy(requeue_delay: int = DEFAULT_REQUEUE_DELAY) -> AckPolicy:
    """Build the default policy with the given requeue delay bound in."""

    def policy(outcome: Outcome) -> AckAction:
        return decide(outcome, requeue_delay=requeue_delay)

    return policy
