"""Queue message and handler outcome types.

Message is what a transport hands to the dispatcher. Outcome (Success,
Recoverable, Unrecoverable) is what a handler returns, and AckAction (Delete,
Requeue) is what the acknowledgment policy decides from it. All of them are
immutable values, safe to pass between dispatch threads.
"""

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """One unit of work fetched from the queue.

    The handle is present only while the message is in flight; the body is
    opaque and decoded, if at all, by the handler.
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(None, description="Queue-assigned identifier")
    handle: str | None = Field(None, description="Acknowledgment token for this delivery")
    body: str = Field("", description="Opaque payload")


class Success(BaseModel):
    """The handler finished the work."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"


class Recoverable(BaseModel):
    """Transient failure; the message should be retried later."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["recoverable"] = "recoverable"
    reason: str


class Unrecoverable(BaseModel):
    """Permanent failure; the message should be dropped."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["unrecoverable"] = "unrecoverable"
    reason: str


Outcome = Union[Success, Recoverable, Unrecoverable]


class Delete(BaseModel):
    """Remove the delivery from the queue."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["delete"] = "delete"


class Requeue(BaseModel):
    """Send the body again as a new entry, visible after delay_seconds."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["requeue"] = "requeue"
    delay_seconds: int = Field(..., ge=0, le=900, description="Delay before the copy becomes visible")


AckAction = Union[Delete, Requeue]
