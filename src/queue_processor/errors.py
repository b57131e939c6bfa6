"""Error types raised by the processor and its collaborators."""


class ProcessorError(Exception):
    """Base class for errors raised by the queue processor."""


class ConfigurationError(ProcessorError):
    """Bad queue target or a missing required parameter; raised before the consumer starts."""


class TransportError(ProcessorError):
    """A fetch, delete, resend or metrics call against the queue service failed."""


class ProcessorStateError(ProcessorError):
    """A lifecycle transition was requested from a state that does not allow it."""


class RecoverableError(Exception):
    """Raise from a handler to have the message requeued with a delay."""


class UnrecoverableError(Exception):
    """Raise from a handler to have the message dropped (deleted without retry)."""
