"""Queue transports and the factory that picks one from settings."""

from queue_processor.config import Settings
from queue_processor.transport.base import TransportBase


def build_transport(settings: Settings) -> TransportBase:
    """Construct the transport for settings.backend, bound to settings.queue."""
    if settings.backend == "pgmq":
        from queue_processor.transport.persist_pgmq import PersistPGMQ

        return PersistPGMQ.from_settings(settings)

    from queue_processor.transport.sqs import SqsTransport

    return SqsTransport.from_settings(settings)


__all__ = ["TransportBase", "build_transport"]
