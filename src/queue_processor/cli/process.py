"""Process messages from a queue until told to stop.

This module provides a CLI that starts a Processor against one queue with the
given handler, then waits for SIGINT/SIGTERM (or --max-runtime) and shuts it
down gracefully, letting in-flight messages finish.
"""

from typing import Any

import click

from queue_processor.cli.options import load_settings, setup_logging, target_options, wait_for_shutdown
from queue_processor.errors import ConfigurationError, TransportError
from queue_processor.handlers import DEFAULT_HANDLER, load_handler
from queue_processor.processor import Processor
from queue_processor.transport import build_transport


@click.command()
@target_options
@click.option(
    "--handler",
    "handler_module",
    type=str,
    default=DEFAULT_HANDLER,
    show_default=True,
    help="Dotted path of a module exposing a Handler class",
)
@click.option(
    "--handlers-path",
    type=str,
    multiple=True,
    help="A directory to add to the import path for handlers, can be used multiple times",
)
@click.option("--poll-interval", type=float, required=False, help="Seconds between fetches (default 0.1)")
@click.option("--requeue-delay", type=int, required=False, help="Delay in seconds for requeued messages (default 10)")
@click.option("--batch-size", type=int, required=False, help="Maximum messages per fetch, 1-10")
@click.option(
    "--visibility-timeout",
    type=int,
    required=False,
    help="Visibility timeout in seconds for fetched messages",
)
@click.option("--max-workers", type=int, required=False, help="Number of concurrent dispatch threads")
@click.option(
    "--drain-timeout",
    type=float,
    required=False,
    help="Seconds to wait for in-flight messages on shutdown",
)
@click.option(
    "--max-runtime",
    type=float,
    default=0,
    help="Stop after this many seconds, 0 runs until interrupted",
)
@click.option("--log-level", type=str, required=False, help="DEBUG, INFO, WARNING or ERROR")
def main(**kwargs: Any) -> None:
    """Process messages from the given queue.

    Each fetched message is handed to the handler on its own thread. Success
    and unrecoverable failures delete the message; recoverable failures send
    a delayed copy back to the queue.
    """
    max_runtime = kwargs.pop("max_runtime")
    handler_module = kwargs.pop("handler_module")
    handlers_path = list(kwargs.pop("handlers_path"))

    settings = load_settings(**kwargs)
    setup_logging(settings.log_level)

    try:
        handler = load_handler(handler_module, handlers_path=handlers_path)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    try:
        transport = build_transport(settings)
    except TransportError as e:
        raise click.ClickException(f"Cannot open {settings.describe_target()}: {e}") from e

    try:
        processor = Processor(settings, handler, transport=transport)
        click.secho(f"Processing {settings.describe_target()} with {handler_module}", fg="green")
        processor.start()
        reason = wait_for_shutdown(max_runtime)
        click.echo(f"Shutting down ({reason})")
        if not processor.stop():
            click.secho(
                "Some messages were still being processed; they will reappear after their visibility timeout",
                err=True,
                fg="red",
            )
    finally:
        transport.close()


if __name__ == "__main__":
    main()
