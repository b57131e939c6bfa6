"""Enqueue a message to a queue.

CLI that validates a JSON message and sends it to the queue, optionally delayed.
"""

import json

import click

from queue_processor.cli.options import load_settings, target_options
from queue_processor.errors import TransportError
from queue_processor.transport import build_transport


@click.command()
@target_options
@click.option("--message", type=str, required=True, help="The message to enqueue (JSON)")
@click.option("--delay", type=click.IntRange(0, 900), default=0, help="Seconds before the message becomes visible")
def main(message: str, delay: int, **target: str) -> None:
    """Enqueue a JSON message to the specified queue."""
    click.echo(f"queue: {target['queue']}")
    click.echo(f"message: {message}")
    try:
        json.loads(message)
    except json.JSONDecodeError as err:
        raise click.ClickException(f"Invalid JSON: {message}") from err

    settings = load_settings(**target)
    try:
        transport = build_transport(settings)
    except TransportError as e:
        raise click.ClickException(f"Cannot open {settings.describe_target()}: {e}") from e
    try:
        transport.resend(message, delay)
        click.echo(f"Message enqueued to {transport.queue_name}")
    except TransportError as e:
        raise click.ClickException(f"Error: {e}") from e
    finally:
        transport.close()


if __name__ == "__main__":
    """Entry point for the enqueue CLI."""
    main()
