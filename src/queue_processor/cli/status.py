"""Show the status of a queue.

CLI that prints metrics (e.g. message counts) for a given queue.
"""

import click
from icecream import ic

from queue_processor.cli.options import load_settings, target_options
from queue_processor.errors import TransportError
from queue_processor.transport import build_transport


@click.command()
@target_options
def main(**target: str) -> None:
    """Print metrics for the specified queue (visible, in flight, delayed, ...)."""
    click.echo("Queue status")

    settings = load_settings(**target)
    try:
        transport = build_transport(settings)
    except TransportError as e:
        raise click.ClickException(f"Queue {target['queue']} does not exist or cannot be reached: {e}") from e
    try:
        metrics = transport.metrics()
        ic(metrics)
    except TransportError as e:
        raise click.ClickException(str(e)) from e
    finally:
        transport.close()


if __name__ == "__main__":
    main()
