"""Generate load against a queue and measure processing latency.

Starts a Processor with the latency handler, sends --count workloads stamped
with their creation time, lets the processor work for --settle seconds and
stops it. Each processed message logs how long it took end to end.
"""

import time

import click

from queue_processor.cli.options import load_settings, setup_logging, target_options
from queue_processor.errors import TransportError
from queue_processor.handlers.latency import Handler as LatencyHandler
from queue_processor.handlers.latency import WorkLoad
from queue_processor.processor import Processor
from queue_processor.transport import build_transport


@click.command()
@target_options
@click.option("--count", type=click.IntRange(min=1), default=100, show_default=True, help="Messages to send")
@click.option(
    "--settle",
    type=float,
    default=5.0,
    show_default=True,
    help="Seconds to keep processing after the last send",
)
@click.option("--log-level", type=str, required=False, help="DEBUG, INFO, WARNING or ERROR")
def main(count: int, settle: float, log_level: str | None, **target: str) -> None:
    """Send COUNT workloads while a processor consumes them."""
    settings = load_settings(log_level=log_level, **target)
    setup_logging(settings.log_level)

    try:
        transport = build_transport(settings)
    except TransportError as e:
        raise click.ClickException(f"Cannot open {settings.describe_target()}: {e}") from e

    processor = Processor(settings, LatencyHandler(), transport=transport)
    try:
        processor.start()
        sent = 0
        for _ in range(count):
            try:
                transport.resend(WorkLoad().model_dump_json(), 0)
                sent += 1
            except TransportError as e:
                click.secho(f"Error sending message: {e}", err=True, fg="red")
        click.echo(f"Sent {sent}/{count} messages, processing for {settle}s")
        time.sleep(settle)
    finally:
        processor.stop()
        transport.close()


if __name__ == "__main__":
    main()
