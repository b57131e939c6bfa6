"""Options and helpers shared by the command line entry points."""

import logging
import os
import signal
import threading
from typing import Any, Callable

import click
import dotenv

from queue_processor.config import Settings, get_settings
from queue_processor.errors import ConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def target_options(fn: Callable) -> Callable:
    """Add the options that select the queue and where it lives."""
    decorators = [
        click.option(
            "--queue",
            "-q",
            type=str,
            required=True,
            envvar="QUEUE_PROCESSOR_QUEUE",
            help="The name (or SQS URL) of the queue",
        ),
        click.option(
            "--local",
            "-l",
            "local_port",
            type=int,
            required=False,
            help="Run against a local ElasticMQ server running on PORT",
        ),
        click.option(
            "--local-host",
            type=str,
            required=False,
            help="Host of the local ElasticMQ server (default localhost)",
        ),
        click.option("--region", "-r", type=str, required=False, help="The AWS region of the SQS queue"),
        click.option(
            "--backend",
            type=click.Choice(["sqs", "pgmq"]),
            required=False,
            help="Queue service to use, default sqs",
        ),
        click.option("--dsn", "pgmq_dsn", type=str, required=False, help="The DSN of the pgmq database"),
    ]
    for decorator in reversed(decorators):
        fn = decorator(fn)
    return fn


def load_settings(**options: Any) -> Settings:
    """Build settings from CLI options, the environment and a .env file if present.

    Raises:
        click.ClickException: On any configuration error, so the process exits non-zero.
    """
    if os.path.exists(".env"):
        dotenv.load_dotenv()
    try:
        return get_settings(**options)
    except ConfigurationError as e:
        raise click.ClickException(f"Configuration error: {e}") from e


def setup_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def wait_for_shutdown(max_runtime: float | None = None) -> str:
    """Block until SIGINT/SIGTERM arrives or max_runtime seconds pass.

    Returns the reason: the signal name, or "max-runtime".
    """
    stop_requested = threading.Event()
    reason = {"value": "max-runtime"}

    def on_signal(signum: int, frame: Any) -> None:
        reason["value"] = signal.Signals(signum).name
        stop_requested.set()

    previous = {sig: signal.signal(sig, on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        stop_requested.wait(max_runtime or None)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    return reason["value"]
