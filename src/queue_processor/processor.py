"""Poll a queue on a fixed interval and dispatch every message concurrently.

Lifecycle: Created -> Running -> Stopping -> Stopped.

start() runs the poll loop on a background thread and returns immediately.
Each tick fetches one batch and submits every message to a thread pool, then
sleeps for what is left of the interval; slow handlers never delay the next
fetch. stop() ends the poll loop, stops submitting new dispatches and waits up
to drain_timeout for the ones already submitted.

A failed fetch is logged and retried with exponential backoff (capped at
fetch_backoff_max); it never ends the loop.

Usage:
    processor = Processor(get_settings(queue="jobs", local_port=9324), MyHandler())
    processor.start()
    ...
    processor.stop()
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from enum import Enum

from queue_processor.config import Settings
from queue_processor.dispatcher import Dispatcher, describe
from queue_processor.errors import ProcessorStateError
from queue_processor.handlers.base import BaseHandler
from queue_processor.model import Message
from queue_processor.policy import AckPolicy, fixed_delay_policy
from queue_processor.transport import TransportBase, build_transport

logger = logging.getLogger(__name__)


class ProcessorState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class Processor:
    """Consumer for one queue.

    To build one you need settings (queue target and tuning) and a handler
    that is safe to call from several threads. A transport and an ack policy
    may be passed in; by default they are built from settings.
    """

    def __init__(
        self,
        settings: Settings,
        handler: BaseHandler,
        transport: TransportBase | None = None,
        policy: AckPolicy | None = None,
    ) -> None:
        self.settings = settings
        self.transport = transport or build_transport(settings)
        self.dispatcher = Dispatcher(
            self.transport,
            handler,
            policy or fixed_delay_policy(settings.requeue_delay),
        )
        self._state = ProcessorState.CREATED
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._poll_thread: threading.Thread | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._futures: set[Future] = set()
        self._futures_lock = threading.Lock()
        self._fetch_failures = 0

    @property
    def state(self) -> ProcessorState:
        return self._state

    @property
    def outstanding(self) -> int:
        """Number of dispatches submitted and not yet finished."""
        with self._futures_lock:
            return len(self._futures)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start polling on a background thread and return immediately."""
        with self._state_lock:
            if self._state not in (ProcessorState.CREATED, ProcessorState.STOPPED):
                raise ProcessorStateError(f"Cannot start a processor that is {self._state.value}")
            # each run gets its own event; a poll thread left inside a fetch by an
            # earlier stop() still sees its own event set
            self._stop_event = threading.Event()
            self._fetch_failures = 0
            self._executor = ThreadPoolExecutor(
                max_workers=self.settings.max_workers,
                thread_name_prefix=f"dispatch-{self.transport.queue_name}",
            )
            self._poll_thread = threading.Thread(
                target=self.run,
                args=(self._stop_event,),
                name=f"poll-{self.transport.queue_name}",
                daemon=True,
            )
            self._state = ProcessorState.RUNNING
            self._poll_thread.start()
        logger.info(
            "Processor started queue=%s interval=%.3fs workers=%d",
            self.transport.queue_name,
            self.settings.poll_interval,
            self.settings.max_workers,
        )

    def stop(self, timeout: float | None = None) -> bool:
        """Stop polling and wait for in-flight dispatches.

        Args:
            timeout: Seconds to wait for the drain; defaults to settings.drain_timeout.

        Returns:
            True if every dispatch finished, False if some were still running
            when the timeout expired (or if the processor was not running).
        """
        with self._state_lock:
            if self._state is not ProcessorState.RUNNING:
                logger.warning("stop() ignored, processor is %s", self._state.value)
                return False
            self._state = ProcessorState.STOPPING
        drain_timeout = self.settings.drain_timeout if timeout is None else timeout
        logger.info("Processor stopping queue=%s", self.transport.queue_name)

        self._stop_event.set()
        self._poll_thread.join(timeout=max(drain_timeout, self.settings.poll_interval))
        if self._poll_thread.is_alive():
            logger.warning("Poll thread still inside a fetch call after %.1fs", drain_timeout)

        drained = self._drain(drain_timeout)
        self._executor.shutdown(wait=False, cancel_futures=True)

        with self._state_lock:
            self._state = ProcessorState.STOPPED
        logger.info("Processor stopped queue=%s drained=%s", self.transport.queue_name, drained)
        return drained

    def _drain(self, timeout: float) -> bool:
        with self._futures_lock:
            pending = set(self._futures)
        if not pending:
            return True
        logger.info("Waiting up to %.1fs for %d in-flight dispatches", timeout, len(pending))
        _, not_done = wait(pending, timeout=timeout)
        if not_done:
            logger.warning("%d dispatches still outstanding after the drain timeout", len(not_done))
            return False
        return True

    # -------------------------------------------------------------------------
    # Poll loop
    # -------------------------------------------------------------------------

    def run(self, stop_event: threading.Event | None = None) -> None:
        """Poll until stop_event (by default the current run's) is set. Runs on the poll thread."""
        if self._executor is None:
            raise ProcessorStateError("run() needs a started processor; call start()")
        stop_event = stop_event or self._stop_event
        interval = self.settings.poll_interval
        while not stop_event.is_set():
            tick = time.monotonic()
            if not self.poll_once(stop_event):
                stop_event.wait(self.fetch_backoff())
                continue
            stop_event.wait(max(0.0, interval - (time.monotonic() - tick)))
        logger.debug("Poll loop exited queue=%s", self.transport.queue_name)

    def poll_once(self, stop_event: threading.Event | None = None) -> bool:
        """Fetch one batch and fan it out. Returns False if the fetch failed."""
        stop_event = stop_event or self._stop_event
        logger.debug("Timer task is starting")
        try:
            messages = self.transport.fetch_batch()
        except Exception:
            if stop_event.is_set():
                logger.debug("Fetch failed after stop was requested", exc_info=True)
                return False
            self._fetch_failures += 1
            logger.exception(
                "Error fetching messages queue=%s attempt=%d retry_in=%.2fs",
                self.transport.queue_name,
                self._fetch_failures,
                self.fetch_backoff(),
            )
            return False
        if stop_event.is_set():
            if messages:
                logger.warning(
                    "Stopped during fetch; %d messages left for the visibility timeout",
                    len(messages),
                )
            return True
        self._fetch_failures = 0

        if not messages:
            logger.debug("No messages received for queue %s", self.transport.queue_name)
            return True
        logger.debug("Fetched %d messages from %s", len(messages), self.transport.queue_name)
        self._fan_out(messages, stop_event)
        return True

    def fetch_backoff(self) -> float:
        """Seconds to wait after the current run of consecutive fetch failures."""
        exponent = max(0, self._fetch_failures - 1)
        return min(self.settings.fetch_backoff_max, self.settings.fetch_backoff_base * 2**exponent)

    def _fan_out(self, messages: list[Message], stop_event: threading.Event) -> None:
        for index, message in enumerate(messages):
            if stop_event.is_set():
                skipped = len(messages) - index
                logger.warning(
                    "Stopping; %d fetched messages left for the visibility timeout",
                    skipped,
                )
                return
            self._submit(message)

    def _submit(self, message: Message) -> None:
        try:
            future = self._executor.submit(self.dispatcher.dispatch, message)
        except RuntimeError:
            # executor already shut down by stop()
            logger.warning("Dispatch pool closed; message %s left for redelivery", describe(message))
            return
        with self._futures_lock:
            self._futures.add(future)
        future.add_done_callback(self._reap)

    def _reap(self, future: Future) -> None:
        with self._futures_lock:
            self._futures.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error("Dispatch crashed: %r", error)
