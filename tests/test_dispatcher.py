"""Tests for the Dispatcher."""

from unittest import TestCase
from unittest.mock import MagicMock

from queue_processor.dispatcher import Dispatcher
from queue_processor.errors import RecoverableError, TransportError, UnrecoverableError
from queue_processor.handlers.base import FunctionHandler
from queue_processor.model import Message, Recoverable, Success, Unrecoverable
from queue_processor.policy import DEFAULT_REQUEUE_DELAY, fixed_delay_policy
from queue_processor.transport.base import TransportBase

MESSAGE = Message(id="m-1", handle="handle-1", body='{"msg": "ok"}')


def returning(value):
    return FunctionHandler(lambda message: value)


def raising(error):
    def fn(message):
        raise error

    return FunctionHandler(fn)


class DispatcherTestCase(TestCase):
    def setUp(self):
        self.transport = MagicMock(spec=TransportBase)

    def dispatch(self, handler, message=MESSAGE, policy=None):
        Dispatcher(self.transport, handler, policy).dispatch(message)


class TestDispatchOutcomes(DispatcherTestCase):
    """One ack call per outcome."""

    def test_success_deletes_once(self):
        self.dispatch(returning(Success()))
        self.transport.delete.assert_called_once_with("handle-1")
        self.transport.resend.assert_not_called()

    def test_unrecoverable_deletes_once(self):
        self.dispatch(returning(Unrecoverable(reason="malformed")))
        self.transport.delete.assert_called_once_with("handle-1")
        self.transport.resend.assert_not_called()

    def test_recoverable_resends_body_with_default_delay(self):
        self.dispatch(returning(Recoverable(reason="busy")))
        self.transport.resend.assert_called_once_with('{"msg": "ok"}', DEFAULT_REQUEUE_DELAY)
        self.transport.delete.assert_not_called()

    def test_recoverable_uses_policy_delay(self):
        self.dispatch(returning(Recoverable(reason="busy")), policy=fixed_delay_policy(42))
        self.transport.resend.assert_called_once_with('{"msg": "ok"}', 42)

    def test_none_counts_as_success(self):
        self.dispatch(returning(None))
        self.transport.delete.assert_called_once_with("handle-1")
        self.transport.resend.assert_not_called()

    def test_unexpected_return_value_counts_as_unrecoverable(self):
        self.dispatch(returning("done"))
        self.transport.delete.assert_called_once_with("handle-1")
        self.transport.resend.assert_not_called()


class TestHandlerExceptions(DispatcherTestCase):
    """Exceptions from the handler map to outcomes and never escape."""

    def test_crash_is_deleted_and_logged(self):
        with self.assertLogs("queue_processor.dispatcher", level="ERROR") as logs:
            self.dispatch(raising(ValueError("boom")))
        self.transport.delete.assert_called_once_with("handle-1")
        self.transport.resend.assert_not_called()
        self.assertTrue(any("Handler raised" in line for line in logs.output))

    def test_recoverable_error_requeues(self):
        self.dispatch(raising(RecoverableError("try later")))
        self.transport.resend.assert_called_once_with('{"msg": "ok"}', DEFAULT_REQUEUE_DELAY)
        self.transport.delete.assert_not_called()

    def test_unrecoverable_error_deletes(self):
        self.dispatch(raising(UnrecoverableError("never")))
        self.transport.delete.assert_called_once_with("handle-1")
        self.transport.resend.assert_not_called()

    def test_invoke_synthesises_reason(self):
        dispatcher = Dispatcher(self.transport, raising(KeyError("field")))
        with self.assertLogs("queue_processor.dispatcher", level="ERROR"):
            outcome = dispatcher.invoke(MESSAGE)
        self.assertIsInstance(outcome, Unrecoverable)
        self.assertIn("KeyError", outcome.reason)

    def test_invoke_uses_exception_name_when_message_empty(self):
        outcome = Dispatcher(self.transport, raising(RecoverableError())).invoke(MESSAGE)
        self.assertEqual(outcome, Recoverable(reason="RecoverableError"))


class TestMissingHandle(DispatcherTestCase):
    """Without a handle nothing is acknowledged, whatever the outcome."""

    def test_no_ack_calls_for_any_outcome(self):
        message = Message(id="m-2", handle=None, body="{}")
        for handler in (
            returning(Success()),
            returning(Recoverable(reason="busy")),
            returning(Unrecoverable(reason="bad")),
            raising(RuntimeError("boom")),
        ):
            with self.subTest(handler=handler):
                with self.assertLogs("queue_processor.dispatcher", level="ERROR") as logs:
                    self.dispatch(handler, message=message)
                self.assertTrue(any("No receipt handle" in line for line in logs.output))
        self.transport.delete.assert_not_called()
        self.transport.resend.assert_not_called()


class TestTransportFailures(DispatcherTestCase):
    """Transport errors are logged and stop at the dispatcher."""

    def test_delete_failure_is_logged_not_raised(self):
        self.transport.delete.side_effect = TransportError("network down")
        with self.assertLogs("queue_processor.dispatcher", level="ERROR") as logs:
            self.dispatch(returning(Success()))
        self.transport.delete.assert_called_once_with("handle-1")
        self.transport.resend.assert_not_called()
        self.assertTrue(any("Could not delete" in line for line in logs.output))

    def test_resend_failure_is_logged_not_raised(self):
        self.transport.resend.side_effect = TransportError("network down")
        with self.assertLogs("queue_processor.dispatcher", level="ERROR") as logs:
            self.dispatch(returning(Recoverable(reason="busy")))
        self.transport.resend.assert_called_once()
        self.transport.delete.assert_not_called()
        self.assertTrue(any("Could not requeue" in line for line in logs.output))

    def test_failing_policy_is_logged_not_raised(self):
        def policy(outcome):
            raise RuntimeError("bad policy")

        with self.assertLogs("queue_processor.dispatcher", level="ERROR") as logs:
            self.dispatch(returning(Success()), policy=policy)
        self.transport.delete.assert_not_called()
        self.transport.resend.assert_not_called()
        self.assertTrue(any("Dispatch of message m-1 failed" in line for line in logs.output))
