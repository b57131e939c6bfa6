"""Tests for the status CLI."""

from unittest import TestCase
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from queue_processor.cli.status import main
from queue_processor.errors import TransportError

CLEAN_ENV = {"QUEUE_PROCESSOR_QUEUE": None, "PGMQ_DSN": None}


class TestStatusCLI(TestCase):
    """Tests for the status CLI command."""

    def setUp(self):
        self.runner = CliRunner()

    def test_status_requires_queue(self):
        result = self.runner.invoke(main, ["--local", "9324"], env=CLEAN_ENV)
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("Missing option", result.output)

    @patch("queue_processor.cli.status.build_transport")
    def test_status_fails_when_queue_does_not_exist(self, mock_build_transport):
        mock_build_transport.side_effect = TransportError("no such queue")
        result = self.runner.invoke(main, ["--queue", "missing", "--local", "9324"], env=CLEAN_ENV)
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("does not exist", result.output)

    @patch("queue_processor.cli.status.build_transport")
    def test_status_prints_metrics(self, mock_build_transport):
        transport = MagicMock()
        transport.metrics.return_value = {"queue_name": "my-queue", "visible": 5, "in_flight": 0, "delayed": 1}
        mock_build_transport.return_value = transport

        result = self.runner.invoke(main, ["--queue", "my-queue", "--local", "9324"], env=CLEAN_ENV)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Queue status", result.output)
        transport.metrics.assert_called_once_with()
        transport.close.assert_called_once()

    @patch("queue_processor.cli.status.build_transport")
    def test_status_metrics_error(self, mock_build_transport):
        transport = mock_build_transport.return_value
        transport.metrics.side_effect = TransportError("access denied")
        result = self.runner.invoke(main, ["--queue", "q1", "--local", "9324"], env=CLEAN_ENV)
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("access denied", result.output)
        transport.close.assert_called_once()
