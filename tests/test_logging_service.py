"""
Tests for the logging service, JSON formatter and performance monitor.
"""
import json
import logging
import os
import shutil
import sys
import tempfile
import unittest

from certkeeper.models.config import Config
from certkeeper.security.certificate_service import log_event
from certkeeper.security.models import CertificateEvent
from certkeeper.services.logging_service import JSONFormatter, LoggingService, PerformanceMonitor


class TestJSONFormatter(unittest.TestCase):
    """Test JSON formatter for structured logging."""

    def setUp(self):
        """Set up test fixtures."""
        self.formatter = JSONFormatter()
        self.logger = logging.getLogger('test')

    def test_format_basic_log_record(self):
        record = self.logger.makeRecord(
            name='test.module',
            level=logging.INFO,
            fn='test_file.py',
            lno=42,
            msg='Test message',
            args=(),
            exc_info=None
        )

        log_data = json.loads(self.formatter.format(record))

        self.assertEqual(log_data['level'], 'INFO')
        self.assertEqual(log_data['logger_name'], 'test.module')
        self.assertEqual(log_data['message'], 'Test message')
        self.assertEqual(log_data['line_number'], 42)
        self.assertIsNone(log_data['extra_data'])
        self.assertIsNone(log_data['exception_info'])

    def test_format_with_extra_data(self):
        record = self.logger.makeRecord(
            name='test', level=logging.INFO, fn='f.py', lno=1,
            msg='Certificate event', args=(), exc_info=None,
            extra={'extra_data': {'event': 'certificate.generated', 'validity_days': 365}}
        )

        log_data = json.loads(self.formatter.format(record))

        self.assertEqual(log_data['extra_data'], {'event': 'certificate.generated', 'validity_days': 365})

    def test_format_with_exception(self):
        try:
            raise ValueError("bad certificate")
        except ValueError:
            exc_info = sys.exc_info()

        record = self.logger.makeRecord(
            name='test', level=logging.ERROR, fn='f.py', lno=1,
            msg='Failure', args=(), exc_info=exc_info
        )

        log_data = json.loads(self.formatter.format(record))

        self.assertEqual(log_data['exception_info']['type'], 'ValueError')
        self.assertEqual(log_data['exception_info']['message'], 'bad certificate')


class TestPerformanceMonitor(unittest.TestCase):
    """Test performance measurement."""

    def setUp(self):
        self.monitor = PerformanceMonitor()

    def test_measure_successful_operation(self):
        with self.monitor.measure_operation('prepare_certificates', {'certs_path': 'certs'}):
            pass

        timings = self.monitor.get_metrics('prepare_certificates')
        self.assertEqual(len(timings), 1)
        self.assertTrue(timings[0].success)
        self.assertGreaterEqual(timings[0].duration_ms, 0)
        self.assertEqual(timings[0].details, {'certs_path': 'certs'})

    def test_measure_failed_operation(self):
        with self.assertRaises(RuntimeError):
            with self.monitor.measure_operation('prepare_certificates'):
                raise RuntimeError("generation failed")

        timing = self.monitor.get_metrics('prepare_certificates')[0]
        self.assertFalse(timing.success)
        self.assertEqual(timing.error_message, "generation failed")

    def test_failed_operation_is_logged_as_warning(self):
        with self.assertLogs('certkeeper.services.logging_service', level='WARNING') as cm:
            with self.assertRaises(ValueError):
                with self.monitor.measure_operation('load_custom'):
                    raise ValueError("bad key")

        self.assertIn("load_custom failed", cm.output[0])

    def test_operation_stats(self):
        with self.monitor.measure_operation('op'):
            pass
        with self.assertRaises(ValueError):
            with self.monitor.measure_operation('op'):
                raise ValueError("boom")

        stats = self.monitor.get_operation_stats('op')

        self.assertEqual(stats['total_calls'], 2)
        self.assertEqual(stats['failure_count'], 1)
        self.assertEqual(stats['last_error'], "boom")
        self.assertGreaterEqual(stats['max_duration_ms'], stats['last_duration_ms'])
        self.assertEqual(self.monitor.get_operation_stats('unknown'), {})


class TestLoggingService(unittest.TestCase):
    """Test logging service setup."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.root_logger = logging.getLogger()
        self.saved_handlers = self.root_logger.handlers[:]
        self.saved_level = self.root_logger.level
        self.config = Config(
            log_level='DEBUG',
            log_file_path=os.path.join(self.temp_dir, 'logs', 'certkeeper.log')
        )

    def tearDown(self):
        """Restore root logger and clean up."""
        for handler in self.root_logger.handlers[:]:
            handler.close()
            self.root_logger.removeHandler(handler)
        for handler in self.saved_handlers:
            self.root_logger.addHandler(handler)
        self.root_logger.setLevel(self.saved_level)
        shutil.rmtree(self.temp_dir)

    def test_creates_log_directory_and_json_file(self):
        LoggingService(self.config)

        log_event(CertificateEvent('certificate.generated', {'cert_path': '/certs/server.crt'}))
        for handler in self.root_logger.handlers:
            handler.flush()

        with open(self.config.log_file_path) as f:
            entries = [json.loads(line) for line in f if line.strip()]

        events = [entry for entry in entries if entry['extra_data'] and 'event' in entry['extra_data']]
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]['extra_data']['cert_path'], '/certs/server.crt')
        self.assertEqual(events[0]['level'], 'INFO')

    def test_invalid_certificate_events_are_warnings(self):
        LoggingService(self.config)

        log_event(CertificateEvent('certificate.invalid', {'cert_path': '/certs/server.crt'}))
        for handler in self.root_logger.handlers:
            handler.flush()

        with open(self.config.log_file_path) as f:
            entries = [json.loads(line) for line in f if line.strip()]

        self.assertIn('WARNING', [entry['level'] for entry in entries])

    def test_sets_root_level(self):
        LoggingService(self.config)

        self.assertEqual(self.root_logger.level, logging.DEBUG)

    def test_measure_performance(self):
        service = LoggingService(self.config)

        with service.measure_performance('prepare_certificates'):
            pass

        stats = service.get_performance_stats()
        self.assertEqual(stats['prepare_certificates']['total_calls'], 1)


if __name__ == '__main__':
    unittest.main()
