"""Unit tests for JSON log formatting and correlation ids."""

import json
import logging
import sys
import unittest

from utils.logging import CorrelationIdFilter, JSONFormatter, correlation_id_var


def _record(msg='hello', **extra):
    record = logging.LogRecord('test.logger', logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter(unittest.TestCase):

    def test_formats_core_fields(self):
        data = json.loads(JSONFormatter().format(_record()))

        self.assertEqual(data['level'], 'INFO')
        self.assertEqual(data['logger'], 'test.logger')
        self.assertEqual(data['message'], 'hello')
        self.assertTrue(data['timestamp'].endswith('Z'))

    def test_extra_fields_become_keys(self):
        data = json.loads(JSONFormatter().format(_record(userId='user-1')))

        self.assertEqual(data['userId'], 'user-1')

    def test_includes_exception(self):
        try:
            raise RuntimeError('boom')
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))
        self.assertIn('RuntimeError: boom', data['exception'])


class TestCorrelationIdFilter(unittest.TestCase):

    def test_stamps_current_correlation_id(self):
        token = correlation_id_var.set('req-123')
        try:
            record = _record()
            CorrelationIdFilter().filter(record)
        finally:
            correlation_id_var.reset(token)

        data = json.loads(JSONFormatter().format(record))
        self.assertEqual(data['correlation_id'], 'req-123')

    def test_omits_correlation_id_outside_requests(self):
        record = _record()
        CorrelationIdFilter().filter(record)

        data = json.loads(JSONFormatter().format(record))
        self.assertNotIn('correlation_id', data)


if __name__ == '__main__':
    unittest.main()
