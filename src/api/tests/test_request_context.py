"""Tests for the request-context middleware and error mapping."""

import asyncio
import json
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from adapter.fake.user_repository import FakeUserRepository
from api.main import create_app
from domain.model.errors import StorageError
from utils.config import Settings


def make_app(**overrides):
    values = dict(mongo_url='mongodb://unused:27017', jwt_secret_key='test-secret-key', bcrypt_rounds=4)
    values.update(overrides)
    repo = FakeUserRepository()
    return create_app(Settings(**values), repository=repo), repo


def chunked(payload: bytes, size: int = 16):
    """Yield ``payload`` in pieces so the client sends it without Content-Length."""
    for start in range(0, len(payload), size):
        yield payload[start:start + size]


class TestCorrelationId(unittest.TestCase):

    def setUp(self):
        app, _ = make_app()
        self.client = TestClient(app)

    def test_incoming_request_id_is_echoed(self):
        response = self.client.get('/health', headers={'X-Request-ID': 'abc-123'})

        self.assertEqual(response.headers['X-Request-ID'], 'abc-123')

    def test_request_id_generated_when_missing(self):
        response = self.client.get('/health')

        self.assertEqual(len(response.headers['X-Request-ID']), 32)

    def test_malformed_request_id_is_replaced(self):
        response = self.client.get('/health', headers={'X-Request-ID': 'bad id with spaces'})

        self.assertNotEqual(response.headers['X-Request-ID'], 'bad id with spaces')


class TestBodyLimit(unittest.TestCase):

    def test_oversized_body_is_413(self):
        app, repo = make_app(max_body_bytes=64)
        client = TestClient(app)

        response = client.post('/users', json={'email': 'a@x.com', 'password': 'x' * 200})

        self.assertEqual(response.status_code, 413)
        self.assertIn('X-Request-ID', response.headers)
        self.assertEqual(repo.store, {})

    def test_oversized_chunked_body_is_413(self):
        app, repo = make_app(max_body_bytes=64)
        client = TestClient(app)
        payload = json.dumps({'email': 'a@x.com', 'password': 'x' * 120}).encode()

        response = client.post('/users', content=chunked(payload), headers={'Content-Type': 'application/json'})

        self.assertEqual(response.status_code, 413)
        self.assertEqual(repo.store, {})

    def test_chunked_body_within_limit_reaches_handler(self):
        app, repo = make_app(max_body_bytes=1024)
        client = TestClient(app)
        payload = json.dumps({'email': 'a@x.com', 'password': 'longenough1'}).encode()

        response = client.post('/users', content=chunked(payload), headers={'Content-Type': 'application/json'})

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['email'], 'a@x.com')
        self.assertEqual(len(repo.store), 1)

    def test_body_within_limit_passes(self):
        app, _ = make_app(max_body_bytes=1024)
        client = TestClient(app)

        response = client.post('/users', json={'email': 'a@x.com', 'password': 'longenough1'})

        self.assertEqual(response.status_code, 201)


class TestDeadline(unittest.TestCase):

    def test_slow_request_is_504(self):
        app, _ = make_app(request_timeout_seconds=0.05)

        @app.get('/slow')
        async def slow():
            await asyncio.sleep(0.5)
            return {'done': True}

        response = TestClient(app).get('/slow')

        self.assertEqual(response.status_code, 504)
        self.assertEqual(response.json(), {'detail': 'Request timed out'})


class TestUnhandledErrors(unittest.TestCase):

    def setUp(self):
        self.app, self.repo = make_app()

        @self.app.get('/boom')
        def boom():
            raise RuntimeError('secret internal detail')

        self.client = TestClient(self.app)

    def test_unhandled_exception_is_generic_500(self):
        response = self.client.get('/boom', headers={'X-Request-ID': 'trace-1'})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {'detail': 'Internal server error', 'correlation_id': 'trace-1'})
        self.assertNotIn('secret internal detail', response.text)

    def test_storage_outage_mid_request_is_503(self):
        self.repo.available = False

        response = self.client.post('/users', json={'email': 'a@x.com', 'password': 'longenough1'})

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json(), {'detail': 'Storage unavailable'})

    def test_generic_storage_error_is_500_with_correlation_id(self):
        with patch.object(self.repo, 'find_by_email', side_effect=StorageError('disk on fire')):
            response = self.client.post(
                '/sessions',
                json={'email': 'a@x.com', 'password': 'longenough1'},
                headers={'X-Request-ID': 'trace-2'},
            )

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['correlation_id'], 'trace-2')
        self.assertNotIn('disk on fire', response.text)


if __name__ == '__main__':
    unittest.main()
