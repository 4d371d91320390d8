"""Unit tests for Settings.from_env()."""

import unittest

from utils.config import ConfigError, Settings

BASE_ENV = {
    'MONGO_URL': 'mongodb://mongodb:27017/userdb',
    'JWT_SECRET_KEY': 'secret',
}


class TestSettingsFromEnv(unittest.TestCase):

    def test_defaults(self):
        settings = Settings.from_env(BASE_ENV)

        self.assertEqual(settings.mongo_url, 'mongodb://mongodb:27017/userdb')
        self.assertEqual(settings.port, 5001)
        self.assertEqual(settings.startup_retry_attempts, 5)
        self.assertEqual(settings.password_min_length, 8)
        self.assertIsNone(settings.mongodb_database)
        self.assertEqual(settings.admin_emails, ())

    def test_missing_mongo_url_is_fatal(self):
        with self.assertRaises(ConfigError) as ctx:
            Settings.from_env({'JWT_SECRET_KEY': 'secret'})
        self.assertIn('MONGO_URL', str(ctx.exception))

    def test_mongo_uri_is_accepted(self):
        settings = Settings.from_env({'MONGO_URI': 'mongodb://mongodb:27017/userdb', 'JWT_SECRET_KEY': 's'})

        self.assertEqual(settings.mongo_url, 'mongodb://mongodb:27017/userdb')

    def test_mongo_uri_wins_over_mongo_url(self):
        settings = Settings.from_env({**BASE_ENV, 'MONGO_URI': 'mongodb://primary:27017/userdb'})

        self.assertEqual(settings.mongo_url, 'mongodb://primary:27017/userdb')

    def test_blank_mongo_uri_falls_back_to_mongo_url(self):
        settings = Settings.from_env({**BASE_ENV, 'MONGO_URI': ' '})

        self.assertEqual(settings.mongo_url, 'mongodb://mongodb:27017/userdb')

    def test_missing_connection_string_names_both_variables(self):
        with self.assertRaises(ConfigError) as ctx:
            Settings.from_env({'JWT_SECRET_KEY': 'secret'})
        self.assertIn('MONGO_URI', str(ctx.exception))

    def test_missing_secret_is_fatal(self):
        with self.assertRaises(ConfigError) as ctx:
            Settings.from_env({'MONGO_URL': 'mongodb://localhost', 'JWT_SECRET_KEY': '  '})
        self.assertIn('JWT_SECRET_KEY', str(ctx.exception))

    def test_overrides(self):
        env = {
            **BASE_ENV,
            'PORT': '8080',
            'ADMIN_EMAILS': 'root@x.com, ops@x.com,',
            'REQUEST_TIMEOUT_SECONDS': '2.5',
            'MONGODB_DATABASE': 'accounts',
            'LOG_LEVEL': 'debug',
        }

        settings = Settings.from_env(env)

        self.assertEqual(settings.port, 8080)
        self.assertEqual(settings.admin_emails, ('root@x.com', 'ops@x.com'))
        self.assertEqual(settings.request_timeout_seconds, 2.5)
        self.assertEqual(settings.mongodb_database, 'accounts')
        self.assertEqual(settings.log_level, 'DEBUG')

    def test_malformed_integer(self):
        with self.assertRaises(ConfigError):
            Settings.from_env({**BASE_ENV, 'PORT': 'eighty'})

    def test_out_of_range_values(self):
        with self.assertRaises(ConfigError):
            Settings.from_env({**BASE_ENV, 'BCRYPT_ROUNDS': '2'})
        with self.assertRaises(ConfigError):
            Settings.from_env({**BASE_ENV, 'REQUEST_TIMEOUT_SECONDS': '0'})


if __name__ == '__main__':
    unittest.main()
