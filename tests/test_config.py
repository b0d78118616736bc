"""
Tests for the configuration module.
"""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from codegate.config import DEFAULT_MAX_FILE_BYTES, Config


MISSING_ENV = Path('/nonexistent/.env')


class TestConfig(unittest.TestCase):
    """Test cases for environment configuration."""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = Config(env_path=MISSING_ENV)
        self.assertEqual(cfg.allowed_domains, [])
        self.assertEqual(cfg.max_file_bytes, DEFAULT_MAX_FILE_BYTES)
        self.assertEqual(cfg.workers, 1)
        self.assertTrue(cfg.validate()['valid'])

    def test_environment_values(self):
        env = {
            'CODEGATE_ALLOWED_DOMAINS': 'api.test, assets.test ,',
            'CODEGATE_MAX_FILE_BYTES': '1024',
            'CODEGATE_WORKERS': '4',
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = Config(env_path=MISSING_ENV)
        self.assertEqual(cfg.allowed_domains, ['api.test', 'assets.test'])
        self.assertEqual(cfg.max_file_bytes, 1024)
        self.assertEqual(cfg.workers, 4)

    def test_invalid_values(self):
        env = {'CODEGATE_WORKERS': 'many', 'CODEGATE_MAX_FILE_BYTES': '0'}
        with patch.dict(os.environ, env, clear=True):
            cfg = Config(env_path=MISSING_ENV)
        validation = cfg.validate()
        self.assertFalse(validation['valid'])
        self.assertEqual(len(validation['errors']), 2)

    def test_url_domain_warning(self):
        with patch.dict(os.environ, {'CODEGATE_ALLOWED_DOMAINS': 'https://api.test/'}, clear=True):
            cfg = Config(env_path=MISSING_ENV)
        validation = cfg.validate()
        self.assertTrue(validation['valid'])
        self.assertEqual(len(validation['warnings']), 1)

    def test_dotenv_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            env_path = Path(temp_dir) / '.env'
            env_path.write_text('CODEGATE_WORKERS=3\n')
            with patch.dict(os.environ, {}, clear=True):
                cfg = Config(env_path=env_path)
        self.assertEqual(cfg.workers, 3)


if __name__ == '__main__':
    unittest.main()
