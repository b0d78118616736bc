"""
Tests for the CLI module.
"""

import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from codegate.cli import EXIT_ERROR, EXIT_OK, EXIT_REJECTED, build_file_context, main


class TestCLI(unittest.TestCase):
    """Test cases for the command-line interface."""

    def _write(self, temp_dir: str, name: str, code: str) -> str:
        path = Path(temp_dir) / name
        path.write_text(code)
        return str(path)

    def test_version_argument(self):
        """Test that --version flag works."""
        with self.assertRaises(SystemExit) as cm:
            with patch('sys.stdout', new_callable=io.StringIO):
                main(['--version'])
        self.assertEqual(cm.exception.code, 0)

    def test_help_argument(self):
        """Test that --help flag works."""
        with self.assertRaises(SystemExit) as cm:
            with patch('sys.stdout', new_callable=io.StringIO):
                main(['--help'])
        self.assertEqual(cm.exception.code, 0)

    def test_no_command(self):
        with patch('sys.stdout', new_callable=io.StringIO):
            self.assertEqual(main([]), EXIT_ERROR)

    def test_nonexistent_path(self):
        """Test error handling for non-existent paths."""
        with patch('sys.stderr', new_callable=io.StringIO) as mock_stderr:
            exit_code = main(['scan', '/nonexistent/path/to/file.js'])
            self.assertEqual(exit_code, EXIT_ERROR)
            self.assertIn("does not exist", mock_stderr.getvalue())

    def test_clean_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = self._write(temp_dir, 'app.js', 'const x = 1;')
            with patch('sys.stdout', new_callable=io.StringIO) as mock_stdout:
                exit_code = main(['scan', path])

        self.assertEqual(exit_code, EXIT_OK)
        self.assertIn('APPROVE', mock_stdout.getvalue())

    def test_rejected_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = self._write(temp_dir, 'app.js', "eval('x');")
            with patch('sys.stdout', new_callable=io.StringIO):
                exit_code = main(['scan', path])

        self.assertEqual(exit_code, EXIT_REJECTED)

    def test_parse_error_exit_code(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = self._write(temp_dir, 'app.js', 'function (')
            with patch('sys.stdout', new_callable=io.StringIO) as mock_stdout:
                exit_code = main(['scan', path])

        self.assertEqual(exit_code, EXIT_REJECTED)
        self.assertIn('Parse error', mock_stdout.getvalue())

    def test_allow_domain(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = self._write(temp_dir, 'app.js', "fetch('https://api.test/x');")
            with patch('sys.stdout', new_callable=io.StringIO):
                denied = main(['scan', path])
                allowed = main(['scan', path, '--allow-domain', 'api.test'])

        self.assertEqual(denied, EXIT_REJECTED)
        self.assertEqual(allowed, EXIT_OK)

    def test_output_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = self._write(temp_dir, 'app.js', "const c = document.cookie;")
            output = Path(temp_dir) / 'report.json'
            with patch('sys.stdout', new_callable=io.StringIO):
                exit_code = main(['scan', path, '-o', str(output)])
            report = json.loads(output.read_text())

        self.assertEqual(exit_code, EXIT_REJECTED)
        self.assertEqual(report['violations']['critical'][0]['rule'], 'no-cookie-access')

    def test_verbose_flag(self):
        """Test that verbose flag is properly passed."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = self._write(temp_dir, 'app.js', 'const x = 1;')
            with patch('sys.stdout', new_callable=io.StringIO) as mock_stdout:
                exit_code = main(['scan', path, '--verbose'])

        self.assertEqual(exit_code, EXIT_OK)
        self.assertIn('Analyzing file', mock_stdout.getvalue())

    def test_build_file_context(self):
        self.assertIsNone(build_file_context('auto', Path('a.js')))
        context = build_file_context('shared', Path('a.js'))
        self.assertTrue(context.is_shared_library)
        self.assertFalse(context.is_user_code)
        other = build_file_context('other', Path('a.js'))
        self.assertFalse(other.is_user_code or other.is_shared_library or other.is_bundled_dependency)


if __name__ == '__main__':
    unittest.main()
