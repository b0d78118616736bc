"""
Tests for file context classification and severity adjustment.
"""

import unittest

from codegate.file_context import (
    ALWAYS_CRITICAL_RULES,
    TECHNICAL_RULES,
    adjust_violation_severity,
    describe_file_context,
    determine_file_context,
)
from codegate.models import CRITICAL, WARNING, FileContext


USER_FILE = "dist/assets/__federation_expose_World-3f9a1c.js"
SHARED_FILE = "dist/assets/__federation_shared_three-8d2e.js"
SHARED_DIR_FILE = "dist/__federation_shared_react/index.js"
INFRA_FILE = "dist/assets/__federation_fn_import-a1b2.js"
ENTRY_FILE = "dist/remoteEntry.js"
VENDOR_FILE = "dist/assets/vendor-lodash-77aa.js"


class TestDetermineFileContext(unittest.TestCase):
    """Test cases for determine_file_context."""

    def test_user_code(self):
        context = determine_file_context(USER_FILE)
        self.assertTrue(context.is_user_code)
        self.assertFalse(context.is_shared_library)
        self.assertFalse(context.is_bundled_dependency)
        self.assertEqual(context.file_path, USER_FILE)

    def test_user_marker_requires_js_extension(self):
        context = determine_file_context("dist/__federation_expose_World-3f9a1c.js.map")
        self.assertFalse(context.is_user_code)

    def test_shared_library(self):
        self.assertTrue(determine_file_context(SHARED_FILE).is_shared_library)
        context = determine_file_context(SHARED_DIR_FILE)
        self.assertTrue(context.is_shared_library)
        self.assertFalse(context.is_bundled_dependency)

    def test_infra_and_entry_are_not_bundled(self):
        for path in (INFRA_FILE, ENTRY_FILE):
            context = determine_file_context(path)
            self.assertFalse(context.is_user_code)
            self.assertFalse(context.is_shared_library)
            self.assertFalse(context.is_bundled_dependency)

    def test_bundled_dependency(self):
        context = determine_file_context(VENDOR_FILE)
        self.assertTrue(context.is_bundled_dependency)

    def test_bare_file_name(self):
        self.assertTrue(determine_file_context("remoteEntry.js").file_path == "remoteEntry.js")


class TestAdjustViolationSeverity(unittest.TestCase):
    """Test cases for adjust_violation_severity."""

    def test_user_code_never_relaxed(self):
        context = determine_file_context(USER_FILE)
        for rule in TECHNICAL_RULES | ALWAYS_CRITICAL_RULES:
            self.assertEqual(adjust_violation_severity(rule, CRITICAL, context), CRITICAL)
        self.assertEqual(adjust_violation_severity("no-eval", WARNING, context), WARNING)

    def test_infra_import_never_relaxed(self):
        context = determine_file_context(INFRA_FILE)
        self.assertEqual(adjust_violation_severity("no-dangerous-dom", CRITICAL, context), CRITICAL)

    def test_relaxed_contexts(self):
        for path in (SHARED_FILE, VENDOR_FILE, ENTRY_FILE):
            context = determine_file_context(path)
            for rule in TECHNICAL_RULES:
                self.assertEqual(adjust_violation_severity(rule, CRITICAL, context), WARNING, (path, rule))
            for rule in ALWAYS_CRITICAL_RULES:
                self.assertEqual(adjust_violation_severity(rule, WARNING, context), CRITICAL, (path, rule))
            self.assertEqual(adjust_violation_severity("no-cookie-access", CRITICAL, context), CRITICAL)
            self.assertEqual(adjust_violation_severity("no-external-import", WARNING, context), WARNING)

    def test_dangerous_dom_by_context(self):
        """Test the same violation differs between shared library and user code."""
        shared = determine_file_context(SHARED_FILE)
        user = determine_file_context(USER_FILE)
        self.assertEqual(adjust_violation_severity("no-dangerous-dom", CRITICAL, shared), WARNING)
        self.assertEqual(adjust_violation_severity("no-dangerous-dom", CRITICAL, user), CRITICAL)

    def test_unclassified_is_strict(self):
        context = FileContext(file_path="")
        self.assertEqual(adjust_violation_severity("no-obfuscation", CRITICAL, context), CRITICAL)


class TestDescribeFileContext(unittest.TestCase):
    """Test cases for describe_file_context."""

    def test_descriptions(self):
        self.assertIn("User code", describe_file_context(determine_file_context(USER_FILE)))
        self.assertIn("Shared library", describe_file_context(determine_file_context(SHARED_FILE)))
        self.assertIn("Bundled dependency", describe_file_context(determine_file_context(VENDOR_FILE)))
        self.assertIn("entry point", describe_file_context(determine_file_context(ENTRY_FILE)))
        self.assertIn("dynamic import", describe_file_context(determine_file_context(INFRA_FILE)))
        self.assertIn("Other", describe_file_context(FileContext(file_path="")))


if __name__ == '__main__':
    unittest.main()
