"""
Tests for the parser module.
"""

import unittest
from pathlib import Path
import tempfile

from codegate.parser import JavaScriptParser, ParseError


class TestJavaScriptParser(unittest.TestCase):
    """Test cases for the JavaScript parser."""

    def setUp(self):
        """Set up test fixtures."""
        self.parser = JavaScriptParser()

    def test_parser_initialization(self):
        """Test parser can be initialized."""
        parser = JavaScriptParser(verbose=True)
        self.assertTrue(parser.verbose)

    def test_parse_file_not_found(self):
        """Test parsing a non-existent file raises error."""
        with self.assertRaises(FileNotFoundError):
            self.parser.parse_file(Path('/nonexistent/file.js'))

    def test_parse_file(self):
        """Test that parse_file returns a Program node."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.js', delete=False) as f:
            f.write('const x = 1;')
            temp_path = Path(f.name)

        try:
            ast = self.parser.parse_file(temp_path)
            self.assertEqual(ast['type'], 'Program')
        finally:
            temp_path.unlink()

    def test_parse_module_code(self):
        """Test module syntax parses with locations and ranges."""
        ast = self.parser.parse_code("import x from 'react';\nexport const y = x;", 'test.js')

        self.assertEqual(ast['type'], 'Program')
        first = ast['body'][0]
        self.assertEqual(first['type'], 'ImportDeclaration')
        self.assertEqual(first['source']['value'], 'react')
        self.assertEqual(first['loc']['start']['line'], 1)
        self.assertEqual(first['range'][0], 0)

    def test_parse_script_fallback(self):
        """Test code only valid in sloppy mode falls back to the script goal."""
        ast = self.parser.parse_code('with (obj) { y = 1; }')
        self.assertEqual(ast['body'][0]['type'], 'WithStatement')

    def test_parse_error(self):
        """Test invalid code raises ParseError with a position."""
        with self.assertRaises(ParseError) as cm:
            self.parser.parse_code('const = ;', 'broken.js')

        error = cm.exception
        self.assertEqual(error.filename, 'broken.js')
        self.assertEqual(error.line, 1)
        self.assertIn('broken.js', str(error))

    def test_parse_jsx(self):
        """Test JSX is accepted only when enabled."""
        ast = self.parser.parse_code('const el = <div>{x}</div>;', 'App.jsx', jsx=True)
        init = ast['body'][0]['declarations'][0]['init']
        self.assertEqual(init['type'], 'JSXElement')

        with self.assertRaises(ParseError):
            self.parser.parse_code('const el = <div>{x}</div>;', 'App.js')

    def test_newer_syntax_is_a_parse_error(self):
        """Test syntax newer than ES2017 is reported, not misread."""
        for code in ('const v = a?.b;', 'const v = a ?? 1;'):
            with self.assertRaises(ParseError, msg=code):
                self.parser.parse_code(code, 'modern.js')

    def test_extract_inline_scripts(self):
        """Test inline JavaScript is extracted from HTML."""
        html = """
        <html>
          <head>
            <script src="https://cdn.example.test/lib.js"></script>
            <script type="application/json">{"a": 1}</script>
            <script type="importmap">{"imports": {}}</script>
          </head>
          <body>
            <script>const a = 1;</script>
            <script type="module">import x from 'react';</script>
            <script>   </script>
          </body>
        </html>
        """
        scripts = self.parser.extract_inline_scripts(html)

        self.assertEqual([s['code'] for s in scripts], ["const a = 1;", "import x from 'react';"])
        self.assertEqual([s['index'] for s in scripts], [3, 4])

    def test_extract_inline_scripts_empty(self):
        """Test HTML without scripts."""
        self.assertEqual(self.parser.extract_inline_scripts("<p>hello</p>"), [])


if __name__ == '__main__':
    unittest.main()
