"""
JavaScript and HTML parsing front end.

This module turns source text into a plain dictionary AST (esprima's
ESTree output with ``loc`` and ``range`` attached) and pulls inline scripts
out of HTML entry pages.
"""

from pathlib import Path
from typing import Dict, List, Any, Optional

import esprima
from bs4 import BeautifulSoup


JS_SCRIPT_TYPES = frozenset({
    "",
    "module",
    "text/javascript",
    "application/javascript",
    "text/ecmascript",
    "application/ecmascript",
})


class ParseError(Exception):
    """
    Raised when source text is not syntactically valid JavaScript.

    An analysis that fails this way did not run at all; it is not a
    rejection and must not be reported as one.
    """

    def __init__(self, message: str, filename: str = "<string>",
                 line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.filename = filename
        self.line = line
        self.column = column

    def __str__(self) -> str:
        message = super().__str__()
        if self.line is not None:
            return f"{self.filename}:{self.line}: {message}"
        return f"{self.filename}: {message}"


class JavaScriptParser:
    """
    Parser for JavaScript code and HTML files.

    Code is parsed as an ES module first (so ``import`` declarations are
    accepted) and falls back to the script goal for sloppy-mode code such
    as ``with`` statements or legacy octal literals.
    """

    def __init__(self, verbose: bool = False):
        """
        Initialize the parser.

        Args:
            verbose: Enable verbose output
        """
        self.verbose = verbose

    def parse_file(self, file_path: Path) -> Dict[str, Any]:
        """
        Parse a JavaScript file and return its AST.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ParseError: If the file is not valid JavaScript
        """
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        if self.verbose:
            print(f"Parsing file: {file_path}")

        content = file_path.read_text(encoding="utf-8", errors="replace")
        return self.parse_code(content, str(file_path))

    def parse_code(self, code: str, filename: str = "<string>", jsx: bool = False) -> Dict[str, Any]:
        """
        Parse JavaScript code from a string.

        esprima implements ES2017; newer syntax such as optional chaining
        (``a?.b``) or nullish coalescing (``a ?? b``) is reported as a
        ParseError.

        Args:
            code: JavaScript code as a string
            filename: Name used in error messages
            jsx: Accept JSX elements

        Returns:
            ESTree Program node as a dictionary

        Raises:
            ParseError: If the code is not valid JavaScript
        """
        if self.verbose:
            print(f"Parsing code from {filename}")

        parse_kwargs = {"loc": True, "range": True}
        if jsx:
            parse_kwargs["jsx"] = True

        try:
            ast_obj = esprima.parseModule(code, **parse_kwargs)
        except Exception as module_err:  # esprima.Error
            try:
                ast_obj = esprima.parseScript(code, **parse_kwargs)
            except Exception:
                raise ParseError(
                    getattr(module_err, "description", None) or str(module_err),
                    filename=filename,
                    line=getattr(module_err, "lineNumber", None),
                    column=getattr(module_err, "column", None),
                ) from module_err

        if hasattr(ast_obj, "toDict"):
            return ast_obj.toDict()
        return self._esprima_to_dict(ast_obj)

    def _esprima_to_dict(self, obj: Any) -> Any:
        """
        Convert esprima AST objects to plain dictionaries.
        """
        if isinstance(obj, (str, int, float, bool, type(None))):
            return obj
        elif isinstance(obj, list):
            return [self._esprima_to_dict(item) for item in obj]
        elif hasattr(obj, "__dict__"):
            return {
                key: self._esprima_to_dict(value)
                for key, value in obj.__dict__.items()
                if not key.startswith("_")
            }
        return obj

    def extract_inline_scripts(self, html: str) -> List[Dict[str, Any]]:
        """
        Extract inline JavaScript blocks from an HTML document.

        External scripts (``src=...``) and non-JavaScript script types such
        as ``application/json`` or import maps are skipped.

        Args:
            html: HTML document text

        Returns:
            List of ``{"index", "line", "code"}`` dictionaries in document order
        """
        soup = BeautifulSoup(html, "lxml")
        scripts = []
        for index, tag in enumerate(soup.find_all("script")):
            script_type = (tag.get("type") or "").strip().lower()
            if script_type not in JS_SCRIPT_TYPES:
                continue
            if tag.get("src"):
                if self.verbose:
                    print(f"Skipping external script: {tag.get('src')}")
                continue
            code = tag.string
            if not code or not code.strip():
                continue
            scripts.append({
                "index": index,
                "line": getattr(tag, "sourceline", None),
                "code": str(code),
            })
        return scripts
