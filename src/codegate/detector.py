"""
Main validator module that coordinates detection, scoring and context.

This module provides the high-level API: validating a single request the
way the world host submits it, and scanning files or whole bundle
directories from disk.
"""

import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Any, Optional

from .analysis import SignalDetector
from .file_context import adjust_violation_severity, describe_file_context, determine_file_context
from .heuristics import ENTROPY_THRESHOLD, is_allowed_package
from .models import (
    APPROVE,
    CRITICAL,
    REJECT,
    REVIEW,
    WARNING,
    CodePermissions,
    FileContext,
    SecuritySignals,
    ValidateCodeRequest,
    ValidateCodeResponse,
    Violation,
)
from .parser import JavaScriptParser, ParseError
from .scoring import calculate_security_score, get_security_verdict


JS_EXTENSIONS = frozenset({".js", ".jsx", ".mjs", ".cjs"})
HTML_EXTENSIONS = frozenset({".html", ".htm"})

VERDICT_ORDER = {APPROVE: 0, REVIEW: 1, REJECT: 2}

SUSPICIOUS_PATTERN_LABELS = (
    ("has_eval", "eval() usage"),
    ("has_dynamic_code_execution", "Dynamic code execution"),
    ("has_obfuscated_code", "Obfuscated code"),
    ("suspicious_variable_names", "Suspicious variable names"),
    (lambda signals: signals.entropy > ENTROPY_THRESHOLD, "High string entropy"),
)

DETECTED_API_LABELS = (
    ("has_network_api", "Network API"),
    ("has_storage_access", "Storage API"),
    ("has_navigator_access", "Navigator API"),
    ("has_dangerous_dom_manipulation", "DOM manipulation"),
    ("has_global_variable_override", "Global object override"),
)


class CodeValidator:
    """
    Admission gate for third-party world code.

    Each validation allocates its own detector, so a validator can be
    shared between threads.
    """

    def __init__(self, verbose: bool = False, allowed_domains: Optional[List[str]] = None,
                 max_file_bytes: Optional[int] = None, workers: int = 1):
        """
        Initialize the validator.

        Args:
            verbose: Enable verbose output
            allowed_domains: Network permissions added to every request
            max_file_bytes: Files larger than this are not analyzed when scanning
            workers: Number of threads used for directory scans
        """
        self.verbose = verbose
        self.allowed_domains = list(allowed_domains or [])
        self.max_file_bytes = max_file_bytes
        self.workers = max(1, workers)
        self.parser = JavaScriptParser(verbose=verbose)

    def validate_code(self, request: ValidateCodeRequest) -> ValidateCodeResponse:
        """
        Validate one piece of code.

        Args:
            request: Code plus its manifest, package.json and provenance

        Returns:
            ValidateCodeResponse with context-adjusted violations

        Raises:
            ParseError: If the code is not valid JavaScript
        """
        permissions = request.permissions
        if self.allowed_domains:
            permissions = CodePermissions(permissions.allowed_domains + self.allowed_domains)

        filename = request.file_path or (request.file_context.file_path if request.file_context else "<string>")
        signals = SignalDetector(verbose=self.verbose).detect(request.code, permissions, filename)

        score = calculate_security_score(signals)
        verdict = get_security_verdict(score)

        context = self._resolve_context(request)
        if self.verbose:
            print(f"{filename}: {describe_file_context(context)}")

        violations = [
            v.with_severity(adjust_violation_severity(v.rule, v.severity, context))
            for v in signals.detected_violations
        ]
        violations.extend(self._check_dependencies(request.package_json))

        critical = [v for v in violations if v.severity == CRITICAL]
        warnings = [v for v in violations if v.severity == WARNING]

        return ValidateCodeResponse(
            valid=not critical,
            security_score=score,
            verdict=verdict,
            critical=critical,
            warnings=warnings,
            entropy=signals.entropy,
            suspicious_patterns=_labels(signals, SUSPICIOUS_PATTERN_LABELS),
            detected_apis=_labels(signals, DETECTED_API_LABELS),
            external_dependencies=[
                pkg for pkg in signals.imported_packages
                if pkg.startswith("http://") or pkg.startswith("https://")
            ],
        )

    def _resolve_context(self, request: ValidateCodeRequest) -> FileContext:
        if request.file_context is not None:
            return request.file_context
        if request.file_path:
            return determine_file_context(request.file_path)
        # unclassified, checked strictly
        return FileContext(file_path="")

    def _check_dependencies(self, package_json: Dict[str, Any]) -> List[Violation]:
        """Warn about declared dependencies outside the allowed package list."""
        dependencies = (package_json or {}).get("dependencies") or {}
        return [
            Violation(
                "no-unknown-dependency",
                WARNING,
                f"Dependency {name}@{version} is not in the allowed package list",
            )
            for name, version in dependencies.items()
            if not is_allowed_package(name)
        ]

    def analyze(self, path: Path, file_context: Optional[FileContext] = None) -> Dict[str, Any]:
        """
        Validate a file or every script in a directory.

        Args:
            path: Path to a JavaScript/HTML file or a bundle directory
            file_context: Provenance to use instead of classifying by path

        Returns:
            Dictionary containing validation results

        Raises:
            ValueError: If the path is invalid
        """
        if path.is_file():
            return self._analyze_file(path, file_context)
        elif path.is_dir():
            return self._analyze_directory(path, file_context)
        else:
            raise ValueError(f"Invalid path: {path}")

    def _analyze_file(self, file_path: Path, file_context: Optional[FileContext] = None) -> Dict[str, Any]:
        """
        Validate a single file.

        Parse errors are reported in an ``error`` entry, never as a verdict.
        """
        if self.verbose:
            print(f"Analyzing file: {file_path}")

        suffix = file_path.suffix.lower()
        if suffix not in JS_EXTENSIONS and suffix not in HTML_EXTENSIONS:
            return {
                "file": str(file_path),
                "skipped": True,
                "reason": "Not a JavaScript or HTML file",
            }

        if self.max_file_bytes is not None and file_path.stat().st_size > self.max_file_bytes:
            # not analyzed, so it cannot be admitted either
            return {
                "file": str(file_path),
                "error": f"File exceeds the {self.max_file_bytes} byte analysis limit",
            }

        content = file_path.read_text(encoding="utf-8", errors="replace")

        if suffix in HTML_EXTENSIONS:
            return self._analyze_html(file_path, content, file_context)

        request = ValidateCodeRequest(code=content, file_path=str(file_path), file_context=file_context)
        try:
            response = self.validate_code(request)
        except ParseError as e:
            return {
                "file": str(file_path),
                "error": str(e),
            }
        return _file_result(str(file_path), response)

    def _analyze_html(self, file_path: Path, content: str,
                      file_context: Optional[FileContext]) -> Dict[str, Any]:
        """Validate the inline scripts of an HTML page as one unit each."""
        scripts = []
        for script in self.parser.extract_inline_scripts(content):
            name = f"{file_path}#script{script['index']}"
            request = ValidateCodeRequest(code=script["code"], file_path=str(file_path),
                                          file_context=file_context)
            try:
                response = self.validate_code(request)
            except ParseError as e:
                scripts.append({"file": name, "line": script["line"], "error": str(e)})
                continue
            result = _file_result(name, response)
            result["line"] = script["line"]
            scripts.append(result)

        return {
            "file": str(file_path),
            "file_type": "html",
            "scripts": scripts,
            "verdict": _worst_verdict(s.get("verdict") for s in scripts),
            "valid": all(s.get("valid", False) for s in scripts),
            "critical_count": sum(s.get("critical_count", 0) for s in scripts),
            "warning_count": sum(s.get("warning_count", 0) for s in scripts),
            "error_count": sum(1 for s in scripts if "error" in s),
        }

    def _analyze_directory(self, dir_path: Path,
                           file_context: Optional[FileContext] = None) -> Dict[str, Any]:
        """
        Validate all scripts in a directory recursively.

        Files are independent of each other; with ``workers > 1`` they are
        validated on a thread pool.
        """
        if self.verbose:
            print(f"Analyzing directory: {dir_path}")

        files = sorted(
            p for p in dir_path.rglob("*")
            if p.is_file() and p.suffix.lower() in JS_EXTENSIONS | HTML_EXTENSIONS
        )

        if self.workers > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                file_results = list(executor.map(lambda p: self._analyze_file(p, file_context), files))
        else:
            file_results = [self._analyze_file(p, file_context) for p in files]

        analyzed = [r for r in file_results if not r.get("skipped")]
        return {
            "directory": str(dir_path),
            "files": file_results,
            "verdict": _worst_verdict(r.get("verdict") for r in analyzed),
            "valid": all(r.get("valid", False) for r in analyzed),
            "total_critical": sum(r.get("critical_count", 0) for r in analyzed),
            "total_warnings": sum(r.get("warning_count", 0) for r in analyzed),
            "error_count": sum(r.get("error_count", 1 if "error" in r else 0) for r in analyzed),
        }

    def print_results(self, results: Dict[str, Any]) -> None:
        """
        Print validation results to stdout in a human-readable format.

        Args:
            results: Result dictionary from ``analyze``
        """
        if "directory" in results:
            print(f"\n=== Validation Results for {results['directory']} ===\n")
            print(f"Files analyzed: {len(results['files'])}")
            print(f"Overall verdict: {results['verdict']}")
            print(f"Critical violations: {results['total_critical']}, "
                  f"warnings: {results['total_warnings']}\n")

            for file_result in results["files"]:
                self._print_single_file_result(file_result)
        else:
            self._print_single_file_result(results, header=True)

    def _print_single_file_result(self, result: Dict[str, Any], header: bool = False) -> None:
        """Helper to print result for a single file."""
        file_path = result.get("file", "Unknown")

        if header:
            print(f"\n=== Validation Results for {file_path} ===\n")

        if result.get("skipped"):
            if header:
                print(f"Skipped: {result['reason']}")
            return

        if "error" in result:
            print(f"[-] {file_path}: Parse error - {result['error']}")
            return

        if "scripts" in result:
            print(f"[*] {file_path}: {len(result['scripts'])} inline script(s)")
            for script in result["scripts"]:
                self._print_single_file_result(script)
            return

        verdict = result.get("verdict")
        status_symbol = {APPROVE: "[+]", REVIEW: "[?]", REJECT: "[!]"}.get(verdict, "[*]")
        validity = "valid" if result.get("valid") else "invalid"
        print(f"{status_symbol} {file_path}: {verdict} (score {result.get('securityScore')}, {validity})")

        violations = result.get("violations", {})
        for violation in violations.get("critical", []) + violations.get("warnings", []):
            location = violation.get("location")
            where = f"Line {location['line']}" if location else "File"
            print(f"   [{violation['severity'].upper()}] {where}: {violation['message']} ({violation['rule']})")
            if header and location and location.get("code"):
                print(f"     Code: {location['code']}")

    def save_results(self, results: Dict[str, Any], output_path: Path) -> None:
        """
        Save validation results to a JSON file.

        Args:
            results: Result dictionary from ``analyze``
            output_path: Path to save the results
        """
        with open(output_path, "w") as f:
            json.dump(results, f, indent=2)

        if self.verbose:
            print(f"Results saved to {output_path}")


def validate_code(request: ValidateCodeRequest) -> ValidateCodeResponse:
    """Validate a request with a default validator."""
    return CodeValidator().validate_code(request)


def _labels(signals: SecuritySignals, table) -> List[str]:
    """Labels whose flag attribute (or predicate) holds for the signals."""
    return [
        label for check, label in table
        if (check(signals) if callable(check) else getattr(signals, check))
    ]


def _file_result(name: str, response: ValidateCodeResponse) -> Dict[str, Any]:
    result = {"file": name}
    result.update(response.to_dict())
    result["critical_count"] = len(response.critical)
    result["warning_count"] = len(response.warnings)
    return result


def _worst_verdict(verdicts) -> str:
    worst = APPROVE
    for verdict in verdicts:
        if verdict is not None and VERDICT_ORDER[verdict] > VERDICT_ORDER[worst]:
            worst = verdict
    return worst
