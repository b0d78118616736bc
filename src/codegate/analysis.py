"""
Signal detection over a parsed JavaScript AST.

This module walks the ESTree produced by the parser once, records which
dangerous APIs and constructs the code uses, and finishes with a short
post-pass over the collected strings, identifier names and URLs.
"""

import re
from typing import Dict, List, Any, Optional

from .heuristics import (
    ALLOWED_DOMAINS,
    ENTROPY_THRESHOLD,
    SUSPICIOUS_NAME_ENTROPY,
    calculate_average_entropy,
    calculate_entropy,
    extract_domains,
    get_callee_name,
    get_location,
)
from .models import CRITICAL, CodePermissions, SecuritySignals, Violation
from .parser import JavaScriptParser


ESCAPE_PATTERN = re.compile(r"\\x[0-9a-fA-F]{2}|\\u[0-9a-fA-F]{4}")
SUSPICIOUS_NAME_PATTERN = re.compile(r"^[_$][a-zA-Z0-9_$]{4,}$")

SKIPPED_KEYS = frozenset({"loc", "range", "leadingComments", "trailingComments"})


class SignalDetector:
    """
    Single-pass detector that converts an AST into SecuritySignals.

    A detector instance keeps per-run state; ``detect`` resets it, so one
    instance can be reused sequentially but must not be shared between
    threads.
    """

    TIMER_FUNCTIONS = frozenset({"setTimeout", "setInterval"})
    NETWORK_FUNCTIONS = frozenset({"fetch", "XMLHttpRequest", "WebSocket"})
    OBFUSCATION_FUNCTIONS = frozenset({"atob", "btoa", "unescape", "decodeURIComponent"})
    DANGEROUS_DOM_METHODS = frozenset({"insertAdjacentHTML"})
    DANGEROUS_ELEMENTS = frozenset({"script", "iframe"})
    GLOBAL_OBJECTS = frozenset({"window", "globalThis", "document", "navigator"})
    STORAGE_OBJECTS = frozenset({"localStorage", "sessionStorage"})
    HTML_SINK_PROPERTIES = frozenset({"innerHTML", "outerHTML"})

    def __init__(self, verbose: bool = False):
        """
        Initialize the detector.

        Args:
            verbose: Enable verbose output
        """
        self.verbose = verbose
        self.parser = JavaScriptParser(verbose=verbose)
        self._reset("")

    def _reset(self, code: str) -> None:
        self.code = code
        self.signals = SecuritySignals()
        self.url_strings: List[str] = []
        self.string_literals: List[str] = []
        self.variable_names: List[str] = []

    def detect(self, code: str, permissions: Optional[CodePermissions] = None,
               filename: str = "<string>") -> SecuritySignals:
        """
        Analyze JavaScript source and collect its security signals.

        Args:
            code: JavaScript source text
            permissions: Network permissions declared for the code
            filename: Name used in parse error messages; ``.jsx`` files are
                parsed with JSX enabled

        Returns:
            Populated SecuritySignals

        Raises:
            ParseError: If the code is not valid JavaScript
        """
        jsx = filename.lower().endswith(".jsx")
        ast = self.parser.parse_code(code, filename, jsx=jsx)
        return self.detect_ast(ast, code, permissions)

    def detect_ast(self, ast: Dict[str, Any], code: str = "",
                   permissions: Optional[CodePermissions] = None) -> SecuritySignals:
        """Collect security signals from an already parsed AST."""
        self._reset(code)
        self._traverse(ast, None, None)
        self._finalize(permissions or CodePermissions())

        signals = self.signals
        if self.verbose:
            print(f"Detected {len(signals.detected_violations)} violation(s), "
                  f"entropy {signals.entropy:.2f}")
        return signals

    def _add_violation(self, rule: str, message: str,
                       node: Optional[Dict[str, Any]] = None) -> None:
        location = get_location(node, self.code) if node is not None else None
        self.signals.detected_violations.append(Violation(rule, CRITICAL, message, location))

    def _traverse(self, root: Any, parent: Optional[Dict[str, Any]], key: Optional[str]) -> None:
        """
        Visit every AST node in source order, passing the parent and the
        field name.

        Uses an explicit stack; minified bundles nest expressions far deeper
        than the interpreter's recursion limit.
        """
        stack = [(root, parent, key)]
        while stack:
            node, parent, key = stack.pop()
            if not isinstance(node, dict):
                continue

            self._visit(node, parent, key)

            children = []
            for child_key, value in node.items():
                if child_key in SKIPPED_KEYS:
                    continue
                if isinstance(value, dict):
                    children.append((value, node, child_key))
                elif isinstance(value, list):
                    for item in value:
                        if isinstance(item, dict):
                            children.append((item, node, child_key))
            stack.extend(reversed(children))

    def _visit(self, node: Dict[str, Any], parent: Optional[Dict[str, Any]],
               key: Optional[str]) -> None:
        node_type = node.get("type")

        if node_type in ("CallExpression", "NewExpression"):
            self._visit_call(node)
        elif node_type == "AssignmentExpression":
            self._visit_assignment(node)
        elif node_type == "MemberExpression":
            self._visit_member(node, parent, key)
        elif node_type == "ImportDeclaration":
            self._visit_import(node)
        elif node_type == "Identifier":
            if self._is_reference(node, parent, key):
                self._visit_identifier(node, parent, key)
        elif node_type == "Literal":
            if self._is_reference(node, parent, key):
                self._visit_literal(node)

    def _is_reference(self, node: Dict[str, Any], parent: Optional[Dict[str, Any]],
                      key: Optional[str]) -> bool:
        """
        False for names that are not expressions: non-computed member
        properties, object/class keys and statement labels.
        """
        if parent is None:
            return True
        parent_type = parent.get("type")
        if parent_type == "MemberExpression" and key == "property":
            return bool(parent.get("computed"))
        if parent_type in ("Property", "MethodDefinition") and key == "key":
            return bool(parent.get("computed"))
        if key == "label":
            return False
        return True

    # --- node visitors -----------------------------------------------------

    def _visit_call(self, node: Dict[str, Any]) -> None:
        signals = self.signals
        callee = node.get("callee") or {}
        args = node.get("arguments") or []
        first_arg = args[0] if args else None
        callee_name = get_callee_name(callee)
        object_name = None
        if callee.get("type") == "MemberExpression":
            callee_object = callee.get("object") or {}
            if callee_object.get("type") == "Identifier":
                object_name = callee_object.get("name")

        if callee_name == "eval":
            signals.has_eval = True
            self._add_violation("no-eval", "eval() is not allowed", node)

        if callee_name in self.TIMER_FUNCTIONS and _string_literal(first_arg) is not None:
            signals.has_dynamic_code_execution = True
            self._add_violation(
                "no-string-timeout",
                f"Passing a string to {callee_name}() is not allowed",
                node,
            )

        if callee_name in self.NETWORK_FUNCTIONS:
            signals.has_network_api = True
            url = _string_literal(first_arg)
            if url is not None:
                self.url_strings.append(url)
            else:
                signals.has_dynamic_url_construction = True

        if object_name == "navigator" and callee_name == "sendBeacon":
            signals.has_network_api = True
            signals.has_navigator_access = True
            self._add_violation("no-navigator-access", "navigator.sendBeacon() is not allowed", node)

        if callee_name in self.DANGEROUS_DOM_METHODS:
            signals.has_dangerous_dom_manipulation = True
            self._add_violation(
                "no-dangerous-dom",
                f"{callee_name}() is not allowed (XSS risk)",
                node,
            )

        if object_name == "document" and callee_name == "createElement":
            tag_name = _string_literal(first_arg)
            if tag_name is not None and tag_name.lower() in self.DANGEROUS_ELEMENTS:
                signals.has_dangerous_dom_manipulation = True
                self._add_violation(
                    "no-dangerous-dom",
                    f"document.createElement('{tag_name.lower()}') is not allowed",
                    node,
                )

        if callee_name in self.OBFUSCATION_FUNCTIONS:
            signals.has_obfuscated_code = True
            self._add_violation(
                "no-obfuscation",
                f"Obfuscation helper {callee_name}() is not allowed",
                node,
            )

        if object_name == "String" and callee_name == "fromCharCode":
            signals.has_obfuscated_code = True
            self._add_violation("no-obfuscation", "String.fromCharCode() is not allowed", node)

        if (callee.get("type") == "MemberExpression" and callee_name == "addEventListener"
                and _string_literal(first_arg) == "storage"):
            signals.has_storage_access = True
            self._add_violation(
                "no-storage-event",
                "addEventListener('storage', ...) is not allowed (token interception risk)",
                node,
            )

    def _visit_assignment(self, node: Dict[str, Any]) -> None:
        signals = self.signals
        left = node.get("left") or {}
        if left.get("type") != "MemberExpression":
            return

        target = left.get("object") or {}
        prop = left.get("property") or {}

        if target.get("type") == "Identifier" and target.get("name") in self.GLOBAL_OBJECTS:
            name = target.get("name")
            signals.has_global_variable_override = True
            if name == "navigator":
                signals.has_navigator_access = True
            self._add_violation(
                "no-global-override",
                f"Overriding the global object {name} is not allowed",
                node,
            )

        if target.get("type") == "MemberExpression" and _property_name(target) == "prototype":
            signals.has_global_variable_override = True
            self._add_violation("no-prototype-pollution", "Prototype pollution is not allowed", node)

        if not left.get("computed") and prop.get("type") == "Identifier" \
                and prop.get("name") == "onstorage":
            signals.has_storage_access = True
            self._add_violation(
                "no-storage-event",
                "Assigning onstorage is not allowed (token interception risk)",
                node,
            )

    def _visit_member(self, node: Dict[str, Any], parent: Optional[Dict[str, Any]],
                      key: Optional[str]) -> None:
        signals = self.signals
        target = node.get("object") or {}
        object_name = target.get("name") if target.get("type") == "Identifier" else None
        property_name = _property_name(node)

        if object_name in self.STORAGE_OBJECTS:
            signals.has_storage_access = True
            self._add_violation("no-storage-access", f"Access to {object_name} is not allowed", node)

        if object_name == "document" and property_name == "cookie":
            signals.has_storage_access = True
            self._add_violation("no-cookie-access", "Cookie access is not allowed", node)

        if object_name == "indexedDB":
            signals.has_storage_access = True
            self._add_violation("no-indexeddb-access", "IndexedDB access is not allowed", node)

        if object_name == "navigator":
            signals.has_navigator_access = True
            self._add_violation(
                "no-navigator-access",
                f"Access to navigator.{property_name or '*'} is not allowed (fingerprinting)",
                node,
            )

        if property_name in self.HTML_SINK_PROPERTIES and key == "left" \
                and parent is not None and parent.get("type") == "AssignmentExpression":
            signals.has_dangerous_dom_manipulation = True
            self._add_violation(
                "no-dangerous-dom",
                f"Assigning {property_name} is not allowed (XSS risk)",
                node,
            )

        if object_name == "document" and property_name == "head":
            signals.has_dangerous_dom_manipulation = True
            self._add_violation(
                "no-dangerous-dom",
                "Access to document.head is not allowed (script injection risk)",
                node,
            )

    def _visit_import(self, node: Dict[str, Any]) -> None:
        source = (node.get("source") or {}).get("value")
        if not isinstance(source, str):
            return
        self.signals.imported_packages.append(source)

        if source.startswith("http://") or source.startswith("https://"):
            self._add_violation(
                "no-external-import",
                f"Importing from an external URL is not allowed: {source}",
                node,
            )

    def _visit_identifier(self, node: Dict[str, Any], parent: Optional[Dict[str, Any]],
                          key: Optional[str]) -> None:
        name = node.get("name")
        if not name:
            return
        self.variable_names.append(name)

        if name == "navigator":
            is_member_object = (
                parent is not None
                and parent.get("type") == "MemberExpression"
                and key == "object"
            )
            if not is_member_object:
                self.signals.has_navigator_access = True
                self._add_violation(
                    "no-navigator-access",
                    "Access to the navigator object is not allowed",
                    node,
                )

    def _visit_literal(self, node: Dict[str, Any]) -> None:
        value = node.get("value")
        if not isinstance(value, str):
            return
        self.string_literals.append(value)

        raw = node.get("raw") or ""
        if ESCAPE_PATTERN.search(value) or ESCAPE_PATTERN.search(raw):
            self.signals.has_obfuscated_code = True
            self._add_violation(
                "no-obfuscation",
                "Hex/Unicode escape obfuscation is not allowed",
                node,
            )

    # --- post-pass ---------------------------------------------------------

    def _finalize(self, permissions: CodePermissions) -> None:
        signals = self.signals

        signals.entropy = calculate_average_entropy(self.string_literals)
        if signals.entropy > ENTROPY_THRESHOLD:
            signals.has_obfuscated_code = True
            self._add_violation(
                "no-obfuscation",
                f"String entropy is abnormally high ({signals.entropy:.2f}), possible obfuscation",
            )

        suspicious = [
            name for name in self.variable_names
            if SUSPICIOUS_NAME_PATTERN.match(name) and calculate_entropy(name) > SUSPICIOUS_NAME_ENTROPY
        ]
        if suspicious:
            signals.has_obfuscated_code = True
            signals.suspicious_variable_names = True
            self._add_violation(
                "no-obfuscation",
                f"Suspicious variable names detected: {', '.join(suspicious[:3])}...",
            )

        signals.referenced_domains = extract_domains(self.url_strings)

        if signals.has_network_api:
            allowed = set(permissions.allowed_domains) | set(ALLOWED_DOMAINS)
            unauthorized = [d for d in signals.referenced_domains if d not in allowed]
            if unauthorized or signals.has_dynamic_url_construction:
                signals.has_network_without_permission = True
                self._add_violation(
                    "no-network-without-permission",
                    "Network access requires a permission declared in the world manifest",
                )


def _string_literal(node: Optional[Dict[str, Any]]) -> Optional[str]:
    """Value of a string literal (or expression-free template literal) node."""
    if not node:
        return None
    if node.get("type") == "Literal" and isinstance(node.get("value"), str):
        return node["value"]
    if node.get("type") == "TemplateLiteral" and not node.get("expressions"):
        quasis = node.get("quasis") or []
        if len(quasis) == 1:
            cooked = (quasis[0].get("value") or {}).get("cooked")
            if isinstance(cooked, str):
                return cooked
    return None


def _property_name(member: Dict[str, Any]) -> Optional[str]:
    """Name of a non-computed member property (``a.b`` yields ``b``)."""
    if member.get("computed"):
        return None
    prop = member.get("property") or {}
    if prop.get("type") == "Identifier":
        return prop.get("name")
    return None


def analyze_code_security(code: str, permissions: Optional[CodePermissions] = None,
                          verbose: bool = False) -> SecuritySignals:
    """
    Run one detection pass over JavaScript source.

    Raises:
        ParseError: If the code is not valid JavaScript
    """
    return SignalDetector(verbose=verbose).detect(code, permissions)
