"""
Lexical heuristics used by the detector and the scorer.

Entropy of string literals and identifier names is the obfuscation proxy;
URL literals passed to network APIs are reduced to their host names.
"""

import math
from collections import Counter
from typing import Dict, List, Any, Iterable, Optional
from urllib.parse import urlsplit

from .models import Location


# Shared by detection and scoring. Kept high enough that GLSL shader sources
# and other dense but legitimate strings pass.
ENTROPY_THRESHOLD = 7.0

# Per-name entropy above which an underscore/dollar prefixed identifier is
# considered machine generated.
SUSPICIOUS_NAME_ENTROPY = 3.5

# Strings of this length or shorter are excluded from the average entropy.
MIN_ENTROPY_LENGTH = 20

SNIPPET_MAX_LENGTH = 120

ALLOWED_PACKAGES = (
    "react",
    "react-dom",
    "three",
    "@react-three/fiber",
    "@react-three/rapier",
    "@react-three/drei",
    "@xrift/world-sdk",
)

ALLOWED_DOMAINS = (
    "cdn.jsdelivr.net",
    "unpkg.com",
    "esm.sh",
)


def calculate_entropy(value: str) -> float:
    """
    Shannon entropy of a string in bits per character.

    Args:
        value: String to measure

    Returns:
        Entropy in the range 0-8 for byte-sized alphabets, 0.0 for ""
    """
    if not value:
        return 0.0

    length = len(value)
    entropy = 0.0
    for count in Counter(value).values():
        p = count / length
        entropy -= p * math.log2(p)
    return entropy


def calculate_average_entropy(strings: Iterable[str]) -> float:
    """Average entropy over strings longer than ``MIN_ENTROPY_LENGTH``."""
    entropies = [calculate_entropy(s) for s in strings if len(s) > MIN_ENTROPY_LENGTH]
    if not entropies:
        return 0.0
    return sum(entropies) / len(entropies)


def _hostname(url: str) -> Optional[str]:
    try:
        parts = urlsplit(url.strip())
        # accessing .port validates it
        parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return parts.hostname or None


def extract_domains(urls: Iterable[str]) -> List[str]:
    """
    Extract host names from URL strings.

    Entries that do not parse as absolute URLs are dropped silently.
    """
    domains = []
    for url in urls:
        host = _hostname(url)
        if host is not None:
            domains.append(host)
    return domains


def is_allowed_package(name: str) -> bool:
    """Check whether an import source starts with an allowed package prefix."""
    return any(name.startswith(prefix) for prefix in ALLOWED_PACKAGES)


def get_callee_name(callee: Dict[str, Any]) -> Optional[str]:
    """
    Name of the function being called.

    ``foo()`` yields ``foo``; ``a.b.foo()`` yields ``foo``. Computed
    member callees (``a[x]()``) have no name.
    """
    node_type = callee.get("type")
    if node_type == "Identifier":
        return callee.get("name")
    if node_type == "MemberExpression" and not callee.get("computed"):
        prop = callee.get("property") or {}
        if prop.get("type") == "Identifier":
            return prop.get("name")
    return None


def get_location(node: Dict[str, Any], code: str = "") -> Optional[Location]:
    """
    Build a Location from a node's ``loc``/``range`` information.

    Args:
        node: AST node dictionary
        code: Source text the node was parsed from, for the snippet

    Returns:
        Location, or None when the parser recorded no position
    """
    loc = node.get("loc")
    if not loc:
        return None
    start = loc.get("start") or {}
    snippet = ""
    node_range = node.get("range")
    if code and node_range:
        snippet = code[node_range[0]:node_range[1]].strip()
        if len(snippet) > SNIPPET_MAX_LENGTH:
            snippet = snippet[:SNIPPET_MAX_LENGTH] + "..."
    return Location(line=start.get("line", 0), column=start.get("column", 0), snippet=snippet)
