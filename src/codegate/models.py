"""
Data shapes shared by the detector, scorer and validation boundary.

The dataclasses here mirror the request/response shapes exchanged with the
world host: ``to_dict``/``from_dict`` convert between the snake_case Python
attributes and the camelCase wire format.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional


CRITICAL = "critical"
WARNING = "warning"

REJECT = "REJECT"
REVIEW = "REVIEW"
APPROVE = "APPROVE"


@dataclass(frozen=True)
class Location:
    """Source position of a rule trigger (1-based line, 0-based column)."""
    line: int
    column: int
    snippet: str = ""


@dataclass(frozen=True)
class Violation:
    """
    A single rule trigger.
    """
    rule: str
    severity: str  # 'critical' or 'warning'
    message: str
    location: Optional[Location] = None

    def with_severity(self, severity: str) -> "Violation":
        """Return a copy of this violation with a different severity."""
        return Violation(self.rule, severity, self.message, self.location)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "rule": self.rule,
            "severity": self.severity,
            "message": self.message,
        }
        if self.location is not None:
            result["location"] = {
                "line": self.location.line,
                "column": self.location.column,
                "code": self.location.snippet,
            }
        return result


@dataclass
class SecuritySignals:
    """
    Accumulator filled by one detection pass over a syntax tree.
    """
    has_eval: bool = False
    has_dynamic_code_execution: bool = False
    has_network_api: bool = False
    has_network_without_permission: bool = False
    has_dynamic_url_construction: bool = False
    has_obfuscated_code: bool = False
    has_global_variable_override: bool = False
    has_storage_access: bool = False
    has_navigator_access: bool = False
    has_dangerous_dom_manipulation: bool = False
    entropy: float = 0.0
    suspicious_variable_names: bool = False
    imported_packages: List[str] = field(default_factory=list)
    referenced_domains: List[str] = field(default_factory=list)
    detected_violations: List[Violation] = field(default_factory=list)


@dataclass
class CodePermissions:
    """Permissions declared by the world manifest."""
    allowed_domains: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CodePermissions":
        """Build permissions from ``{"network": {"allowedDomains": [...]}}``."""
        network = (data or {}).get("network") or {}
        return cls(allowed_domains=list(network.get("allowedDomains") or []))


@dataclass
class FileContext:
    """Provenance of a file inside a federated world bundle."""
    file_path: str
    is_user_code: bool = False
    is_shared_library: bool = False
    is_bundled_dependency: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileContext":
        return cls(
            file_path=data.get("filePath", ""),
            is_user_code=bool(data.get("isUserCode")),
            is_shared_library=bool(data.get("isSharedLibrary")),
            is_bundled_dependency=bool(data.get("isBundledDependency")),
        )


@dataclass
class ValidateCodeRequest:
    """
    Input of a single validation.

    ``package_json`` follows the ``package.json`` shape (only
    ``dependencies`` is read); ``manifest_config`` may carry a
    ``permissions`` mapping in the wire format accepted by
    ``CodePermissions.from_dict``.
    """
    code: str
    package_json: Dict[str, Any] = field(default_factory=dict)
    source_map: Optional[str] = None
    manifest_config: Optional[Dict[str, Any]] = None
    file_context: Optional[FileContext] = None
    file_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidateCodeRequest":
        file_context = data.get("fileContext")
        return cls(
            code=data["code"],
            package_json=data.get("packageJson") or {},
            source_map=data.get("sourceMap"),
            manifest_config=data.get("manifestConfig"),
            file_context=FileContext.from_dict(file_context) if file_context else None,
            file_path=data.get("filePath"),
        )

    @property
    def permissions(self) -> CodePermissions:
        return CodePermissions.from_dict((self.manifest_config or {}).get("permissions"))


@dataclass
class ValidateCodeResponse:
    """
    Result of a single validation.

    ``valid`` is derived from the context-adjusted ``critical`` bucket while
    ``security_score`` and ``verdict`` come from the unadjusted signals, so
    the two views may disagree for relaxed contexts.
    """
    valid: bool
    security_score: int
    verdict: str
    critical: List[Violation] = field(default_factory=list)
    warnings: List[Violation] = field(default_factory=list)
    entropy: float = 0.0
    suspicious_patterns: List[str] = field(default_factory=list)
    detected_apis: List[str] = field(default_factory=list)
    external_dependencies: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "securityScore": self.security_score,
            "verdict": self.verdict,
            "violations": {
                "critical": [v.to_dict() for v in self.critical],
                "warnings": [v.to_dict() for v in self.warnings],
            },
            "analysis": {
                "entropy": self.entropy,
                "suspiciousPatterns": list(self.suspicious_patterns),
                "detectedAPIs": list(self.detected_apis),
                "externalDependencies": list(self.external_dependencies),
            },
        }
