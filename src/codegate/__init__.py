"""
codegate - Static admission gate for third-party world code

Vets JavaScript bundles before they run inside a shared world runtime by
detecting credential theft, fingerprinting, unauthorized network egress,
DOM/prototype tampering and obfuscation from the syntax tree alone.
"""

__version__ = "0.1.0"

from .analysis import SignalDetector, analyze_code_security
from .config import Config, config
from .detector import CodeValidator, validate_code
from .file_context import adjust_violation_severity, describe_file_context, determine_file_context
from .models import (
    CodePermissions,
    FileContext,
    Location,
    SecuritySignals,
    ValidateCodeRequest,
    ValidateCodeResponse,
    Violation,
)
from .parser import JavaScriptParser, ParseError
from .scoring import calculate_security_score, get_security_verdict

__all__ = [
    "SignalDetector",
    "analyze_code_security",
    "Config",
    "config",
    "CodeValidator",
    "validate_code",
    "adjust_violation_severity",
    "describe_file_context",
    "determine_file_context",
    "CodePermissions",
    "FileContext",
    "Location",
    "SecuritySignals",
    "ValidateCodeRequest",
    "ValidateCodeResponse",
    "Violation",
    "JavaScriptParser",
    "ParseError",
    "calculate_security_score",
    "get_security_verdict",
]
