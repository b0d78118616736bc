"""
File provenance classification for federated world bundles.

A world build emits the author's code next to files generated by the
Module Federation toolchain (shared library chunks, the remote entry,
import shims) and bundled third-party dependencies. Generated and vendored
files legitimately use some low-level patterns, so a subset of rules is
relaxed for them; the author's own code is always checked strictly.
"""

from .models import CRITICAL, WARNING, FileContext


USER_CODE_MARKER = "__federation_expose_World-"
SHARED_LIBRARY_MARKER = "__federation_shared_"
INFRA_IMPORT_MARKER = "__federation_fn_import"
ENTRY_POINT_NAME = "remoteEntry.js"
SCRIPT_EXTENSION = ".js"

TECHNICAL_RULES = frozenset({
    "no-obfuscation",
    "no-dangerous-dom",
    "no-navigator-access",
    "no-prototype-pollution",
    "no-global-override",
    "no-network-without-permission",
})

ALWAYS_CRITICAL_RULES = frozenset({
    "no-eval",
    "no-storage-access",
    "no-storage-event",
})


def _file_name(file_path: str) -> str:
    return file_path.replace("\\", "/").split("/")[-1] or file_path


def determine_file_context(file_path: str) -> FileContext:
    """
    Classify a bundle file by its path.

    The three flags are computed independently; a file that matches none
    of them (the infra import shim) is checked strictly.
    """
    file_name = _file_name(file_path)

    is_user_code = USER_CODE_MARKER in file_name and file_name.endswith(SCRIPT_EXTENSION)
    is_shared_library = (
        file_name.startswith(SHARED_LIBRARY_MARKER)
        or SHARED_LIBRARY_MARKER in file_path
    )
    is_bundled_dependency = (
        not is_user_code
        and not is_shared_library
        and INFRA_IMPORT_MARKER not in file_name
        and file_name != ENTRY_POINT_NAME
    )

    return FileContext(
        file_path=file_path,
        is_user_code=is_user_code,
        is_shared_library=is_shared_library,
        is_bundled_dependency=is_bundled_dependency,
    )


def adjust_violation_severity(rule: str, original_severity: str, context: FileContext) -> str:
    """
    Severity of a rule violation once the file's provenance is considered.

    Args:
        rule: Rule id of the violation
        original_severity: Severity assigned by the detector
        context: Classification of the file the violation was found in

    Returns:
        'critical' or 'warning'
    """
    if context.is_user_code:
        return original_severity

    file_name = _file_name(context.file_path)
    if INFRA_IMPORT_MARKER in file_name:
        return original_severity

    is_entry_point = file_name == ENTRY_POINT_NAME
    if context.is_shared_library or context.is_bundled_dependency or is_entry_point:
        if rule in TECHNICAL_RULES:
            return WARNING
        if rule in ALWAYS_CRITICAL_RULES:
            return CRITICAL

    return original_severity


def describe_file_context(context: FileContext) -> str:
    """Human readable description of a classification."""
    if context.is_user_code:
        return "User code (strictest validation)"
    if context.is_shared_library:
        return "Shared library (generated by Module Federation, some rules relaxed)"
    if context.is_bundled_dependency:
        return "Bundled dependency (technical violations relaxed)"
    file_name = _file_name(context.file_path)
    if file_name == ENTRY_POINT_NAME:
        return "Module Federation entry point (generated, some rules relaxed)"
    if INFRA_IMPORT_MARKER in file_name:
        return "Module Federation dynamic import (strict validation)"
    return "Other file (standard validation)"
