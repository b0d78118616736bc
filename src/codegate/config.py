"""
Configuration module for managing environment variables and settings.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv


DEFAULT_MAX_FILE_BYTES = 5 * 1024 * 1024


class Config:
    """Configuration for the command-line scanner."""

    def __init__(self, env_path: Path = None):
        """
        Initialize configuration and load environment variables.

        Args:
            env_path: .env file to load; defaults to the working directory's
        """
        load_dotenv(env_path or Path.cwd() / ".env")
        self._errors: List[str] = []

        # Extra network permissions granted to every scanned file
        self.allowed_domains: List[str] = [
            domain.strip()
            for domain in os.getenv("CODEGATE_ALLOWED_DOMAINS", "").split(",")
            if domain.strip()
        ]

        self.max_file_bytes: int = self._int_env("CODEGATE_MAX_FILE_BYTES", DEFAULT_MAX_FILE_BYTES)
        self.workers: int = self._int_env("CODEGATE_WORKERS", 1)

    def _int_env(self, name: str, default: int) -> int:
        value = os.getenv(name)
        if value is None or not value.strip():
            return default
        try:
            return int(value)
        except ValueError:
            self._errors.append(f"{name} must be an integer, got {value!r}")
            return default

    def validate(self) -> dict:
        """
        Validate configured values.

        Returns:
            Dictionary with validation results
        """
        errors = list(self._errors)
        warnings = []

        if self.max_file_bytes <= 0:
            errors.append("CODEGATE_MAX_FILE_BYTES must be positive")

        if self.workers < 1:
            errors.append("CODEGATE_WORKERS must be at least 1")

        for domain in self.allowed_domains:
            if "/" in domain or ":" in domain:
                warnings.append(
                    f"CODEGATE_ALLOWED_DOMAINS entry '{domain}' looks like a URL; "
                    "only host names are matched"
                )

        return {
            "valid": len(errors) == 0,
            "errors": errors,
            "warnings": warnings,
        }


# Global config instance
config = Config()
