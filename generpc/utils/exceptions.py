"""
Exception hierarchy and error message helpers for generpc.

Provides:
- A base exception for programmer errors detected at startup
- Safe error message formatting (no sensitive data leak)
"""

from __future__ import annotations

import re


class GeneRPCError(Exception):
    """Base exception for all generpc errors."""

    def __init__(self, message: str, code: str = "GENERPC_ERROR"):
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class RegistrationError(GeneRPCError, ValueError):
    """Invalid coder or method registration (empty name, empty handler, duplicate)."""

    def __init__(self, message: str, name: str | None = None):
        super().__init__(message, code="REGISTRATION_ERROR")
        self.name = name


_SENSITIVE_PATTERNS = [
    re.compile(r"(api[_-]?key|token|secret|password|auth)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"[a-zA-Z0-9]{32,}"),
    re.compile(r"sk-[a-zA-Z0-9]{20,}"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove sensitive information from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized
