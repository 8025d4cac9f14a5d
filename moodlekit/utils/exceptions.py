"""
Exception hierarchy and error handling utilities for moodlekit.

Provides:
- Custom exception classes with error codes
- Error categorization (transport, protocol, remote, render)
- Safe error message formatting (no sesskey/cookie leak)
"""

from __future__ import annotations

import asyncio
import json
import re
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    REMOTE = "remote"
    RENDER = "render"
    VALIDATION = "validation"
    TIMEOUT = "timeout"
    FATAL = "fatal"


class MoodleKitError(Exception):
    """Base exception for all moodlekit errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ValidationError(MoodleKitError):
    """Input validation error."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", category=ErrorCategory.VALIDATION, details=details)


class TransportError(MoodleKitError):
    """The batch never produced a usable response (network, HTTP status, body)."""

    def __init__(self, message: str, status_code: int | None = None, retryable: bool = False):
        super().__init__(
            message,
            code="TRANSPORT_ERROR",
            category=ErrorCategory.TRANSPORT,
            details={"status_code": status_code, "retryable": retryable},
        )
        self.status_code = status_code
        self.retryable = retryable


class ProtocolError(MoodleKitError):
    """The response array did not line up with the batch."""

    def __init__(self, message: str = "missing response", index: int | None = None):
        super().__init__(
            message,
            code="MISSING_RESPONSE",
            category=ErrorCategory.PROTOCOL,
            details={"index": index},
        )
        self.index = index


class RemoteCallError(MoodleKitError):
    """A single call in the batch reported an exception."""

    def __init__(
        self,
        message: str,
        *,
        errorcode: str | None = None,
        exception: str | None = None,
        debuginfo: str | None = None,
        methodname: str | None = None,
    ):
        super().__init__(
            message,
            code="REMOTE_CALL_ERROR",
            category=ErrorCategory.REMOTE,
            details={
                "errorcode": errorcode,
                "exception": exception,
                "debuginfo": debuginfo,
                "methodname": methodname,
            },
        )
        self.errorcode = errorcode
        self.exception = exception
        self.debuginfo = debuginfo
        self.methodname = methodname


class TemplateSyntaxError(MoodleKitError):
    """Malformed mustache source."""

    def __init__(self, message: str, line: int | None = None, template: str | None = None):
        where = f" (line {line})" if line is not None else ""
        super().__init__(
            f"{message}{where}",
            code="TEMPLATE_SYNTAX_ERROR",
            category=ErrorCategory.RENDER,
            details={"line": line, "template": template},
        )
        self.line = line


class StringArgumentError(MoodleKitError):
    """A {{#str}} param looked like JSON but did not parse."""

    def __init__(self, key: str, component: str, param: str, reason: str):
        super().__init__(
            f"Invalid JSON argument for string '{key}' in '{component}': {reason}",
            code="STRING_ARGUMENT_ERROR",
            category=ErrorCategory.RENDER,
            details={"key": key, "component": component, "param": param},
        )


_SENSITIVE_PATTERNS = [
    re.compile(r"(sesskey|token|wstoken|password|MoodleSession\w*)[=:]\s*['\"]?([^\s&'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"[a-zA-Z0-9]{32,}"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove sensitive information from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def classify_exception(exc: BaseException) -> tuple[str, ErrorCategory, bool]:
    """
    Classify an exception and return (error_code, category, should_retry).

    Nothing in moodlekit retries on its own; should_retry is advice for callers.
    """
    if isinstance(exc, TransportError):
        return exc.code, exc.category, exc.retryable

    if isinstance(exc, MoodleKitError):
        return exc.code, exc.category, False

    if isinstance(exc, asyncio.TimeoutError):
        return "TIMEOUT", ErrorCategory.TIMEOUT, True

    if isinstance(exc, ConnectionError):
        return "CONNECTION_ERROR", ErrorCategory.TRANSPORT, True

    if isinstance(exc, json.JSONDecodeError):
        return "JSON_PARSE_ERROR", ErrorCategory.VALIDATION, False

    if isinstance(exc, (ValueError, KeyError, TypeError)):
        return "INVALID_VALUE", ErrorCategory.VALIDATION, False

    exc_str = str(exc).lower()
    if "timeout" in exc_str or "timed out" in exc_str:
        return "TIMEOUT", ErrorCategory.TIMEOUT, True

    if "connection" in exc_str or "network" in exc_str:
        return "CONNECTION_ERROR", ErrorCategory.TRANSPORT, True

    return "INTERNAL_ERROR", ErrorCategory.FATAL, False


def format_error(exc: BaseException, include_details: bool = False) -> str:
    """Format an exception as a single user-facing line."""
    code, category, _ = classify_exception(exc)

    if isinstance(exc, MoodleKitError):
        message = exc.message
    else:
        message = sanitize_error_message(str(exc))

    if include_details:
        return f"Error [{code}] ({category.value}): {message}"
    return f"Error: {message}"
