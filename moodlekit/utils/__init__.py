"""Utility functions for moodlekit."""

from moodlekit.utils.exceptions import (
    MoodleKitError,
    ValidationError,
    TransportError,
    ProtocolError,
    RemoteCallError,
    TemplateSyntaxError,
    StringArgumentError,
    ErrorCategory,
    classify_exception,
    sanitize_error_message,
    format_error,
)

__all__ = [
    "MoodleKitError",
    "ValidationError",
    "TransportError",
    "ProtocolError",
    "RemoteCallError",
    "TemplateSyntaxError",
    "StringArgumentError",
    "ErrorCategory",
    "classify_exception",
    "sanitize_error_message",
    "format_error",
]
