"""Utility functions for instabridge."""

from instabridge.utils.exceptions import (
    InstabridgeError,
    ValidationError,
    ConfigError,
    NoContentError,
    BrowserError,
    StorageError,
    ErrorCategory,
    classify_exception,
    sanitize_error_message,
)

__all__ = [
    "InstabridgeError",
    "ValidationError",
    "ConfigError",
    "NoContentError",
    "BrowserError",
    "StorageError",
    "ErrorCategory",
    "classify_exception",
    "sanitize_error_message",
]
