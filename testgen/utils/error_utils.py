"""Utilities for error handling and sanitization."""

import re

_REDACTIONS = [
    (re.compile(r"sk-[a-zA-Z0-9_-]{10,}"), "sk-***"),  # OpenAI API keys
    (re.compile(r"Bearer\s+[A-Za-z0-9._~+/=-]+", re.IGNORECASE), "Bearer ***"),
    (re.compile(r"api[_-]?key[=:]\s*[a-zA-Z0-9_-]+", re.IGNORECASE), "api_key=***"),
    (re.compile(r"password[=:]\s*[^\s]+", re.IGNORECASE), "password=***"),
    (re.compile(r"token[=:]\s*[a-zA-Z0-9_.-]+", re.IGNORECASE), "token=***"),
    (re.compile(r"secret[=:]\s*[^\s]+", re.IGNORECASE), "secret=***"),
]

GENERIC_ERROR = "An internal error occurred. Please try again later."


def sanitize_error_message(error_message: str, is_production: bool = False) -> str:
    """
    Sanitize error messages to prevent exposing credentials.

    Credentials are redacted in every environment; file paths only in production.

    Args:
        error_message: Original error message
        is_production: Whether running in production mode

    Returns:
        Sanitized error message safe to return to clients
    """
    sanitized = error_message
    for pattern, replacement in _REDACTIONS:
        sanitized = pattern.sub(replacement, sanitized)

    if not is_production:
        return sanitized

    # Remove file paths that might expose system structure
    sanitized = re.sub(r"/[^\s]+\.(py|db|log|txt|pdf)", "***", sanitized)

    if sanitized != error_message and len(sanitized.strip()) < 10:
        return GENERIC_ERROR

    return sanitized
