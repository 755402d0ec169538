"""Custom exception classes."""

from typing import Any, Dict, Optional


class TestGeneratorException(Exception):
    """Base exception for the application."""

    __test__ = False
    default_reason = "internal-error"

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            reason: Machine-readable error kind
            details: Additional error details
        """
        self.message = message
        self.reason = reason or self.default_reason
        self.details = details or {}
        super().__init__(self.message)


class UnauthorizedException(TestGeneratorException):
    """Missing or invalid caller identity."""

    default_reason = "unauthorized"


class DocumentAccessException(TestGeneratorException):
    """Document does not exist or belongs to another user."""

    default_reason = "document-not-found"


class ExtractionException(TestGeneratorException):
    """Exception raised when a PDF cannot be read."""

    default_reason = "invalid-container"


class AggregationException(TestGeneratorException):
    """Exception raised when a batch yields too little usable text."""

    default_reason = "insufficient-content"


class GenerationException(TestGeneratorException):
    """Exception raised when the LLM completion call fails."""

    default_reason = "upstream-error"


class ValidationException(TestGeneratorException):
    """Base class for input and model-output validation failures."""

    default_reason = "schema-violation"


class RequestValidationException(ValidationException):
    """Exception raised for malformed generation requests (batch size, question count)."""

    default_reason = "invalid-request"


class ResponseValidationException(ValidationException):
    """Exception raised when the model output is not a valid question list."""

    pass


class PersistenceException(TestGeneratorException):
    """Exception raised when a generated test cannot be stored."""

    default_reason = "persistence-error"
