"""Custom exception hierarchy.

Every error carries the HTTP status it maps to so the API layer can render
it without re-classifying.
"""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""

    status_code: int = 500
    title: str = "Internal Server Error"

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class AuthenticationRequired(AppError):
    """Raised when a request has no valid caller identity."""

    status_code = 401
    title = "Authentication Required"


class PermissionDenied(AppError):
    """Raised when the caller lacks the role an operation needs."""

    status_code = 403
    title = "Forbidden"


class ResourceNotFound(AppError):
    """Raised when a conversation, template or document is missing or not owned by the caller."""

    status_code = 404
    title = "Not Found"


class ValidationFailed(AppError):
    """Raised when request input is missing required fields or is malformed."""

    status_code = 400
    title = "Validation Failed"


class InvalidStatusTransition(AppError):
    """Raised when a generated document would move backwards in its lifecycle."""

    status_code = 409
    title = "Invalid Status Transition"


class UpstreamFailure(AppError):
    """Raised when the LLM provider or the PDF library fails."""

    status_code = 500
    title = "Upstream Failure"


class APIClientError(UpstreamFailure):
    """Raised when an external API call fails."""
    pass


class PdfProcessingError(UpstreamFailure):
    """Raised when a PDF cannot be fetched, loaded or saved."""
    pass


class PersistenceFailure(AppError):
    """Raised when a database or storage write fails."""

    status_code = 500
    title = "Persistence Failure"


class StorageError(PersistenceFailure):
    """Raised when an object storage operation fails."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass
