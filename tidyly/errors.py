"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    code = "error"
    retryable = False

    def __init__(self, message, status_code=400, code=None):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        if code:
            self.code = code


class ValidationError(AppError):
    """Raised when a request fails a domain rule (self request, duplicates)."""

    code = "validation_error"

    def __init__(self, message="Validation failed.", code=None):
        """Initialize the error."""
        super().__init__(message, 400, code)


class NotFoundError(AppError):
    """Raised when a user, room, code or request is not found."""

    code = "not_found"

    def __init__(self, message="Resource not found.", code=None):
        """Initialize the error."""
        super().__init__(message, 404, code)


class AuthorizationError(AppError):
    """Raised when the acting user may not perform a membership change."""

    code = "not_authorized"

    def __init__(self, message="You are not allowed to do that.", code=None):
        """Initialize the error."""
        super().__init__(message, 403, code)


class ConflictError(AppError):
    """Raised when trying to create a resource that already exists."""

    code = "conflict"

    def __init__(self, message="Resource already exists.", code=None):
        """Initialize the error."""
        super().__init__(message, 409, code)


class StorageError(AppError):
    """Raised when the document store is unreachable or rejects a commit.

    The whole operation may be retried.
    """

    code = "storage_error"
    retryable = True

    def __init__(self, message="The data store is unavailable. Please try again."):
        """Initialize the error."""
        super().__init__(message, 503)
