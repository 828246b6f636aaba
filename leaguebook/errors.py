"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    code = "internal"

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def to_dict(self):
        """Return the error in the shape sent back to callers."""
        return {"code": self.code, "message": self.message}


class InvalidArgument(AppError):
    """Raised when required input is missing or malformed."""

    code = "invalid-argument"

    def __init__(self, message="Invalid argument."):
        """Initialize the error."""
        super().__init__(message, 400)


class Unauthenticated(AppError):
    """Raised when the caller has no verified identity."""

    code = "unauthenticated"

    def __init__(self, message="You must be signed in."):
        """Initialize the error."""
        super().__init__(message, 401)


class PermissionDenied(AppError):
    """Raised when the caller lacks the required role, permission or membership."""

    code = "permission-denied"

    def __init__(self, message="Not authorized."):
        """Initialize the error."""
        super().__init__(message, 403)


class NotFound(AppError):
    """Raised when a referenced resource is not found."""

    code = "not-found"

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class AlreadyExists(AppError):
    """Raised when trying to claim a resource that already exists."""

    code = "already-exists"

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class FailedPrecondition(AppError):
    """Raised when the resource is not in the state the operation requires."""

    code = "failed-precondition"

    def __init__(self, message="Operation not allowed in the current state."):
        """Initialize the error."""
        super().__init__(message, 412)
