"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    kind = "app_error"

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class InvalidArgumentError(AppError):
    """Raised when input is malformed (empty ids, bad names, blank codes)."""

    kind = "invalid_argument"

    def __init__(self, message="Invalid argument."):
        """Initialize the error."""
        super().__init__(message, 400)


class InvalidPeriodTypeError(InvalidArgumentError):
    """Raised when a competition period type is not recognised."""

    kind = "invalid_period_type"

    def __init__(self, period_type):
        """Initialize the error."""
        super().__init__(f"Unknown period type: {period_type}")
        self.period_type = period_type


class NotFoundError(AppError):
    """Raised when a group, user or membership is not found."""

    kind = "not_found"

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class ConflictError(AppError):
    """Raised when trying to create a membership that already exists."""

    kind = "conflict"

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class UnauthorizedError(AppError):
    """Raised when a role or ownership check fails."""

    kind = "unauthorized"

    def __init__(self, message="You are not allowed to do that."):
        """Initialize the error."""
        super().__init__(message, 403)


class InvalidOperationError(AppError):
    """Raised when an action would break a group invariant."""

    kind = "invalid_operation"

    def __init__(self, message="Operation not allowed."):
        """Initialize the error."""
        super().__init__(message, 400)


class DependencyFailureError(AppError):
    """Raised when a required collaborator call failed entirely."""

    kind = "dependency_failure"

    def __init__(self, message="An external service error occurred."):
        """Initialize the error."""
        super().__init__(message, 502)


class InvariantError(AppError):
    """Raised when the store returns data that contradicts a completed write."""

    kind = "invariant"

    def __init__(self, message="The group store is in an inconsistent state."):
        """Initialize the error."""
        super().__init__(message, 500)
