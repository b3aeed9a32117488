"""Base service exceptions.

These exceptions are raised by the service layer and should be caught
by the API layer and converted to appropriate HTTP responses.
"""


class ServiceError(Exception):
    """Base service exception."""

    pass


class NotFoundError(ServiceError):
    """Resource not found."""

    pass


class ValidationError(ServiceError):
    """Validation error."""

    pass


class ConflictError(ServiceError):
    """Resource already exists or is owned by someone else."""

    pass


class AuthenticationError(ServiceError):
    """Credentials or session token rejected."""

    pass


class StorageError(ServiceError):
    """Persistence layer failed. The transaction was rolled back."""

    pass
