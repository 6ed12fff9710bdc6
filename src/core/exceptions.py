"""Custom exception classes for the ThesisHub backend.

Every business rule violation raised by the managers derives from
ThesisHubError and is reported synchronously to the caller. The route layer
maps each class onto an HTTP status code.
"""


class ThesisHubError(Exception):
    """Base exception for all ThesisHub errors."""

    pass


class ValidationError(ThesisHubError):
    """Raised when input is malformed or out of range."""

    pass


class AuthorizationError(ThesisHubError):
    """Raised when the actor lacks the role or standing for an operation."""

    pass


class NotFoundError(ThesisHubError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, key=None):
        """Initialize the exception.

        Args:
            entity: Human readable name of the missing entity.
            key: Optional identifier of the missing entity.
        """
        self.entity = entity
        self.key = key
        if key is None:
            super().__init__(f"{entity} not found")
        else:
            super().__init__(f"{entity} '{key}' not found")


class ConflictError(ThesisHubError):
    """Raised when the current state already satisfies the request."""

    pass


class CapacityError(ThesisHubError):
    """Raised when a thesis already has its maximum number of supervisors."""

    pass


class InvalidStateError(ThesisHubError):
    """Raised when an operation is not valid for the current thesis status."""

    pass


class StorageError(ThesisHubError):
    """Raised when the database fails unexpectedly; nothing was committed."""

    pass
