class PontoError(Exception):
    """Base exception for the time clock service."""


class ValidationError(PontoError):
    """Raised when a request carries malformed input."""


class NotFoundError(PontoError):
    """Raised when a referenced user, punch or justification does not exist."""


class ForbiddenError(PontoError):
    """Raised when the caller may not perform the action."""


class ConflictError(PontoError):
    """Raised when the action clashes with the current state of a record."""


class AlreadyReviewedError(ConflictError):
    """Raised when a justification has already left the pending state."""


class DimensionMismatchError(PontoError):
    """Raised when two embeddings of different length are compared."""


class StorageError(PontoError):
    """Raised when the storage layer fails."""
