"""Operator error taxonomy."""

from typing import Optional


class OperatorError(Exception):
    """Base class for all operator errors."""
    pass


class NotFoundError(OperatorError):
    """Object does not exist in the cluster."""
    pass


class ConflictError(OperatorError):
    """Update rejected because the resourceVersion was stale."""
    pass


class AlreadyExistsError(OperatorError):
    """Create rejected because the object already exists."""
    pass


class SchemeError(OperatorError):
    """Owner type is not registered with the scheme."""
    pass


class AlreadyOwnedError(OperatorError):
    """Object is already controlled by a different owner."""
    pass


class InvalidSpecError(OperatorError):
    """DataNode resource failed validation."""
    pass


class ClusterAPIError(OperatorError):
    """Any other failure talking to the API server."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
