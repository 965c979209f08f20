"""Error taxonomy for the model repository.

Every error raised by the repository derives from ``ModelRepoError`` so
callers can tell repository failures apart from programming errors, and
the concrete subclass tells them which step of a deployment failed.
"""

from __future__ import annotations


class ModelRepoError(RuntimeError):
    """Base class for all model repository errors."""


class PreconditionError(ModelRepoError, ValueError):
    """Raised before any state mutation when caller input is unusable."""


class ConflictError(ModelRepoError):
    """Raised when a reservation loses: the target version already exists."""


class ExtractionError(ModelRepoError):
    """Raised when a record is absent, uncommitted, or missing a required field."""


class UploadError(ModelRepoError):
    """Raised when packaging or upload fails after a successful reservation."""


class RollbackError(ModelRepoError):
    """Raised when deleting a reserved row fails during rollback.

    The key is left permanently reserved and needs manual intervention.
    """

    def __init__(self, message: str, *, original: BaseException, rollback_error: BaseException) -> None:
        super().__init__(message)
        self.original = original
        self.rollback_error = rollback_error


class ConsistencyError(ModelRepoError):
    """Raised when the final commit of a reserved row unexpectedly fails."""


class ModelNotFoundError(ModelRepoError):
    """Raised when updating a model that is not committed in the repository."""


class RepositoryNotInstalledError(ModelRepoError):
    """Raised when the model repository table or its metadata is missing."""
