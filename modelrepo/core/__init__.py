"""Model repository core: row store, version resolution, deployment, queries."""

from modelrepo.core.deployer import DeploymentCoordinator
from modelrepo.core.errors import (
    ConflictError,
    ConsistencyError,
    ExtractionError,
    ModelNotFoundError,
    ModelRepoError,
    PreconditionError,
    RepositoryNotInstalledError,
    RollbackError,
    UploadError,
)
from modelrepo.core.query import QueryLayer
from modelrepo.core.repository import ModelRepository
from modelrepo.core.row_store import RowStore, SqliteRowStore
from modelrepo.core.version_resolver import VersionResolver

__all__ = [
    "ModelRepository",
    "DeploymentCoordinator",
    "QueryLayer",
    "VersionResolver",
    "RowStore",
    "SqliteRowStore",
    # errors
    "ModelRepoError",
    "PreconditionError",
    "ConflictError",
    "ExtractionError",
    "UploadError",
    "RollbackError",
    "ConsistencyError",
    "ModelNotFoundError",
    "RepositoryNotInstalledError",
]
