"""Model repository data models: all Pydantic v2, all frozen (immutable)."""

from modelrepo.models.deployment import (
    VALID_TRANSITIONS,
    DeploymentResult,
    DeployMode,
    DeployState,
)
from modelrepo.models.identity import ZERO_VERSION, ArtifactIdentity, SemanticVersion
from modelrepo.models.layout import RepoLayout
from modelrepo.models.record import (
    ALL_FIELDS,
    DEFAULT_FIELDS,
    LOCATION_KEY,
    MESSAGES_KEY,
    MODEL_CONTAINER_KEY,
    PRODUCTION_READY_KEY,
    UPLOADED_KEY,
    ArtifactRecord,
    Cell,
    LocationIssue,
    Row,
    RowKey,
)

__all__ = [
    # identity
    "ArtifactIdentity",
    "SemanticVersion",
    "ZERO_VERSION",
    # records
    "ArtifactRecord",
    "Cell",
    "LocationIssue",
    "Row",
    "RowKey",
    "ALL_FIELDS",
    "DEFAULT_FIELDS",
    "UPLOADED_KEY",
    "LOCATION_KEY",
    "PRODUCTION_READY_KEY",
    "MESSAGES_KEY",
    "MODEL_CONTAINER_KEY",
    # deployment
    "DeployMode",
    "DeployState",
    "DeploymentResult",
    "VALID_TRANSITIONS",
    # layout
    "RepoLayout",
]
