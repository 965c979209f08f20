"""Row and record models for the model repository table.

Field names below are the wire contract with the row store: every row is
addressed by ``(name, version)`` and carries per-field, timestamped cells.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from modelrepo.models.identity import ArtifactIdentity, SemanticVersion

UPLOADED_KEY = "uploaded"
LOCATION_KEY = "location"
PRODUCTION_READY_KEY = "production_ready"
MESSAGES_KEY = "message"
MODEL_CONTAINER_KEY = "container"

ALL_FIELDS: frozenset[str] = frozenset({
    UPLOADED_KEY,
    LOCATION_KEY,
    PRODUCTION_READY_KEY,
    MESSAGES_KEY,
    MODEL_CONTAINER_KEY,
})

# Fields returned by point reads and listings when the caller asks for none.
DEFAULT_FIELDS: frozenset[str] = frozenset({
    MODEL_CONTAINER_KEY,
    LOCATION_KEY,
    PRODUCTION_READY_KEY,
    MESSAGES_KEY,
})


class RowKey(BaseModel):
    """Row store key: artifact name plus canonical version string."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str

    @classmethod
    def for_identity(cls, identity: ArtifactIdentity) -> RowKey:
        if identity.version is None:
            raise ValueError(f"Artifact {identity.name} has no version.")
        return cls(name=identity.name, version=str(identity.version))

    def to_identity(self) -> ArtifactIdentity:
        return ArtifactIdentity(
            name=self.name, version=SemanticVersion.parse(self.version)
        )


class Cell(BaseModel):
    """One timestamped value of one field."""

    model_config = ConfigDict(frozen=True)

    value: Any
    written_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class Row(BaseModel):
    """A row as read from the store; cells per field are newest first."""

    model_config = ConfigDict(frozen=True)

    key: RowKey
    cells: dict[str, list[Cell]] = Field(default_factory=dict)

    def contains(self, field: str) -> bool:
        return bool(self.cells.get(field))

    def most_recent(self, field: str, default: Any = None) -> Any:
        cells = self.cells.get(field)
        return cells[0].value if cells else default

    def history(self, field: str) -> list[Cell]:
        return list(self.cells.get(field, []))

    @property
    def is_uploaded(self) -> bool:
        return self.most_recent(UPLOADED_KEY) is True

    @property
    def is_production_ready(self) -> bool:
        return self.most_recent(PRODUCTION_READY_KEY) is True


class ArtifactRecord(BaseModel):
    """A published artifact projected to the fields a caller requested.

    Unrequested fields stay ``None``. ``messages`` holds the message history
    (newest first), bounded by the read's ``max_versions``.
    """

    model_config = ConfigDict(frozen=True)

    identity: ArtifactIdentity
    location: str | None = None
    production_ready: bool | None = None
    message: str | None = None
    messages: list[Cell] = Field(default_factory=list)
    # Opaque JSON value; any shape the deployer stored is returned as is.
    container: Any = None

    @classmethod
    def from_row(cls, row: Row, fields: frozenset[str]) -> ArtifactRecord:
        values: dict[str, Any] = {"identity": row.key.to_identity()}
        if LOCATION_KEY in fields:
            values["location"] = row.most_recent(LOCATION_KEY)
        if PRODUCTION_READY_KEY in fields:
            values["production_ready"] = row.most_recent(PRODUCTION_READY_KEY)
        if MESSAGES_KEY in fields:
            values["message"] = row.most_recent(MESSAGES_KEY)
            values["messages"] = row.history(MESSAGES_KEY)
        if MODEL_CONTAINER_KEY in fields:
            values["container"] = row.most_recent(MODEL_CONTAINER_KEY)
        return cls(**values)


class LocationIssue(BaseModel):
    """A committed record whose location does not resolve to a valid package."""

    model_config = ConfigDict(frozen=True)

    identity: ArtifactIdentity
    location: str | None
    reason: str

    def __str__(self) -> str:
        return f"{self.identity}: {self.reason} ({self.location})"
