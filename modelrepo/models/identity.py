"""Artifact identity models: semantic versions and (name, version) pairs."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")
_IDENTITY_RE = re.compile(r"^(?P<name>\S+?)(?:-(?P<version>\d+\.\d+\.\d+))?$")
# A trailing "-<digits and dots>" that is not a full version, e.g. "model-1.0".
_PARTIAL_VERSION_RE = re.compile(r"-[\d.]+$")


class SemanticVersion(BaseModel):
    """A ``major.minor.patch`` version, totally ordered on the integer triple."""

    model_config = ConfigDict(frozen=True)

    major: int = Field(ge=0)
    minor: int = Field(ge=0)
    patch: int = Field(ge=0)

    @classmethod
    def parse(cls, text: str) -> SemanticVersion:
        """Parse ``"M.m.p"``. Raises ``ValueError`` on anything else."""
        match = _VERSION_RE.match(text.strip())
        if match is None:
            raise ValueError(f"Invalid version string: {text!r}")
        major, minor, patch = (int(part) for part in match.groups())
        return cls(major=major, minor=minor, patch=patch)

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def next_patch(self) -> SemanticVersion:
        """Return the version with the patch component bumped by one."""
        return SemanticVersion(major=self.major, minor=self.minor, patch=self.patch + 1)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def __lt__(self, other: SemanticVersion) -> bool:
        return self.as_tuple() < other.as_tuple()

    def __le__(self, other: SemanticVersion) -> bool:
        return self.as_tuple() <= other.as_tuple()

    def __gt__(self, other: SemanticVersion) -> bool:
        return self.as_tuple() > other.as_tuple()

    def __ge__(self, other: SemanticVersion) -> bool:
        return self.as_tuple() >= other.as_tuple()


ZERO_VERSION = SemanticVersion(major=0, minor=0, patch=0)


class ArtifactIdentity(BaseModel):
    """Addresses one artifact record: an opaque name plus an optional version.

    The textual form is ``<name>`` or ``<name>-<major.minor.patch>``,
    e.g. ``org.acme.model-1.0.0``. Names may contain hyphens; only a trailing
    ``-M.m.p`` is read as the version.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    version: SemanticVersion | None = None

    @classmethod
    def parse(cls, text: str) -> ArtifactIdentity:
        """Parse ``name[-version]``. Raises ``ValueError`` on malformed input."""
        match = _IDENTITY_RE.match(text.strip())
        if match is None:
            raise ValueError(f"Invalid artifact identity: {text!r}")
        version = match.group("version")
        if version is None and _PARTIAL_VERSION_RE.search(match.group("name")):
            raise ValueError(f"Invalid artifact identity: {text!r}")
        return cls(
            name=match.group("name"),
            version=SemanticVersion.parse(version) if version else None,
        )

    @property
    def is_version_specified(self) -> bool:
        return self.version is not None

    def with_version(self, version: SemanticVersion) -> ArtifactIdentity:
        return ArtifactIdentity(name=self.name, version=version)

    def __str__(self) -> str:
        if self.version is None:
            return self.name
        return f"{self.name}-{self.version}"
