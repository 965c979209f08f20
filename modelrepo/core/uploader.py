"""Artifact upload: places packages under their canonical location.

Canonical layout (relative to the repository's base storage URI)::

    {group path}/{artifact}/{version}/{artifact}-{version}{suffix}

where ``org.acme.model-1.0.0`` has group ``org.acme`` (path ``org/acme``)
and artifact ``model``.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import unquote, urlparse

from modelrepo.models.identity import ArtifactIdentity

logger = logging.getLogger(__name__)


def split_artifact_name(identity: ArtifactIdentity) -> tuple[str, str]:
    """Split ``group.artifact`` at its last period.

    Raises ``ValueError`` if either part would be empty or the identity
    carries no version.
    """
    if identity.version is None:
        raise ValueError("Artifact version must be specified.")
    group, _, artifact = identity.name.rpartition(".")
    if not group:
        raise ValueError(
            "Artifact must specify valid group name and artifact name of the form "
            "<group name>.<artifact name>[-<version>]"
        )
    if not artifact:
        raise ValueError("Artifact name must be nonempty string.")
    return group, artifact


def canonical_location(identity: ArtifactIdentity, suffix: str) -> str:
    """Relative storage location of an identity's package."""
    group, artifact = split_artifact_name(identity)
    version = str(identity.version)
    return "/".join([*group.split("."), artifact, version, f"{artifact}-{version}{suffix}"])


def base_path_from_uri(base_uri: str) -> Path:
    """Resolve a ``file://`` URI or plain filesystem path to a directory."""
    parsed = urlparse(base_uri)
    if parsed.scheme in ("", "file"):
        return Path(unquote(parsed.path) if parsed.scheme else base_uri)
    raise ValueError(f"Unsupported storage URI scheme: {parsed.scheme!r}")


@runtime_checkable
class ArtifactUploader(Protocol):
    """Protocol for upload transports."""

    def upload(self, identity: ArtifactIdentity, base_uri: str, package: Path) -> str:
        """Store ``package`` and return its location relative to ``base_uri``."""
        ...

    def exists(self, base_uri: str, location: str) -> bool:
        ...

    def fetch(self, base_uri: str, location: str) -> bytes:
        ...


class FileSystemUploader:
    """Uploads packages by copying them below a filesystem base directory.

    Packages are immutable once written. Uploading to a location that
    already holds a file raises ``FileExistsError``, so a deleted version
    whose package is still on disk cannot be deployed again.

    Parameters
    ----------
    suffix:
        File suffix of uploaded packages; matches the packager's.
    """

    def __init__(self, suffix: str = ".zip") -> None:
        self._suffix = suffix

    def upload(self, identity: ArtifactIdentity, base_uri: str, package: Path) -> str:
        location = canonical_location(identity, self._suffix)
        dest = base_path_from_uri(base_uri) / location
        if dest.exists():
            # Clones may point at this file; packages are never rewritten.
            raise FileExistsError(f"Package already exists at {location}")
        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp = dest.with_name(dest.name + ".part")
        shutil.copyfile(package, tmp)
        tmp.replace(dest)
        logger.info("Uploaded %s to %s.", identity, dest)
        return location

    def exists(self, base_uri: str, location: str) -> bool:
        return (base_path_from_uri(base_uri) / location).is_file()

    def fetch(self, base_uri: str, location: str) -> bytes:
        path = base_path_from_uri(base_uri) / location
        if not path.is_file():
            raise FileNotFoundError(f"Artifact not found: {location}")
        return path.read_bytes()
