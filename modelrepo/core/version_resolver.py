"""Next-version resolution for artifacts deployed without a version.

Scans every row, keeps the highest version recorded under the requested
name, and bumps its patch component. Two callers scanning before either
reserves will compute the same version; the loser of the subsequent
reservation gets a ``ConflictError``.
"""

from __future__ import annotations

import logging

from modelrepo.core.row_store import RowStore
from modelrepo.models.identity import ZERO_VERSION, SemanticVersion

logger = logging.getLogger(__name__)


class VersionResolver:
    """Computes the next patch version of an artifact name."""

    def __init__(self, store: RowStore) -> None:
        self._store = store

    def latest_version(self, name: str) -> SemanticVersion | None:
        """Highest version present for ``name`` (reserved rows included)."""
        latest: SemanticVersion | None = None
        with self._store.scan() as scanner:
            for row in scanner:
                if row.key.name != name:
                    continue
                version = SemanticVersion.parse(row.key.version)
                if latest is None or version > latest:
                    latest = version
        return latest

    def next_version(self, name: str) -> SemanticVersion:
        """Return ``{major, minor, patch + 1}`` of the latest version, or ``0.0.1``."""
        current = self.latest_version(name) or ZERO_VERSION
        resolved = current.next_patch()
        logger.debug("Resolved next version of %s: %s.", name, resolved)
        return resolved
