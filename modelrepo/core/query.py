"""Read side of the model repository: point reads and listings plus location checks.

Only committed rows (newest ``uploaded`` cell is ``True``) are visible;
reserved rows never appear in results.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from modelrepo.core.errors import ExtractionError, PreconditionError
from modelrepo.core.packager import PackageIntegrityError, verify_package
from modelrepo.core.row_store import RowStore
from modelrepo.core.uploader import ArtifactUploader
from modelrepo.models.identity import ArtifactIdentity
from modelrepo.models.record import (
    ALL_FIELDS,
    DEFAULT_FIELDS,
    LOCATION_KEY,
    PRODUCTION_READY_KEY,
    UPLOADED_KEY,
    ArtifactRecord,
    LocationIssue,
    Row,
    RowKey,
)

logger = logging.getLogger(__name__)


def _resolve_fields(fields: Iterable[str] | None) -> frozenset[str]:
    if fields is None:
        return DEFAULT_FIELDS
    requested = frozenset(fields)
    unknown = requested - ALL_FIELDS
    if unknown:
        raise PreconditionError(f"Unknown field(s): {', '.join(sorted(unknown))}")
    return requested - {UPLOADED_KEY}


def _check_max_versions(max_versions: int) -> None:
    if max_versions < 1:
        raise PreconditionError(f"max_versions must be at least 1, got {max_versions}.")


def _row_key(identity: ArtifactIdentity) -> RowKey:
    if identity.version is None:
        raise PreconditionError(f"Artifact {identity.name} must specify version.")
    return RowKey.for_identity(identity)


class QueryLayer:
    """Reads records from the row store.

    Parameters
    ----------
    store:
        The row store holding the repository table.
    uploader:
        Used read-only by ``check_locations`` to resolve and fetch packages.
    base_uri:
        Base storage URI the stored locations are relative to.
    """

    def __init__(self, store: RowStore, uploader: ArtifactUploader, base_uri: str) -> None:
        self._store = store
        self._uploader = uploader
        self._base_uri = base_uri

    def get(
        self,
        identity: ArtifactIdentity,
        fields: Iterable[str] | None = None,
        max_versions: int = 1,
    ) -> ArtifactRecord:
        """Return the committed record for ``identity``.

        Raises ``ExtractionError`` if the row is absent or not committed.
        """
        wanted = _resolve_fields(fields)
        _check_max_versions(max_versions)
        row = self._store.get(_row_key(identity), fields=wanted | {UPLOADED_KEY}, max_versions=max_versions)
        if row is None or not row.is_uploaded:
            raise ExtractionError("Requested model could not be extracted.")
        return ArtifactRecord.from_row(row, wanted)

    def list(
        self,
        fields: Iterable[str] | None = None,
        max_versions: int = 1,
        production_ready_only: bool = False,
    ) -> list[ArtifactRecord]:
        """Return every committed record; order is unspecified.

        With ``production_ready_only`` only records whose newest
        ``production_ready`` cell is ``True`` are returned.
        """
        wanted = _resolve_fields(fields)
        _check_max_versions(max_versions)
        request = wanted | {UPLOADED_KEY, PRODUCTION_READY_KEY}
        with self._store.scan(fields=request, max_versions=max_versions) as scanner:
            return [
                ArtifactRecord.from_row(row, wanted)
                for row in _committed_rows(scanner, production_ready_only)
            ]

    def check_locations(self, download: bool = False) -> list[LocationIssue]:
        """Validate that every committed record's location holds a package.

        With ``download`` each package is fetched and checked against its
        manifest. Problems are collected, never raised.
        """
        issues: list[LocationIssue] = []
        checked = 0
        with self._store.scan(fields={UPLOADED_KEY, LOCATION_KEY}) as scanner:
            for row in _committed_rows(scanner):
                checked += 1
                issue = self._check_row(row, download)
                if issue is not None:
                    issues.append(issue)
        logger.info("Checked %d model location(s); %d issue(s).", checked, len(issues))
        return issues

    def _check_row(self, row: Row, download: bool) -> LocationIssue | None:
        identity = row.key.to_identity()
        location = row.most_recent(LOCATION_KEY)
        if not location:
            return LocationIssue(identity=identity, location=location, reason="Model has no location.")
        try:
            if not self._uploader.exists(self._base_uri, location):
                return LocationIssue(identity=identity, location=location, reason="Artifact not found.")
            if download:
                verify_package(self._uploader.fetch(self._base_uri, location))
        except (OSError, ValueError, PackageIntegrityError) as exc:
            return LocationIssue(identity=identity, location=location, reason=str(exc))
        return None


def _committed_rows(rows: Iterable[Row], production_ready_only: bool = False) -> Iterable[Row]:
    for row in rows:
        if row.is_uploaded and (not production_ready_only or row.is_production_ready):
            yield row
