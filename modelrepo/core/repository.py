"""Model repository facade: install a repository table and operate on it.

A repository is a row store table plus two metadata values recorded at
install time: the base storage URI packages are uploaded under, and the
table layout version. ``ModelRepository`` wires the version resolver,
query layer, and deployment coordinator together over one store and
adds the operations that amend or remove committed records.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from modelrepo.config import RepoConfig
from modelrepo.core.deployer import DeploymentCoordinator
from modelrepo.core.errors import (
    ModelNotFoundError,
    ModelRepoError,
    PreconditionError,
    RepositoryNotInstalledError,
)
from modelrepo.core.packager import Packager, ZipPackager
from modelrepo.core.query import QueryLayer
from modelrepo.core.row_store import SqliteRowStore
from modelrepo.core.uploader import ArtifactUploader, FileSystemUploader
from modelrepo.core.version_resolver import VersionResolver
from modelrepo.models.deployment import DeploymentResult
from modelrepo.models.identity import ArtifactIdentity, SemanticVersion
from modelrepo.models.layout import RepoLayout
from modelrepo.models.record import (
    MESSAGES_KEY,
    PRODUCTION_READY_KEY,
    UPLOADED_KEY,
    ArtifactRecord,
    LocationIssue,
    RowKey,
)

logger = logging.getLogger(__name__)

REPO_BASE_URI_KEY = "modelrepo.base_repo_url"
REPO_LAYOUT_KEY = "modelrepo.layout_version"


def _versioned_key(identity: ArtifactIdentity) -> RowKey:
    if not identity.is_version_specified:
        raise PreconditionError(f"Artifact {identity.name} must specify version.")
    return RowKey.for_identity(identity)


class ModelRepository:
    """API over an installed model repository table.

    Use ``install`` once per table, then ``open`` to obtain an instance.

    Parameters
    ----------
    store:
        Row store holding the repository table.
    base_uri:
        Base storage URI recorded at install time.
    layout:
        Layout recorded in the table's metadata.
    packager, uploader:
        Packaging and upload backends; zip archives on the local
        filesystem by default.
    """

    def __init__(
        self,
        store: SqliteRowStore,
        base_uri: str,
        layout: RepoLayout,
        *,
        packager: Packager | None = None,
        uploader: ArtifactUploader | None = None,
    ) -> None:
        self._store = store
        self._base_uri = base_uri
        self._layout = layout
        self._packager = packager or ZipPackager()
        self._uploader = uploader or FileSystemUploader(suffix=self._packager.suffix)
        self.resolver = VersionResolver(store)
        self.query = QueryLayer(store, self._uploader, base_uri)
        self.coordinator = DeploymentCoordinator(
            store, self.resolver, self._packager, self._uploader, self.query, base_uri
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @staticmethod
    def is_installed(store: SqliteRowStore) -> bool:
        """Whether the store holds a table with repository metadata."""
        return (
            store.table_exists()
            and store.get_meta(REPO_BASE_URI_KEY) is not None
            and store.get_meta(REPO_LAYOUT_KEY) is not None
        )

    @classmethod
    def install(cls, store: SqliteRowStore, base_uri: str, layout: RepoLayout) -> None:
        """Create the repository table, or upgrade it if already installed."""
        if not store.table_exists():
            store.create_table()
            store.put_meta(REPO_LAYOUT_KEY, layout.layout_id)
            store.put_meta(REPO_BASE_URI_KEY, base_uri)
            logger.info(
                "Installed model repository '%s' (%s) with base URI %s.",
                store.table_name, layout.layout_id, base_uri,
            )
        elif cls.is_installed(store):
            cls.upgrade(store, layout)
        else:
            raise ModelRepoError(
                f"Can not install model repository in table {store.table_name}."
            )

    @classmethod
    def upgrade(cls, store: SqliteRowStore, layout: RepoLayout) -> None:
        """Record ``layout`` as the table's layout. Downgrades are refused."""
        if not cls.is_installed(store):
            raise RepositoryNotInstalledError(
                f"{store.table_name} is not a valid model repository table."
            )
        current = RepoLayout(layout_id=store.get_meta(REPO_LAYOUT_KEY))
        if current.version == layout.version:
            return
        if current.version > layout.version:
            raise ModelRepoError(
                f"Repository layout {current.layout_id} is newer than {layout.layout_id}."
            )
        store.put_meta(REPO_LAYOUT_KEY, layout.layout_id)
        logger.info(
            "Upgraded model repository '%s' from %s to %s.",
            store.table_name, current.layout_id, layout.layout_id,
        )

    @classmethod
    def drop(cls, store: SqliteRowStore) -> None:
        """Delete the repository table and its metadata."""
        if not store.table_exists():
            raise RepositoryNotInstalledError(
                f"Model repository which is to be deleted {store.table_name} does not exist."
            )
        if not cls.is_installed(store):
            raise ModelRepoError(
                f"Expected model repository table is not a valid model repository "
                f"table {store.table_name}."
            )
        store.drop_table()

    @classmethod
    def open(
        cls,
        store: SqliteRowStore,
        *,
        expected_layout: RepoLayout | None = None,
        packager: Packager | None = None,
        uploader: ArtifactUploader | None = None,
    ) -> ModelRepository:
        """Open an installed repository.

        Raises ``RepositoryNotInstalledError`` if the table or its metadata
        is missing.
        """
        if not cls.is_installed(store):
            raise RepositoryNotInstalledError(
                f"{store.table_name} is not a valid model repository table."
            )
        layout = RepoLayout(layout_id=store.get_meta(REPO_LAYOUT_KEY))
        if expected_layout is not None and layout.version < expected_layout.version:
            logger.warning(
                "Repository '%s' has layout %s; %s expected. Run upgrade.",
                store.table_name, layout.layout_id, expected_layout.layout_id,
            )
        return cls(
            store,
            store.get_meta(REPO_BASE_URI_KEY),
            layout,
            packager=packager,
            uploader=uploader,
        )

    @classmethod
    def store_from_config(cls, config: RepoConfig) -> SqliteRowStore:
        return SqliteRowStore(
            config.db_path,
            table_name=config.table_name,
            busy_timeout=config.busy_timeout_seconds,
        )

    @classmethod
    def from_config(cls, config: RepoConfig) -> ModelRepository:
        """Open the repository described by ``config``."""
        return cls.open(cls.store_from_config(config), expected_layout=config.layout)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def base_uri(self) -> str:
        return self._base_uri

    @property
    def layout(self) -> RepoLayout:
        return self._layout

    @property
    def store(self) -> SqliteRowStore:
        return self._store

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def deploy(
        self,
        identity: ArtifactIdentity,
        artifact_file: Path,
        dependencies: Sequence[Path],
        container: Any,
        production_ready: bool = False,
        message: str | None = None,
    ) -> DeploymentResult:
        return self.coordinator.deploy(
            identity, artifact_file, dependencies, container, production_ready, message
        )

    def deploy_from_existing(
        self,
        identity: ArtifactIdentity,
        source: ArtifactIdentity,
        container: Any,
        production_ready: bool = False,
        message: str | None = None,
    ) -> DeploymentResult:
        return self.coordinator.deploy_from_existing(
            identity, source, container, production_ready, message
        )

    def set_production_ready(
        self,
        identity: ArtifactIdentity,
        production_ready: bool,
        message: str | None = None,
    ) -> None:
        """Update the production-ready flag (and message) of a committed model.

        Never creates a row: the write only commits if ``uploaded`` is
        ``True``, otherwise ``ModelNotFoundError`` is raised.
        """
        putter = self._store.begin(_versioned_key(identity))
        putter.put(PRODUCTION_READY_KEY, production_ready)
        if message is not None:
            putter.put(MESSAGES_KEY, message)
        if not putter.check_and_commit(UPLOADED_KEY, True):
            raise ModelNotFoundError(
                f"Model {identity.name}-{identity.version} does not exist."
            )
        logger.info("Set production_ready=%s on %s.", production_ready, identity)

    def delete(self, identity: ArtifactIdentity) -> None:
        """Remove a model's row, reserved or committed."""
        key = _versioned_key(identity)
        if self._store.get(key, fields={UPLOADED_KEY}) is None:
            raise ModelNotFoundError(
                f"Model {identity.name}-{identity.version} does not exist."
            )
        self._store.delete_row(key)
        logger.info("Deleted model %s.", identity)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def next_version(self, name: str) -> SemanticVersion:
        return self.resolver.next_version(name)

    def get(
        self,
        identity: ArtifactIdentity,
        fields: Iterable[str] | None = None,
        max_versions: int = 1,
    ) -> ArtifactRecord:
        return self.query.get(identity, fields=fields, max_versions=max_versions)

    def list(
        self,
        fields: Iterable[str] | None = None,
        max_versions: int = 1,
        production_ready_only: bool = False,
    ) -> list[ArtifactRecord]:
        return self.query.list(
            fields=fields,
            max_versions=max_versions,
            production_ready_only=production_ready_only,
        )

    def check_locations(self, download: bool = False) -> list[LocationIssue]:
        return self.query.check_locations(download=download)
