"""Deployment coordinator: reserves a row, produces its package, then commits it.

Each deployment attempt walks one row through an explicit state machine::

    START -> RESOLVED -> RESERVED -> PRODUCED -> DONE
    RESOLVED -> FAILED                  (version exists)
    RESERVED -> ROLLED_BACK -> FAILED   (produce failed, row deleted)
    RESERVED -> FAILED                  (produce failed, delete failed)
    PRODUCED -> FAILED                  (commit rejected)
    PRODUCED -> ROLLED_BACK -> FAILED   (commit raised, row deleted)

- RESERVE writes ``uploaded=False`` only if the row has no ``uploaded``
  cell. Exactly one of several racing callers wins; the rest get a
  ``ConflictError`` and do nothing else.
- PRODUCE packages and uploads (fresh mode) or copies the location of an
  existing committed record (clone mode). Any failure deletes the
  reserved row before the error is raised.
- COMMIT writes the record and flips ``uploaded`` to ``True`` only if it is
  still ``False``.

The coordinator keeps no locks or per-deployment state between calls; all
coordination happens in the row store's conditional commit.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from modelrepo.core.errors import (
    ConflictError,
    ConsistencyError,
    ExtractionError,
    PreconditionError,
    RollbackError,
    UploadError,
)
from modelrepo.core.hasher import canonical_json
from modelrepo.core.packager import Packager
from modelrepo.core.query import QueryLayer
from modelrepo.core.row_store import RowStore
from modelrepo.core.uploader import ArtifactUploader, split_artifact_name
from modelrepo.core.version_resolver import VersionResolver
from modelrepo.models.deployment import (
    VALID_TRANSITIONS,
    DeploymentResult,
    DeployMode,
    DeployState,
)
from modelrepo.models.identity import ZERO_VERSION, ArtifactIdentity
from modelrepo.models.record import (
    LOCATION_KEY,
    MESSAGES_KEY,
    MODEL_CONTAINER_KEY,
    PRODUCTION_READY_KEY,
    UPLOADED_KEY,
    RowKey,
)

logger = logging.getLogger(__name__)


class InvalidDeployTransitionError(RuntimeError):
    """Raised when the coordinator attempts a transition the state machine forbids."""


class DeploymentAttempt:
    """Tracks the state of one deployment attempt."""

    def __init__(self, identity: ArtifactIdentity, mode: DeployMode) -> None:
        self.identity = identity
        self.mode = mode
        self.state = DeployState.START
        self.history: list[DeployState] = [DeployState.START]

    def advance(self, target: DeployState) -> None:
        allowed = VALID_TRANSITIONS.get(self.state, set())
        if target not in allowed:
            raise InvalidDeployTransitionError(
                f"Cannot transition deployment of {self.identity} from "
                f"{self.state.value} to {target.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )
        logger.debug(
            "Deployment of %s (%s): %s -> %s",
            self.identity, self.mode.value, self.state.value, target.value,
        )
        self.state = target
        self.history.append(target)


class DeploymentCoordinator:
    """Orchestrates version resolution, reservation, production, and commit.

    Parameters
    ----------
    store:
        Row store holding the repository table.
    resolver:
        Computes the next version for unversioned deployments.
    packager:
        Bundles the primary artifact and its dependencies.
    uploader:
        Places the package under the repository's base storage URI.
    query:
        Reads the source record in clone mode.
    base_uri:
        The repository's base storage URI.
    """

    def __init__(
        self,
        store: RowStore,
        resolver: VersionResolver,
        packager: Packager,
        uploader: ArtifactUploader,
        query: QueryLayer,
        base_uri: str,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._packager = packager
        self._uploader = uploader
        self._query = query
        self._base_uri = base_uri

    # ------------------------------------------------------------------
    # Public API
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
        """Package and upload a new artifact, then publish its record.

        Raises
        ------
        PreconditionError
            Missing files, a malformed name, or an unserializable container.
        ConflictError
            The target version already exists.
        UploadError
            Packaging or upload failed; the reservation was rolled back.
        RollbackError
            Packaging, upload or the final commit failed and the rollback
            failed too.
        ConsistencyError
            The reserved row changed before the final commit, or the commit
            raised and the reservation was rolled back.
        """
        artifact_file = Path(artifact_file)
        dependencies = [Path(dep) for dep in dependencies]
        _require_readable_file(artifact_file)
        for dep in dependencies:
            _require_readable_file(dep)
        try:
            split_artifact_name(identity.with_version(identity.version or ZERO_VERSION))
        except ValueError as exc:
            raise PreconditionError(str(exc)) from exc
        _require_serializable(container)

        def produce(target: ArtifactIdentity) -> str:
            try:
                return self._package_and_upload(target, artifact_file, dependencies)
            except Exception as exc:
                raise UploadError(f"Failed to package or upload {target}: {exc}") from exc

        return self._run(
            identity, DeployMode.FRESH, produce, container, production_ready, message
        )

    def deploy_from_existing(
        self,
        identity: ArtifactIdentity,
        source: ArtifactIdentity,
        container: Any,
        production_ready: bool = False,
        message: str | None = None,
    ) -> DeploymentResult:
        """Publish a new record that reuses the package of ``source``.

        ``source`` must carry an explicit version and be committed with a
        non-empty location, otherwise ``ExtractionError`` is raised after
        the reservation is rolled back.
        """
        if not source.is_version_specified:
            raise PreconditionError("Source artifact must specify version.")
        _require_serializable(container)

        def produce(target: ArtifactIdentity) -> str:
            record = self._query.get(source, fields={LOCATION_KEY})
            if not record.location:
                raise ExtractionError("Required field was not extracted: location")
            return record.location

        return self._run(
            identity, DeployMode.CLONE, produce, container, production_ready, message
        )

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _run(
        self,
        identity: ArtifactIdentity,
        mode: DeployMode,
        produce: Callable[[ArtifactIdentity], str],
        container: Any,
        production_ready: bool,
        message: str | None,
    ) -> DeploymentResult:
        attempt = DeploymentAttempt(identity, mode)

        target = self._resolve(attempt, identity)
        self._reserve(attempt, target)

        try:
            location = produce(target)
        except Exception as exc:
            self._rollback(attempt, target, exc)
            raise
        attempt.advance(DeployState.PRODUCED)

        self._commit(attempt, target, container, location, production_ready, message)
        logger.info("Deployed %s at %s (%s).", target, location, mode.value)
        return DeploymentResult(
            identity=target,
            location=location,
            mode=mode,
            production_ready=production_ready,
            message=message,
        )

    def _resolve(self, attempt: DeploymentAttempt, identity: ArtifactIdentity) -> ArtifactIdentity:
        if identity.is_version_specified:
            target = identity
        else:
            try:
                target = identity.with_version(self._resolver.next_version(identity.name))
            except Exception:
                attempt.advance(DeployState.FAILED)
                raise
        attempt.identity = target
        attempt.advance(DeployState.RESOLVED)
        return target

    def _reserve(self, attempt: DeploymentAttempt, target: ArtifactIdentity) -> None:
        putter = self._store.begin(RowKey.for_identity(target))
        putter.put(UPLOADED_KEY, False)
        try:
            reserved = putter.check_and_commit(UPLOADED_KEY, None)
        except Exception:
            attempt.advance(DeployState.FAILED)
            raise
        if not reserved:
            attempt.advance(DeployState.FAILED)
            logger.info("Reservation of %s lost: version exists.", target)
            raise ConflictError(f"Error Version {target.version} exists.")
        attempt.advance(DeployState.RESERVED)

    def _package_and_upload(
        self,
        target: ArtifactIdentity,
        artifact_file: Path,
        dependencies: Sequence[Path],
    ) -> str:
        with tempfile.TemporaryDirectory(prefix="modelrepo-") as work_dir:
            package = Path(work_dir) / f"final_artifact{self._packager.suffix}"
            self._packager.package(artifact_file, dependencies, package)
            return self._uploader.upload(target, self._base_uri, package)

    def _rollback(self, attempt: DeploymentAttempt, target: ArtifactIdentity, error: Exception) -> None:
        logger.warning("Rolling back reservation of %s: %s", target, error)
        try:
            self._store.delete_row(RowKey.for_identity(target))
        except Exception as rollback_exc:
            attempt.advance(DeployState.FAILED)
            logger.error("Rollback of %s failed; version is left reserved.", target)
            raise RollbackError(
                f"Failed to roll back reservation of {target} after: {error}. "
                f"Rollback error: {rollback_exc}",
                original=error,
                rollback_error=rollback_exc,
            ) from rollback_exc
        attempt.advance(DeployState.ROLLED_BACK)
        attempt.advance(DeployState.FAILED)

    def _commit(
        self,
        attempt: DeploymentAttempt,
        target: ArtifactIdentity,
        container: Any,
        location: str,
        production_ready: bool,
        message: str | None,
    ) -> None:
        putter = self._store.begin(RowKey.for_identity(target))
        putter.put(MODEL_CONTAINER_KEY, container)
        putter.put(LOCATION_KEY, location)
        putter.put(PRODUCTION_READY_KEY, production_ready)
        if message is not None:
            putter.put(MESSAGES_KEY, message)
        putter.put(UPLOADED_KEY, True)
        try:
            committed = putter.check_and_commit(UPLOADED_KEY, False)
        except Exception as exc:
            self._rollback(attempt, target, exc)
            raise ConsistencyError(
                f"Commit of {target} failed; reservation rolled back: {exc}"
            ) from exc
        if not committed:
            attempt.advance(DeployState.FAILED)
            raise ConsistencyError(
                f"Reserved row for {target} was modified before commit; "
                "it was changed outside the deployment protocol."
            )
        attempt.advance(DeployState.DONE)


def _require_readable_file(path: Path) -> None:
    if not path.is_file() or not os.access(path, os.R_OK):
        raise PreconditionError(f"Error: {path} does not exist")


def _require_serializable(container: Any) -> None:
    try:
        canonical_json(container)
    except (TypeError, ValueError) as exc:
        raise PreconditionError(f"Model container is not serializable: {exc}") from exc
