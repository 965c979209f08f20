"""Artifact packaging: bundles a primary file and its dependencies.

``ZipPackager`` writes every input under ``lib/`` in a zip archive and adds
a ``MANIFEST.json`` mapping each entry to its SHA-256 digest, so a fetched
package can later be checked for integrity without unpacking it to disk.
"""

from __future__ import annotations

import io
import json
import logging
import zipfile
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from modelrepo.core.hasher import sha256_file, sha256_hex

logger = logging.getLogger(__name__)

MANIFEST_NAME = "MANIFEST.json"
LIB_PREFIX = "lib/"


class PackageIntegrityError(RuntimeError):
    """Raised when a package is unreadable or its contents do not match its manifest."""


@runtime_checkable
class Packager(Protocol):
    """Protocol for packaging backends."""

    suffix: str

    def package(self, primary: Path, dependencies: Sequence[Path], output: Path) -> Path:
        """Bundle ``dependencies`` and ``primary`` into ``output`` and return it."""
        ...


class ZipPackager:
    """Packages artifacts as zip archives with a digest manifest."""

    suffix = ".zip"

    def package(self, primary: Path, dependencies: Sequence[Path], output: Path) -> Path:
        files = [Path(primary)] + [Path(dep) for dep in dependencies]
        entries: dict[str, str] = {}
        with zipfile.ZipFile(output, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for path in files:
                arcname = f"{LIB_PREFIX}{path.name}"
                if arcname in entries:
                    logger.warning("Duplicate package entry '%s'; skipping %s.", arcname, path)
                    continue
                entries[arcname] = sha256_file(path)
                archive.write(path, arcname)
            manifest = {"primary": f"{LIB_PREFIX}{Path(primary).name}", "files": entries}
            archive.writestr(MANIFEST_NAME, json.dumps(manifest, sort_keys=True, indent=2))
        logger.debug("Packaged %d file(s) into %s.", len(entries), output)
        return output


def verify_package(data: bytes) -> None:
    """Check a fetched zip package against its manifest.

    Raises ``PackageIntegrityError`` describing the first problem found.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            bad_entry = archive.testzip()
            if bad_entry is not None:
                raise PackageIntegrityError(f"Corrupt archive entry: {bad_entry}")
            try:
                manifest = json.loads(archive.read(MANIFEST_NAME))
            except KeyError as exc:
                raise PackageIntegrityError(f"Missing {MANIFEST_NAME}") from exc
            for arcname, expected in manifest.get("files", {}).items():
                try:
                    actual = sha256_hex(archive.read(arcname))
                except KeyError as exc:
                    raise PackageIntegrityError(f"Missing archive entry: {arcname}") from exc
                if actual != expected:
                    raise PackageIntegrityError(f"Digest mismatch for {arcname}")
    except zipfile.BadZipFile as exc:
        raise PackageIntegrityError(f"Not a valid package archive: {exc}") from exc
