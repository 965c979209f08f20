"""Tests for ZipPackager and package verification."""

from __future__ import annotations

import json
import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest

from modelrepo.core.hasher import sha256_file
from modelrepo.core.packager import (
    MANIFEST_NAME,
    PackageIntegrityError,
    Packager,
    ZipPackager,
    verify_package,
)


@pytest.fixture
def package(tmp_path: Path, make_file: Callable[..., Path], dependencies: list[Path]) -> Path:
    primary = make_file("model.jar", b"primary bytes")
    return ZipPackager().package(primary, dependencies, tmp_path / "out.zip")


class TestZipPackager:
    def test_satisfies_protocol(self):
        assert isinstance(ZipPackager(), Packager)
        assert ZipPackager.suffix == ".zip"

    def test_files_under_lib(self, package: Path):
        with zipfile.ZipFile(package) as archive:
            names = set(archive.namelist())
        assert "lib/model.jar" in names
        assert {f"lib/dep-{i}.jar" for i in range(5)} <= names
        assert MANIFEST_NAME in names

    def test_manifest_digests(self, package: Path, make_file: Callable[..., Path]):
        with zipfile.ZipFile(package) as archive:
            manifest = json.loads(archive.read(MANIFEST_NAME))
        assert manifest["primary"] == "lib/model.jar"
        assert len(manifest["files"]) == 6
        assert manifest["files"]["lib/model.jar"] == sha256_file(make_file("model.jar", b"primary bytes"))

    def test_duplicate_names_keep_primary(self, tmp_path: Path, make_file: Callable[..., Path]):
        primary = make_file("model.jar", b"primary")
        other_dir = tmp_path / "other"
        other_dir.mkdir()
        duplicate = other_dir / "model.jar"
        duplicate.write_bytes(b"dependency")
        output = ZipPackager().package(primary, [duplicate], tmp_path / "dup.zip")
        with zipfile.ZipFile(output) as archive:
            assert archive.read("lib/model.jar") == b"primary"

    def test_no_dependencies(self, tmp_path: Path, make_file: Callable[..., Path]):
        output = ZipPackager().package(make_file("solo.jar"), [], tmp_path / "solo.zip")
        verify_package(output.read_bytes())


class TestVerifyPackage:
    def test_valid_package(self, package: Path):
        verify_package(package.read_bytes())

    def test_not_a_zip(self):
        with pytest.raises(PackageIntegrityError, match="Not a valid package archive"):
            verify_package(b"definitely not a zip file")

    def test_missing_manifest(self, tmp_path: Path):
        path = tmp_path / "bare.zip"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("lib/model.jar", b"x")
        with pytest.raises(PackageIntegrityError, match="Missing MANIFEST.json"):
            verify_package(path.read_bytes())

    def test_digest_mismatch(self, tmp_path: Path):
        path = tmp_path / "tampered.zip"
        manifest = {"primary": "lib/model.jar", "files": {"lib/model.jar": "0" * 64}}
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("lib/model.jar", b"x")
            archive.writestr(MANIFEST_NAME, json.dumps(manifest))
        with pytest.raises(PackageIntegrityError, match="Digest mismatch"):
            verify_package(path.read_bytes())

    def test_missing_entry(self, tmp_path: Path):
        path = tmp_path / "short.zip"
        manifest = {"primary": "lib/model.jar", "files": {"lib/model.jar": "0" * 64}}
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr(MANIFEST_NAME, json.dumps(manifest))
        with pytest.raises(PackageIntegrityError, match="Missing archive entry"):
            verify_package(path.read_bytes())
