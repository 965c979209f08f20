"""Tests for QueryLayer visibility, projection and location checks."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from modelrepo.core.errors import ExtractionError, PreconditionError
from modelrepo.core.repository import ModelRepository
from modelrepo.models.identity import ArtifactIdentity
from modelrepo.models.record import RowKey


def _id(text: str) -> ArtifactIdentity:
    return ArtifactIdentity.parse(text)


@pytest.fixture
def deployed(
    repo: ModelRepository, make_file: Callable[..., Path], container: dict[str, Any]
) -> ModelRepository:
    """Repository with three committed versions and one reserved row."""
    artifact = make_file("model.jar")
    repo.deploy(_id("org.acme.model-0.0.1"), artifact, [], container, message="one")
    repo.deploy(_id("org.acme.model-0.0.2"), artifact, [], container, production_ready=True)
    repo.deploy(_id("org.acme.other-1.0.0"), artifact, [], container, production_ready=True)
    repo.store.put(RowKey(name="org.acme.model", version="0.0.3"), "uploaded", False)
    return repo


class TestGet:
    def test_default_fields(self, deployed: ModelRepository, container: dict[str, Any]):
        record = deployed.get(_id("org.acme.model-0.0.1"))
        assert record.location == "org/acme/model/0.0.1/model-0.0.1.zip"
        assert record.production_ready is False
        assert record.message == "one"
        assert record.container == container

    def test_projection(self, deployed: ModelRepository):
        record = deployed.get(_id("org.acme.model-0.0.1"), fields={"location"})
        assert record.location is not None
        assert record.container is None
        assert record.message is None
        assert record.production_ready is None

    def test_reserved_row_is_invisible(self, deployed: ModelRepository):
        with pytest.raises(ExtractionError, match="Requested model could not be extracted."):
            deployed.get(_id("org.acme.model-0.0.3"))

    def test_absent_row(self, deployed: ModelRepository):
        with pytest.raises(ExtractionError):
            deployed.get(_id("org.acme.model-9.9.9"))

    def test_requires_version(self, deployed: ModelRepository):
        with pytest.raises(PreconditionError, match="must specify version"):
            deployed.get(_id("org.acme.model"))

    def test_unknown_field(self, deployed: ModelRepository):
        with pytest.raises(PreconditionError, match="Unknown field"):
            deployed.get(_id("org.acme.model-0.0.1"), fields={"bogus"})

    def test_max_versions_must_be_positive(self, deployed: ModelRepository):
        with pytest.raises(PreconditionError, match="max_versions"):
            deployed.get(_id("org.acme.model-0.0.1"), max_versions=0)

    def test_message_history(self, deployed: ModelRepository):
        identity = _id("org.acme.model-0.0.1")
        deployed.set_production_ready(identity, True, message="promoted")
        deployed.set_production_ready(identity, False, message="demoted")

        latest = deployed.get(identity)
        assert latest.message == "demoted"
        assert [cell.value for cell in latest.messages] == ["demoted"]

        history = deployed.get(identity, fields={"message"}, max_versions=10)
        assert [cell.value for cell in history.messages] == ["demoted", "promoted", "one"]


class TestList:
    def test_lists_committed_only(self, deployed: ModelRepository):
        identities = {str(record.identity) for record in deployed.list()}
        assert identities == {
            "org.acme.model-0.0.1",
            "org.acme.model-0.0.2",
            "org.acme.other-1.0.0",
        }

    def test_production_ready_only(self, deployed: ModelRepository):
        identities = {
            str(record.identity) for record in deployed.list(production_ready_only=True)
        }
        assert identities == {"org.acme.model-0.0.2", "org.acme.other-1.0.0"}

    def test_production_ready_tracks_latest_cell(self, deployed: ModelRepository):
        deployed.set_production_ready(_id("org.acme.model-0.0.2"), False)
        identities = {
            str(record.identity) for record in deployed.list(production_ready_only=True)
        }
        assert identities == {"org.acme.other-1.0.0"}

    def test_projection_in_list(self, deployed: ModelRepository):
        records = deployed.list(fields={"location"})
        assert all(record.container is None for record in records)
        assert all(record.location for record in records)

    def test_empty_repository(self, repo: ModelRepository):
        assert repo.list() == []


class TestCheckLocations:
    def test_clean_repository(self, deployed: ModelRepository):
        assert deployed.check_locations() == []
        assert deployed.check_locations(download=True) == []

    def test_missing_package(self, deployed: ModelRepository, base_dir: Path):
        (base_dir / "org/acme/model/0.0.1/model-0.0.1.zip").unlink()
        issues = deployed.check_locations()
        assert len(issues) == 1
        assert str(issues[0].identity) == "org.acme.model-0.0.1"
        assert issues[0].reason == "Artifact not found."

    def test_corrupt_package_needs_download(self, deployed: ModelRepository, base_dir: Path):
        (base_dir / "org/acme/other/1.0.0/other-1.0.0.zip").write_bytes(b"garbage")
        assert deployed.check_locations() == []
        issues = deployed.check_locations(download=True)
        assert len(issues) == 1
        assert "Not a valid package archive" in issues[0].reason

    def test_committed_row_without_location(self, deployed: ModelRepository):
        deployed.store.put(RowKey(name="org.acme.bare", version="1.0.0"), "uploaded", True)
        issues = deployed.check_locations()
        assert [issue.reason for issue in issues] == ["Model has no location."]
        assert "org.acme.bare-1.0.0" in str(issues[0])

    def test_reserved_rows_not_checked(self, repo: ModelRepository):
        repo.store.put(RowKey(name="org.acme.model", version="0.0.1"), "uploaded", False)
        assert repo.check_locations() == []
