"""Shared test fixtures for modelrepo."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from modelrepo.core.repository import ModelRepository
from modelrepo.core.row_store import SqliteRowStore
from modelrepo.models.layout import RepoLayout


@pytest.fixture
def store(tmp_path: Path) -> SqliteRowStore:
    """Provide a fresh SqliteRowStore with the repository table created."""
    row_store = SqliteRowStore(tmp_path / "model_repo.db")
    row_store.create_table()
    return row_store


@pytest.fixture
def base_dir(tmp_path: Path) -> Path:
    """Directory packages are uploaded under."""
    path = tmp_path / "artifacts"
    path.mkdir()
    return path


@pytest.fixture
def base_uri(base_dir: Path) -> str:
    return base_dir.as_uri()


@pytest.fixture
def repo(tmp_path: Path, base_uri: str) -> ModelRepository:
    """Provide an installed, opened ModelRepository in a temp directory."""
    row_store = SqliteRowStore(tmp_path / "repo.db")
    ModelRepository.install(row_store, base_uri, RepoLayout())
    return ModelRepository.open(row_store)


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture: write a small fake artifact file and return its path."""
    files_dir = tmp_path / "inputs"
    files_dir.mkdir(exist_ok=True)

    def _factory(name: str = "artifact.jar", content: bytes | None = None) -> Path:
        path = files_dir / name
        path.write_bytes(content if content is not None else f"fake {name}".encode())
        return path

    return _factory


@pytest.fixture
def dependencies(make_file: Callable[..., Path]) -> list[Path]:
    """Five fake dependency jars."""
    return [make_file(f"dep-{i}.jar") for i in range(5)]


@pytest.fixture
def container() -> dict[str, Any]:
    """A sample model container (training/scoring configuration)."""
    return {
        "model_name": "sample_model",
        "model_version": "1.0.0",
        "score_function_class": "org.acme.scoring.SampleScorer",
        "parameters": {"threshold": 0.5},
        "table_uri": "sqlite:///models/users",
        "column_names": {"input": "info:features", "output": "info:score"},
    }
