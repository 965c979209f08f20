"""Repository layout pin: the table layout version a process expects.

Resolved once at startup (from ``RepoConfig.layout_version``) and passed
explicitly to ``ModelRepository.install`` / ``upgrade`` / ``open``.
"""

from pydantic import BaseModel, ConfigDict

LAYOUT_VERSION_PREFIX = "MR-"


class RepoLayout(BaseModel):
    """Identifies a model repository table layout, e.g. ``MR-1``."""

    model_config = ConfigDict(frozen=True)

    layout_id: str = "MR-1"

    @property
    def version(self) -> int:
        """Integer layout version parsed from the ``MR-<n>`` identifier."""
        if not self.layout_id.startswith(LAYOUT_VERSION_PREFIX):
            raise ValueError(f"Unrecognized layout id: {self.layout_id!r}")
        return int(self.layout_id[len(LAYOUT_VERSION_PREFIX):])

    @classmethod
    def from_version(cls, version: int) -> "RepoLayout":
        return cls(layout_id=f"{LAYOUT_VERSION_PREFIX}{version}")
