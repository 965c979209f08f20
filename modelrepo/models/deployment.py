"""Deployment attempt state machine models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from modelrepo.models.identity import ArtifactIdentity


class DeployState(str, Enum):
    """States a single deployment attempt moves through."""

    START = "start"
    RESOLVED = "resolved"
    RESERVED = "reserved"
    PRODUCED = "produced"
    DONE = "done"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


# Terminal states (DONE, FAILED) have no outgoing transitions.
VALID_TRANSITIONS: dict[DeployState, set[DeployState]] = {
    DeployState.START: {DeployState.RESOLVED, DeployState.FAILED},
    DeployState.RESOLVED: {DeployState.RESERVED, DeployState.FAILED},
    DeployState.RESERVED: {
        DeployState.PRODUCED,
        DeployState.ROLLED_BACK,
        DeployState.FAILED,
    },
    DeployState.PRODUCED: {
        DeployState.DONE,
        DeployState.ROLLED_BACK,
        DeployState.FAILED,
    },
    DeployState.ROLLED_BACK: {DeployState.FAILED},
    DeployState.DONE: set(),
    DeployState.FAILED: set(),
}


class DeployMode(str, Enum):
    FRESH = "fresh"
    CLONE = "clone"


class DeploymentResult(BaseModel):
    """Outcome of a successful deployment."""

    model_config = ConfigDict(frozen=True)

    identity: ArtifactIdentity
    location: str
    mode: DeployMode
    production_ready: bool = False
    message: str | None = None
