"""modelrepo: a versioned registry of immutable model artifacts.

Deployments reserve a ``(name, version)`` row with a conditional write,
package and upload the artifact, then commit the row. Concurrent deployers
of the same version get exactly one winner; failed deployments are rolled
back so no partial record is ever visible.
"""

__version__ = "0.1.0"

from modelrepo.core.repository import ModelRepository
from modelrepo.models.identity import ArtifactIdentity, SemanticVersion

__all__ = ["ModelRepository", "ArtifactIdentity", "SemanticVersion", "__version__"]
