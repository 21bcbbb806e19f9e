"""artifact-studio: generate, refine and version single-file web apps."""

from studio.history import Artifact, ArtifactStore, get_artifact_store
from studio.llm import SynthesisGateway
from studio.versioning import VersionController
from studio.workbench import Workbench

__all__ = [
    # History
    "Artifact",
    "ArtifactStore",
    "get_artifact_store",
    # Synthesis
    "SynthesisGateway",
    # Versioning
    "VersionController",
    # Session
    "Workbench",
]
