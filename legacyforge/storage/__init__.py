"""Storage abstraction for LegacyForge."""

from .interface import ArtifactStore
from .local import LocalArtifactStore
from .workspace import TemporaryWorkspace, publish_atomically

__all__ = ["ArtifactStore", "LocalArtifactStore", "TemporaryWorkspace", "publish_atomically"]
