"""Data models for LegacyForge build artifacts."""

from .artifacts import (
    AdapterRole,
    Artifact,
    BundleArtifact,
    EntryAdapterModule,
    FinalArtifact,
    InjectionTarget,
    ModuleFormat,
    PayloadArtifact,
    PlaceholderMatch,
    TranspiledArtifact,
    sha256_text,
)

__all__ = [
    "AdapterRole",
    "Artifact",
    "BundleArtifact",
    "EntryAdapterModule",
    "FinalArtifact",
    "InjectionTarget",
    "ModuleFormat",
    "PayloadArtifact",
    "PlaceholderMatch",
    "TranspiledArtifact",
    "sha256_text",
]
