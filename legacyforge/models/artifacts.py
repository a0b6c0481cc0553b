"""
Build artifact models.

Each model is one step in the life of a script: an entry adapter is bundled,
transpiled, possibly injected with the processor payload, minified, and
finally published.
"""

from __future__ import annotations

import base64
import hashlib
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


def sha256_text(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class AdapterRole(str, Enum):
    """Which side of the audio library an entry adapter represents."""

    MAIN = "main"
    PROCESSOR = "processor"


class ModuleFormat(str, Enum):
    """Module wrapper produced by the bundler."""

    IIFE = "iife"
    ESM = "esm"


class EntryAdapterModule(BaseModel):
    """A compilation root presented to the bundler."""

    source_path: Path = Field(description="Absolute path to the adapter source")
    role: AdapterRole
    exported_symbols: list[str] = Field(default_factory=list, description="Names declared by the adapter")
    placeholder_markers: list[str] = Field(
        default_factory=list, description="Placeholder functions the injection step rewrites"
    )
    global_name: str | None = Field(default=None, description="IIFE global exposed by the bundle")

    @property
    def stem(self) -> str:
        return self.source_path.stem


class Artifact(BaseModel):
    """Text artifact flowing between stages."""

    name: str = Field(description="Logical artifact name, used for temp and debug files")
    content: str = Field(repr=False)

    @property
    def sha256(self) -> str:
        return sha256_text(self.content)

    @property
    def size_bytes(self) -> int:
        return len(self.content.encode("utf-8"))


class BundleArtifact(Artifact):
    """Single-file bundler output for one entry adapter."""

    module_format: ModuleFormat = ModuleFormat.IIFE
    global_name: str | None = None
    origin: Path | None = Field(default=None, description="Entry adapter the bundle came from")


class TranspiledArtifact(Artifact):
    """Bundle after the legacy syntax downgrade."""

    source_map: str | None = Field(default=None, repr=False)


class PlaceholderMatch(BaseModel):
    """Where a placeholder pattern matched inside an injection target."""

    pattern_name: str
    start: int = Field(ge=0)
    end: int = Field(ge=0)
    matched_text: str = Field(repr=False)


class InjectionTarget(Artifact):
    """Main library text that carries the placeholder function."""

    placeholder_name: str
    match: PlaceholderMatch | None = None
    injected: bool = False


class PayloadArtifact(Artifact):
    """Fully built processor script embedded into the main artifact."""

    @property
    def encoded(self) -> str:
        """Base64 of the UTF-8 payload bytes; safe inside a double-quoted literal."""
        return base64.b64encode(self.content.encode("utf-8")).decode("ascii")

    @classmethod
    def decode(cls, encoded: str) -> str:
        return base64.b64decode(encoded.encode("ascii"), validate=True).decode("utf-8")


class FinalArtifact(Artifact):
    """Distributable script written to the output directory."""

    path: Path
    source_map: str | None = Field(default=None, repr=False)

    @property
    def source_map_path(self) -> Path:
        return self.path.with_name(self.path.name + ".map")
