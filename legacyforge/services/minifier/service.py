"""
Minifier Service.

Runs the last compression pass over already-transpiled code. Both backends
work on in-memory chunks through stdin so they can run after injection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ...core.config import TargetConfig
from ...core.logging import get_logger
from ...models.artifacts import Artifact
from ..tooling import ToolRunner

logger = get_logger(__name__)


class Minifier(ABC):
    """Minifier backend interface."""

    tool_name: str = ""

    def __init__(self, runner: ToolRunner, target: TargetConfig) -> None:
        self.runner = runner
        self.target = target

    @abstractmethod
    def arguments(self) -> list[str]:
        """Tool arguments for stdin-to-stdout minification."""
        ...

    async def minify(self, artifact: Artifact) -> str:
        """Minify ``artifact`` and return the compressed code."""
        output = await self.runner.run(self.tool_name, self.arguments(), input_text=artifact.content)
        output.raise_for_status(f"{self.tool_name} could not minify {artifact.name}")
        logger.info(
            "Minified",
            artifact=artifact.name,
            before_bytes=artifact.size_bytes,
            after_bytes=len(output.stdout.encode("utf-8")),
        )
        return output.stdout


class EsbuildMinifier(Minifier):
    """esbuild transform mode. The target keeps esbuild from emitting newer syntax."""

    tool_name = "esbuild"

    def arguments(self) -> list[str]:
        return ["--minify", f"--target={self.target.esbuild_target}", "--charset=utf8", "--loader=js"]


class TerserMinifier(Minifier):
    """Terser with compression and mangling; console calls are kept."""

    tool_name = "terser"

    def arguments(self) -> list[str]:
        return ["--compress", "drop_console=false", "--mangle"]
