"""
Artifact Bundler Service.

Compiles one entry adapter into one flat script with every reachable module
inlined and dead code removed. Two backends exist: esbuild (a single fast
invocation) and Rollup (node-resolve, CommonJS and TypeScript plugins).
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel, Field

from ...core.exceptions import ResolutionError
from ...core.logging import get_logger
from ...models.artifacts import BundleArtifact, EntryAdapterModule, ModuleFormat
from ...storage import ArtifactStore
from ..tooling import ToolOutput, ToolRunner

logger = get_logger(__name__)


class BundleRequest(BaseModel):
    """Input for one bundler run."""

    adapter: EntryAdapterModule
    output_key: str = Field(description="Workspace key of the bundle file")
    module_format: ModuleFormat = ModuleFormat.IIFE
    minify_identifiers: bool = Field(
        default=True, description="Shorten identifiers (off when a placeholder must keep its name)"
    )


class Bundler(ABC):
    """Bundler backend interface."""

    tool_name: str = ""

    def __init__(self, runner: ToolRunner, workspace: ArtifactStore) -> None:
        self.runner = runner
        self.workspace = workspace

    @abstractmethod
    def arguments(self, request: BundleRequest, outfile: Path) -> list[str]:
        """Command-line arguments that bundle ``request`` into ``outfile``."""
        ...

    async def bundle(self, request: BundleRequest) -> BundleArtifact:
        """Bundle one entry adapter.

        Args:
            request: Entry adapter and output settings.

        Returns:
            The bundle read back from the workspace.

        Raises:
            ResolutionError: If the entry or one of its imports cannot be bundled.
        """
        entry = request.adapter.source_path
        if not entry.is_file():
            raise ResolutionError(
                message="Entry adapter does not exist",
                path=str(entry),
                stage=f"bundle:{self.tool_name}",
            )

        outfile = self.workspace.path_for(request.output_key)
        outfile.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Bundling", entry=entry.name, bundler=self.tool_name, format=request.module_format.value)

        output = await self.runner.run(self.tool_name, self.arguments(request, outfile))
        if not output.ok or not outfile.exists():
            await self.workspace.delete(request.output_key)
            raise self._resolution_error(request, output)

        return BundleArtifact(
            name=entry.stem,
            content=await self.workspace.load_text(request.output_key),
            module_format=request.module_format,
            global_name=request.adapter.global_name,
            origin=entry,
        )

    def _resolution_error(self, request: BundleRequest, output: ToolOutput) -> ResolutionError:
        return ResolutionError(
            message=f"{self.tool_name} could not bundle {request.adapter.source_path.name}",
            context={"returncode": output.returncode, "command": output.command_line},
            path=str(request.adapter.source_path),
            stage=f"bundle:{self.tool_name}",
            output=output.combined,
        )


class EsbuildBundler(Bundler):
    """esbuild backend, targeting esnext so Babel sees modern syntax only once."""

    tool_name = "esbuild"

    def arguments(self, request: BundleRequest, outfile: Path) -> list[str]:
        args = [
            str(request.adapter.source_path),
            "--bundle",
            "--tree-shaking=true",
            f"--format={request.module_format.value}",
            "--platform=browser",
            "--target=esnext",
            "--charset=utf8",
            f"--outfile={outfile}",
        ]
        if request.minify_identifiers:
            args.append("--minify")
        else:
            args += ["--minify-whitespace", "--minify-syntax"]
        if request.adapter.global_name and request.module_format is ModuleFormat.IIFE:
            args.append(f"--global-name={request.adapter.global_name}")
        return args


class RollupBundler(Bundler):
    """Rollup backend. Plugins are passed on the command line so they resolve from the project."""

    tool_name = "rollup"

    def __init__(self, runner: ToolRunner, workspace: ArtifactStore, tsconfig: Path) -> None:
        super().__init__(runner, workspace)
        self.tsconfig = tsconfig

    def plugin_options(self, outfile: Path) -> list[str]:
        resolve = {"browser": True, "preferBuiltins": False}
        typescript = {
            "tsconfig": str(self.tsconfig),
            "declaration": False,
            "declarationMap": False,
            "compilerOptions": {
                "noEmit": False,
                "allowImportingTsExtensions": False,
                "outDir": str(outfile.parent),
            },
        }
        return [
            "--plugin", f"node-resolve={json.dumps(resolve)}",
            "--plugin", "commonjs",
            "--plugin", f"typescript={json.dumps(typescript)}",
        ]

    def arguments(self, request: BundleRequest, outfile: Path) -> list[str]:
        fmt = "es" if request.module_format is ModuleFormat.ESM else "iife"
        args = [
            "--input", str(request.adapter.source_path),
            "--file", str(outfile),
            "--format", fmt,
        ]
        if request.adapter.global_name and fmt == "iife":
            args += ["--name", request.adapter.global_name]
        return args + self.plugin_options(outfile)
