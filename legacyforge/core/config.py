"""
Configuration management for LegacyForge.

Provides centralized, type-safe configuration with environment variable overrides
and defaults matching the RPG Maker MV (NW.js 0.48 / Chromium 85) target.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load .env file if it exists (looks in cwd and parent directories)
load_dotenv()

PipelineVariant = Literal["esbuild", "rollup"]


class PathsConfig(BaseModel):
    """Project layout. Relative paths are resolved against ``project_root``."""

    project_root: Path = Field(default_factory=Path.cwd, description="Root of the JS project")
    main_entry: Path = Field(
        default=Path("src/index_rpgmv.ts"), description="Main library entry adapter"
    )
    processor_entry: Path = Field(
        default=Path("src/worklet_processor_rpgmv.ts"), description="Processor entry adapter"
    )
    library_entry: Path = Field(
        default=Path("src/index.ts"), description="Module re-exported by the main adapter"
    )
    output_dir: Path = Field(default=Path("js/plugins"), description="Final artifact directory")
    debug_dir: Path = Field(
        default=Path("build-debug"), description="Where unmatched injection inputs are dumped"
    )
    temp_root: Path | None = Field(
        default=None, description="Parent of the temporary workspace (system temp if unset)"
    )
    tsconfig: Path = Field(default=Path("tsconfig.json"), description="TypeScript config")
    main_output_name: str = Field(default="spessasynth_lib.js")
    processor_output_name: str = Field(default="spessasynth_processor.js")

    def resolve(self, path: Path) -> Path:
        """Resolve a configured path against the project root."""
        path = path.expanduser()
        if path.is_absolute():
            return path
        return (self.project_root / path).resolve()


class ToolsConfig(BaseModel):
    """External JavaScript tool configuration."""

    npx_path: Path | None = Field(default=None, description="Custom npx binary")
    esbuild_path: Path | None = Field(default=None, description="Custom esbuild binary")
    babel_path: Path | None = Field(default=None, description="Custom babel CLI")
    rollup_path: Path | None = Field(default=None, description="Custom rollup CLI")
    terser_path: Path | None = Field(default=None, description="Custom terser CLI")
    allow_npx_fallback: bool = Field(
        default=True, description="Run tools through 'npx --no' when not installed locally"
    )


class TargetConfig(BaseModel):
    """Legacy target profile handed to the transpiler."""

    browser: str = Field(default="chrome", description="Browserslist engine name")
    version: str = Field(default="85", description="Engine version")
    use_built_ins: Literal["usage", "entry", "false"] = Field(
        default="usage", description="Polyfill inclusion mode"
    )
    corejs: int = Field(default=3, ge=2, le=3, description="core-js major version")
    babel_config_file: Path | None = Field(
        default=None, description="Use this Babel config instead of a rendered one"
    )
    polyfill_imports: list[str] = Field(
        default_factory=lambda: ["core-js/stable", "regenerator-runtime/runtime"],
        description="Side-effect imports every entry adapter must start with",
    )

    @property
    def esbuild_target(self) -> str:
        return f"{self.browser}{self.version}"

    @property
    def polyfill_packages(self) -> list[str]:
        """Package names behind the polyfill imports ('core-js', 'regenerator-runtime')."""
        packages: list[str] = []
        for specifier in self.polyfill_imports:
            package = specifier.split("/", 1)[0]
            if package not in packages:
                packages.append(package)
        return packages


class InjectionConfig(BaseModel):
    """Worklet inlining configuration."""

    placeholder_name: str = Field(
        default="createWorkletBlobURL", description="Exported name of the placeholder function"
    )
    mime_type: str = Field(default="application/javascript", description="Blob media type")
    main_global_name: str = Field(default="SpessaSynthLib", description="IIFE global of the main bundle")
    processor_global_name: str | None = Field(
        default=None, description="IIFE global of the processor bundle"
    )


class PipelineSettings(BaseModel):
    """Pipeline execution configuration."""

    variant: PipelineVariant = Field(default="esbuild", description="Pipeline configuration")
    parallel_units: bool = Field(
        default=False, description="Build processor and main front half concurrently"
    )
    source_maps: bool = Field(default=True, description="Pass transpiler source maps through")
    publish_processor: bool | None = Field(
        default=None,
        description="Publish the standalone processor (defaults to True for esbuild only)",
    )
    main_format: Literal["iife", "esm"] = Field(
        default="iife", description="Module format of the main library bundle"
    )
    use_prefect: bool = Field(default=False, description="Run the build as a Prefect flow")


class Config(BaseModel):
    """Root configuration for LegacyForge."""

    project_name: str = Field(default="LegacyForge", description="Project identifier")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: Literal["auto", "console", "json"] = Field(
        default="auto", description="Log renderer (auto picks JSON when stderr is not a TTY)"
    )
    paths: PathsConfig = Field(default_factory=PathsConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    target: TargetConfig = Field(default_factory=TargetConfig)
    injection: InjectionConfig = Field(default_factory=InjectionConfig)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    model_config = {"extra": "ignore"}

    @classmethod
    def from_env(cls) -> Config:
        """Create configuration from environment variables."""
        paths = PathsConfig(project_root=Path(os.environ.get("LF_PROJECT_ROOT", ".")).resolve())
        if "LF_OUTPUT_DIR" in os.environ:
            paths.output_dir = Path(os.environ["LF_OUTPUT_DIR"])
        if "LF_TEMP_ROOT" in os.environ:
            paths.temp_root = Path(os.environ["LF_TEMP_ROOT"])
        babel_config = os.environ.get("LF_BABEL_CONFIG")
        return cls(
            log_level=os.environ.get("LF_LOG_LEVEL", "INFO"),  # type: ignore
            log_format=os.environ.get("LF_LOG_FORMAT", "auto"),  # type: ignore
            paths=paths,
            tools=ToolsConfig(
                allow_npx_fallback=os.environ.get("LF_NPX_FALLBACK", "true").lower() == "true",
            ),
            target=TargetConfig(
                version=os.environ.get("LF_TARGET_CHROME", "85"),
                babel_config_file=Path(babel_config) if babel_config else None,
            ),
            pipeline=PipelineSettings(
                variant=os.environ.get("LF_VARIANT", "esbuild"),  # type: ignore
                parallel_units=os.environ.get("LF_PARALLEL", "false").lower() == "true",
                source_maps=os.environ.get("LF_SOURCE_MAPS", "true").lower() == "true",
            ),
        )


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config.from_env()
