"""
Main pipeline orchestration for LegacyForge.

One abstract pipeline sequences the four build stages (bundle, transpile,
inject, minify) for the two entry adapters. The concrete pipelines are two
configurations of it: they choose the bundler, the transpiler invocation mode,
the minifier, and whether injection runs before or after transpilation.
"""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, Field

from ..core.config import Config, PipelineVariant, get_config
from ..core.exceptions import LegacyForgeError, PipelineError
from ..core.logging import bind_context, clear_context, get_logger
from ..core.types import PipelineRun, StageResult, StageStatus
from ..models.artifacts import (
    Artifact,
    BundleArtifact,
    EntryAdapterModule,
    FinalArtifact,
    InjectionTarget,
    ModuleFormat,
    PayloadArtifact,
    TranspiledArtifact,
)
from ..services.adapters import AdapterService
from ..services.bundler import BundleRequest, Bundler, EsbuildBundler, RollupBundler
from ..services.injection import WorkletInliner, verify_injection
from ..services.minifier import EsbuildMinifier, Minifier, TerserMinifier
from ..services.tooling import ToolRunner
from ..services.transpiler import LegacyTranspiler
from ..storage import ArtifactStore, LocalArtifactStore, TemporaryWorkspace, publish_atomically

logger = get_logger(__name__)

T = TypeVar("T")


class InjectionPoint(str, Enum):
    """Where the worklet payload is injected into the main library."""

    PRE_TRANSPILE = "pre-transpile"
    POST_TRANSPILE = "post-transpile"


class PipelineResult(BaseModel):
    """Result of a complete pipeline run."""

    run: PipelineRun
    success: bool
    published: list[Path] = Field(default_factory=list)
    payload_bytes: int = 0
    main_bytes: int = 0
    injection_pattern: str | None = None
    error: str | None = None
    failed_stage: str | None = None

    @property
    def run_id(self) -> str:
        return self.run.run_id

    @property
    def duration_seconds(self) -> float:
        if self.run.completed_at is None:
            return 0.0
        return (self.run.completed_at - self.run.started_at).total_seconds()


class BuildPipeline(ABC):
    """Shared flow of both pipeline variants.

    Subclasses pick the backends and the transpiler invocation mode; this
    class owns sequencing, the temporary workspace, stage records and
    atomic publishing.
    """

    variant: PipelineVariant
    injection_point: InjectionPoint
    publishes_processor: bool

    def __init__(self, config: Config | None = None, runner: ToolRunner | None = None) -> None:
        self.config = config or get_config()
        self.paths = self.config.paths
        self.runner = runner or ToolRunner(self.config.tools, self.paths.project_root)
        self.adapters = AdapterService(self.config)
        self.record: PipelineRun | None = None

        self.workspace: ArtifactStore | None = None
        self.bundler: Bundler | None = None
        self.transpiler: LegacyTranspiler | None = None
        self.minifier: Minifier | None = None
        self.inliner: WorkletInliner | None = None

    @abstractmethod
    def create_bundler(self, workspace: ArtifactStore) -> Bundler:
        ...

    @abstractmethod
    def create_minifier(self) -> Minifier:
        ...

    @abstractmethod
    async def transpile(self, artifact: Artifact) -> TranspiledArtifact:
        """Run the legacy transpiler over one artifact."""
        ...

    @property
    def publish_processor(self) -> bool:
        configured = self.config.pipeline.publish_processor
        return self.publishes_processor if configured is None else configured

    def _setup(self, workspace: ArtifactStore) -> None:
        self.workspace = workspace
        self.bundler = self.create_bundler(workspace)
        self.transpiler = LegacyTranspiler(
            self.runner,
            self.config.target,
            workspace,
            source_maps=self.config.pipeline.source_maps,
        )
        self.minifier = self.create_minifier()
        self.inliner = WorkletInliner(
            self.config.injection,
            debug_store=LocalArtifactStore(self.paths.resolve(self.paths.debug_dir)),
        )

    @asynccontextmanager
    async def stage(self, name: str, input_hash: str = "") -> AsyncIterator[StageResult]:
        """Record one stage; any failure inside becomes a PipelineError."""
        assert self.record is not None
        result = StageResult(stage_name=name, input_hash=input_hash)
        self.record.stages.append(result)
        logger.info("Stage started", stage=name)
        try:
            yield result
        except PipelineError:
            raise
        except LegacyForgeError as e:
            result.mark_failed(str(e))
            logger.error("Stage failed", stage=name, error=e.message)
            raise PipelineError(
                message=e.message, stage=name, pipeline_run_id=self.record.run_id, cause=e
            ) from e
        except Exception as e:
            result.mark_failed(str(e))
            logger.error("Stage failed", stage=name, error=str(e))
            raise PipelineError(
                message=str(e), stage=name, pipeline_run_id=self.record.run_id, cause=e
            ) from e
        result.mark_completed(result.output_hash, result.artifacts)
        logger.info("Stage completed", stage=name, seconds=round(result.duration_seconds, 3))

    async def _bundle(self, adapter: EntryAdapterModule, minify_identifiers: bool) -> BundleArtifact:
        assert self.bundler is not None
        role = adapter.role.value
        async with self.stage(f"bundle:{role}") as stage:
            bundle = await self.bundler.bundle(
                BundleRequest(
                    adapter=adapter,
                    output_key=f"{role}/{adapter.stem}.bundle.js",
                    module_format=self.main_module_format if role == "main" else ModuleFormat.IIFE,
                    minify_identifiers=minify_identifiers,
                )
            )
            stage.output_hash = bundle.sha256
        return bundle

    async def _transpile(self, artifact: Artifact, role: str) -> TranspiledArtifact:
        async with self.stage(f"transpile:{role}", artifact.sha256) as stage:
            transpiled = await self.transpile(artifact)
            stage.output_hash = transpiled.sha256
        return transpiled

    async def _minify(self, artifact: Artifact, role: str) -> str:
        assert self.minifier is not None
        async with self.stage(f"minify:{role}", artifact.sha256) as stage:
            code = await self.minifier.minify(artifact)
            stage.output_hash = Artifact(name=artifact.name, content=code).sha256
        return code

    @property
    def main_module_format(self) -> ModuleFormat:
        return ModuleFormat(self.config.pipeline.main_format)

    async def build_payload(self, adapter: EntryAdapterModule) -> tuple[PayloadArtifact, TranspiledArtifact]:
        """Build the processor completely: bundle, transpile, minify."""
        bundle = await self._bundle(adapter, minify_identifiers=True)
        transpiled = await self._transpile(bundle, "processor")
        code = await self._minify(transpiled, "processor")
        payload = PayloadArtifact(name=bundle.name, content=code)
        logger.info("Payload ready", size_bytes=payload.size_bytes)
        return payload, transpiled

    async def build_injection_target(self, adapter: EntryAdapterModule) -> tuple[InjectionTarget, str | None]:
        """Build the main library up to the injection point."""
        bundle = await self._bundle(adapter, minify_identifiers=False)
        source_map = None
        artifact: Artifact = bundle
        if self.injection_point is InjectionPoint.POST_TRANSPILE:
            transpiled = await self._transpile(bundle, "main")
            artifact, source_map = transpiled, transpiled.source_map
        target = InjectionTarget(
            name=artifact.name,
            content=artifact.content,
            placeholder_name=self.config.injection.placeholder_name,
        )
        return target, source_map

    async def finish_main(self, injected: InjectionTarget) -> tuple[str, str | None]:
        """Build the main library from the injection point to the final code."""
        source_map = None
        artifact: Artifact = injected
        if self.injection_point is InjectionPoint.PRE_TRANSPILE:
            transpiled = await self._transpile(injected, "main")
            artifact, source_map = transpiled, transpiled.source_map
        return await self._minify(artifact, "main"), source_map

    async def _concurrently(self, first: Awaitable[T], second: Awaitable[Any]) -> tuple[T, Any]:
        tasks = [asyncio.ensure_future(first), asyncio.ensure_future(second)]
        _, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        for task in pending:
            task.cancel()
        # every task is awaited, so no failure is left unretrieved
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        errors = [
            outcome for outcome in outcomes
            if isinstance(outcome, BaseException) and not isinstance(outcome, asyncio.CancelledError)
        ]
        if errors:
            for error in errors[1:]:
                logger.error("Concurrent unit also failed", error=str(error))
            raise errors[0]
        return outcomes[0], outcomes[1]  # type: ignore[return-value]

    async def run(self) -> PipelineResult:
        """Execute the pipeline once.

        Returns:
            PipelineResult; ``success`` is False when any stage failed.
        """
        run_id = str(uuid.uuid4())[:8]
        self.record = PipelineRun(run_id=run_id, variant=self.variant)
        self.record.final_status = StageStatus.RUNNING
        bind_context(run_id=run_id, variant=self.variant)
        logger.info(
            "Starting legacy build",
            project=str(self.paths.project_root),
            target=self.config.target.esbuild_target,
            injection=self.injection_point.value,
        )

        result = PipelineResult(run=self.record, success=False)
        try:
            temp_root = self.paths.resolve(self.paths.temp_root) if self.paths.temp_root else None
            async with TemporaryWorkspace(temp_root) as workspace:
                self._setup(workspace)
                await self._run_stages(result)
            result.success = True
            self.record.final_status = StageStatus.COMPLETED
            logger.info("Build successful", published=[str(p) for p in result.published])
        except PipelineError as e:
            result.error = str(e.cause or e)
            result.failed_stage = e.stage
            self.record.final_status = StageStatus.FAILED
            logger.error("Build failed", stage=e.stage, error=e.message)
        finally:
            self.record.completed_at = datetime.utcnow()
            clear_context()
        return result

    async def _run_stages(self, result: PipelineResult) -> None:
        assert self.inliner is not None
        # Polyfill prelude and placeholder are checked before any tool runs
        async with self.stage("adapters"):
            main_adapter = self.adapters.load_main()
            processor_adapter = self.adapters.load_processor()

        if self.config.pipeline.parallel_units:
            (payload, processor_es5), (target, main_map) = await self._concurrently(
                self.build_payload(processor_adapter),
                self.build_injection_target(main_adapter),
            )
        else:
            payload, processor_es5 = await self.build_payload(processor_adapter)
            target, main_map = await self.build_injection_target(main_adapter)

        async with self.stage("inject", target.sha256) as stage:
            injected = await self.inliner.inject(payload, target)
            stage.output_hash = injected.sha256
            stage.metadata["pattern"] = injected.match.pattern_name if injected.match else None
        result.injection_pattern = stage.metadata["pattern"]

        main_code, pre_transpile_map = await self.finish_main(injected)

        async with self.stage("verify", Artifact(name="main", content=main_code).sha256):
            problems = verify_injection(main_code, payload, self.config.target.polyfill_packages)
            if problems:
                raise LegacyForgeError(
                    message="Final artifact is not self-contained: " + "; ".join(problems),
                    context={"artifact": self.paths.main_output_name},
                )

        output_dir = self.paths.resolve(self.paths.output_dir)
        keep_maps = self.config.pipeline.source_maps
        finals = [
            FinalArtifact(
                name="main",
                path=output_dir / self.paths.main_output_name,
                content=main_code,
                source_map=(main_map or pre_transpile_map) if keep_maps else None,
            )
        ]
        if self.publish_processor:
            finals.append(
                FinalArtifact(
                    name="processor",
                    path=output_dir / self.paths.processor_output_name,
                    content=payload.content,
                    source_map=processor_es5.source_map if keep_maps else None,
                )
            )

        async with self.stage("publish") as stage:
            result.published = await publish_atomically(finals)
            stage.artifacts = list(result.published)
            stage.output_hash = finals[0].sha256
        result.payload_bytes = payload.size_bytes
        result.main_bytes = finals[0].size_bytes


class EsbuildPipeline(BuildPipeline):
    """esbuild bundle, Babel over files, injection after transpilation."""

    variant: PipelineVariant = "esbuild"
    injection_point = InjectionPoint.POST_TRANSPILE
    publishes_processor = True

    def create_bundler(self, workspace: ArtifactStore) -> Bundler:
        return EsbuildBundler(self.runner, workspace)

    def create_minifier(self) -> Minifier:
        return EsbuildMinifier(self.runner, self.config.target)

    async def transpile(self, artifact: Artifact) -> TranspiledArtifact:
        assert self.workspace is not None and self.transpiler is not None
        source_key = f"transpile/{artifact.name}.in.js"
        await self.workspace.store_text(source_key, artifact.content)
        return await self.transpiler.transpile_file(
            self.workspace.path_for(source_key),
            self.workspace.path_for(f"transpile/{artifact.name}.es5.js"),
            artifact.name,
        )


class RollupPipeline(BuildPipeline):
    """Rollup bundle, Babel over in-memory chunks, injection before transpilation."""

    variant: PipelineVariant = "rollup"
    injection_point = InjectionPoint.PRE_TRANSPILE
    publishes_processor = False

    def create_bundler(self, workspace: ArtifactStore) -> Bundler:
        return RollupBundler(self.runner, workspace, self.paths.resolve(self.paths.tsconfig))

    def create_minifier(self) -> Minifier:
        return TerserMinifier(self.runner, self.config.target)

    async def transpile(self, artifact: Artifact) -> TranspiledArtifact:
        assert self.transpiler is not None
        return await self.transpiler.transpile_chunk(artifact)


PIPELINES: dict[str, type[BuildPipeline]] = {
    "esbuild": EsbuildPipeline,
    "rollup": RollupPipeline,
}


def create_pipeline(
    config: Config | None = None,
    variant: PipelineVariant | None = None,
    runner: ToolRunner | None = None,
) -> BuildPipeline:
    """Instantiate the pipeline configuration for ``variant``."""
    config = config or get_config()
    name = variant or config.pipeline.variant
    if name not in PIPELINES:
        raise PipelineError(message=f"Unknown pipeline variant '{name}'", stage="configure")
    return PIPELINES[name](config, runner=runner)

