"""
Prefect flow for LegacyForge builds.

Wraps one pipeline run so that builds can be observed in a Prefect UI.
Failures are never retried: a failed build needs a source or configuration
change before it can succeed.
"""

from __future__ import annotations

from prefect import flow, get_run_logger

from ..core.config import PipelineVariant, get_config
from .pipeline import PipelineResult, create_pipeline


@flow(
    name="legacyforge-build",
    description="Bundle, transpile and inline the worklet for the legacy target",
    version="1.0.0",
    retries=0,
)
async def legacy_build_flow(variant: PipelineVariant | None = None) -> PipelineResult:
    """Run one legacy build as a Prefect flow.

    Args:
        variant: Pipeline configuration, the configured one when None.

    Returns:
        PipelineResult of the build
    """
    logger = get_run_logger()
    config = get_config()
    pipeline = create_pipeline(config, variant)

    logger.info(f"Starting {pipeline.variant} build for {config.paths.project_root}")
    result = await pipeline.run()

    if result.success:
        logger.info(f"Build {result.run_id} finished in {result.duration_seconds:.1f}s")
        for path in result.published:
            logger.info(f"-> {path}")
    else:
        logger.error(f"Build {result.run_id} failed at stage '{result.failed_stage}': {result.error}")
    return result
