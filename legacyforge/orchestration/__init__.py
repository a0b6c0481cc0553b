"""Orchestration module for LegacyForge."""

from .pipeline import (
    BuildPipeline,
    EsbuildPipeline,
    InjectionPoint,
    PipelineResult,
    RollupPipeline,
    create_pipeline,
)

__all__ = [
    "BuildPipeline",
    "EsbuildPipeline",
    "InjectionPoint",
    "PipelineResult",
    "RollupPipeline",
    "create_pipeline",
]
