"""Core infrastructure components for LegacyForge."""

from .config import Config, get_config
from .exceptions import (
    ConfigurationError,
    InjectionPatternNotFoundError,
    LegacyForgeError,
    PipelineError,
    ResolutionError,
    ToolInvocationError,
    ToolNotFoundError,
    TransformError,
)
from .logging import get_logger, setup_logging
from .types import ArtifactPath, Hash, PipelineRun, StageResult, StageStatus

__all__ = [
    "Config",
    "get_config",
    "ConfigurationError",
    "InjectionPatternNotFoundError",
    "LegacyForgeError",
    "PipelineError",
    "ResolutionError",
    "ToolInvocationError",
    "ToolNotFoundError",
    "TransformError",
    "get_logger",
    "setup_logging",
    "ArtifactPath",
    "Hash",
    "PipelineRun",
    "StageResult",
    "StageStatus",
]
