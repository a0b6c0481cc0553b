"""
Core type definitions for LegacyForge.

Provides type aliases and run records used throughout the pipeline
for type-safe data flow between stages.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


# Type aliases
ArtifactPath = Path
Hash = str  # SHA-256 hash


class StageStatus(str, Enum):
    """Status of a pipeline stage."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class StageResult(BaseModel):
    """Result of a pipeline stage execution."""

    stage_name: str = Field(description="Name of the pipeline stage")
    status: StageStatus = Field(default=StageStatus.RUNNING, description="Execution status")
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: datetime | None = Field(default=None)
    duration_seconds: float = Field(default=0.0)
    input_hash: Hash = Field(default="", description="Hash of stage input")
    output_hash: Hash = Field(default="", description="Hash of stage output")
    artifacts: list[ArtifactPath] = Field(default_factory=list, description="Files produced")
    error_message: str | None = Field(default=None)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def mark_completed(self, output_hash: Hash, artifacts: list[ArtifactPath] | None = None) -> None:
        """Mark stage as successfully completed."""
        self.status = StageStatus.COMPLETED
        self.completed_at = datetime.utcnow()
        self.output_hash = output_hash
        self.artifacts = artifacts or []
        self.duration_seconds = (self.completed_at - self.started_at).total_seconds()

    def mark_failed(self, error: str) -> None:
        """Mark stage as failed."""
        self.status = StageStatus.FAILED
        self.completed_at = datetime.utcnow()
        self.error_message = error
        self.duration_seconds = (self.completed_at - self.started_at).total_seconds()


class PipelineRun(BaseModel):
    """Represents a complete pipeline execution."""

    run_id: str = Field(description="Unique run identifier")
    variant: str = Field(description="Pipeline configuration name")
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: datetime | None = Field(default=None)
    stages: list[StageResult] = Field(default_factory=list)
    final_status: StageStatus = Field(default=StageStatus.PENDING)

