"""
Custom exception hierarchy for LegacyForge.

All exceptions inherit from LegacyForgeError to enable consistent error handling
across the pipeline. Each exception type includes context for debugging and logging.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class LegacyForgeError(Exception):
    """Base exception for all LegacyForge errors."""

    message: str
    context: dict[str, Any] = field(default_factory=dict)
    cause: Exception | None = None

    def __str__(self) -> str:
        ctx = f" | context: {self.context}" if self.context else ""
        cause = f" | caused by: {self.cause}" if self.cause else ""
        return f"{self.message}{ctx}{cause}"


@dataclass
class ConfigurationError(LegacyForgeError):
    """Raised when the project layout or settings are unusable."""

    setting: str = ""

    def __str__(self) -> str:
        base = super().__str__()
        if self.setting:
            return f"Invalid configuration '{self.setting}': {base}"
        return f"Invalid configuration: {base}"


@dataclass
class ResolutionError(LegacyForgeError):
    """Raised when a source file or one of its references cannot be resolved.

    Resolution errors are fatal and always happen before any final artifact
    is written.
    """

    path: str = ""
    stage: str = ""
    output: str = ""

    def __str__(self) -> str:
        base = super().__str__()
        where = f" in '{self.path}'" if self.path else ""
        details = f"\n{self.output}" if self.output else ""
        return f"[{self.stage or 'resolve'}] unresolved{where}: {base}{details}"


@dataclass
class TransformError(LegacyForgeError):
    """Raised when code cannot be downgraded to the legacy target."""

    path: str = ""
    line: int | None = None
    column: int | None = None
    output: str = ""

    @property
    def location(self) -> str:
        if self.line is None:
            return self.path or "<unknown>"
        column = f":{self.column}" if self.column is not None else ""
        return f"{self.path or '<chunk>'}:{self.line}{column}"

    def __str__(self) -> str:
        base = super().__str__()
        details = f"\n{self.output}" if self.output else ""
        return f"Transform failed at {self.location}: {base}{details}"


@dataclass
class InjectionPatternNotFoundError(LegacyForgeError):
    """Raised when no placeholder pattern matches the injection target.

    This always indicates a bug in the placeholder contract or a change in
    upstream tool output. It is never retried.
    """

    placeholder: str = ""
    attempted_patterns: list[str] = field(default_factory=list)
    dump_path: str = ""

    def __str__(self) -> str:
        attempted = ", ".join(self.attempted_patterns) or "none"
        dump = f" | input dumped to: {self.dump_path}" if self.dump_path else ""
        return (
            f"No placeholder pattern matched '{self.placeholder}' "
            f"(attempted: {attempted}){dump}"
        )


@dataclass
class ToolInvocationError(LegacyForgeError):
    """Raised when an external build tool exits with a non-zero status."""

    tool: str = ""
    command: str = ""
    returncode: int = 0
    output: str = ""

    def __str__(self) -> str:
        return (
            f"[{self.tool}] exited with status {self.returncode}: {self.message}\n"
            f"$ {self.command}\n{self.output}"
        )


@dataclass
class ToolNotFoundError(LegacyForgeError):
    """Raised when a required external tool is not available."""

    tool_name: str = ""
    expected_path: str = ""
    install_hint: str = ""

    def __str__(self) -> str:
        hint = f" Install hint: {self.install_hint}" if self.install_hint else ""
        return f"Tool '{self.tool_name}' not found at '{self.expected_path}'.{hint}"


@dataclass
class PipelineError(LegacyForgeError):
    """Raised when pipeline orchestration fails."""

    stage: str = ""
    pipeline_run_id: str = ""

    def __str__(self) -> str:
        base = super().__str__()
        return f"Pipeline error at stage '{self.stage}' (run: {self.pipeline_run_id}): {base}"
