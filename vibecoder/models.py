"""Pydantic models exchanged between the pipeline components.

The task list is produced upstream and handed over as-is; everything else
is created by the file store, the command runner, or the orchestrator.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PerformanceMode(str, Enum):
    """Coarse knob trading output quality for speed and memory."""

    HIGH = "high"
    BALANCED = "balanced"
    EFFICIENT = "efficient"

    @classmethod
    def parse(cls, value: str | None) -> "PerformanceMode":
        """Return the matching mode, or ``BALANCED`` for anything unknown."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.BALANCED


class Task(BaseModel):
    """One unit of work: what to generate, where to put it, how to check it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    prompt: str = Field(..., min_length=1)
    file: str = Field(..., min_length=1, description="Workspace-relative target path")
    test_command: str = Field(..., alias="testCommand")


class ChangeRecord(BaseModel):
    """Audit-log entry describing one versioned write to a file."""

    file_path: str
    version: int = Field(..., ge=1)
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    backup_path: str | None = Field(
        default=None, description="Pre-image of this write; None for created files"
    )
    action: Literal["created", "modified"]


class CommandResult(BaseModel):
    """Outcome of a single shell command."""

    command: str
    success: bool
    exit_code: int
    output: str = ""
    duration_seconds: float = Field(default=0.0, ge=0.0)


class GenerationParams(BaseModel):
    """Performance-derived sampling parameters shared by all providers."""

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, ge=1)
    num_ctx: int = Field(default=4096, ge=256)

    @classmethod
    def for_mode(cls, mode: PerformanceMode | str | None) -> "GenerationParams":
        """Return the parameter set for a performance mode."""
        resolved = mode if isinstance(mode, PerformanceMode) else PerformanceMode.parse(mode)
        return _MODE_PARAMS[resolved].model_copy()


_MODE_PARAMS: dict[PerformanceMode, GenerationParams] = {
    PerformanceMode.HIGH: GenerationParams(temperature=0.8, max_tokens=8192, num_ctx=4096),
    PerformanceMode.BALANCED: GenerationParams(temperature=0.7, max_tokens=4096, num_ctx=4096),
    PerformanceMode.EFFICIENT: GenerationParams(temperature=0.5, max_tokens=2048, num_ctx=2048),
}


class ProjectConfig(BaseModel):
    """Scaffold layout for a target language."""

    language: str
    framework: str = ""
    test_framework: str = ""
    build_tool: str = ""
    source_dir: str = "src"
    test_dir: str = "tests"
    config_files: list[str] = Field(default_factory=list)


class PipelineRun(BaseModel):
    """Summary of one orchestrator run."""

    tasks_total: int = 0
    tasks_passed: int = 0
    tasks_failed: int = 0
    attempts: dict[str, int] = Field(default_factory=dict)
    failed_files: list[str] = Field(default_factory=list)
