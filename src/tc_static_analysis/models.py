from enum import IntEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Severity(IntEnum):
    """Diagnostic level, numerically identical to DTE's ``vsBuildErrorLevel``."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2


class ExitStatus(IntEnum):
    """Outcome of a run. The value is the process exit code."""

    SUCCESS = 0
    UNSTABLE = 1
    ERROR = 2


class DiagnosticRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    severity: Severity
    source_file: str | None = None


class ClassificationCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    warnings: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)


class RunConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    solution_path: Path
    project_path: Path
    tag_prefix: str = "SA"
    dry_run: bool = False
