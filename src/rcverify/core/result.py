"""Result types for validation and build execution."""

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class ValidationOutcome(str, Enum):
    """Outcome of running the release's validator."""

    SUCCESS = "success"
    FAILURE = "failure"
    INDETERMINATE = "indeterminate"


class BuildOutcome(str, Enum):
    """Outcome of building the source in one environment."""

    SUCCESS = "success"
    FAILURE = "failure"


class ValidationResult(BaseModel):
    """Result of the validator run."""

    outcome: ValidationOutcome
    returncode: int
    log_file: Path
    timestamp: datetime


class BuildResult(BaseModel):
    """Result of one environment's build. Frozen once recorded."""

    model_config = ConfigDict(frozen=True)

    environment: str
    executable: str
    outcome: BuildOutcome
    returncode: int | None = None
    log_file: Path | None = None
    reason: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)

    @property
    def success(self) -> bool:
        return self.outcome is BuildOutcome.SUCCESS


class RunSummary(BaseModel):
    """Everything the final report needs."""

    validation: ValidationResult | None = None
    builds: list[BuildResult] = Field(default_factory=list)

    @property
    def failures(self) -> list[BuildResult]:
        return [b for b in self.builds if not b.success]

    @property
    def all_succeeded(self) -> bool:
        return not self.failures
