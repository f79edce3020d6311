"""Application state and configuration."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from rcverify.core.base import BaseConfig, BaseState
from rcverify.core.log import Logger, logger, setup_logger
from rcverify.core.result import BuildResult, ValidationResult
from rcverify.core.yaml_settings import (
    YamlWithIncludesSettingsSource,
    _cleanup_bootstrap_logger,
)

# ============================================================
# TEMPLATE SUBSTITUTION NAMESPACE
# ============================================================

# Modules available for template substitution in YAML files
# Usage: {platformdirs.user_log_dir}, {os.getcwd}, {Path.cwd}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}

TEMPLATE_PATTERN = re.compile(r'\{([a-zA-Z._]+)\}')

# ============================================================
# CONFIG MODELS (loaded from YAML/env/CLI)
# ============================================================

class StagingConfig(BaseConfig):
    """Local staging area layout."""

    root: Path = Field(
        default=Path("rc-verify"),
        description=(
            "Staging directory, wiped and recreated on every run"
        ),
    )
    source_subdir: str = Field(
        default="source",
        description="Subdirectory of the staging area holding sources",
    )
    version_log: str = Field(
        default="versions.log",
        description="File recording toolchain versions per environment",
    )


class FetchConfig(BaseConfig):
    """Release candidate download settings."""

    command: str = Field(
        default=(
            "wget -r -np -nH --cut-dirs={cut_dirs} "
            "--reject-regex={exclude} {robots} {base_url}"
        ),
        description=(
            "Recursive fetch command. Placeholders: {base_url}, "
            "{cut_dirs}, {exclude}, {robots}"
        ),
    )
    robots_option: str = Field(
        default="-e robots=off",
        description="Substituted for {robots} when ignore_robots is set",
    )
    ignore_robots: bool = Field(
        default=True,
        description="Ignore robots.txt (the release host is trusted)",
    )
    exclude: str = Field(
        default="/site/",
        description="Regex of remote paths to skip (documentation sites)",
    )
    cut_dirs: int | None = Field(
        default=None,
        description=(
            "Leading path segments to strip. Derived from the URL "
            "path depth when unset"
        ),
    )
    required_file: str = Field(
        default="signature-validator.sh",
        description="File whose absence after fetching aborts the run",
    )
    log_name: str = Field(
        default="fetch.log",
        description="Fetch output log, relative to the staging area",
    )
    timeout: int | None = Field(
        default=None,
        description="Fetch timeout in seconds (unset waits forever)",
    )


class ValidateConfig(BaseConfig):
    """Signature and checksum validation settings."""

    command: str = Field(
        default="bash signature-validator.sh",
        description="Validator command, run inside the staging area",
    )
    success_marker: str = Field(
        default="SUCCESSFUL VALIDATION",
        description="Output text that means validation passed",
    )
    failure_marker: str = Field(
        default="VALIDATION FAILED",
        description="Output text that means validation failed",
    )
    log_name: str = Field(
        default="sig-validate.log",
        description="Validator output log, relative to the staging area",
    )
    timeout: int | None = Field(
        default=None,
        description="Validator timeout in seconds",
    )


class SourceConfig(BaseConfig):
    """Source archive selection."""

    pattern: str = Field(
        default="*.tar.gz",
        description="Glob matching the source archive in the source dir",
    )


class ToolchainConfig(BaseConfig):
    """Toolchain alternatives discovery and switching."""

    list_command: str = Field(
        default="update-alternatives --list java",
        description="Lists registered alternatives, one path per line",
    )
    query_command: str = Field(
        default="update-alternatives --query java",
        description="Reports the active alternative on a 'Value:' line",
    )
    switch_command: str = Field(
        default="sudo update-alternatives --set java {executable}",
        description="Selects an alternative. Placeholder: {executable}",
    )
    restore: bool = Field(
        default=True,
        description="Restore the previously active alternative afterwards",
    )
    home_variable: str = Field(
        default="JAVA_HOME",
        description=(
            "Environment variable set to two levels above the "
            "selected executable"
        ),
    )
    version_commands: list[str] = Field(
        default_factory=lambda: ["java -version", "mvn --version"],
        description="Commands whose output is recorded per environment",
    )


class BuildConfig(BaseConfig):
    """Build command and success detection."""

    command: str = Field(
        default="mvn clean install site",
        description="Build command, run in the extracted project root",
    )
    success_marker: str = Field(
        default="BUILD SUCCESS",
        description=(
            "Output text that means the build passed. Empty string "
            "means exit status alone decides"
        ),
    )
    require_exit_status: bool = Field(
        default=True,
        description="Also require exit status 0 for success",
    )
    tail_lines: int = Field(
        default=20,
        description="Build log lines shown when a build fails",
    )
    log_template: str = Field(
        default="build-{name}.log",
        description="Per-environment build log name. Placeholder: {name}",
    )
    timeout: int | None = Field(
        default=None,
        description="Build timeout in seconds (unset waits forever)",
    )


class ReportConfig(BaseConfig):
    """Final report settings."""

    fail_on_build_failure: bool = Field(
        default=True,
        description="Exit non-zero when any environment failed to build",
    )


class Config(BaseConfig):
    """Application configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance"
    )
    staging: StagingConfig = Field(
        default_factory=StagingConfig,
        description="Staging area settings",
    )
    fetch: FetchConfig = Field(
        default_factory=FetchConfig,
        description="Download settings",
    )
    validation: ValidateConfig = Field(
        default_factory=ValidateConfig,
        description="Signature validation settings",
    )
    source: SourceConfig = Field(
        default_factory=SourceConfig,
        description="Source archive settings",
    )
    toolchain: ToolchainConfig = Field(
        default_factory=ToolchainConfig,
        description="Toolchain alternatives settings",
    )
    build: BuildConfig = Field(
        default_factory=BuildConfig,
        description="Build settings",
    )
    report: ReportConfig = Field(
        default_factory=ReportConfig,
        description="Report settings",
    )

    run_name: str = Field(
        default="rcverify",
        alias="run-name",
        description="Name of this run, used in log paths",
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "rcverify"
        ),
        description=(
            "Root directory for application log files "
            "(supports {platformdirs.*} templates)"
        ),
    )

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _setup_logger(self) -> Config:
        """Install the configured logger as the global one."""
        if self.logger is None:
            self.logger = Logger()

        setup_logger(
            log_root=self.log_root,
            run_name=self.run_name,
            console=self.logger.console,
            otlp=self.logger.otlp,
            file=self.logger.file,
            logfire=self.logger.logfire,
        )
        _cleanup_bootstrap_logger()
        return self

    def close(self):
        """Close the global logger before the sections it shares sinks with."""
        logger.close()
        super().close()


# ============================================================
# RUNTIME STATE MODELS (mutable during workflow execution)
# ============================================================

class VerifyState(BaseState):
    """Verify workflow runtime state (mutates during execution)."""

    base_url: str = Field(
        default="",
        description="Normalized release candidate URL",
    )
    staging: Any = Field(
        default=None,
        description="StagingArea for this run",
    )
    validation: ValidationResult | None = Field(
        default=None,
        description="Validator result",
    )
    project_root: Path | None = Field(
        default=None,
        description="Extracted source tree the builds run in",
    )
    environments: list = Field(
        default_factory=list,
        description="BuildEnvironments still to be built",
    )
    results: list[BuildResult] = Field(
        default_factory=list,
        description="Recorded build results, in build order",
    )
    status: str = Field(
        default="pending",
        description=(
            "Workflow status: pending, running, complete, failed"
        ),
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)


class Runtime(BaseModel):
    """Runtime state, one section per workflow."""

    verify: VerifyState = Field(
        default_factory=VerifyState,
        description="Verify workflow runtime state"
    )


# ============================================================
# STATE (config + runtime combined)
# ============================================================

class State(BaseSettings):
    """Complete application state - configuration and runtime.

    This is the object every workflow node receives.

    - config: loaded from YAML/env/CLI, not changed afterwards
    - runtime: mutated as the workflow runs
    """

    config: Config = Field(
        default_factory=Config,
        description=(
            "Application configuration (from YAML/env/CLI)"
        )
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description=(
            "Runtime state (mutates during workflow execution)"
        ),
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to include and merge. "
            "Use --include on CLI or include: in YAML files. "
            "Files are processed during load and deep-merged."
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file="rcverify.yaml",
        env_file=".env",
        env_prefix="RCVERIFY_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore'
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Source priority, highest first: init kwargs, YAML files,
        .env, environment, file secrets."""
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> "State":
        """Resolve {config.*} and {platformdirs.*} style templates.

        Walks the whole State. Placeholders that do not resolve, such
        as the {executable} in toolchain.switch_command, are left for
        the stage that fills them in.
        """
        self._substitute_in(self)
        return self

    def _substitute_in(self, container: Any) -> None:
        """Rewrite templated strings and paths inside container in place."""
        if isinstance(container, BaseModel):
            for name in type(container).model_fields:
                value = getattr(container, name)
                resolved = self._resolved(value)
                if resolved is not value:
                    setattr(container, name, resolved)
        elif isinstance(container, dict):
            for key, value in container.items():
                container[key] = self._resolved(value)
        elif isinstance(container, list):
            container[:] = [self._resolved(item) for item in container]

    def _resolved(self, value: Any) -> Any:
        """value with templates expanded; the same object if unchanged."""
        if isinstance(value, (BaseModel, dict, list)):
            self._substitute_in(value)
            return value
        if not isinstance(value, (str, Path)):
            return value

        text = str(value)
        expanded = TEMPLATE_PATTERN.sub(self._expand, text)
        if expanded == text:
            return value
        return Path(expanded) if isinstance(value, Path) else expanded

    def _expand(self, match: re.Match) -> str:
        """Value for one {dotted.name}, or the placeholder itself.

        Examples:
            {config.staging.root}        -> rc-verify
            {platformdirs.user_log_dir}  -> ~/.local/state/rcverify/log
            {executable}                 -> {executable}
        """
        head, *rest = match.group(1).split(".")
        target = TEMPLATE_NAMESPACE.get(head)
        if target is None:
            target, rest = self, [head, *rest]

        try:
            for attr in rest:
                target = getattr(target, attr)
            if callable(target):
                target = (
                    target("rcverify", appauthor=False)
                    if head == "platformdirs"
                    else target()
                )
        except (AttributeError, TypeError):
            return match.group(0)
        return str(target)


__all__ = ["State", "Config", "BaseConfig", "BaseState"]
