"""Build toolchain discovery and selection."""

from __future__ import annotations

import re
import shlex
from pathlib import Path

from pydantic import BaseModel

from rcverify.core.errors import EnvironmentSwitchFailure
from rcverify.core.log import logger
from rcverify.core.runner import Runner, fill_placeholders

DEFAULT_ENVIRONMENT = "default"


def sanitize_name(text: str) -> str:
    """Filename-safe version of text."""
    return re.sub(r"[^A-Za-z0-9._-]+", "-", text).strip("-.") or "env"


def derive_environment_name(executable: str) -> str:
    """Human readable name for an alternative, used in log file names.

    /usr/lib/jvm/java-17-openjdk-amd64/bin/java -> java-17-openjdk-amd64
    """
    if executable == DEFAULT_ENVIRONMENT:
        return DEFAULT_ENVIRONMENT
    home = Path(executable).parent.parent
    if home.name:
        return sanitize_name(home.name)
    return sanitize_name(executable)


class BuildEnvironment(BaseModel):
    """One installed toolchain alternative, or the synthetic default."""

    executable: str
    name: str = ""

    def model_post_init(self, __context) -> None:
        if not self.name:
            self.name = derive_environment_name(self.executable)

    @property
    def is_default(self) -> bool:
        return self.executable == DEFAULT_ENVIRONMENT

    @property
    def home(self) -> Path | None:
        """Two levels up from the executable (bin/java -> JDK home)."""
        if self.is_default:
            return None
        return Path(self.executable).parent.parent

    @classmethod
    def default(cls) -> BuildEnvironment:
        return cls(executable=DEFAULT_ENVIRONMENT, name=DEFAULT_ENVIRONMENT)


def environments_from_listing(text: str) -> list[BuildEnvironment]:
    """Parse newline separated alternative paths.

    Blank lines are skipped and repeated names get a numeric suffix so
    every environment has its own build log.
    """
    environments = []
    seen: dict[str, int] = {}
    for line in text.splitlines():
        executable = line.strip()
        if not executable:
            continue
        env = BuildEnvironment(executable=executable)
        count = seen.get(env.name, 0) + 1
        seen[env.name] = count
        if count > 1:
            env = BuildEnvironment(
                executable=executable, name=f"{env.name}-{count}"
            )
        environments.append(env)
    return environments


class EnvironmentEnumerator:
    """Lists the toolchain alternatives registered on this host."""

    def __init__(self, config, runner=None):
        self.config = config
        self.runner = runner or Runner()

    def enumerate(self) -> list[BuildEnvironment]:
        """Registered alternatives, or just the default environment.

        Falling back keeps the pipeline usable on hosts without an
        alternatives system.
        """
        with logger.span("Enumerate toolchains"):
            result = self.runner.execute(
                self.config.list_command, check=False
            )
            environments = []
            if result.exited == 0:
                environments = environments_from_listing(result.stdout)

            if not environments:
                logger.warn(
                    "No toolchains found via alternatives, "
                    "building with current toolchain"
                )
                return [BuildEnvironment.default()]

            for env in environments:
                logger.info(f"Found toolchain: {env.executable}", name=env.name)
            return environments


class ToolchainContext:
    """Scoped ownership of the host-wide active toolchain.

    On entry the currently active alternative is recorded; select()
    switches to a given environment and returns the variables child
    processes need; on exit the recorded alternative is switched back,
    even if the body raised.

        with ToolchainContext(config) as toolchain:
            env = toolchain.select(environment)
    """

    def __init__(self, config, runner=None):
        self.config = config
        self.runner = runner or Runner()
        self.previous: str | None = None
        self.active: str | None = None

    def __enter__(self) -> ToolchainContext:
        if self.config.restore:
            self.previous = self.current()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        if (
            self.config.restore
            and self.previous
            and self.active
            and self.active != self.previous
        ):
            logger.info(f"Restoring toolchain: {self.previous}")
            try:
                self._switch(self.previous)
            except EnvironmentSwitchFailure as e:
                logger.error(f"Could not restore toolchain: {e}")
        return False

    def current(self) -> str | None:
        """Active alternative according to the query command."""
        if not self.config.query_command:
            return None
        result = self.runner.execute(self.config.query_command, check=False)
        if result.exited != 0:
            logger.debug("Could not query active toolchain")
            return None
        for line in result.stdout.splitlines():
            key, _, value = line.partition(":")
            if key.strip() == "Value" and value.strip():
                return value.strip()
        return None

    def select(self, environment: BuildEnvironment) -> dict[str, str]:
        """Make environment the active toolchain.

        Returns:
            Environment variables for child processes ({} for the
            default environment)

        Raises:
            EnvironmentSwitchFailure: The switch command failed
        """
        if environment.is_default:
            logger.info("Building with default toolchain")
            return {}

        logger.info(f"Setting toolchain to: {environment.executable}")
        self._switch(environment.executable)
        return {self.config.home_variable: str(environment.home)}

    def _switch(self, executable: str) -> None:
        command = fill_placeholders(
            self.config.switch_command, executable=shlex.quote(executable)
        )
        result = self.runner.execute(command, check=False)
        if result.exited != 0:
            detail = (result.stderr or result.stdout).strip()
            raise EnvironmentSwitchFailure(
                f"Switching to {executable} failed "
                f"(exit {result.exited}): {detail}"
            )
        self.active = executable


__all__ = [
    "DEFAULT_ENVIRONMENT",
    "BuildEnvironment",
    "EnvironmentEnumerator",
    "ToolchainContext",
    "derive_environment_name",
    "environments_from_listing",
]
