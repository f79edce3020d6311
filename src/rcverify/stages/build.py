"""Build the extracted source once per toolchain environment."""

from datetime import datetime
from pathlib import Path

from rcverify.core.log import logger
from rcverify.core.markers import contains_marker, tail
from rcverify.core.result import BuildOutcome, BuildResult
from rcverify.core.runner import Runner
from rcverify.stages.report import VersionLog, show
from rcverify.stages.staging import StagingArea
from rcverify.stages.toolchain import BuildEnvironment, ToolchainContext


def classify_build(
    output: str,
    returncode: int | None,
    success_marker: str,
    require_exit_status: bool = True,
) -> BuildOutcome:
    """SUCCESS if the marker is present (and the exit status is clean).

    With no marker configured the exit status alone decides.
    """
    exit_ok = returncode == 0
    if not success_marker:
        return BuildOutcome.SUCCESS if exit_ok else BuildOutcome.FAILURE
    if not contains_marker(output, success_marker):
        return BuildOutcome.FAILURE
    if require_exit_status and not exit_ok:
        return BuildOutcome.FAILURE
    return BuildOutcome.SUCCESS


class BuildRunner:
    """Runs the build for each environment, isolating failures.

    Per environment: select the toolchain, record its versions, run
    the build, classify the output. A failure at any step is recorded
    for that environment and the next one is still attempted.
    """

    def __init__(
        self,
        project_root: Path,
        staging: StagingArea,
        build_config,
        toolchain_config,
        runner=None,
    ):
        self.project_root = project_root
        self.staging = staging
        self.build_config = build_config
        self.toolchain_config = toolchain_config
        self.runner = runner or Runner()
        self.version_log = VersionLog(staging.version_log)

    def run_all(self, environments: list[BuildEnvironment]) -> list[BuildResult]:
        """Build in every environment, in order.

        The previously active toolchain is restored afterwards.
        """
        results = []
        with ToolchainContext(self.toolchain_config, self.runner) as toolchain:
            for environment in environments:
                results.append(self.run_environment(environment, toolchain))
        return results

    def run_environment(
        self, environment: BuildEnvironment, toolchain: ToolchainContext
    ) -> BuildResult:
        with logger.span("Build", environment=environment.name):
            show(f"Toolchain: {environment.executable}", banner=True)

            try:
                env = toolchain.select(environment)
                self.capture_versions(environment, env)
            except Exception as e:
                # Whatever goes wrong here fails this environment only
                logger.error(
                    f"Could not prepare toolchain {environment.name}: {e}"
                )
                return BuildResult(
                    environment=environment.name,
                    executable=environment.executable,
                    outcome=BuildOutcome.FAILURE,
                    reason=str(e),
                )

            return self.build(environment, env)

    def capture_versions(
        self, environment: BuildEnvironment, env: dict[str, str]
    ) -> None:
        """Append the toolchain's version output to the version log."""
        blocks = []
        for command in self.toolchain_config.version_commands:
            result = self.runner.execute(
                command, cwd=self.project_root, env=env, check=False
            )
            output = (result.stdout + result.stderr).rstrip()
            blocks.append(f"$ {command}\n{output}")
        self.version_log.append_block(environment.name, "\n".join(blocks))

    def build(
        self, environment: BuildEnvironment, env: dict[str, str]
    ) -> BuildResult:
        log_file = self.staging.build_log(environment.name)
        timestamp = datetime.now()

        logger.info("Running: {command}", command=self.build_config.command)
        try:
            result = self.runner.execute(
                self.build_config.command,
                cwd=self.project_root,
                timeout=self.build_config.timeout,
                log_file=log_file,
                log_level="debug",
                env=env,
                check=False,
            )
        except Exception as e:
            logger.error(f"Build could not be run with {environment.name}: {e}")
            return BuildResult(
                environment=environment.name,
                executable=environment.executable,
                outcome=BuildOutcome.FAILURE,
                log_file=log_file,
                reason=str(e),
                timestamp=timestamp,
            )

        outcome = classify_build(
            result.stdout + result.stderr,
            result.exited,
            self.build_config.success_marker,
            self.build_config.require_exit_status,
        )

        if outcome is BuildOutcome.SUCCESS:
            logger.info(f"Build successful with toolchain: {environment.name}")
        else:
            logger.error(
                f"Build failed with toolchain: {environment.name}",
                returncode=result.exited,
                log_file=str(log_file),
            )
            show("Build output (tail):")
            show(tail(log_file, self.build_config.tail_lines))

        return BuildResult(
            environment=environment.name,
            executable=environment.executable,
            outcome=outcome,
            returncode=result.exited,
            log_file=log_file,
            timestamp=timestamp,
        )
