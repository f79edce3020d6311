"""Command execution using invoke."""

import re
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from rcverify.core.log import logger


def fill_placeholders(template: str, **values) -> str:
    """Substitute {name} for each keyword given.

    Any other brace, such as a shell ${VAR}, is left as it is.

    >>> fill_placeholders("echo {executable} ${HOME}", executable="java")
    'echo java ${HOME}'
    """
    if not values:
        return template
    pattern = re.compile(
        r"\{(" + "|".join(re.escape(name) for name in values) + r")\}"
    )
    return pattern.sub(lambda m: str(values[m.group(1)]), template)


class Runner(Context):
    """invoke.Context with a single execute() entry point.

    Every external tool the pipeline drives (fetcher, validator,
    alternatives system, build tool) goes through execute().
    """

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        stdin: str | None = None,
        log_file: Path | None = None,
        log_level: str | None = None,
        check: bool = True,
        env: dict[str, str] | None = None,
        append: bool = False,
    ) -> Result:
        """Execute a shell command and capture its output.

        Args:
            command: Command string to execute
            cwd: Working directory for command execution
            timeout: Maximum execution time in seconds
            stdin: String to send to command's stdin
            log_file: File that receives combined stdout/stderr while
                the command runs
            log_level: Log each output line at this level afterwards
            check: If True, raise on non-zero exit code
            env: Variables added to the inherited environment
            append: Append to log_file instead of truncating it

        Returns:
            invoke.Result with stdout, stderr, exited. A timeout is
            reported as exited == -1.

        Raises:
            invoke.UnexpectedExit: If check=True and command
                returns non-zero
        """
        kwargs = {
            "hide": True,
            "warn": not check,
            "in_stream": False,
        }

        if timeout:
            kwargs["timeout"] = timeout

        if stdin:
            kwargs["in_stream"] = stdin

        if env:
            kwargs["env"] = env

        stream = None
        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            stream = open(  # noqa: SIM115
                log_file, "a" if append else "w", encoding="utf-8"
            )
            # Tee: invoke copies output to these streams as it arrives
            kwargs.update(hide=False, out_stream=stream, err_stream=stream)

        logger.debug(
            "Running: {command}", command=command, cwd=str(cwd or ".")
        )
        try:
            if cwd:
                with self.cd(str(cwd)):
                    result = self.run(command, **kwargs)
            else:
                result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            logger.warn(
                "Command timed out after {timeout}s: {command}",
                timeout=timeout,
                command=command,
            )
            result = e.result
            result.exited = -1
        finally:
            if stream:
                stream.close()

        if log_level:
            for line in (result.stdout + result.stderr).splitlines():
                logger.log(log_level, "{line}", line=line.rstrip())

        return result
