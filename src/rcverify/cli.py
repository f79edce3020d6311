#!/usr/bin/env python3
"""rcverify CLI - verify a software release candidate."""

import asyncio
import sys

from pydantic import Field, ValidationError
from pydantic_settings import CliApp, CliPositionalArg, SettingsError

from rcverify.command.verify import VerifyCommand
from rcverify.core.config import State
from rcverify.core.log import logger
from rcverify.core.yaml_settings import cli_arguments

USAGE = "Usage: rcverify url"


class CliState(State):
    """Download, validate and build a release candidate.

    Fetches every file under URL (skipping /site/ trees), runs the
    release's signature-validator.sh, extracts the source tarball and
    builds it with every toolchain registered with update-alternatives.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.build.command value)
    2. --include FILE, ./rcverify.yaml, user config, package defaults
    3. .env file
    4. Environment variables
       (RCVERIFY_CONFIG__BUILD__COMMAND=value)

    Example:
      rcverify https://dist.apache.org/repos/dist/dev/commons/cli/1.11.0-RC1/
    """

    url: CliPositionalArg[str] = Field(
        description="Base URL of the release candidate directory"
    )

    def cli_cmd(self):
        """Run the verify workflow and exit with its status."""
        command = VerifyCommand(url=self.url)

        # Closing the logger flushes file sinks even on error
        with logger:
            exit_code = asyncio.run(command.run_workflow(self))
            raise SystemExit(exit_code)


def main(argv: list[str] | None = None):
    """Main entry point for CLI."""
    args = sys.argv[1:] if argv is None else argv
    try:
        # --include is read by the YAML source, which sees only these args
        with cli_arguments(args):
            CliApp.run(CliState, cli_args=args, cli_exit_on_error=False)
    except (SettingsError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
