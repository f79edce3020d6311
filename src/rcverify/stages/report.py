"""Operator-facing output, the version log, and the final summary."""

import sys
from pathlib import Path

from rcverify.core.log import logger
from rcverify.core.result import RunSummary, ValidationOutcome

BANNER = "=" * 42


def show(text: str, banner: bool = False, stream=None) -> None:
    """Print text for the operator.

    Log dumps and the summary go here rather than through the logger
    so they appear verbatim and in order on stdout.
    """
    stream = stream or sys.stdout
    if banner:
        print(f"\n{BANNER}\n{text}\n{BANNER}", file=stream)
    else:
        print(text.rstrip("\n"), file=stream)
    stream.flush()


class VersionLog:
    """Append-only record of toolchain versions, one block per build."""

    def __init__(self, path: Path):
        self.path = path

    def reset(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("", encoding="utf-8")

    def append_block(self, name: str, text: str) -> None:
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(f"--- {name} ---\n")
            f.write(text.rstrip("\n") + "\n\n")

    def read(self) -> str:
        if not self.path.is_file():
            return ""
        return self.path.read_text(encoding="utf-8", errors="replace")


class ResultAggregator:
    """Summarizes a run and decides the process exit code."""

    def __init__(self, version_log: VersionLog, fail_on_build_failure=True):
        self.version_log = version_log
        self.fail_on_build_failure = fail_on_build_failure

    def report(self, summary: RunSummary, stream=None) -> int:
        """Print the summary.

        Returns:
            Exit code: 0 unless a build failed and failures are fatal
        """
        show("Tested configurations", banner=True, stream=stream)
        show(self.version_log.read() or "(no versions recorded)", stream=stream)

        if summary.validation is not None:
            outcome = summary.validation.outcome
            show(f"Signature validation: {outcome.value}", stream=stream)
            if outcome is not ValidationOutcome.SUCCESS:
                show(
                    f"  see {summary.validation.log_file}", stream=stream
                )

        if summary.all_succeeded:
            show(
                f"All {len(summary.builds)} build(s) succeeded",
                stream=stream,
            )
            logger.info("Testing completed", builds=len(summary.builds))
            return 0

        show(
            f"{len(summary.failures)} of {len(summary.builds)} "
            f"build(s) failed:",
            stream=stream,
        )
        for i, failure in enumerate(summary.failures, 1):
            detail = failure.reason or f"log: {failure.log_file}"
            show(f"  {i}. {failure.environment} ({detail})", stream=stream)

        logger.error(
            "Testing completed with failures",
            failed=[f.environment for f in summary.failures],
        )
        return 1 if self.fail_on_build_failure else 0
