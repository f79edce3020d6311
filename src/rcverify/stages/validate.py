"""Run the release's signature and checksum validator."""

from datetime import datetime

from rcverify.core.errors import FetchIncomplete
from rcverify.core.log import logger
from rcverify.core.markers import contains_marker
from rcverify.core.result import ValidationOutcome, ValidationResult
from rcverify.core.runner import Runner
from rcverify.stages.report import show
from rcverify.stages.staging import StagingArea


def classify_validation(
    output: str, returncode: int, success_marker: str, failure_marker: str
) -> ValidationOutcome:
    """Success marker wins; failure marker or bad exit means FAILURE.

    Neither marker and a clean exit is INDETERMINATE.
    """
    if contains_marker(output, success_marker):
        return ValidationOutcome.SUCCESS
    if contains_marker(output, failure_marker) or returncode != 0:
        return ValidationOutcome.FAILURE
    return ValidationOutcome.INDETERMINATE


class IntegrityValidator:
    """Invokes the validator once and classifies the outcome.

    The outcome is advisory: a FAILURE is reported with the full log
    but does not stop the pipeline. Only a missing validator is fatal.
    """

    def __init__(
        self, config, staging: StagingArea, required_file: str = "",
        runner=None,
    ):
        self.config = config
        self.staging = staging
        self.required_file = required_file
        self.runner = runner or Runner()

    def validate(self) -> ValidationResult:
        if self.required_file and not (
            self.staging.root / self.required_file
        ).is_file():
            raise FetchIncomplete(self.required_file, self.staging.root)

        log_file = self.staging.root / self.config.log_name
        timestamp = datetime.now()

        with logger.span("Validate", command=self.config.command):
            show("Running signature validator...", banner=True)
            result = self.runner.execute(
                self.config.command,
                cwd=self.staging.root,
                timeout=self.config.timeout,
                log_file=log_file,
                log_level="debug",
                check=False,
            )

            outcome = classify_validation(
                result.stdout + result.stderr,
                result.exited,
                self.config.success_marker,
                self.config.failure_marker,
            )

            if outcome is ValidationOutcome.SUCCESS:
                logger.info("Signature validation successful")
            else:
                if outcome is ValidationOutcome.FAILURE:
                    logger.error(
                        "Signature validation failed",
                        returncode=result.exited,
                    )
                else:
                    logger.warn(
                        "Signature validation did not report a result",
                        returncode=result.exited,
                    )
                show("Validator output:")
                show(log_file.read_text(encoding="utf-8", errors="replace"))

        return ValidationResult(
            outcome=outcome,
            returncode=result.exited,
            log_file=log_file,
            timestamp=timestamp,
        )
