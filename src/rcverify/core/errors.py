"""Errors raised by the verification pipeline.

Fatal errors abort the run and map to a process exit code. Errors that
only concern one build environment are caught by the build stage and
turned into a recorded failure instead.
"""


class VerifyError(Exception):
    """Base class for pipeline errors."""

    exit_code = 1
    fatal = True


class UsageError(VerifyError):
    """Missing or invalid command line argument."""


class FetchIncomplete(VerifyError):
    """A file the pipeline depends on was not fetched."""

    def __init__(self, missing: str, staging_dir):
        self.missing = missing
        self.staging_dir = staging_dir
        super().__init__(
            f"Download failed - {missing} not found in {staging_dir}"
        )


class MissingArtifact(VerifyError):
    """No source archive was staged."""


class AmbiguousArtifact(MissingArtifact):
    """More than one file matched the source archive pattern."""

    def __init__(self, candidates: list):
        self.candidates = candidates
        names = ", ".join(str(c.name) for c in candidates)
        super().__init__(
            f"Expected exactly one source archive, found "
            f"{len(candidates)}: {names}"
        )


class CorruptArchive(VerifyError):
    """Source archive could not be read or did not extract a root dir."""


class EnvironmentSwitchFailure(VerifyError):
    """Selecting a toolchain alternative failed."""

    fatal = False
