"""Locate and unpack the source archive."""

import tarfile
from pathlib import Path

from pydantic import BaseModel

from rcverify.core.errors import AmbiguousArtifact, CorruptArchive, MissingArtifact
from rcverify.core.log import logger


class SourceArchive(BaseModel):
    path: Path
    root_name: str = ""

    @property
    def root(self) -> Path:
        return self.path.parent / self.root_name


class SourceExtractor:
    """Finds the single source archive and extracts it in place."""

    def __init__(self, source_dir: Path, pattern: str = "*.tar.gz"):
        self.source_dir = source_dir
        self.pattern = pattern

    def locate(self) -> SourceArchive:
        """
        Raises:
            MissingArtifact: No file matches the pattern
            AmbiguousArtifact: More than one file matches
        """
        if not self.source_dir.is_dir():
            raise MissingArtifact(
                f"No source directory found at {self.source_dir}"
            )

        candidates = sorted(
            p for p in self.source_dir.glob(self.pattern) if p.is_file()
        )
        if not candidates:
            listing = ", ".join(
                sorted(p.name for p in self.source_dir.iterdir())
            )
            raise MissingArtifact(
                f"No source tarball matching {self.pattern} found in "
                f"{self.source_dir} (contents: {listing or 'empty'})"
            )
        if len(candidates) > 1:
            raise AmbiguousArtifact(candidates)

        return SourceArchive(path=candidates[0])

    def extract(self) -> Path:
        """Extract the archive next to itself.

        Returns:
            The archive's top-level directory

        Raises:
            CorruptArchive: Unreadable archive, or its root directory
                does not exist after extraction
        """
        archive = self.locate()
        logger.info(f"Extracting: {archive.path.name}")

        try:
            with tarfile.open(archive.path, "r:*") as tar:
                first = tar.next()
                if first is None:
                    raise CorruptArchive(f"{archive.path.name} is empty")
                root_name = first.name.removeprefix("./").split("/")[0]
                if hasattr(tarfile, "data_filter"):
                    tar.extractall(self.source_dir, filter="data")
                else:
                    tar.extractall(self.source_dir)
        except (tarfile.TarError, OSError) as e:
            raise CorruptArchive(
                f"Failed to extract {archive.path.name}: {e}"
            ) from e

        archive = archive.model_copy(update={"root_name": root_name})
        if not root_name or not archive.root.is_dir():
            raise CorruptArchive(
                f"Failed to extract source: {archive.root} is not a directory"
            )

        logger.info(f"Entering extracted directory: {root_name}")
        return archive.root
