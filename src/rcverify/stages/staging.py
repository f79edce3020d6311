"""Staging area owned by one verification run."""

import shutil
from pathlib import Path

from pydantic import BaseModel

from rcverify.core.errors import UsageError
from rcverify.core.log import logger
from rcverify.core.runner import fill_placeholders


class StagingArea(BaseModel):
    """Local directory holding everything one run downloads and writes.

    The area is wiped and recreated by prepare() at the start of every
    run and left in place afterwards for inspection.
    """

    root: Path
    source_subdir: str = "source"
    version_log_name: str = "versions.log"
    build_log_template: str = "build-{name}.log"

    @classmethod
    def from_config(cls, config) -> "StagingArea":
        return cls(
            root=config.staging.root.absolute(),
            source_subdir=config.staging.source_subdir,
            version_log_name=config.staging.version_log,
            build_log_template=config.build.log_template,
        )

    @property
    def source_dir(self) -> Path:
        return self.root / self.source_subdir

    @property
    def version_log(self) -> Path:
        return self.root / self.version_log_name

    def build_log(self, name: str) -> Path:
        return self.root / fill_placeholders(self.build_log_template, name=name)

    def check_removable(self) -> None:
        """Refuse a root whose removal would take cwd or home with it.

        Raises:
            UsageError: root is the current or home directory, or one
                of their parents (filesystem roots included)
        """
        root = self.root.resolve()
        for protected in (Path.cwd().resolve(), Path.home().resolve()):
            if protected.is_relative_to(root):
                raise UsageError(
                    f"Refusing to use {self.root} as the staging area: "
                    f"removing it would remove {protected}"
                )

    def prepare(self) -> Path:
        """Remove any previous run's contents and create the root."""
        self.check_removable()
        if self.root.exists() or self.root.is_symlink():
            logger.info(f"Removing previous staging area: {self.root}")
            if self.root.is_dir() and not self.root.is_symlink():
                shutil.rmtree(self.root)
            else:
                self.root.unlink()

        logger.info(f"Creating local directory: {self.root}")
        self.root.mkdir(parents=True)
        return self.root
