"""Mirror a release candidate directory into the staging area."""

import re
import shlex
from urllib.parse import urlsplit

from rcverify.core.errors import FetchIncomplete, UsageError
from rcverify.core.log import logger
from rcverify.core.runner import Runner, fill_placeholders
from rcverify.stages.staging import StagingArea


def normalize_base_url(url: str) -> str:
    """Return url with exactly one trailing slash added if missing.

    >>> normalize_base_url("https://dist.example.org/proj/1.0-RC1")
    'https://dist.example.org/proj/1.0-RC1/'
    """
    url = url.strip()
    if not url:
        raise UsageError("URL argument required")
    return url if url.endswith("/") else url + "/"


def derive_cut_dirs(url: str) -> int:
    """Number of path segments in url.

    Stripping that many directories (after the host) drops the release
    candidate's files straight into the staging root.
    """
    path = urlsplit(url).path
    return len([segment for segment in path.split("/") if segment])


class ArtifactFetcher:
    """Runs the recursive fetch command and checks what it produced."""

    def __init__(self, config, staging: StagingArea, runner=None):
        """
        Args:
            config: FetchConfig section
            staging: Prepared staging area (fetch runs inside it)
            runner: Command runner (a new Runner by default)
        """
        self.config = config
        self.staging = staging
        self.runner = runner or Runner()

    def command_for(self, base_url: str) -> str:
        cut_dirs = self.config.cut_dirs
        if cut_dirs is None:
            cut_dirs = derive_cut_dirs(base_url)

        template = self.config.command
        robots = self.config.robots_option if self.config.ignore_robots else ""
        if not robots:
            # Drop the placeholder with its separator, not a double space
            template = re.sub(r"\{robots\}[ \t]*", "", template)

        return fill_placeholders(
            template,
            base_url=shlex.quote(base_url),
            cut_dirs=cut_dirs,
            exclude=shlex.quote(self.config.exclude),
            robots=robots,
        ).strip()

    def fetch(self, url: str):
        """Mirror url into the staging root.

        Returns:
            The normalized base URL

        Raises:
            FetchIncomplete: If the required validator file is missing
                afterwards
        """
        base_url = normalize_base_url(url)
        command = self.command_for(base_url)

        with logger.span("Fetch", url=base_url):
            logger.info(f"Downloading files from: {base_url}")
            result = self.runner.execute(
                command,
                cwd=self.staging.root,
                timeout=self.config.timeout,
                log_file=self.staging.root / self.config.log_name,
                log_level="debug",
                check=False,
            )
            if result.exited != 0:
                # wget exits non-zero for any single 404; the required
                # file check below decides
                logger.warn(
                    f"Fetch command exited with status {result.exited}"
                )

            self.check_complete()

        return base_url

    def check_complete(self) -> None:
        required = self.config.required_file
        if required and not (self.staging.root / required).is_file():
            logger.error(f"Download failed - {required} not found")
            raise FetchIncomplete(required, self.staging.root)
