"""YAML configuration source with layered files and include: support.

Files are deep merged, later ones winning:

    1. defaults/default.yaml shipped inside the package
    2. rcverify.yaml in the user config directory (platformdirs)
    3. the project file named by State's yaml_file (./rcverify.yaml)
    4. every `--include FILE` given on the command line

Any of them may pull in further files with a top level `include:` key,
a path or list of paths relative to the including file.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

from rcverify.core.log import ConsoleSink, Logger

PACKAGE_DEFAULTS = Path(__file__).parent.parent / "defaults" / "default.yaml"

# Config loading happens before the configured logger exists, so it
# reports through a warn-level console logger of its own
_bootstrap_logger = None


def _get_bootstrap_logger():
    global _bootstrap_logger
    if _bootstrap_logger is None:
        _bootstrap_logger = Logger(console=ConsoleSink(level="warn"))
        _bootstrap_logger.setup(log_root=Path.home(), run_name="bootstrap")
    return _bootstrap_logger


def _cleanup_bootstrap_logger():
    """Called by Config once the real logger is installed."""
    global _bootstrap_logger
    if _bootstrap_logger is not None:
        _bootstrap_logger.close()
        _bootstrap_logger = None


# Arguments being parsed by cli.main(); unset means sys.argv
_cli_args: ContextVar[list[str] | None] = ContextVar("cli_args", default=None)


@contextmanager
def cli_arguments(args: list[str]) -> Iterator[None]:
    """Read `--include` from args instead of sys.argv inside the block."""
    token = _cli_args.set(list(args))
    try:
        yield
    finally:
        _cli_args.reset(token)


def current_cli_args() -> list[str]:
    args = _cli_args.get()
    return sys.argv[1:] if args is None else args


def _cli_includes(args: list[str]) -> list[str]:
    """Values of every `--include FILE` pair in args."""
    return [
        value for flag, value in zip(args, args[1:]) if flag == "--include"
    ]


def deep_merge(base: dict, override: dict) -> dict:
    """New dict with override merged into base, recursing into dicts."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_include(include: str, including_file: Path) -> Path:
    path = Path(include).expanduser()
    if not path.is_absolute():
        path = including_file.parent / path
    return path.resolve()


def load_with_includes(path: Path, chain: tuple[Path, ...] = ()) -> dict:
    """Load one YAML file, merging its include: files underneath it.

    Raises:
        ValueError: A file includes itself, directly or indirectly
    """
    path = path.resolve()
    if path in chain:
        raise ValueError(f"Circular include: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    includes = data.pop("include", None) or []
    if isinstance(includes, str):
        includes = [includes]

    merged: dict = {}
    for include in includes:
        included = load_with_includes(
            resolve_include(include, path), chain + (path,)
        )
        merged = deep_merge(merged, included)

    # The including file wins over what it includes
    return deep_merge(merged, data)


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """pydantic-settings YAML source reading the layered files."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_file=None):
        files = yaml_file or settings_cls.model_config.get("yaml_file")
        if files is None:
            files = []
        elif isinstance(files, (str, os.PathLike)):
            files = [files]
        files = list(files) + _cli_includes(current_cli_args())

        super().__init__(settings_cls, files or None)

    def _read_files(self, files, **_kwargs):
        # Newer pydantic-settings passes extra options (deep_merge=...);
        # these files are always deep merged
        candidates = [
            PACKAGE_DEFAULTS,
            Path(user_config_dir("rcverify", appauthor=False)) / "rcverify.yaml",
        ]
        if isinstance(files, (str, os.PathLike)):
            files = [files]
        candidates += [Path(f).expanduser() for f in files or []]

        log = _get_bootstrap_logger()
        result: dict = {}
        for path in candidates:
            if not path.is_file():
                log.debug(
                    "Config file not found, skipping: {file}", file=str(path)
                )
                continue
            with log.span("Loading config file {file}", file=str(path)):
                result = deep_merge(result, load_with_includes(path))
        return result
