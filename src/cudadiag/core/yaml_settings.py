"""Layered YAML configuration with `include:` support.

Layers, lowest priority first, are deep-merged into one dict:

    1. defaults/default.yaml shipped with the package
    2. <user config dir>/cudadiag.yaml
    3. ./cudadiag.yaml
    4. every `--include FILE` on the command line, in order

Any file may name further files under a top-level `include:` key
(a path or list of paths, relative to that file). Included files
are merged beneath the file that includes them.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

APP_NAME = "cudadiag"
CONFIG_FILENAME = "cudadiag.yaml"
DEFAULTS_FILE = Path(__file__).parent.parent / "defaults" / "default.yaml"

# Logger for the loading phase itself; replaced once Config exists
_bootstrap_logger = None


def _get_bootstrap_logger():
    global _bootstrap_logger
    if _bootstrap_logger is None:
        from cudadiag.core.log import Logger
        _bootstrap_logger = Logger()
        _bootstrap_logger.setup(log_root=Path.home(), run_name="bootstrap")
    return _bootstrap_logger


def _cleanup_bootstrap_logger():
    global _bootstrap_logger
    if _bootstrap_logger is not None:
        _bootstrap_logger.close()
        _bootstrap_logger = None


def deep_merge(lower: dict, higher: dict) -> dict:
    """New dict with higher's keys laid over lower's, recursing into
    nested dicts; lists and scalars from higher replace outright."""
    merged = dict(lower)
    for key, value in higher.items():
        below = merged.get(key)
        if isinstance(below, dict) and isinstance(value, dict):
            merged[key] = deep_merge(below, value)
        else:
            merged[key] = value
    return merged


def cli_includes(argv: list[str]) -> list[str]:
    """Values of every `--include FILE` pair in argv."""
    found = []
    args = iter(argv[1:])
    for arg in args:
        if arg == "--include":
            value = next(args, None)
            if value is not None:
                found.append(value)
    return found


def load_with_includes(path: Path, chain: tuple[Path, ...] = ()) -> dict:
    """Load one YAML file with its `include:` files merged beneath it.

    Raises:
        ValueError: If a file includes itself, directly or not
    """
    path = path.resolve()
    if path in chain:
        raise ValueError(f"Circular include: {path}")
    chain = (*chain, path)

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    includes = data.pop("include", None) or []
    if isinstance(includes, (str, os.PathLike)):
        includes = [includes]

    merged: dict = {}
    for entry in includes:
        target = Path(entry).expanduser()
        if not target.is_absolute():
            target = path.parent / target
        with _get_bootstrap_logger().span(
            "Including {name}", name=target.name, included_from=str(path)
        ):
            merged = deep_merge(merged, load_with_includes(target, chain))
    return deep_merge(merged, data)


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """pydantic-settings source reading the layered YAML described in
    this module's docstring."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_file=None):
        files = yaml_file or settings_cls.model_config.get("yaml_file")
        if files is None:
            files = []
        elif isinstance(files, (str, os.PathLike)):
            files = [files]
        super().__init__(settings_cls, [*files, *cli_includes(sys.argv)])

    def _read_files(self, files, *_args, **_kwargs) -> dict:
        # Newer pydantic-settings also passes deep_merge; layers here
        # are always deep merged
        layers = [
            DEFAULTS_FILE,
            Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME,
            Path(CONFIG_FILENAME),
        ]
        for entry in files or []:
            path = Path(entry).expanduser()
            if path not in layers:
                layers.append(path)

        log = _get_bootstrap_logger()
        data: dict = {}
        for path in layers:
            if not path.is_file():
                log.debug("No configuration at {path}", path=str(path))
                continue
            with log.span("Loading {path}", path=str(path)):
                data = deep_merge(data, load_with_includes(path))
        return data
