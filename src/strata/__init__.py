"""
Strata - layered configuration resolution.

Loads configuration from ranked sources (files, environment variables,
in-process dicts), deep-merges them into one tree, resolves ``${path}``
cross-references and decodes the result into a typed value once.
"""

import importlib.metadata as _metadata

# Version is defined in pyproject.toml - read it and parse into tuple (primary representation)
_raw_version = _metadata.version("strata")
__version_info__: tuple[int, int, int] = tuple(int(x) for x in _raw_version.split(".")[:3])  # type: ignore[assignment]
__version__: str = ".".join(str(x) for x in __version_info__)
__author__ = "Strata Contributors"

from strata.config import Config, ConfigError  # noqa: E402
from strata.context import AppContext, StrataError  # noqa: E402

__all__ = [
    "__version__",
    "__version_info__",
    "AppContext",
    "Config",
    "ConfigError",
    "StrataError",
]
