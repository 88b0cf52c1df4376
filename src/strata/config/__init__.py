"""
Layered configuration for Strata.

Sources are merged in registration order, ``${...}`` references are
resolved, and the result is decoded with pydantic.
"""

from strata.config.builder import Config
from strata.config.errors import (
    CircularReferenceError,
    ConfigDecodeError,
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigReadError,
    ConfigReferenceError,
    InvalidReferencePathError,
    NonScalarReferenceError,
    ReferenceNotFoundError,
    UnclosedReferenceError,
    UnsupportedConfigFormatError,
)
from strata.config.merge import deep_merge, merge_at_path, merge_entries
from strata.config.resolve import resolve_references
from strata.config.sources import (
    ConfigSource,
    DictSource,
    EnvSource,
    FileSource,
    LayeredSettingsSource,
)
from strata.config.values import ConfigEntry, coerce_env_value, to_text

__all__ = [
    "CircularReferenceError",
    "Config",
    "ConfigDecodeError",
    "ConfigEntry",
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "ConfigReadError",
    "ConfigReferenceError",
    "ConfigSource",
    "DictSource",
    "EnvSource",
    "FileSource",
    "InvalidReferencePathError",
    "LayeredSettingsSource",
    "NonScalarReferenceError",
    "ReferenceNotFoundError",
    "UnclosedReferenceError",
    "UnsupportedConfigFormatError",
    "coerce_env_value",
    "deep_merge",
    "merge_at_path",
    "merge_entries",
    "resolve_references",
    "to_text",
]
