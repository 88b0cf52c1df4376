"""
Shared constants for Strata.

This module provides a single source of truth for default values
that are used across multiple modules.
"""

# Reference resolution
MAX_RESOLUTION_PASSES = 100
"""Maximum number of resolution passes before references are declared circular.

Each pass substitutes every ``${...}`` reference visible at its start, so a
chain of N hops needs N passes plus one that finds nothing left to do.
"""

REFERENCE_ESCAPE = "$"
"""Character that introduces a reference (``${``) or an escape (``$$``)."""

REFERENCE_OPEN = "{"
REFERENCE_CLOSE = "}"
REFERENCE_PATH_SEPARATOR = "."

# Environment source
DEFAULT_ENV_SEPARATOR = "__"
"""Default separator between prefix and path segments (``APP__SERVER__PORT``)."""

# File source
TOML_SUFFIXES = frozenset({".toml"})
YAML_SUFFIXES = frozenset({".yaml", ".yml"})
JSON_SUFFIXES = frozenset({".json"})

SUPPORTED_SUFFIXES = TOML_SUFFIXES | YAML_SUFFIXES | JSON_SUFFIXES
"""File extensions FileSource knows how to parse."""

DEFAULT_FILE_SUFFIX = ".toml"
"""Format assumed for files with no extension or an unrecognised one."""

# 64-bit signed integer range for environment value coercion
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
