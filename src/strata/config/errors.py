"""
Exceptions raised while building configuration.

Every failure aborts the build: no partially merged or partially resolved
configuration is ever returned. Errors that wrap a lower-level failure
(I/O, parsing, validation) chain it as ``__cause__``.

Hierarchy:
    ConfigError
    ├── ConfigFileNotFoundError     required file is absent
    ├── ConfigReadError             file exists but cannot be read
    ├── ConfigParseError            file content is not a valid table
    │   └── UnsupportedConfigFormatError
    ├── ConfigDecodeError           resolved tree does not fit the target type
    └── ConfigReferenceError        ``${...}`` resolution failures
        ├── CircularReferenceError
        ├── ReferenceNotFoundError
        ├── InvalidReferencePathError
        ├── NonScalarReferenceError
        └── UnclosedReferenceError
"""

from __future__ import annotations

import pathlib as _pathlib
import typing as _typing


class ConfigError(Exception):
    """Base class for all configuration build failures."""

    pass


# =============================================================================
# Source errors
# =============================================================================


class ConfigFileNotFoundError(ConfigError):
    """A file registered as required does not exist."""

    def __init__(self, path: _pathlib.Path) -> None:
        self.path = path
        super().__init__(f"required config file not found: {path}")


class ConfigReadError(ConfigError):
    """A config file exists but could not be read."""

    def __init__(self, path: _pathlib.Path, message: str) -> None:
        self.path = path
        super().__init__(f"failed to read config file '{path}': {message}")


class ConfigParseError(ConfigError):
    """A config file could not be parsed into a table."""

    def __init__(self, path: _pathlib.Path, message: str) -> None:
        self.path = path
        super().__init__(f"failed to parse config file '{path}': {message}")


class UnsupportedConfigFormatError(ConfigParseError):
    """An explicitly requested file format is not one FileSource can parse."""

    def __init__(self, path: _pathlib.Path, format: str) -> None:  # noqa: A002
        self.format = format
        super().__init__(path, f"unsupported config format '{format}'")


# =============================================================================
# Decode errors
# =============================================================================


class ConfigDecodeError(ConfigError):
    """The resolved configuration does not match the requested type.

    Attributes:
        target: The type the configuration was decoded into.
        errors: Pydantic's structured error list, one dict per failing field.
    """

    def __init__(
        self,
        target: _typing.Any,
        message: str,
        errors: list[dict[str, _typing.Any]] | None = None,
    ) -> None:
        self.target = target
        self.errors = errors or []
        name = getattr(target, "__name__", repr(target))
        super().__init__(f"failed to deserialize config into {name}: {message}")


# =============================================================================
# Reference errors
# =============================================================================


class ConfigReferenceError(ConfigError):
    """Base class for ``${...}`` reference resolution failures."""

    pass


class CircularReferenceError(ConfigReferenceError):
    """
    A reference leads back to the value holding it, or references kept
    producing substitutions until the pass cap was hit.

    Attributes:
        path: Dotted path of the value found in a cycle, if one was found.
        max_passes: The pass cap, if resolution stopped because of it.
    """

    def __init__(self, max_passes: int | None = None, *, path: str | None = None) -> None:
        self.max_passes = max_passes
        self.path = path
        if path is not None:
            detail = f"'{path}' refers back to itself"
        else:
            detail = f"no fixed point after {max_passes} passes"
        super().__init__(f"circular reference detected in configuration ({detail})")


class ReferenceNotFoundError(ConfigReferenceError):
    """A dotted reference path does not exist in the configuration."""

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"referenced path not found: {reference}")


class InvalidReferencePathError(ConfigReferenceError):
    """A reference path is empty or has an empty segment (``${a..b}``)."""

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"invalid reference path: {reference!r}")


class NonScalarReferenceError(ConfigReferenceError):
    """A reference points at a table, an array or a null value."""

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"cannot reference non-scalar value: {reference}")


class UnclosedReferenceError(ConfigReferenceError):
    """A ``${`` was not followed by a closing ``}``."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"unclosed reference (missing '}}') in {text!r}")
