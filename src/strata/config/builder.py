"""
Configuration builder.

Collects entries from registered sources in registration order, merges them
into one tree, resolves ``${...}`` references and decodes the result into a
typed value with pydantic.

Example:
    >>> class Server(pydantic.BaseModel):
    ...     host: str
    ...     port: int
    >>> class AppConfig(pydantic.BaseModel):
    ...     server: Server
    >>> config = (
    ...     Config.builder()
    ...     .with_file("config/default.toml")
    ...     .with_file("config/local.toml", required=False)
    ...     .with_env("APP", "__")
    ...     .build(AppConfig)
    ... )

Later sources override earlier ones. Every build is independent: the
builder keeps no state between builds and can be built more than once.
"""

from __future__ import annotations

import collections.abc as _abc
import logging as _logging
import os as _os
import typing as _typing

import pydantic as _pydantic

import strata.config.errors as errors
import strata.config.merge as merge
import strata.config.resolve as resolve
import strata.config.sources as sources
import strata.config.values as values
import strata.constants as constants

_logger = _logging.getLogger(__name__)

T = _typing.TypeVar("T")


class Config:
    """Ordered collection of configuration sources."""

    def __init__(self) -> None:
        self._sources: list[sources.ConfigSource] = []

    @classmethod
    def builder(cls) -> Config:
        """Start an empty builder."""
        return cls()

    def __repr__(self) -> str:
        return f"Config(sources={self._sources!r})"

    @property
    def sources(self) -> tuple[sources.ConfigSource, ...]:
        """Registered sources, lowest precedence first."""
        return tuple(self._sources)

    def with_file(self, path: str | _os.PathLike[str], required: bool = True) -> Config:
        """Add a TOML, YAML or JSON file."""
        return self.with_source(sources.FileSource(path, required))

    def with_env(
        self,
        prefix: str,
        separator: str = constants.DEFAULT_ENV_SEPARATOR,
    ) -> Config:
        """
        Add environment variables named ``prefix + separator + path``.

        Raises:
            ValueError: If the separator is empty.
        """
        return self.with_source(sources.EnvSource(prefix, separator))

    def with_dict(
        self,
        data: _abc.Mapping[str, _typing.Any],
        path: _abc.Iterable[str] = (),
    ) -> Config:
        """Add an in-process table, at the root or at ``path``."""
        return self.with_source(sources.DictSource(data, path))

    def with_source(self, source: sources.ConfigSource) -> Config:
        """Add any source. Returns the builder for chaining."""
        self._sources.append(source)
        return self

    def build_table(self) -> values.Table:
        """
        Merge all sources and resolve references.

        Returns:
            A new, fully resolved table.

        Raises:
            ConfigError: The first source or resolution error encountered.
        """
        tree: values.Table = {}

        for source in self._sources:
            entries = source.entries()
            _logger.debug("Collected %d entr(ies) from %r", len(entries), source)
            merge.merge_entries(entries, tree)

        passes = resolve.resolve_references(tree)
        _logger.debug("References resolved in %d pass(es)", passes)
        return tree

    @_typing.overload
    def build(self, target: type[T]) -> T: ...

    @_typing.overload
    def build(self, target: _typing.Any) -> _typing.Any: ...

    def build(self, target: _typing.Any) -> _typing.Any:
        """
        Build the configuration and decode it into ``target``.

        Args:
            target: Any type pydantic can validate: a BaseModel subclass,
                a dataclass, a TypedDict, ``dict[str, Any]``...

        Returns:
            The decoded configuration.

        Raises:
            ConfigError: On source or resolution errors.
            ConfigDecodeError: If the resolved table does not fit ``target``.
        """
        tree = self.build_table()
        _logger.debug("Decoding configuration into %r", target)
        try:
            return _pydantic.TypeAdapter(target).validate_python(tree)
        except _pydantic.ValidationError as e:
            raise errors.ConfigDecodeError(target, str(e), e.errors()) from e
