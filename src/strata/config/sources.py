"""
Configuration sources.

A source produces ConfigEntry objects; the builder merges them in the order
the sources were registered. Sources implement a single method,
``entries()``, and may raise any ConfigError to abort the build.

Built-in sources:

- FileSource: a TOML, YAML or JSON file, contributed as one root entry
- EnvSource: environment variables under a prefix, one entry per variable
- DictSource: an in-process dict, contributed at the root or at a path

LayeredSettingsSource plugs a builder into pydantic-settings so a
``BaseSettings`` class can read the merged, resolved configuration.

Environment variables:
    With ``EnvSource("APP", "__")``, ``APP__SERVER__PORT=9090`` becomes the
    entry ``(("server", "port"), 9090)``. Segments are lowercased and values
    are typed by ``values.coerce_env_value``.
"""

from __future__ import annotations

import abc as _abc
import collections.abc as _collections_abc
import copy as _copy
import json as _json
import logging as _logging
import os as _os
import pathlib as _pathlib
import tomllib as _tomllib
import typing as _typing

import pydantic.fields as _pydantic_fields
import pydantic_settings as _pydantic_settings
import yaml as _yaml

import strata.config.errors as errors
import strata.config.values as values
import strata.constants as constants

if _typing.TYPE_CHECKING:
    import strata.config.builder as builder

_logger = _logging.getLogger(__name__)


class ConfigSource(_abc.ABC):
    """A producer of configuration entries."""

    @_abc.abstractmethod
    def entries(self) -> list[values.ConfigEntry]:
        """
        Produce this source's entries, in the order they should be merged.

        Raises:
            ConfigError: If the source cannot produce its entries.
        """


# =============================================================================
# File source
# =============================================================================


class FileSource(ConfigSource):
    """
    A configuration file, merged at the root.

    The format is taken from ``format`` when given, otherwise from the file
    extension: ``.toml``, ``.yaml``/``.yml`` or ``.json``. Any other
    extension, or none, is read as TOML.
    """

    def __init__(
        self,
        path: str | _os.PathLike[str],
        required: bool = True,
        *,
        format: str | None = None,  # noqa: A002
    ) -> None:
        self.path = _pathlib.Path(path)
        self.required = required
        self.format = format.lower().lstrip(".") if format else None

    def __repr__(self) -> str:
        return f"FileSource({str(self.path)!r}, required={self.required})"

    def entries(self) -> list[values.ConfigEntry]:
        table = self.load()
        if table is None:
            return []
        return [values.ConfigEntry.root(table)]

    def load(self) -> values.Table | None:
        """
        Read and parse the file.

        Returns:
            The parsed table, or None if the file is optional and absent.

        Raises:
            ConfigFileNotFoundError: If the file is required and absent.
            ConfigReadError: If the file cannot be read.
            ConfigParseError: If the content is malformed or not a table.
            UnsupportedConfigFormatError: If ``format`` names an unknown format.
        """
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            if self.required:
                raise errors.ConfigFileNotFoundError(self.path) from e
            _logger.debug("Optional config file %s not found, skipping", self.path)
            return None
        except PermissionError as e:
            raise errors.ConfigReadError(self.path, f"permission denied: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise errors.ConfigReadError(self.path, str(e)) from e

        parsed = _parse(self.path, self._suffix(), content)
        _logger.debug("Loaded config file %s (%d top-level keys)", self.path, len(parsed))
        return parsed

    def _suffix(self) -> str:
        if self.format:
            suffix = f".{self.format}"
            if suffix not in constants.SUPPORTED_SUFFIXES:
                raise errors.UnsupportedConfigFormatError(self.path, self.format)
            return suffix

        suffix = self.path.suffix.lower()
        if suffix not in constants.SUPPORTED_SUFFIXES:
            _logger.debug("Reading %s as TOML", self.path)
            return constants.DEFAULT_FILE_SUFFIX
        return suffix


def _parse(path: _pathlib.Path, suffix: str, content: str) -> values.Table:
    """Parse file content into a table with string keys."""
    try:
        if suffix in constants.TOML_SUFFIXES:
            parsed: _typing.Any = _tomllib.loads(content)
        elif suffix in constants.YAML_SUFFIXES:
            parsed = _yaml.safe_load(content)
        else:
            parsed = _json.loads(content)
    except _tomllib.TOMLDecodeError as e:
        raise errors.ConfigParseError(path, f"invalid TOML: {e}") from e
    except _yaml.YAMLError as e:
        raise errors.ConfigParseError(path, f"invalid YAML: {e}") from e
    except _json.JSONDecodeError as e:
        raise errors.ConfigParseError(path, f"invalid JSON: {e}") from e

    # Empty YAML document
    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise errors.ConfigParseError(
            path,
            f"config root must be a table (mapping), got {type(parsed).__name__}",
        )

    return _normalize_keys(parsed)


def _normalize_keys(value: _typing.Any) -> _typing.Any:
    """Stringify mapping keys (YAML allows ``1: x``, ``true: y``)."""
    if isinstance(value, dict):
        return {
            (values.to_text(key) if values.is_scalar(key) else str(key)): _normalize_keys(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_normalize_keys(item) for item in value]
    return value


# =============================================================================
# Environment source
# =============================================================================


class EnvSource(ConfigSource):
    """
    Environment variables under ``prefix + separator``.

    Variables named exactly ``prefix + separator`` and variables that share
    the prefix without the separator right after it are ignored.
    """

    def __init__(
        self,
        prefix: str,
        separator: str = constants.DEFAULT_ENV_SEPARATOR,
        *,
        environ: _collections_abc.Mapping[str, str] | None = None,
    ) -> None:
        """
        Args:
            prefix: Variable name prefix, e.g. ``"APP"``.
            separator: Separator between prefix and path segments. Must not
                be empty.
            environ: Variables to read. Defaults to ``os.environ`` as it is
                when ``entries()`` is called.

        Raises:
            ValueError: If the separator is empty.
        """
        if not separator:
            raise ValueError("EnvSource separator must not be empty")
        self.prefix = prefix
        self.separator = separator
        self._environ = environ

    def __repr__(self) -> str:
        return f"EnvSource({self.prefix!r}, {self.separator!r})"

    def entries(self) -> list[values.ConfigEntry]:
        environ = _os.environ if self._environ is None else self._environ
        lead = self.prefix + self.separator

        result: list[values.ConfigEntry] = []
        # Sorted so the merge order of overlapping variables is reproducible
        for key in sorted(environ):
            if not key.startswith(lead):
                continue
            remainder = key[len(lead) :]
            if not remainder:
                continue
            path = tuple(segment.lower() for segment in remainder.split(self.separator))
            result.append(
                values.ConfigEntry.at_path(path, values.coerce_env_value(environ[key]))
            )

        _logger.debug("Matched %d environment variable(s) with prefix %r", len(result), lead)
        return result


# =============================================================================
# Programmatic source
# =============================================================================


class DictSource(ConfigSource):
    """An in-process table, merged at the root or at ``path``."""

    def __init__(
        self,
        data: _collections_abc.Mapping[str, _typing.Any],
        path: _collections_abc.Iterable[str] = (),
    ) -> None:
        self.data = data
        self.path = tuple(path)

    def __repr__(self) -> str:
        where = ".".join(self.path) or "<root>"
        return f"DictSource({where}, {len(self.data)} key(s))"

    def entries(self) -> list[values.ConfigEntry]:
        return [values.ConfigEntry.at_path(self.path, values.copy_value(self.data))]


# =============================================================================
# pydantic-settings bridge
# =============================================================================


class LayeredSettingsSource(_pydantic_settings.PydanticBaseSettingsSource):
    """
    Settings source that feeds a builder's resolved table to pydantic-settings.

    The builder is run once, when the source is created. Use it from
    ``settings_customise_sources``:

        class Settings(pydantic_settings.BaseSettings):
            @classmethod
            def settings_customise_sources(cls, settings_cls, init_settings, *_):
                config = strata.Config.builder().with_file("app.toml")
                return (init_settings, LayeredSettingsSource(settings_cls, config))
    """

    def __init__(
        self,
        settings_cls: type[_pydantic_settings.BaseSettings],
        config: builder.Config,
    ) -> None:
        super().__init__(settings_cls)
        self._table = config.build_table()

    def get_field_value(
        self,
        field: _pydantic_fields.FieldInfo,  # noqa: ARG002 - required by pydantic-settings interface
        field_name: str,
    ) -> tuple[_typing.Any, str, bool]:
        """
        Get the value for a top-level field.

        Returns:
            Tuple of (value, field_name, is_complex).
        """
        value = self._table.get(field_name)
        return value, field_name, isinstance(value, (dict, list))

    def __call__(self) -> dict[str, _typing.Any]:
        """Return the full resolved table, including keys with no field."""
        return _copy.deepcopy(self._table)
