"""Tests for configuration sources.

Tests for FileSource:
- TOML, YAML and JSON files
- Required vs optional missing files
- Malformed content and non-table roots

Tests for EnvSource:
- Prefix and separator matching
- Path lowercasing and value coercion

Tests for DictSource and LayeredSettingsSource.
"""

import datetime as _datetime
import os as _os
import pathlib as _pathlib
import types as _types
import typing as _typing

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings
import pytest as _pytest

import strata.config as config
import strata.config.errors as errors
import strata.config.sources as sources

WriteConfig = _typing.Callable[[str, str], _pathlib.Path]


class TestConfigSourceContract:
    """Verify the source base class."""

    def test_builtin_sources_are_config_sources(self) -> None:
        """All built-in sources implement ConfigSource."""
        for cls in (sources.FileSource, sources.EnvSource, sources.DictSource):
            assert issubclass(cls, sources.ConfigSource)

    def test_custom_source(self) -> None:
        """A subclass only needs entries()."""

        class Fixed(sources.ConfigSource):
            def entries(self) -> list[config.ConfigEntry]:
                return [config.ConfigEntry.at_path(("a",), 1)]

        assert Fixed().entries() == [config.ConfigEntry.at_path(("a",), 1)]

    def test_abstract_source_cannot_be_instantiated(self) -> None:
        """entries() must be implemented."""
        with _pytest.raises(TypeError):
            sources.ConfigSource()  # type: ignore[abstract]


class TestFileSourceFormats:
    """Tests for loading each supported format."""

    def test_toml_file(self, write_config: WriteConfig) -> None:
        """A TOML file yields one root entry with its table."""
        path = write_config(
            "app.toml",
            """
            key = "value"

            [server]
            port = 8080
            started = 1979-05-27T07:32:00Z
            """,
        )

        entries = sources.FileSource(path).entries()

        assert len(entries) == 1
        assert entries[0].is_root
        assert entries[0].value["key"] == "value"
        assert entries[0].value["server"]["port"] == 8080
        assert entries[0].value["server"]["started"] == _datetime.datetime(
            1979, 5, 27, 7, 32, tzinfo=_datetime.timezone.utc
        )

    @_pytest.mark.parametrize("name", ["app.yaml", "app.yml", "APP.YAML"])
    def test_yaml_file(self, write_config: WriteConfig, name: str) -> None:
        """YAML files are parsed by extension, case-insensitively."""
        path = write_config(
            name,
            """
            server:
              host: localhost
              ports: [80, 443]
            """,
        )

        (entry,) = sources.FileSource(path).entries()

        assert entry.value == {"server": {"host": "localhost", "ports": [80, 443]}}

    def test_json_file(self, write_config: WriteConfig) -> None:
        """JSON files are supported."""
        path = write_config("app.json", '{"server": {"debug": true}}')

        (entry,) = sources.FileSource(path).entries()

        assert entry.value == {"server": {"debug": True}}

    def test_explicit_format_overrides_extension(self, write_config: WriteConfig) -> None:
        """format= picks the parser regardless of the file name."""
        path = write_config("settings.conf", "a = 1\n")

        (entry,) = sources.FileSource(path, format="toml").entries()

        assert entry.value == {"a": 1}

    def test_empty_yaml_is_empty_table(self, write_config: WriteConfig) -> None:
        """An empty YAML document is an empty table."""
        path = write_config("empty.yaml", "")

        (entry,) = sources.FileSource(path).entries()

        assert entry.value == {}

    def test_yaml_keys_become_strings(self, write_config: WriteConfig) -> None:
        """Non-string YAML keys are stringified, nested ones too."""
        path = write_config(
            "keys.yaml",
            """
            1: one
            nested:
              true: yes
              items:
                - 2: two
            """,
        )

        (entry,) = sources.FileSource(path).entries()

        assert entry.value == {"1": "one", "nested": {"true": True, "items": [{"2": "two"}]}}

    @_pytest.mark.parametrize("name", ["settings", "app.conf", "app.cfg", "app.TOML"])
    def test_other_extensions_read_as_toml(self, write_config: WriteConfig, name: str) -> None:
        """Files with no extension or an unknown one are parsed as TOML."""
        path = write_config(name, "a = 1\n")

        (entry,) = sources.FileSource(path).entries()

        assert entry.value == {"a": 1}

    def test_other_extension_with_invalid_toml(self, write_config: WriteConfig) -> None:
        """Content that is not TOML is a parse failure, not a format error."""
        path = write_config("app.ini", "key: value\n")

        with _pytest.raises(errors.ConfigParseError) as exc_info:
            sources.FileSource(path).entries()

        assert not isinstance(exc_info.value, errors.UnsupportedConfigFormatError)
        assert "invalid TOML" in str(exc_info.value)

    def test_unsupported_explicit_format(self, write_config: WriteConfig) -> None:
        """An unknown format= is rejected as a parse failure."""
        path = write_config("app.toml", "a = 1\n")

        with _pytest.raises(errors.UnsupportedConfigFormatError) as exc_info:
            sources.FileSource(path, format="ini").entries()

        assert isinstance(exc_info.value, errors.ConfigParseError)
        assert exc_info.value.path == path
        assert exc_info.value.format == "ini"


class TestFileSourceErrors:
    """Tests for missing and malformed files."""

    def test_required_missing(self, tmp_path: _pathlib.Path) -> None:
        """A missing required file is ConfigFileNotFoundError."""
        path = tmp_path / "missing.toml"

        with _pytest.raises(errors.ConfigFileNotFoundError) as exc_info:
            sources.FileSource(path, required=True).entries()

        assert exc_info.value.path == path

    @_pytest.mark.parametrize("name", ["missing.toml", "settings", "local.conf"])
    def test_optional_missing(self, tmp_path: _pathlib.Path, name: str) -> None:
        """A missing optional file yields no entries, whatever its name."""
        assert sources.FileSource(tmp_path / name, required=False).entries() == []

    @_pytest.mark.parametrize("name", ["settings", "local.conf"])
    def test_required_missing_without_known_extension(
        self, tmp_path: _pathlib.Path, name: str
    ) -> None:
        """A missing required file is reported as missing, whatever its name."""
        with _pytest.raises(errors.ConfigFileNotFoundError):
            sources.FileSource(tmp_path / name).entries()

    def test_required_by_default(self, tmp_path: _pathlib.Path) -> None:
        """Files are required unless stated otherwise."""
        assert sources.FileSource(tmp_path / "x.toml").required is True

    def test_directory_is_read_error(self, tmp_path: _pathlib.Path) -> None:
        """A path that exists but cannot be read as a file is ConfigReadError."""
        directory = tmp_path / "dir.toml"
        directory.mkdir()

        with _pytest.raises(errors.ConfigReadError) as exc_info:
            sources.FileSource(directory, required=False).entries()

        assert exc_info.value.path == directory
        assert exc_info.value.__cause__ is not None

    def test_invalid_utf8_is_read_error(self, tmp_path: _pathlib.Path) -> None:
        """Undecodable bytes are a read failure."""
        path = tmp_path / "binary.toml"
        path.write_bytes(b"\xff\xfe\x00")

        with _pytest.raises(errors.ConfigReadError):
            sources.FileSource(path).entries()

    @_pytest.mark.parametrize(
        ("name", "content"),
        [
            ("bad.toml", "key = \n"),
            ("bad.yaml", "key: [unclosed\n"),
            ("bad.json", "{not json}"),
        ],
    )
    def test_malformed_content(self, write_config: WriteConfig, name: str, content: str) -> None:
        """Syntax errors are ConfigParseError naming the file, with the cause chained."""
        path = write_config(name, content)

        with _pytest.raises(errors.ConfigParseError) as exc_info:
            sources.FileSource(path).entries()

        assert exc_info.value.path == path
        assert str(path) in str(exc_info.value)
        assert exc_info.value.__cause__ is not None

    @_pytest.mark.parametrize(
        ("name", "content"),
        [("list.yaml", "- a\n- b\n"), ("scalar.json", "42"), ("text.yaml", "just text\n")],
    )
    def test_non_table_root(self, write_config: WriteConfig, name: str, content: str) -> None:
        """A file whose root is not a mapping is rejected."""
        path = write_config(name, content)

        with _pytest.raises(errors.ConfigParseError, match="must be a table"):
            sources.FileSource(path).entries()


class TestEnvSource:
    """Tests for environment variable entries."""

    def _entries(self, environ: dict[str, str], prefix: str = "APP", sep: str = "__") -> dict:
        source = sources.EnvSource(prefix, sep, environ=environ)
        return {entry.path: entry.value for entry in source.entries()}

    def test_basic(self) -> None:
        """Top-level keys are read and typed."""
        result = self._entries({"APP__HOST": "localhost", "APP__PORT": "8080"})

        assert result == {("host",): "localhost", ("port",): 8080}

    def test_nested(self) -> None:
        """The separator splits the remainder into path segments."""
        result = self._entries(
            {
                "APP__DATABASE__HOST": "db.example.com",
                "APP__DATABASE__PORT": "5432",
                "APP__SERVER__ENABLED": "true",
            }
        )

        assert result == {
            ("database", "host"): "db.example.com",
            ("database", "port"): 5432,
            ("server", "enabled"): True,
        }

    def test_segments_lowercased(self) -> None:
        """Path segments are lowercased; values keep their case."""
        result = self._entries({"APP__MyKey__SubKey": "Value"})

        assert result == {("mykey", "subkey"): "Value"}

    def test_ignores_unrelated_variables(self) -> None:
        """Only variables starting with prefix+separator match."""
        result = self._entries(
            {"APP__KEY": "1", "OTHER__KEY": "2", "APPLICATION__KEY": "3", "APP_KEY": "4"}
        )

        assert result == {("key",): 1}

    def test_prefix_without_separator_not_matched(self) -> None:
        """APPKEY shares the prefix but lacks the separator."""
        assert self._entries({"APPKEY": "x", "APP": "y"}) == {}

    def test_empty_remainder_skipped(self) -> None:
        """A variable named exactly prefix+separator is skipped."""
        assert self._entries({"APP__": "value"}) == {}

    def test_custom_separator(self) -> None:
        """Any non-empty separator works."""
        result = self._entries({"CFG_SERVER_PORT": "1", "CFG-X": "2"}, prefix="CFG", sep="_")

        assert result == {("server", "port"): 1}

    def test_empty_separator_rejected(self) -> None:
        """The separator must not be empty."""
        with _pytest.raises(ValueError, match="separator"):
            sources.EnvSource("APP", "")

    def test_entries_sorted_by_variable_name(self) -> None:
        """Entry order does not depend on environment iteration order."""
        source = sources.EnvSource("APP", environ={"APP__B": "1", "APP__A": "2"})

        assert [entry.path for entry in source.entries()] == [("a",), ("b",)]

    def test_reads_process_environment(self, monkeypatch: _pytest.MonkeyPatch) -> None:
        """Without environ=, os.environ is read when entries() is called."""
        source = sources.EnvSource("TESTAPP", "__")
        monkeypatch.setenv("TESTAPP__HOST", "from-env")

        assert source.entries() == [config.ConfigEntry.at_path(("host",), "from-env")]
        assert "TESTAPP__HOST" in _os.environ


class TestDictSource:
    """Tests for in-process sources."""

    def test_root(self) -> None:
        """Data without a path is a root entry."""
        (entry,) = sources.DictSource({"a": {"b": 1}}).entries()

        assert entry == config.ConfigEntry.root({"a": {"b": 1}})

    def test_at_path(self) -> None:
        """A path places the data under that key."""
        (entry,) = sources.DictSource({"port": 1}, path=["server"]).entries()

        assert entry.path == ("server",)
        assert entry.value == {"port": 1}

    def test_data_is_copied(self) -> None:
        """Later changes to the caller's dict do not leak into entries."""
        data = {"items": [1]}
        source = sources.DictSource(data)
        (entry,) = source.entries()

        data["items"].append(2)

        assert entry.value == {"items": [1]}

    def test_read_only_mapping(self) -> None:
        """Non-dict mappings are accepted and copied into plain dicts."""
        data = _types.MappingProxyType({"db": _types.MappingProxyType({"port": 1})})

        (entry,) = sources.DictSource(data).entries()

        assert entry.value == {"db": {"port": 1}}
        assert type(entry.value["db"]) is dict


class Server(_pydantic.BaseModel):
    host: str = "default"
    port: int = 0


class LayeredSettings(_pydantic_settings.BaseSettings):
    """Settings class reading from a strata builder."""

    model_config = _pydantic_settings.SettingsConfigDict(extra="ignore")

    name: str = "unset"
    server: Server = _pydantic.Field(default_factory=Server)


class TestLayeredSettingsSource:
    """Tests for the pydantic-settings bridge."""

    def test_is_pydantic_settings_source(self) -> None:
        """LayeredSettingsSource should be a pydantic-settings source."""
        assert issubclass(
            sources.LayeredSettingsSource,
            _pydantic_settings.PydanticBaseSettingsSource,
        )

    def test_call_returns_resolved_table(self) -> None:
        """__call__ returns the merged table with references resolved."""
        builder = config.Config.builder().with_dict(
            {"name": "svc", "server": {"host": "h", "url": "http://${server.host}"}}
        )

        source = sources.LayeredSettingsSource(LayeredSettings, builder)

        assert source() == {"name": "svc", "server": {"host": "h", "url": "http://h"}}

    def test_get_field_value(self) -> None:
        """Top-level keys are exposed per field."""
        builder = config.Config.builder().with_dict({"server": {"port": 1}, "name": "n"})
        source = sources.LayeredSettingsSource(LayeredSettings, builder)
        field = LayeredSettings.model_fields["server"]

        assert source.get_field_value(field, "server") == ({"port": 1}, "server", True)
        assert source.get_field_value(field, "name") == ("n", "name", False)
        assert source.get_field_value(field, "missing") == (None, "missing", False)

    def test_settings_customise_sources(self, write_config: WriteConfig) -> None:
        """A BaseSettings class can be populated from files and overrides."""
        path = write_config(
            "settings.toml",
            """
            name = "from-file"

            [server]
            host = "example.com"
            port = 8080
            """,
        )
        builder = (
            config.Config.builder()
            .with_file(path)
            .with_dict({"port": 9090}, path=["server"])
        )

        class FileSettings(LayeredSettings):
            @classmethod
            def settings_customise_sources(
                cls,
                settings_cls: type[_pydantic_settings.BaseSettings],
                init_settings: _pydantic_settings.PydanticBaseSettingsSource,
                env_settings: _pydantic_settings.PydanticBaseSettingsSource,
                dotenv_settings: _pydantic_settings.PydanticBaseSettingsSource,
                file_secret_settings: _pydantic_settings.PydanticBaseSettingsSource,
            ) -> tuple[_pydantic_settings.PydanticBaseSettingsSource, ...]:
                return (init_settings, sources.LayeredSettingsSource(settings_cls, builder))

        settings = FileSettings()

        assert settings.name == "from-file"
        assert settings.server == Server(host="example.com", port=9090)

    def test_build_errors_propagate(self, tmp_path: _pathlib.Path) -> None:
        """Source failures surface when the settings source is created."""
        builder = config.Config.builder().with_file(tmp_path / "missing.toml")

        with _pytest.raises(errors.ConfigFileNotFoundError):
            sources.LayeredSettingsSource(LayeredSettings, builder)
