"""
Main CLI entry point for Strata.

Builds a configuration from files and environment variables and prints the
merged, resolved result. Useful for checking what an application will see.

Source order on the command line: required files (``-f``) in the order
given, then optional files (``-o``) in the order given, then environment
variables (``--env``).
"""

import json as _json
import logging as _logging
import os as _os
import sys as _sys
import typing as _typing

import click as _click
import rich.console as _rich_console
import rich.logging as _rich_logging
import rich.syntax as _rich_syntax
import yaml as _yaml

import strata
import strata.config as config
import strata.config.values as values
import strata.constants as constants

# Custom Click context settings for better help formatting
CONTEXT_SETTINGS: dict[str, _typing.Any] = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 100,
}

ENV_SHOW_COLOR = "STRATA_CONFIG_SHOW_COLOR"

_F = _typing.TypeVar("_F", bound=_typing.Callable[..., _typing.Any])


def _configure_logging(verbose: bool) -> None:
    """Send package logs to stderr through rich; DEBUG when verbose."""
    logger = _logging.getLogger("strata")
    logger.setLevel(_logging.DEBUG if verbose else _logging.WARNING)
    if not any(isinstance(h, _rich_logging.RichHandler) for h in logger.handlers):
        handler = _rich_logging.RichHandler(
            console=_rich_console.Console(stderr=True),
            show_path=False,
        )
        handler.setFormatter(_logging.Formatter("%(message)s"))
        logger.addHandler(handler)


def _source_options(func: _F) -> _F:
    """Attach the options that select configuration sources."""
    decorators = [
        _click.option(
            "-f",
            "--file",
            "files",
            multiple=True,
            type=_click.Path(dir_okay=False),
            help="Required config file (TOML, YAML or JSON). Repeatable.",
        ),
        _click.option(
            "-o",
            "--optional-file",
            "optional_files",
            multiple=True,
            type=_click.Path(dir_okay=False),
            help="Optional config file, skipped when absent. Repeatable.",
        ),
        _click.option(
            "--env",
            "env_prefix",
            default=None,
            envvar="STRATA_ENV_PREFIX",
            help="Read environment variables with this prefix (e.g. APP).",
        ),
        _click.option(
            "--separator",
            default=constants.DEFAULT_ENV_SEPARATOR,
            show_default=True,
            envvar="STRATA_ENV_SEPARATOR",
            help="Separator between prefix and key path in variable names.",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _build_table(
    files: tuple[str, ...],
    optional_files: tuple[str, ...],
    env_prefix: str | None,
    separator: str,
) -> values.Table:
    """Build and resolve the table, turning config errors into CLI errors."""
    builder = config.Config.builder()
    for path in files:
        builder.with_file(path, required=True)
    for path in optional_files:
        builder.with_file(path, required=False)
    if env_prefix:
        try:
            builder.with_env(env_prefix, separator)
        except ValueError as e:
            raise _click.BadParameter(str(e), param_hint="--separator") from e
    try:
        return builder.build_table()
    except config.ConfigError as e:
        raise _click.ClickException(str(e)) from e


@_click.group(context_settings=CONTEXT_SETTINGS)
@_click.version_option(strata.__version__, "-v", "--version", prog_name="strata")
@_click.option("--verbose", is_flag=True, help="Log each build step to stderr")
def cli(verbose: bool) -> None:
    """Strata - layered configuration resolution."""
    _configure_logging(verbose)


@cli.command(name="show")
@_source_options
@_click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@_click.option("--section", type=str, default=None, help="Show specific section only")
@_click.option(
    "--color/--no-color",
    "use_color",
    default=None,
    help="Enable/disable syntax highlighting (default: auto-detect TTY)",
)
def show(
    files: tuple[str, ...],
    optional_files: tuple[str, ...],
    env_prefix: str | None,
    separator: str,
    as_json: bool,
    section: str | None,
    use_color: bool | None,
) -> None:
    """Show the merged and resolved configuration.

    Examples:
        strata show -f default.toml -o local.toml --env APP
        strata show -f default.toml --json
        strata show -f default.toml --section server
    """
    table = _build_table(files, optional_files, env_prefix, separator)

    if section:
        if section not in table:
            raise _click.ClickException(f"Unknown section: {section}")
        table = {section: table[section]}

    if as_json:
        _click.echo(_json.dumps(table, indent=2, default=values.to_text))
        return

    _print_yaml(_dump_yaml(table), color=_color_enabled(use_color))


@cli.command(name="get")
@_click.argument("key_path")
@_source_options
def get(
    key_path: str,
    files: tuple[str, ...],
    optional_files: tuple[str, ...],
    env_prefix: str | None,
    separator: str,
) -> None:
    """Print the value at a dotted KEY_PATH (e.g. server.port).

    Scalars are printed in the same text form used for ${...} substitution;
    tables and arrays are printed as YAML.
    """
    table = _build_table(files, optional_files, env_prefix, separator)

    current: _typing.Any = table
    for segment in key_path.split("."):
        if not isinstance(current, dict) or segment not in current:
            raise _click.ClickException(f"Key not found: {key_path}")
        current = current[segment]

    if values.is_scalar(current):
        _click.echo(values.to_text(current))
    elif current is None:
        _click.echo("null")
    else:
        _click.echo(_dump_yaml(current), nl=False)


def _dump_yaml(data: _typing.Any) -> str:
    return _yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)


def _color_enabled(cli_flag: bool | None) -> bool:
    """--color/--no-color, else STRATA_CONFIG_SHOW_COLOR, else NO_COLOR and a TTY check."""
    if cli_flag is not None:
        return cli_flag
    env_color = _os.environ.get(ENV_SHOW_COLOR)
    if env_color is not None:
        return env_color.lower() in ("1", "true", "yes", "on")
    return _os.environ.get("NO_COLOR") is None and _sys.stdout.isatty()


def _print_yaml(yaml_text: str, *, color: bool) -> None:
    if not color:
        _click.echo(yaml_text, nl=False)
        return
    console = _rich_console.Console(force_terminal=True, no_color=False, color_system="truecolor")
    console.print(
        _rich_syntax.Syntax(yaml_text, "yaml", theme="monokai", background_color="default")
    )


def main() -> None:
    """Main entry point with correct program name."""
    cli(prog_name="strata")


if __name__ == "__main__":
    main()
