"""
Application context holding one fully-resolved configuration value.

The configuration is built and decoded once, before the context exists;
afterwards ``context.config`` is a plain attribute read.

Example:
    >>> ctx = (
    ...     AppContext.builder()
    ...     .with_config(Config.builder().with_file("app.toml").build(AppConfig))
    ...     .build()
    ... )
    >>> ctx.config.server.port
    8080
"""

from __future__ import annotations

import typing as _typing

import strata.config as config

C = _typing.TypeVar("C")


class StrataError(Exception):
    """Base class for application-context errors."""

    pass


class MissingConfigError(StrataError):
    """The context was built without a configuration."""

    def __init__(self) -> None:
        super().__init__("application context requires a configuration (call with_config)")


class ContextConfigError(StrataError):
    """Building the context's configuration failed."""

    def __init__(self, cause: config.ConfigError) -> None:
        self.cause = cause
        super().__init__(f"configuration error: {cause}")


class AppContext(_typing.Generic[C]):
    """Shared application state built around one configuration value."""

    __slots__ = ("_config",)

    def __init__(self, config_value: C) -> None:
        self._config = config_value

    def __repr__(self) -> str:
        return f"AppContext(config={self._config!r})"

    @property
    def config(self) -> C:
        return self._config

    @staticmethod
    def builder() -> AppContextBuilder[_typing.Any]:
        return AppContextBuilder()


class AppContextBuilder(_typing.Generic[C]):
    """Builder for AppContext. ``build()`` fails until a config is attached."""

    def __init__(self) -> None:
        self._config: C | None = None
        self._has_config = False

    def with_config(self, config_value: C) -> AppContextBuilder[C]:
        """Attach an already-built configuration value."""
        self._config = config_value
        self._has_config = True
        return self

    def with_config_builder(
        self,
        config_builder: config.Config,
        target: type[C],
    ) -> AppContextBuilder[C]:
        """
        Build ``config_builder`` into ``target`` and attach the result.

        Raises:
            ContextConfigError: Wrapping the ConfigError that stopped the build.
        """
        try:
            value = config_builder.build(target)
        except config.ConfigError as e:
            raise ContextConfigError(e) from e
        return self.with_config(value)

    def build(self) -> AppContext[C]:
        """
        Create the context.

        Raises:
            MissingConfigError: If no configuration was attached.
        """
        if not self._has_config:
            raise MissingConfigError()
        return AppContext(_typing.cast(C, self._config))
