"""
Configuration value model.

Configuration data is represented with plain Python values, independent of
the format it was parsed from:

- Table: ``dict[str, Value]``
- Array: ``list[Value]``
- String, Integer, Float, Boolean: ``str``, ``int``, ``float``, ``bool``
- Timestamp: ``datetime.datetime``, ``datetime.date`` or ``datetime.time``

Sources wrap values in ConfigEntry objects that say where in the merged
tree a value belongs. This module also owns the two textual conversions the
rest of the package relies on: ``to_text`` (value → canonical text, used when
interpolating references) and ``coerce_env_value`` (text → typed value, used
for environment variables).
"""

from __future__ import annotations

import collections.abc as _abc
import copy as _copy
import dataclasses as _dataclasses
import datetime as _datetime
import decimal as _decimal
import math as _math
import re as _re
import typing as _typing

import strata.constants as constants

# Recursive value type (see module docstring)
if _typing.TYPE_CHECKING:
    Value: _typing.TypeAlias = (
        "dict[str, Value] | list[Value] | str | int | float | bool"
        " | _datetime.datetime | _datetime.date | _datetime.time"
    )
else:
    Value: _typing.TypeAlias = _typing.Any

Table: _typing.TypeAlias = dict[str, _typing.Any]

# Path of keys into a table, e.g. ("server", "port")
Path: _typing.TypeAlias = tuple[str, ...]

_INTEGER_PATTERN = _re.compile(r"-?[0-9]+")

_SCALAR_TYPES = (
    str,
    int,
    float,
    bool,
    _datetime.datetime,
    _datetime.date,
    _datetime.time,
)


@_dataclasses.dataclass(frozen=True, slots=True)
class ConfigEntry:
    """
    A value contributed by a source, and where it goes.

    An empty path is a root-level contribution (typically a whole parsed
    file) that is deep-merged into the root of the tree. A non-empty path
    targets a single key (typically one environment variable).
    """

    path: Path
    value: Value

    @classmethod
    def root(cls, table: Table) -> ConfigEntry:
        """Entry that merges a whole table at the root."""
        return cls((), table)

    @classmethod
    def at_path(cls, path: _abc.Iterable[str], value: Value) -> ConfigEntry:
        """Entry that places ``value`` at ``path``."""
        return cls(tuple(path), value)

    @property
    def is_root(self) -> bool:
        return not self.path


def is_table(value: _typing.Any) -> bool:
    """True for tables (any Mapping, including frozen snapshot views)."""
    return isinstance(value, _abc.Mapping)


def is_array(value: _typing.Any) -> bool:
    """True for arrays (non-string sequences, including snapshot tuples)."""
    return isinstance(value, _abc.Sequence) and not isinstance(value, (str, bytes))


def is_scalar(value: _typing.Any) -> bool:
    """True for values that can be interpolated into a string."""
    return isinstance(value, _SCALAR_TYPES)


def copy_value(value: _typing.Any) -> Value:
    """
    Deep-copy a value into plain containers.

    Any Mapping becomes a dict and any list or tuple becomes a list, so the
    copy can be merged into and resolved like parsed file content.
    """
    if isinstance(value, _abc.Mapping):
        return {key: copy_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [copy_value(item) for item in value]
    return _copy.deepcopy(value)


def to_text(value: _typing.Any) -> str:
    """
    Convert a scalar to the text spliced in place of a reference.

    Args:
        value: A string, integer, float, boolean or timestamp.

    Returns:
        Canonical text: strings verbatim, integers in base 10, booleans as
        ``true``/``false``, floats in plain decimal notation (``3.0`` is
        ``"3"``), timestamps in RFC 3339 form.

    Raises:
        TypeError: If the value is a table, an array or None.
    """
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, (_datetime.datetime, _datetime.date, _datetime.time)):
        return _format_timestamp(value)
    raise TypeError(f"cannot convert {type(value).__name__} to text")


def _format_float(value: float) -> str:
    """Shortest round-trip digits, never in exponent form."""
    if _math.isnan(value):
        return "NaN"
    if _math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(_decimal.Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _format_timestamp(
    value: _datetime.datetime | _datetime.date | _datetime.time,
) -> str:
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


def coerce_env_value(text: str) -> Value:
    """
    Turn an environment variable's text into a typed value.

    Tried in this order, first match wins:

    1. ``true`` / ``false`` (any case) → bool
    2. optional ``-`` followed by ASCII digits only → int, parsed as decimal
       (``"007"`` → 7); values outside the signed 64-bit range fall through
    3. text containing ``.`` that parses as a float → float
    4. anything else, or any failed parse → the text unchanged

    Examples:
        >>> coerce_env_value("42"), coerce_env_value("TRUE"), coerce_env_value("1.2.3")
        (42, True, '1.2.3')
    """
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False

    if _INTEGER_PATTERN.fullmatch(text):
        number = int(text, 10)
        if constants.INT64_MIN <= number <= constants.INT64_MAX:
            return number

    if "." in text and _looks_like_float(text):
        try:
            return float(text)
        except ValueError:
            pass

    return text


def _looks_like_float(text: str) -> bool:
    # float() also accepts surrounding whitespace and digit separators
    return text == text.strip() and "_" not in text
