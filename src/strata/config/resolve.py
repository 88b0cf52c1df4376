"""
Resolution of ``${path.to.field}`` references inside string values.

Syntax (inside any string, at any depth, including array elements):

- ``${server.host}`` is replaced with the text of the value at that path
- ``$$`` is an escaped ``$``: ``$${VAR}`` becomes the literal ``${VAR}``
- a ``$`` followed by anything else is kept as is

Resolution runs in passes until a pass makes no substitution. Every pass
looks references up in a frozen snapshot taken at its start, so within one
pass the result does not depend on the order keys are visited in; values
produced by one pass become visible to the next, which is what lets chains
like ``a -> b -> c`` resolve.

A reference that leads back to the value holding it, directly
(``a = "x${a}"``) or through other values (``a = "${b}"``, ``b = "${a}"``),
is rejected before it is substituted. Anything else that fails to settle is
reported as circular once the pass cap is reached.

Substitution is always textual: a string whose whole content was a reference
to an integer stays a string.
"""

from __future__ import annotations

import logging as _logging
import typing as _typing

import strata.config.errors as errors
import strata.config.values as values
import strata.constants as constants
import strata.utils as utils

_logger = _logging.getLogger(__name__)


def resolve_references(
    tree: values.Table,
    *,
    max_passes: int = constants.MAX_RESOLUTION_PASSES,
) -> int:
    """
    Resolve every reference in ``tree``, in place.

    Args:
        tree: The merged configuration tree.
        max_passes: Number of passes allowed before giving up.

    Returns:
        Number of passes run, including the final one that found nothing
        to substitute.

    Raises:
        CircularReferenceError: If a reference leads back to the value that
            holds it, or no pass made zero substitutions within
            ``max_passes`` passes.
        ReferenceNotFoundError, InvalidReferencePathError,
        NonScalarReferenceError, UnclosedReferenceError: On the first bad
            reference found.
    """
    for pass_number in range(1, max_passes + 1):
        root = utils.snapshot(tree)
        substitutions = _resolve_table(tree, root, ())
        _logger.debug("Resolution pass %d: %d substitution(s)", pass_number, substitutions)
        if substitutions == 0:
            return pass_number

    raise errors.CircularReferenceError(max_passes)


def _resolve_table(
    table: values.Table,
    root: utils.FrozenMapping,
    host: values.Path | None,
) -> int:
    count = 0
    for key, value in table.items():
        path = None if host is None else (*host, key)
        if isinstance(value, str):
            table[key], found = resolve_string(value, root, host=path)
            count += found
        else:
            count += _resolve_container(value, root, path)
    return count


def _resolve_container(
    value: _typing.Any,
    root: utils.FrozenMapping,
    host: values.Path | None,
) -> int:
    if isinstance(value, dict):
        return _resolve_table(value, root, host)
    if isinstance(value, list):
        # Array elements are not addressable, so they cannot be part of a cycle
        count = 0
        for index, item in enumerate(value):
            if isinstance(item, str):
                value[index], found = resolve_string(item, root)
                count += found
            else:
                count += _resolve_container(item, root, None)
        return count
    return 0


def resolve_string(
    text: str,
    root: _typing.Mapping[str, _typing.Any],
    *,
    host: values.Path | None = None,
) -> tuple[str, int]:
    """
    Substitute the references in one string.

    Args:
        text: The string to scan.
        root: Table references are looked up in.
        host: Path of the value ``text`` belongs to. When given, a reference
            that leads back to it is rejected before anything is substituted.

    Returns:
        Tuple of (rewritten text, number of references substituted).
        Escapes are rewritten but not counted.

    Raises:
        UnclosedReferenceError: If a ``${`` has no closing ``}``.
        CircularReferenceError: If a reference leads back to ``host``.
        ConfigReferenceError: If a reference cannot be looked up.
    """
    dollar = constants.REFERENCE_ESCAPE
    if dollar not in text:
        return text, 0

    if host is not None:
        for reference in _references_in(text):
            if _leads_to(root, reference, host, set()):
                raise errors.CircularReferenceError(
                    path=constants.REFERENCE_PATH_SEPARATOR.join(host)
                )

    parts: list[str] = []
    substitutions = 0
    index = 0
    length = len(text)

    while index < length:
        char = text[index]
        following = text[index + 1] if index + 1 < length else ""

        if char == dollar and following == dollar:
            parts.append(dollar)
            index += 2
        elif char == dollar and following == constants.REFERENCE_OPEN:
            close = text.find(constants.REFERENCE_CLOSE, index + 2)
            if close == -1:
                raise errors.UnclosedReferenceError(text)
            parts.append(lookup_reference(root, text[index + 2 : close]))
            substitutions += 1
            index = close + 1
        else:
            parts.append(char)
            index += 1

    return "".join(parts), substitutions


def _references_in(text: str) -> _typing.Iterator[str]:
    """Yield the unescaped references in ``text``, stopping at an unclosed one."""
    dollar = constants.REFERENCE_ESCAPE
    index = 0
    while True:
        index = text.find(dollar, index)
        if index == -1 or index + 1 >= len(text):
            return
        following = text[index + 1]
        if following == dollar:
            index += 2
        elif following == constants.REFERENCE_OPEN:
            close = text.find(constants.REFERENCE_CLOSE, index + 2)
            if close == -1:
                return
            yield text[index + 2 : close]
            index = close + 1
        else:
            index += 1


def _leads_to(
    root: _typing.Mapping[str, _typing.Any],
    reference: str,
    target: values.Path,
    seen: set[str],
) -> bool:
    """Whether ``reference`` reaches ``target``, directly or through other references."""
    segments = tuple(reference.split(constants.REFERENCE_PATH_SEPARATOR))
    if segments == tuple(target):
        return True
    if reference in seen:
        return False
    seen.add(reference)

    current: _typing.Any = root
    for segment in segments:
        if not values.is_table(current) or segment not in current:
            # Lookup errors are reported by the substitution itself
            return False
        current = current[segment]

    if not isinstance(current, str):
        return False
    return any(_leads_to(root, nested, target, seen) for nested in _references_in(current))


def lookup_reference(root: _typing.Mapping[str, _typing.Any], reference: str) -> str:
    """
    Look up a dotted path and return the text of the value found.

    Args:
        root: Table to start from.
        reference: Dotted path, e.g. ``"server.port"``.

    Returns:
        The value's canonical text (see ``values.to_text``).

    Raises:
        InvalidReferencePathError: If the path or any segment is empty.
        ReferenceNotFoundError: If a segment is missing, or an intermediate
            value is not a table.
        NonScalarReferenceError: If the value is a table, array or null.
    """
    segments = reference.split(constants.REFERENCE_PATH_SEPARATOR)
    if not all(segments):
        raise errors.InvalidReferencePathError(reference)

    current: _typing.Any = root
    for segment in segments:
        if not values.is_table(current) or segment not in current:
            raise errors.ReferenceNotFoundError(reference)
        current = current[segment]

    if not values.is_scalar(current):
        raise errors.NonScalarReferenceError(reference)
    return values.to_text(current)
