"""
Deep merge of configuration entries into a single tree.

Merge rules:
- table + table → merged key by key, recursively, to any depth
- anything else → the incoming value replaces the existing one outright
  (arrays are replaced, never concatenated or merged element-wise)

Whole-file contributions (empty path) and single-key contributions
(e.g. one environment variable) go through the same recursive primitive,
so a leaf override and a subtree override compose the same way.

Merging cannot fail. The tree is mutated in place; incoming values are
copied so the tree never shares containers with a source's data. Copies
are plain: every Mapping becomes a dict and every tuple a list.
"""

from __future__ import annotations

import collections.abc as _abc
import logging as _logging
import typing as _typing

import strata.config.values as values

_logger = _logging.getLogger(__name__)


def deep_merge(base: values.Table, overlay: _abc.Mapping[str, _typing.Any]) -> None:
    """
    Merge ``overlay`` into ``base`` in place.

    For every key in the overlay: if both sides hold a table, merge them
    recursively; otherwise the overlay's value replaces the base's value.

    Example:
        >>> base = {"server": {"host": "localhost", "port": 8080}, "tags": [1, 2]}
        >>> deep_merge(base, {"server": {"port": 9090}, "tags": [3]})
        >>> base
        {'server': {'host': 'localhost', 'port': 9090}, 'tags': [3]}
    """
    for key, value in overlay.items():
        existing = base.get(key)
        if isinstance(existing, dict) and isinstance(value, _abc.Mapping):
            deep_merge(existing, value)
        else:
            base[key] = values.copy_value(value)


def merge_at_path(
    tree: values.Table,
    path: _abc.Sequence[str],
    value: values.Value,
) -> None:
    """
    Merge ``value`` into ``tree`` at ``path``.

    Args:
        tree: The tree to update in place.
        path: Keys leading to the target. Empty means the root.
        value: The value to merge.

    Behaviour:
        - Empty path: ``value`` is deep-merged into the root. A non-table
          value at the root is ignored.
        - One key: table/table pairs are deep-merged; any other combination
          replaces what is there.
        - Several keys: a table is ensured at the first key (replacing a
          non-table value there) and the rest of the path is merged into it.
    """
    if not path:
        if isinstance(value, _abc.Mapping):
            deep_merge(tree, value)
        else:
            _logger.debug(
                "Ignoring root-level contribution of type %s (not a table)",
                type(value).__name__,
            )
        return

    first, rest = path[0], path[1:]

    if not rest:
        existing = tree.get(first)
        if isinstance(existing, dict) and isinstance(value, _abc.Mapping):
            deep_merge(existing, value)
        else:
            tree[first] = values.copy_value(value)
        return

    nested = tree.get(first)
    if not isinstance(nested, dict):
        nested = {}
        tree[first] = nested
    merge_at_path(nested, rest, value)


def merge_entries(
    entries: _abc.Iterable[values.ConfigEntry],
    tree: values.Table | None = None,
) -> values.Table:
    """
    Fold entries, in order, into a tree.

    Args:
        entries: Entries to merge. Later entries override earlier ones.
        tree: Tree to merge into. A new empty tree is used when omitted.

    Returns:
        The merged tree (``tree`` itself when one was given).
    """
    if tree is None:
        tree = {}
    for entry in entries:
        merge_at_path(tree, entry.path, entry.value)
    return tree
