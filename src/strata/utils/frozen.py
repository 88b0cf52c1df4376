"""
Read-only snapshots of configuration trees.

Each reference resolution pass looks values up in a snapshot of the tree as
it was when the pass started, while the pass itself rewrites the live tree.
"""

from __future__ import annotations

import collections.abc as _abc
import copy as _copy
import typing as _typing


class FrozenMapping(_abc.Mapping[str, _typing.Any]):
    """
    Read-only view of a table.

    Nested tables come back as FrozenMapping and arrays as tuples, so no
    lookup through the view can change the data behind it.

    Example:
        >>> view = FrozenMapping({"server": {"ports": [80, 443]}})
        >>> view["server"]["ports"]
        (80, 443)
    """

    __slots__ = ("_data",)

    def __init__(self, data: dict[str, _typing.Any]) -> None:
        self._data = data

    def __getitem__(self, key: str) -> _typing.Any:
        value = self._data[key]
        if isinstance(value, dict):
            return FrozenMapping(value)
        if isinstance(value, list):
            return tuple(value)
        return value

    def __iter__(self) -> _typing.Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"FrozenMapping({self._data!r})"


def snapshot(tree: dict[str, _typing.Any]) -> FrozenMapping:
    """
    Capture ``tree`` as it is now.

    The tree is deep-copied, so rewrites made to it afterwards are not
    visible through the snapshot.
    """
    return FrozenMapping(_copy.deepcopy(tree))
