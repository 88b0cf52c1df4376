"""
Utility classes and functions for Strata.

General-purpose utilities that don't belong to a specific domain.
"""

from strata.utils.frozen import FrozenMapping, snapshot

__all__ = ["FrozenMapping", "snapshot"]
