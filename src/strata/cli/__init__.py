"""
CLI module for Strata.

Provides the command-line interface using Click.
"""

from strata.cli.main import cli, main

__all__ = ["main", "cli"]
