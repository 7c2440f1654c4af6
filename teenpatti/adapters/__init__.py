"""
Platform adapters for the ledger engine.

This package provides adapters that translate between the ledger engine and
the places a session is shown and played (console, tests).
"""

from teenpatti.adapters.base import PlatformAdapter
from teenpatti.adapters.cli import CLIAdapter
from teenpatti.adapters.dummy import DummyAdapter

__all__ = ["PlatformAdapter", "CLIAdapter", "DummyAdapter"]
