"""
Engines for the Teen Patti ledger.

This package provides the single-writer store that owns the session snapshot,
applies actions through the pure transition function and publishes events.
"""

from teenpatti.engine.base import LedgerEngine
from teenpatti.engine.teen_patti import TeenPattiEngine

__all__ = ["LedgerEngine", "TeenPattiEngine"]
