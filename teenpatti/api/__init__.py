"""
API module for the Teen Patti ledger.

This module provides high-level, platform-agnostic APIs for working with the
ledger engine, supporting both synchronous and asynchronous operation.
"""

from teenpatti.api.base import LedgerGame
from teenpatti.api.teen_patti import TeenPattiGame
from teenpatti.api.flow import EventWaiter

__all__ = [
    "LedgerGame",
    "TeenPattiGame",
    "EventWaiter",
]
