"""
Verification tools for the Teen Patti ledger.

This package records the transitions the engine applies, checks them
against the bookkeeping rules and summarises a session.
"""

from teenpatti.verification.verifier import (
    LedgerVerifier,
    StateTransition,
    StateTransitionRecorder,
    VerificationResult,
    VerificationType,
    expected_money_delta,
)
from teenpatti.verification.statistics import PotSummary, SessionStatistics

__all__ = [
    "LedgerVerifier",
    "StateTransition",
    "StateTransitionRecorder",
    "VerificationResult",
    "VerificationType",
    "expected_money_delta",
    "PotSummary",
    "SessionStatistics",
]
