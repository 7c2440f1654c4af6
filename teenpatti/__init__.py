"""
Teen Patti session ledger.

Bookkeeping for a multi-round Teen Patti session: buy-ins, bets, the shared
pot, showdowns, withdrawals and payouts, driven by a pure state machine.
"""

__version__ = "0.1.0"
