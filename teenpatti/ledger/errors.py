"""
Exceptions raised around the ledger.

The transition function itself never raises; these are used at the boundaries
(action parsing, the engine and the game API).
"""


class LedgerError(Exception):
    """Base class for ledger errors."""

    pass


class InvalidActionError(LedgerError):
    """Raised when an action cannot be built or is not valid at this point."""

    pass


class PlayerNotFoundError(LedgerError):
    """Raised when a player id is not on the roster."""

    pass


class InsufficientBalanceError(LedgerError):
    """Raised when a player cannot cover the stake of an action."""

    pass


class GameNotStartedError(LedgerError):
    """Raised when a turn action is requested while no round is in progress."""

    pass
