"""Ledger constants and default stake sizes."""

# Every player joins the session with this balance
STARTING_BALANCE = 1000

# A round needs at least this many non-withdrawn players
MIN_PLAYERS = 2

DEFAULT_BOOT_AMOUNT = 10
DEFAULT_BLIND_AMOUNT = 20
DEFAULT_CHAAL_MULTIPLIER = 2
DEFAULT_CHAAL_FIXED_AMOUNT = 20
DEFAULT_POT_LIMIT = 1000  # 0 means unlimited

CURRENCY_SYMBOL = "₹"


def format_amount(amount: int) -> str:
    """Format an amount the way toast messages display it."""
    return f"{CURRENCY_SYMBOL}{amount}"
