"""
Pytest configuration for tests at the root level.

This module contains pytest fixtures shared by the ledger tests.
"""

import pytest

from teenpatti.events import EventBus
from teenpatti.ledger.transitions import StateTransitionEngine, initial_game_state


# Reset event bus before each test
@pytest.fixture(scope="function", autouse=True)
def reset_event_bus():
    """Reset the event bus singleton before each test."""
    EventBus._instance = None
    yield
    EventBus._instance = None


def seat_players(*names):
    """Fresh session with the given players seated."""
    state = initial_game_state()
    for name in names:
        state = StateTransitionEngine.add_player(state, name)
    return state


@pytest.fixture
def three_players():
    """Session with Alice, Bob and Charlie seated, round not started."""
    return seat_players("Alice", "Bob", "Charlie")


@pytest.fixture
def two_players():
    """Session with Alice and Bob seated, round not started."""
    return seat_players("Alice", "Bob")


@pytest.fixture
def seat():
    """Factory for sessions with any set of players seated."""
    return seat_players
