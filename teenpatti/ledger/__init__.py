"""
Teen Patti ledger state machine.

This module provides the immutable session state, the actions that drive it,
and the pure transition function that maps one to the next.
"""

from teenpatti.ledger.state import (
    GameState as GameState,
    PlayerState as PlayerState,
    GameSettings as GameSettings,
    ActionInfo as ActionInfo,
    ChaalType as ChaalType,
    BlindStatus as BlindStatus,
    GamePhase as GamePhase,
)
from teenpatti.ledger.actions import (
    Action as Action,
    ActionType as ActionType,
    action_from_dict as action_from_dict,
)
from teenpatti.ledger.transitions import (
    StateTransitionEngine as StateTransitionEngine,
    initial_game_state as initial_game_state,
    transition as transition,
)

__all__ = [
    "GameState",
    "PlayerState",
    "GameSettings",
    "ActionInfo",
    "ChaalType",
    "BlindStatus",
    "GamePhase",
    "Action",
    "ActionType",
    "action_from_dict",
    "StateTransitionEngine",
    "initial_game_state",
    "transition",
]
