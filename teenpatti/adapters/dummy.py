"""
Dummy adapter for the ledger engine, used for testing and simulation.

This module provides a non-interactive adapter that can be used for automated
testing and simulations where no user interaction is needed.
"""

from typing import Callable, List, Dict, Any, Optional, Tuple, Union
from enum import Enum

from teenpatti.adapters.base import PlatformAdapter
from teenpatti.ledger.actions import ActionType


class DummyAdapter(PlatformAdapter):
    """
    Dummy adapter for testing and simulation.

    This adapter doesn't interact with any real platform. Actions can be
    scripted per player or chosen by a strategy function; everything rendered
    or notified is kept for inspection.
    """

    def __init__(
        self,
        auto_actions: Optional[Dict[str, List[ActionType]]] = None,
        strategy_function: Optional[
            Callable[[str, List[ActionType]], ActionType]
        ] = None,
        choices: Optional[List[str]] = None,
        verbose: bool = False,
    ):
        """
        Initialize the dummy adapter.

        Args:
            auto_actions: Optional dictionary mapping player IDs to lists of actions
                         to take in sequence
            strategy_function: Optional function that takes (player_id, valid_actions)
                              and returns an action to take
            choices: Optional player ids returned, in order, by request_choice
            verbose: Whether to print events to stdout (useful for debugging)
        """
        self.auto_actions = auto_actions or {}
        self.choices = list(choices or [])
        self.strategy_function = strategy_function
        self.verbose = verbose

        # Track action index for each player
        self.action_index: Dict[str, int] = {}

        # Track events and rendered states for later inspection
        self.events: List[tuple] = []
        self.rendered_states: List[Dict[str, Any]] = []

    async def render_game_state(self, state: Dict[str, Any]) -> None:
        """
        Store the snapshot for later inspection.

        Args:
            state: The current snapshot in adapter format
        """
        self.rendered_states.append(state)

        if self.verbose:
            print(f"\n=== Round {state.get('round')} | Pot {state.get('pot')} ===")
            for player in state.get("players", []):
                print(f"{player.get('name')}: {player.get('balance')}")

    async def request_player_action(
        self,
        player_id: str,
        player_name: str,
        valid_actions: List[ActionType],
        timeout_seconds: Optional[float] = None,
    ) -> ActionType:
        """
        Return a scripted action or select one using the strategy function.

        Falls back to CHAAL when offered, otherwise the first valid action.
        """
        if player_id not in self.action_index:
            self.action_index[player_id] = 0

        selected_action = None

        if player_id in self.auto_actions:
            actions_list = self.auto_actions[player_id]
            if self.action_index[player_id] < len(actions_list):
                selected_action = actions_list[self.action_index[player_id]]
                self.action_index[player_id] += 1

        if selected_action is None and self.strategy_function:
            selected_action = self.strategy_function(player_id, valid_actions)

        if selected_action not in valid_actions:
            if ActionType.CHAAL in valid_actions:
                selected_action = ActionType.CHAAL
            else:
                selected_action = valid_actions[0]

        if self.verbose:
            print(f"Player {player_name} selects {selected_action.name}")

        return selected_action

    async def request_choice(self, prompt: str, options: List[Tuple[str, str]]) -> str:
        """Return the next scripted choice if it is among the options."""
        option_ids = [option_id for option_id, _ in options]
        if self.choices and self.choices[0] in option_ids:
            return self.choices.pop(0)
        return option_ids[0]

    async def notify_game_event(
        self, event_type: Union[str, Enum], data: Dict[str, Any]
    ) -> None:
        """
        Store the event for later inspection.

        Args:
            event_type: The type of event that occurred
            data: Data associated with the event
        """
        event_type_str = event_type.name if isinstance(event_type, Enum) else event_type
        self.events.append((event_type_str, data))

        if self.verbose:
            print(f"Event: {event_type_str}")

    def get_events_by_type(self, event_type: Union[str, Enum]) -> List[Dict[str, Any]]:
        """
        Get all events of a specific type.

        Args:
            event_type: The type of events to retrieve

        Returns:
            A list of event data dictionaries
        """
        event_type_str = event_type.name if isinstance(event_type, Enum) else event_type
        return [data for typ, data in self.events if typ == event_type_str]

    def clear(self) -> None:
        """Clear all stored events and states."""
        self.events.clear()
        self.rendered_states.clear()
        self.action_index.clear()
