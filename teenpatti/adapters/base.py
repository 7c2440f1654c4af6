"""
Base adapter interface for the ledger engine.

This module defines the interface that platform-specific adapters must implement
to interact with the ledger engine.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional, Tuple, Union
from enum import Enum

from teenpatti.ledger.actions import ActionType


class PlatformAdapter(ABC):
    """
    Base interface for platform-specific adapters.

    This abstract class defines the methods that platform-specific adapters
    must implement to interact with the ledger engine. These methods handle
    rendering the session snapshot, asking the turn holder for an action, and
    notifying of ledger events.

    Adapters only read snapshots; they never change them.
    """

    @abstractmethod
    async def render_game_state(self, state: Dict[str, Any]) -> None:
        """
        Render the current session snapshot to the platform.

        Args:
            state: Snapshot in adapter format (pot, players, toast, ...)
        """
        pass

    @abstractmethod
    async def request_player_action(
        self,
        player_id: str,
        player_name: str,
        valid_actions: List[ActionType],
        timeout_seconds: Optional[float] = None,
    ) -> ActionType:
        """
        Request an action from the player holding the turn.

        Args:
            player_id: Unique identifier for the player
            player_name: Display name of the player
            valid_actions: Actions the player may choose from
            timeout_seconds: Optional timeout for the player's decision

        Returns:
            The chosen action type

        Raises:
            TimeoutError: If the player doesn't respond within the timeout period
        """
        pass

    @abstractmethod
    async def notify_game_event(
        self, event_type: Union[str, Enum], data: Dict[str, Any]
    ) -> None:
        """
        Notify the platform of a ledger event.

        Args:
            event_type: The type of event that occurred
            data: Data associated with the event
        """
        pass

    async def request_choice(self, prompt: str, options: List[Tuple[str, str]]) -> str:
        """
        Ask the table to pick one of several players (show winner, opener).

        Args:
            prompt: Question to show
            options: (player_id, player_name) pairs to choose from

        Returns:
            The chosen player_id; the first option by default
        """
        return options[0][0]

    async def handle_timeout(self, player_id: str, player_name: str) -> ActionType:
        """
        Decide what a player who timed out does.

        Returns:
            FOLD by default
        """
        return ActionType.FOLD

    async def initialize(self) -> None:
        """
        Initialize the adapter.

        This method is called when the adapter is first connected to the engine.
        """
        pass

    async def shutdown(self) -> None:
        """
        Shutdown the adapter.

        This method is called when the engine is shutting down.
        """
        pass
