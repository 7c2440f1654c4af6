"""
Command-line interface adapter for the ledger engine.

This module provides an adapter for console-based play: it prints the ledger
after each change, offers the turn holder a numbered action menu and shows
toast notifications as plain lines.
"""

import asyncio
from typing import List, Dict, Any, Optional, Tuple, Union
from enum import Enum

from teenpatti.adapters.base import PlatformAdapter
from teenpatti.common.io_interface import (
    IOInterface,
    ConsoleIOInterface,
    LoggingIOInterface,
)
from teenpatti.ledger.actions import ActionType
from teenpatti.ledger.constants import format_amount

ACTION_LABELS = {
    ActionType.CHAAL: "Chaal",
    ActionType.BLIND: "Blind",
    ActionType.SHOW: "Show",
    ActionType.BACK_SHOW: "Back Show",
    ActionType.FOLD: "Fold",
}


class CLIAdapter(PlatformAdapter):
    """
    Command-line interface adapter for the ledger engine.

    This adapter uses an IOInterface (the console by default) for input and
    output. An optional transcript interface receives a copy of every line.
    """

    def __init__(
        self,
        io_interface: Optional[IOInterface] = None,
        transcript: Optional[LoggingIOInterface] = None,
    ):
        """
        Initialize the CLI adapter.

        Args:
            io_interface: IOInterface to use for I/O; the console if None
            transcript: Optional interface that keeps a copy of all output
        """
        self.io_interface = io_interface or ConsoleIOInterface()
        self.transcript = transcript

    async def _output(self, message: str) -> None:
        self.io_interface.output(message)
        if self.transcript is not None:
            await self.transcript.output_async(message)

    async def _input(self, prompt: str, timeout_seconds: Optional[float]) -> str:
        loop = asyncio.get_running_loop()
        read = loop.run_in_executor(None, self.io_interface.input, prompt)
        if timeout_seconds:
            return await asyncio.wait_for(read, timeout_seconds)
        return await read

    async def render_game_state(self, state: Dict[str, Any]) -> None:
        """
        Render the ledger to the console.

        Args:
            state: Snapshot in adapter format
        """
        pot_line = f"Pot: {format_amount(state.get('pot', 0))}"
        if state.get("pot_limit"):
            pot_line += f" / limit {format_amount(state['pot_limit'])}"

        await self._output(f"\n=== Round {state.get('round', 0)} ===")
        await self._output(
            f"{pot_line} | Current bet: {format_amount(state.get('current_bet', 0))}"
        )

        for player in state.get("players", []):
            flags = []
            if player.get("is_current"):
                flags.append("to act")
            if player.get("has_withdrawn"):
                flags.append("withdrawn")
            elif not player.get("is_active"):
                flags.append("folded")
            if player.get("is_blind"):
                flags.append("blind")

            marker = ">" if player.get("is_current") else " "
            line = (
                f"{marker} {player.get('name')}: "
                f"{format_amount(player.get('balance', 0))}"
            )
            if player.get("contribution"):
                line += f" (in pot {format_amount(player['contribution'])})"
            if flags:
                line += f" [{', '.join(flags)}]"
            await self._output(line)

        await self._output("=" * 24)

    async def request_player_action(
        self,
        player_id: str,
        player_name: str,
        valid_actions: List[ActionType],
        timeout_seconds: Optional[float] = None,
    ) -> ActionType:
        """
        Request an action from a player via the console.

        Args:
            player_id: Unique identifier for the player
            player_name: Display name of the player
            valid_actions: Actions the player may choose from
            timeout_seconds: Optional timeout for the player's decision

        Returns:
            The player's chosen action

        Raises:
            TimeoutError: If the player doesn't respond within the timeout period
        """
        action_map = {str(i + 1): action for i, action in enumerate(valid_actions)}
        for action in valid_actions:
            action_map[action.name.lower()] = action
            action_map[ACTION_LABELS.get(action, action.name).lower()] = action

        while True:
            await self._output(f"\n{player_name}'s turn. Valid actions:")
            for i, action in enumerate(valid_actions):
                await self._output(f"{i + 1}: {ACTION_LABELS.get(action, action.name)}")

            try:
                choice = await self._input("Enter your choice: ", timeout_seconds)
            except asyncio.TimeoutError:
                raise TimeoutError(f"Player {player_name} timed out")

            choice = choice.strip().lower()
            if choice in action_map:
                return action_map[choice]
            await self._output("Invalid choice. Please try again.")

    async def request_choice(self, prompt: str, options: List[Tuple[str, str]]) -> str:
        """
        Let the table pick a player from a numbered list.

        Args:
            prompt: Question to show
            options: (player_id, player_name) pairs

        Returns:
            The chosen player_id
        """
        while True:
            await self._output(prompt)
            for i, (_, name) in enumerate(options):
                await self._output(f"{i + 1}: {name}")

            choice = (await self._input("Enter your choice: ", None)).strip()
            if choice.isdigit() and 1 <= int(choice) <= len(options):
                return options[int(choice) - 1][0]
            for option_id, name in options:
                if choice.lower() == name.lower():
                    return option_id
            await self._output("Invalid choice. Please try again.")

    async def notify_game_event(
        self, event_type: Union[str, Enum], data: Dict[str, Any]
    ) -> None:
        """
        Notify the user of a ledger event via the console.

        Args:
            event_type: The type of event that occurred
            data: Data associated with the event
        """
        if isinstance(event_type, Enum):
            event_type = event_type.name

        message = self._format_event_message(event_type, data)
        if message:
            await self._output(message)

    def _format_event_message(
        self, event_type: str, data: Dict[str, Any]
    ) -> Optional[str]:
        """
        Format an event message based on the event type.

        Args:
            event_type: The type of event
            data: Data associated with the event

        Returns:
            Formatted message string or None if no message needed
        """
        if event_type == "TOAST":
            return f"* {data.get('message', '')}"

        elif event_type == "SHOW_REQUESTED":
            names = data.get("player_names", [])
            return f"Show between {' and '.join(names)}: select the winner"

        elif event_type == "POT_LIMIT_REACHED":
            return (
                f"Pot limit reached: {format_amount(data.get('pot', 0))} "
                f"(limit {format_amount(data.get('pot_limit', 0))})"
            )

        elif event_type == "ACTION_IGNORED":
            return f"! {data.get('action_type', 'Action')} was not applied"

        elif event_type == "SESSION_ENDED":
            lines = ["Final balances:"]
            for row in data.get("final_balances", []):
                net = row.get("net", 0)
                sign = "+" if net >= 0 else "-"
                lines.append(
                    f"  {row.get('name')}: {format_amount(row.get('balance', 0))} "
                    f"({sign}{format_amount(abs(net))})"
                )
            return "\n".join(lines)

        return None
