"""
Teen Patti ledger API module.

This module provides a high-level, platform-agnostic API for keeping the
books of a Teen Patti session, supporting both synchronous and asynchronous
operation.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from teenpatti.adapters import PlatformAdapter
from teenpatti.api.base import LedgerGame
from teenpatti.engine.teen_patti import TeenPattiEngine
from teenpatti.events import EngineEventType
from teenpatti.ledger import actions as act
from teenpatti.ledger.actions import Action, ActionType
from teenpatti.ledger.errors import (
    GameNotStartedError,
    InsufficientBalanceError,
    InvalidActionError,
)
from teenpatti.ledger.rules import calculate_chaal_amount, find_player_behind_current
from teenpatti.ledger.state import GameSettings, GameState

logger = logging.getLogger(__name__)


class TeenPattiGame(LedgerGame):
    """
    High-level, platform-agnostic API for a Teen Patti session ledger.

    The cards are dealt and read at the table; this API only records what
    players stake and who wins. In the default lenient mode an action the
    ledger refuses simply leaves the books unchanged. With ``strict`` set in
    the config, refusals that can be explained up front raise instead.

    Example:
        ```python
        # Async usage
        game = TeenPattiGame()
        await game.initialize()
        alice = await game.add_player("Alice")
        bob = await game.add_player("Bob")
        await game.start_game()
        await game.chaal(alice)
        await game.fold(bob)
        await game.shutdown()

        # Sync usage
        game = TeenPattiGame(use_async=False)
        game.initialize_sync()
        alice = game.add_player_sync("Alice")
        bob = game.add_player_sync("Bob")
        game.start_game_sync()
        game.chaal_sync(alice)
        game.shutdown_sync()
        ```
    """

    def __init__(
        self,
        adapter: Optional[PlatformAdapter] = None,
        config: Optional[Dict[str, Any]] = None,
        use_async: bool = True,
    ):
        """
        Initialize a new Teen Patti ledger.

        Args:
            adapter: Platform adapter to use for rendering and input.
                    If None, a CLI adapter will be used.
            config: Configuration options
            use_async: Whether to use async mode
        """
        super().__init__(adapter, config, use_async)

        default_config = {
            "strict": False,
            "history_limit": 50,
            "toast_clear_delay": 1.0,
            "render_on_dispatch": True,
            "settings": None,
        }
        if config:
            default_config.update(config)
        self.config = default_config

        # Engine will be initialized in initialize()
        self.engine: Optional[TeenPattiEngine] = None
        self._rounds_completed = 0

    @property
    def strict(self) -> bool:
        return bool(self.config.get("strict"))

    async def initialize(self) -> None:
        """
        Initialize the ledger and prepare for a session.
        """
        # The engine initializes the adapter
        engine_config = {k: v for k, v in self.config.items() if k != "strict"}
        self.engine = TeenPattiEngine(self.adapter, engine_config)
        await self.engine.initialize()

        self.on(EngineEventType.ROUND_ENDED, self._on_round_ended)

    async def shutdown(self) -> None:
        """
        Shut down the ledger and clean up resources.
        """
        self._release_handlers()
        self.event_waiter.cancel_all()
        if self.engine is not None:
            await self.engine.shutdown()

    def _on_round_ended(self, data: Dict[str, Any]) -> None:
        if self.is_own_event(data):
            self._rounds_completed += 1

    @property
    def rounds_completed(self) -> int:
        """Rounds that ended with a winner since initialize()."""
        return self._rounds_completed

    def _require_engine(self) -> TeenPattiEngine:
        if self.engine is None:
            raise RuntimeError("Call initialize() before using the ledger")
        return self.engine

    async def _apply(self, action: Action) -> GameState:
        engine = self._require_engine()
        previous = engine.state
        state = await engine.dispatch_async(action)
        if state is previous and self.strict:
            logger.debug("Strict mode rejected %s", action.action_type.value)
            raise InvalidActionError(
                f"{action.action_type.value} was not applied to the ledger"
            )
        return state

    def _require_player(self, player_id: str):
        return self._require_engine().get_player(player_id)

    def _require_turn(self, player_id: str) -> None:
        """Strict-mode check that the player holds the turn in a live round."""
        state = self._require_engine().state
        if not state.is_game_started:
            raise GameNotStartedError("No round is in progress")
        if state.show_in_progress:
            raise InvalidActionError("A show is pending resolution")
        player = self._require_player(player_id)
        if not player.is_current:
            raise InvalidActionError(f"It is not {player.name}'s turn")

    def _require_balance(self, player_id: str, amount: int) -> None:
        player = self._require_player(player_id)
        if player.balance < amount:
            raise InsufficientBalanceError(
                f"{player.name} has {player.balance}, needs {amount}"
            )

    # Session setup

    async def add_player(self, name: str) -> str:
        """
        Add a player to the session with the starting balance.

        Args:
            name: Player's display name

        Returns:
            Player ID that can be used for future operations
        """
        return await self._require_engine().add_player(name)

    async def remove_player(self, player_id: str) -> bool:
        """
        Remove a player from the session.

        A player with money in a live pot cannot be removed.

        Args:
            player_id: ID of the player to remove

        Returns:
            True if the player was removed
        """
        if self.strict:
            self._require_player(player_id)
        state = await self._apply(act.RemovePlayer(id=player_id))
        return state.get_player(player_id) is None

    async def withdraw_player(self, player_id: str) -> GameState:
        """
        Withdraw a player for the rest of the session; their balance stays.
        """
        if self.strict:
            self._require_player(player_id)
        return await self._apply(act.WithdrawPlayer(id=player_id))

    async def proceed_to_settings(self) -> GameState:
        return await self._apply(act.ProceedToSettings())

    async def update_settings(self, **changes) -> GameState:
        """
        Change some stake settings, keeping the rest.

        Args:
            **changes: GameSettings fields to change

        Returns:
            The current snapshot
        """
        current = self._require_engine().state.settings.to_dict()
        current.update(changes)
        try:
            settings = GameSettings.from_dict(current)
        except (TypeError, ValueError) as e:
            raise InvalidActionError(f"Invalid settings: {e}")
        return await self.set_settings(settings)

    async def set_settings(
        self, settings: Union[GameSettings, Dict[str, Any]]
    ) -> GameState:
        if not isinstance(settings, GameSettings):
            settings = GameSettings.from_dict(settings)
        return await self._apply(act.SetSettings(settings=settings))

    async def start_game(self) -> GameState:
        """
        Start a round: collect the boot from every player still in the session.
        """
        return await self._apply(act.StartGame())

    async def add_money(self, player_id: str, amount: int) -> GameState:
        """
        Credit money a player brings into the session.

        Raises:
            InvalidActionError: If amount is not positive
        """
        if amount <= 0:
            raise InvalidActionError(f"Amount must be positive, got {amount}")
        if self.strict:
            self._require_player(player_id)
        return await self._apply(act.AddMoney(player_id=player_id, amount=amount))

    # Turn actions

    async def chaal(self, player_id: str) -> GameState:
        if self.strict:
            self._require_turn(player_id)
            state = self.engine.state
            self._require_balance(
                player_id, calculate_chaal_amount(state.settings, state.current_bet)
            )
        return await self._apply(act.Chaal(id=player_id))

    async def blind(self, player_id: str) -> GameState:
        if self.strict:
            self._require_turn(player_id)
            self._require_balance(player_id, self.engine.state.settings.blind_amount)
        return await self._apply(act.Blind(id=player_id))

    async def fold(self, player_id: str) -> GameState:
        if self.strict:
            self._require_turn(player_id)
        return await self._apply(act.Fold(id=player_id))

    async def show(self, player_id: str) -> GameState:
        """
        Request a show against the only other player left in the round.
        """
        if self.strict:
            self._require_turn(player_id)
            state = self.engine.state
            self._require_balance(
                player_id, calculate_chaal_amount(state.settings, state.current_bet)
            )
        return await self._apply(act.Show(id=player_id))

    async def back_show(
        self, player_id: str, target_id: Optional[str] = None
    ) -> GameState:
        """
        Request a show against another player, by default the one seated behind.
        """
        engine = self._require_engine()
        if target_id is None:
            target = find_player_behind_current(engine.state.players, player_id)
            if target is None:
                raise InvalidActionError("No player behind to back show against")
            target_id = target.id
        if self.strict:
            self._require_turn(player_id)
            state = engine.state
            self._require_balance(
                player_id, calculate_chaal_amount(state.settings, state.current_bet)
            )
        return await self._apply(act.BackShow(id=player_id, target_id=target_id))

    async def resolve_show(self, winner_id: str, loser_id: str) -> GameState:
        """
        Record the outcome of the pending show.
        """
        return await self._apply(act.ResolveShow(winner_id=winner_id, loser_id=loser_id))

    async def play_turn(self) -> GameState:
        """
        Ask the adapter for the turn holder's action and record it.
        """
        return await self._require_engine().play_turn()

    # Round and session lifecycle

    async def end_game(self, winner_id: str) -> GameState:
        """
        Declare the round winner; they collect the pot.
        """
        if self.strict:
            self._require_player(winner_id)
            if not self.engine.state.is_game_started:
                raise GameNotStartedError("No round is in progress")
        return await self._apply(act.EndGame(winner_id=winner_id))

    async def set_first_player(self, player_id: str) -> GameState:
        """
        Start the next round with the chosen player to act first.
        """
        if self.strict:
            self._require_player(player_id)
        return await self._apply(act.SetFirstPlayer(player_id=player_id))

    async def dismiss_round(self) -> GameState:
        """
        Abandon the current round and refund every stake.
        """
        return await self._apply(act.DismissRound())

    async def next_player(self) -> GameState:
        return await self._apply(act.NextPlayer())

    async def clear_toast(self) -> GameState:
        return await self._require_engine().dispatch_async(act.ClearToast())

    async def end_session(self) -> List[Dict[str, Any]]:
        """
        End the session and reset the ledger.

        Returns:
            Final balance rows of the session that ended
        """
        engine = self._require_engine()
        final_balances = engine.final_balances()
        await engine.dispatch_async(act.EndSession())
        return final_balances

    async def get_state(self) -> GameState:
        """
        Get the current snapshot.
        """
        return self._require_engine().state

    def get_valid_actions(self, player_id: str) -> List[ActionType]:
        return self._require_engine().valid_actions(player_id)

    def get_player_balance(self, player_id: str) -> int:
        """
        Raises:
            PlayerNotFoundError: If the id is not on the roster
        """
        return self._require_engine().get_player(player_id).balance

    def get_final_balances(self) -> List[Dict[str, Any]]:
        return self._require_engine().final_balances()

    # Synchronous API wrappers

    def withdraw_player_sync(self, player_id: str) -> GameState:
        return self._run_async(self.withdraw_player(player_id))

    def proceed_to_settings_sync(self) -> GameState:
        return self._run_async(self.proceed_to_settings())

    def update_settings_sync(self, **changes) -> GameState:
        return self._run_async(self.update_settings(**changes))

    def set_settings_sync(
        self, settings: Union[GameSettings, Dict[str, Any]]
    ) -> GameState:
        return self._run_async(self.set_settings(settings))

    def add_money_sync(self, player_id: str, amount: int) -> GameState:
        return self._run_async(self.add_money(player_id, amount))

    def chaal_sync(self, player_id: str) -> GameState:
        return self._run_async(self.chaal(player_id))

    def blind_sync(self, player_id: str) -> GameState:
        return self._run_async(self.blind(player_id))

    def fold_sync(self, player_id: str) -> GameState:
        return self._run_async(self.fold(player_id))

    def show_sync(self, player_id: str) -> GameState:
        return self._run_async(self.show(player_id))

    def back_show_sync(
        self, player_id: str, target_id: Optional[str] = None
    ) -> GameState:
        return self._run_async(self.back_show(player_id, target_id))

    def resolve_show_sync(self, winner_id: str, loser_id: str) -> GameState:
        return self._run_async(self.resolve_show(winner_id, loser_id))

    def play_turn_sync(self) -> GameState:
        return self._run_async(self.play_turn())

    def end_game_sync(self, winner_id: str) -> GameState:
        return self._run_async(self.end_game(winner_id))

    def set_first_player_sync(self, player_id: str) -> GameState:
        return self._run_async(self.set_first_player(player_id))

    def dismiss_round_sync(self) -> GameState:
        return self._run_async(self.dismiss_round())

    def end_session_sync(self) -> List[Dict[str, Any]]:
        """
        Synchronous wrapper for end_session method.
        """
        return self._run_async(self.end_session())

