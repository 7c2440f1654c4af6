"""
Teen Patti ledger engine implementation.

This module provides the TeenPattiEngine class, which implements the
LedgerEngine interface. It serialises every action behind a lock, keeps a
bounded history of snapshots and turns each transition into events.
"""

from collections import deque
from dataclasses import replace
from typing import Any, Deque, Dict, List, Mapping, Optional, Tuple, Union
import logging
import threading
import time

from teenpatti.adapters import PlatformAdapter
from teenpatti.engine.base import LedgerEngine
from teenpatti.events import EngineEventType
from teenpatti.ledger import actions as act
from teenpatti.ledger.actions import (
    Action,
    ActionType,
    TURN_ACTIONS,
    action_from_dict,
)
from teenpatti.ledger.constants import STARTING_BALANCE
from teenpatti.ledger.errors import (
    GameNotStartedError,
    InvalidActionError,
    PlayerNotFoundError,
)
from teenpatti.ledger.rules import (
    active_players,
    calculate_chaal_amount,
    find_player_behind_current,
    get_valid_actions,
    is_pot_limit_reached,
)
from teenpatti.ledger.state import GameSettings, GameState, PlayerState
from teenpatti.ledger.transitions import initial_game_state, transition

logger = logging.getLogger(__name__)

Event = Tuple[EngineEventType, Dict[str, Any]]


class TeenPattiEngine(LedgerEngine):
    """
    Engine implementation for a Teen Patti session ledger.

    The engine is the single writer of the session snapshot: dispatch() runs
    the pure transition under a lock, installs the result and publishes what
    changed. Old snapshots are never modified, so collaborators may keep them.
    """

    DEFAULT_CONFIG = {
        "history_limit": 50,
        "notification_limit": 100,
        "toast_clear_delay": 1.0,
        "render_on_dispatch": True,
        "settings": None,
    }

    def __init__(
        self, adapter: PlatformAdapter, config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize the Teen Patti engine.

        Args:
            adapter: Platform adapter to use for rendering and input
            config: Configuration options, merged over DEFAULT_CONFIG
        """
        merged = dict(self.DEFAULT_CONFIG)
        if config:
            merged.update(config)
        super().__init__(adapter, merged)

        self.state = self._fresh_state()
        self.history: deque = deque(maxlen=self.config["history_limit"])

        self._lock = threading.RLock()
        self._toast_timer: Optional[threading.Timer] = None
        self._pending_notifications: Deque[Event] = deque(
            maxlen=self.config["notification_limit"]
        )
        self._money_added: Dict[str, int] = {}

    def _fresh_state(self) -> GameState:
        state = initial_game_state()
        settings = self.config.get("settings")
        if settings:
            if not isinstance(settings, GameSettings):
                settings = GameSettings.from_dict(settings)
            state = replace(state, settings=settings)
        return state

    async def initialize(self) -> None:
        """
        Initialize the engine and prepare for a session.
        """
        await super().initialize()

        self.event_bus.emit(
            EngineEventType.ENGINE_INIT,
            {
                "engine_type": "teen_patti",
                "engine_id": self.engine_id,
                "session_id": self.state.id,
                "config": {k: v for k, v in self.config.items() if k != "settings"},
                "timestamp": time.time(),
            },
        )

    async def shutdown(self) -> None:
        """
        Shut down the engine and clean up resources.
        """
        self._cancel_toast_timer()
        self.event_bus.emit(
            EngineEventType.ENGINE_SHUTDOWN,
            {"engine_id": self.engine_id, "timestamp": time.time()},
        )

        await super().shutdown()

    def dispatch(self, action: Union[Action, Mapping[str, Any]]) -> GameState:
        """
        Apply an action and install the resulting snapshot.

        An action the ledger refuses leaves the snapshot untouched and is
        reported as ACTION_IGNORED.

        Args:
            action: Action to apply

        Returns:
            The current snapshot after the action
        """
        if isinstance(action, Mapping):
            try:
                action = action_from_dict(action)
            except InvalidActionError as e:
                logger.info("Could not parse action %r: %s", action, e)

        with self._lock:
            previous = self.state
            current = transition(previous, action)
            action_name = _action_name(action)

            if current is previous:
                logger.info("Ignored %s: no change to the ledger", action_name)
                events = [
                    (
                        EngineEventType.ACTION_IGNORED,
                        {
                            "engine_id": self.engine_id,
                            "session_id": previous.id,
                            "action_type": action_name,
                            "action": action,
                            "timestamp": time.time(),
                        },
                    )
                ]
            else:
                logger.debug("Applied %s", action_name)
                self.history.append(previous)
                self.state = current
                if action_name == ActionType.ADD_MONEY.value:
                    self._money_added[action.player_id] = (
                        self._money_added.get(action.player_id, 0) + action.amount
                    )
                events = self._describe_transition(previous, current, action)
                if action_name == ActionType.END_SESSION.value:
                    self._money_added = {}

            for event_type, data in events:
                self.event_bus.emit(event_type, data)
            # Snapshots stay on the bus; the adapter only needs the notices
            self._pending_notifications.extend(
                e for e in events if e[0] != EngineEventType.STATE_CHANGED
            )

            if current is not previous:
                self._schedule_toast_clear(previous, current)

            return self.state

    async def dispatch_async(self, action: Action) -> GameState:
        """
        Apply an action, then notify and re-render through the adapter.

        Args:
            action: Action to apply

        Returns:
            The current snapshot after the action
        """
        state = self.dispatch(action)
        await self.flush_notifications()
        if self.config["render_on_dispatch"]:
            await self.render_state()
        return state

    async def flush_notifications(self) -> None:
        """Deliver events produced since the last flush to the adapter."""
        with self._lock:
            pending = list(self._pending_notifications)
            self._pending_notifications.clear()
        for event_type, data in pending:
            await self.adapter.notify_game_event(event_type, data)

    async def render_state(self) -> None:
        """
        Render the current snapshot.
        """
        await self.adapter.render_game_state(self.state.to_adapter_format())

    async def add_player(self, name: str) -> str:
        """
        Add a player to the session.

        Args:
            name: Name of the player

        Returns:
            ID of the added player
        """
        state = await self.dispatch_async(act.AddPlayer(name=name))
        return state.players[-1].id

    async def execute_player_action(
        self, player_id: str, action_type: ActionType
    ) -> GameState:
        """
        Execute a turn action for a player.

        A back show is aimed at the eligible player seated behind.

        Args:
            player_id: ID of the player
            action_type: One of CHAAL, BLIND, SHOW, BACK_SHOW, FOLD

        Returns:
            The current snapshot after the action

        Raises:
            InvalidActionError: If action_type is not a turn action or no
                back show target exists
        """
        self.get_player(player_id)
        if action_type not in TURN_ACTIONS:
            raise InvalidActionError(f"{action_type} is not a turn action")

        if action_type == ActionType.BACK_SHOW:
            target = find_player_behind_current(self.state.players, player_id)
            if target is None:
                raise InvalidActionError("No player behind to back show against")
            action = act.BackShow(id=player_id, target_id=target.id)
        else:
            action = {
                ActionType.CHAAL: act.Chaal,
                ActionType.BLIND: act.Blind,
                ActionType.SHOW: act.Show,
                ActionType.FOLD: act.Fold,
            }[action_type](id=player_id)

        return await self.dispatch_async(action)

    async def play_turn(self) -> GameState:
        """
        Ask the adapter for the turn holder's action and apply it.

        Returns:
            The current snapshot after the action

        Raises:
            GameNotStartedError: If nobody holds the turn
        """
        player = self.state.current_player
        if player is None:
            raise GameNotStartedError("No player holds the turn")

        valid_actions = get_valid_actions(self.state, player.id)
        try:
            chosen = await self.adapter.request_player_action(
                player.id, player.name, valid_actions
            )
        except TimeoutError:
            chosen = await self.adapter.handle_timeout(player.id, player.name)

        return await self.execute_player_action(player.id, chosen)

    async def resolve_pending_show(self) -> GameState:
        """
        Ask the adapter who won the pending show and settle it.

        Returns:
            The current snapshot after the show is resolved

        Raises:
            GameNotStartedError: If no show is pending
        """
        if not self.state.show_in_progress:
            raise GameNotStartedError("No show is pending")

        pair = [self.get_player(pid) for pid in self.state.show_players]
        winner_id = await self.adapter.request_choice(
            "Who won the show?", [(p.id, p.name) for p in pair]
        )
        loser_id = next(p.id for p in pair if p.id != winner_id)
        return await self.dispatch_async(
            act.ResolveShow(winner_id=winner_id, loser_id=loser_id)
        )

    def get_player(self, player_id: str) -> PlayerState:
        """
        Look up a player on the current snapshot.

        Raises:
            PlayerNotFoundError: If the id is not on the roster
        """
        player = self.state.get_player(player_id)
        if player is None:
            raise PlayerNotFoundError(f"No player with id {player_id}")
        return player

    @property
    def chaal_amount(self) -> int:
        """Call amount the turn holder would pay now."""
        return calculate_chaal_amount(self.state.settings, self.state.current_bet)

    def valid_actions(self, player_id: Optional[str] = None) -> List[ActionType]:
        """Action menu for a player, the turn holder by default."""
        if player_id is None:
            player = self.state.current_player
            if player is None:
                return []
            player_id = player.id
        return get_valid_actions(self.state, player_id)

    def money_added(self, player_id: str) -> int:
        """Money a player brought in through ADD_MONEY this session."""
        return self._money_added.get(player_id, 0)

    def final_balances(self, state: Optional[GameState] = None) -> List[Dict[str, Any]]:
        """
        Net result of every player for the session.

        Args:
            state: Snapshot to report on, the current one by default

        Returns:
            One row per player in seating order with balance, money added and
            net result against the starting balance plus money added
        """
        state = state or self.state
        rows = []
        for player in state.players:
            added = self._money_added.get(player.id, 0)
            rows.append(
                {
                    "id": player.id,
                    "name": player.name,
                    "balance": player.balance,
                    "added": added,
                    "net": player.balance - STARTING_BALANCE - added,
                    "has_withdrawn": player.has_withdrawn,
                }
            )
        return rows

    def _describe_transition(
        self, previous: GameState, current: GameState, action: Action
    ) -> List[Event]:
        """Turn one applied transition into the events collaborators see."""
        action_type = action.action_type
        base = {
            "engine_id": self.engine_id,
            "session_id": current.id,
            "round": current.round,
            "action_type": action_type.value,
            "timestamp": time.time(),
        }

        def event(event_type: EngineEventType, **data) -> Event:
            return event_type, {**base, **data}

        events = [
            event(
                EngineEventType.STATE_CHANGED,
                action=action,
                previous_state=previous,
                state=current,
            )
        ]

        if action_type == ActionType.ADD_PLAYER:
            if not previous.players:
                events.append(event(EngineEventType.SESSION_STARTED))
            joined = current.players[-1]
            events.append(
                event(
                    EngineEventType.PLAYER_JOINED,
                    player_id=joined.id,
                    player_name=joined.name,
                    balance=joined.balance,
                )
            )

        elif action_type == ActionType.REMOVE_PLAYER:
            removed = previous.get_player(action.id)
            events.append(
                event(
                    EngineEventType.PLAYER_LEFT,
                    player_id=removed.id,
                    player_name=removed.name,
                )
            )

        elif action_type == ActionType.WITHDRAW_PLAYER:
            withdrawn = current.get_player(action.id)
            events.append(
                event(
                    EngineEventType.PLAYER_WITHDRAWN,
                    player_id=withdrawn.id,
                    player_name=withdrawn.name,
                    balance=withdrawn.balance,
                )
            )

        elif action_type in (ActionType.START_GAME, ActionType.SET_FIRST_PLAYER):
            opener = current.current_player
            events.append(
                event(
                    EngineEventType.ROUND_STARTED,
                    first_player_id=opener.id if opener else None,
                    first_player_name=opener.name if opener else None,
                    pot=current.pot,
                    boot_amount=current.settings.boot_amount,
                )
            )

        elif action_type in TURN_ACTIONS:
            actor = current.get_player(action.id)
            amount = (
                current.player_contributions.get(action.id, 0)
                - previous.player_contributions.get(action.id, 0)
            )
            events.append(
                event(
                    EngineEventType.PLAYER_ACTION,
                    player_id=actor.id,
                    player_name=actor.name,
                    amount=max(amount, 0),
                )
            )
            if current.show_in_progress and not previous.show_in_progress:
                events.append(
                    event(
                        EngineEventType.SHOW_REQUESTED,
                        player_ids=list(current.show_players),
                        player_names=[
                            current.get_player(pid).name
                            for pid in current.show_players
                        ],
                        amount=amount,
                    )
                )

        elif action_type == ActionType.RESOLVE_SHOW:
            events.append(
                event(
                    EngineEventType.SHOW_RESOLVED,
                    winner_id=action.winner_id,
                    winner_name=current.get_player(action.winner_id).name,
                    loser_id=action.loser_id,
                    loser_name=current.get_player(action.loser_id).name,
                )
            )

        elif action_type == ActionType.END_GAME:
            events.append(
                event(
                    EngineEventType.ROUND_ENDED,
                    winner_id=action.winner_id,
                    winner_name=current.get_player(action.winner_id).name,
                    amount=current.last_win_amount,
                    automatic=False,
                )
            )

        elif action_type == ActionType.DISMISS_ROUND:
            events.append(
                event(
                    EngineEventType.ROUND_DISMISSED,
                    refunds=dict(previous.player_contributions),
                )
            )

        elif action_type == ActionType.END_SESSION:
            events.append(
                event(
                    EngineEventType.SESSION_ENDED,
                    final_balances=self.final_balances(previous),
                    rounds_played=previous.round,
                )
            )

        elif action_type == ActionType.SET_SETTINGS:
            events.append(
                event(
                    EngineEventType.SETTINGS_CHANGED,
                    settings=current.settings.to_dict(),
                )
            )

        elif action_type == ActionType.ADD_MONEY:
            player = current.get_player(action.player_id)
            events.append(
                event(
                    EngineEventType.MONEY_ADDED,
                    player_id=player.id,
                    player_name=player.name,
                    amount=action.amount,
                    balance=player.balance,
                )
            )

        elif action_type == ActionType.CLEAR_TOAST:
            events.append(event(EngineEventType.TOAST_CLEARED))

        # A single survivor was paid out as part of this action
        if (
            current.round > previous.round
            and action_type != ActionType.START_GAME
            and action_type != ActionType.END_SESSION
        ):
            survivors = active_players(current.players)
            winner = survivors[0] if survivors else None
            events.append(
                event(
                    EngineEventType.ROUND_ENDED,
                    winner_id=winner.id if winner else None,
                    winner_name=winner.name if winner else None,
                    amount=current.last_win_amount,
                    automatic=True,
                )
            )

        if current.pot != previous.pot:
            events.append(
                event(
                    EngineEventType.POT_UPDATED,
                    pot=current.pot,
                    previous_pot=previous.pot,
                )
            )
        if is_pot_limit_reached(current) and not is_pot_limit_reached(previous):
            events.append(
                event(
                    EngineEventType.POT_LIMIT_REACHED,
                    pot=current.pot,
                    pot_limit=current.settings.pot_limit,
                )
            )

        previous_holder = previous.current_player
        holder = current.current_player
        if holder is not None and (
            previous_holder is None or previous_holder.id != holder.id
        ):
            events.append(
                event(
                    EngineEventType.TURN_CHANGED,
                    player_id=holder.id,
                    player_name=holder.name,
                )
            )

        if current.last_action is not None and (
            current.last_action is not previous.last_action
        ):
            events.append(
                event(
                    EngineEventType.TOAST,
                    message=current.last_action.message,
                    toast_type=current.last_action.type,
                    player_name=current.last_action.player_name,
                    description=current.last_action.description,
                    last_win_amount=current.last_win_amount,
                )
            )

        return events

    def _schedule_toast_clear(self, previous: GameState, current: GameState) -> None:
        """Clear a new toast after the configured delay unless replaced."""
        delay = self.config.get("toast_clear_delay") or 0
        toast = current.last_action
        if delay <= 0 or toast is None or toast is previous.last_action:
            return

        self._cancel_toast_timer()

        def clear_if_unchanged():
            with self._lock:
                if self.state.last_action is toast:
                    self.dispatch(act.ClearToast())

        self._toast_timer = threading.Timer(delay, clear_if_unchanged)
        self._toast_timer.daemon = True
        self._toast_timer.start()

    def _cancel_toast_timer(self) -> None:
        if self._toast_timer is not None:
            self._toast_timer.cancel()
            self._toast_timer = None


def _action_name(action: Any) -> str:
    action_type = getattr(action, "action_type", None)
    if isinstance(action_type, ActionType):
        return action_type.value
    if isinstance(action, dict):
        return str(action.get("type"))
    return type(action).__name__
