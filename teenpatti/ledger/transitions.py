"""
State transition functions for the Teen Patti ledger.

This module provides pure functions for transitioning between game states,
without modifying the original state objects. Every transition is total: an
action that cannot apply (unknown player, insufficient balance, wrong phase)
returns the input state unchanged.
"""

from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from teenpatti.ledger.actions import Action, ActionType, action_from_dict
from teenpatti.ledger.constants import MIN_PLAYERS, format_amount
from teenpatti.ledger.errors import InvalidActionError
from teenpatti.ledger.rules import (
    active_players,
    calculate_chaal_amount,
    check_for_single_player_win,
    find_next_active_player_index,
    non_withdrawn_players,
    with_current,
)
from teenpatti.ledger.state import (
    ActionInfo,
    BlindStatus,
    GameSettings,
    GameState,
    PlayerState,
)


def initial_game_state() -> GameState:
    """Create the state of a fresh session."""
    return GameState()


class StateTransitionEngine:
    """
    Pure functions for state transitions in the ledger.

    This class contains static methods that implement game state transitions.
    Each method takes a state and returns a new state, without modifying the
    original.
    """

    @staticmethod
    def add_player(state: GameState, name: str) -> GameState:
        """
        Add a player to the session with the starting balance.

        Args:
            state: Current game state
            name: Name of the player to add

        Returns:
            New game state with the player appended
        """
        new_player = PlayerState(name=name)
        return replace(state, players=state.players + (new_player,))

    @staticmethod
    def remove_player(state: GameState, player_id: str) -> GameState:
        """
        Remove a player from the roster.

        A player whose stake is still in the pot cannot be removed, since the
        refund bookkeeping would lose track of that money.

        Args:
            state: Current game state
            player_id: ID of the player to remove

        Returns:
            New game state with the player removed
        """
        player_index = state.index_of(player_id)
        if player_index < 0:
            return state
        if state.pot > 0 and state.player_contributions.get(player_id, 0) > 0:
            return state

        new_players = list(state.players)
        new_players.pop(player_index)

        current_index = next(
            (i for i, p in enumerate(new_players) if p.is_current),
            min(state.current_player_index, max(len(new_players) - 1, 0)),
        )

        return replace(
            state,
            players=new_players,
            current_player_index=current_index,
            previous_balances=_without(state.previous_balances, player_id),
            player_contributions=_without(state.player_contributions, player_id),
        )

    @staticmethod
    def withdraw_player(state: GameState, player_id: str) -> GameState:
        """
        Permanently take a player out of the session.

        The player keeps their seat and balance but never plays again. If they
        held the turn it passes on, and the round resolves if only one
        eligible player remains.

        Args:
            state: Current game state
            player_id: ID of the withdrawing player

        Returns:
            New game state
        """
        player_index = state.index_of(player_id)
        if player_index < 0:
            return state
        player = state.players[player_index]
        if player.has_withdrawn:
            return state

        new_players = list(state.players)
        new_players[player_index] = replace(
            player, has_withdrawn=True, is_active=False, is_current=False
        )
        current_index = state.current_player_index

        if player.is_current:
            current_index = find_next_active_player_index(new_players, player_index)
            new_players = with_current(new_players, current_index)

        new_state = replace(
            state,
            players=new_players,
            current_player_index=current_index,
            last_action=ActionInfo(
                type="WITHDRAW",
                player_name=player.name,
                description="withdrew from the game",
            ),
        )

        return check_for_single_player_win(new_state)

    @staticmethod
    def proceed_to_settings(state: GameState) -> GameState:
        return replace(state, in_settings_screen=True)

    @staticmethod
    def start_game(state: GameState) -> GameState:
        """
        Start the first round: collect the boot and hand the turn to the
        first non-withdrawn player.

        Args:
            state: Current game state

        Returns:
            New game state with round 1 in progress
        """
        if len(state.players) < MIN_PLAYERS:
            return state
        contenders = non_withdrawn_players(state.players)
        if len(contenders) < MIN_PLAYERS:
            return state
        if state.pot > 0:
            # A round is still holding money
            return state

        boot = state.settings.boot_amount
        previous_balances, contributions = _snapshot_round(state.players, boot)

        new_players = [
            (
                replace(p, blind_status=BlindStatus.NEVER_ACTED)
                if p.has_withdrawn
                else replace(
                    p,
                    balance=p.balance - boot,
                    blind_status=BlindStatus.NEVER_ACTED,
                    is_active=True,
                )
            )
            for p in state.players
        ]
        first_index = next(i for i, p in enumerate(new_players) if not p.has_withdrawn)

        return replace(
            state,
            players=with_current(new_players, first_index),
            current_player_index=first_index,
            is_game_started=True,
            in_settings_screen=False,
            pot=len(contenders) * boot,
            current_bet=boot,
            round=1,
            previous_balances=previous_balances,
            player_contributions=contributions,
            show_in_progress=False,
            show_players=(),
            last_win_amount=None,
        )

    @staticmethod
    def fold(state: GameState, player_id: str) -> GameState:
        """
        Fold a player out of the current round.

        Args:
            state: Current game state
            player_id: ID of the folding player

        Returns:
            New game state, resolved if a single player remains
        """
        player_index = state.index_of(player_id)
        if player_index < 0:
            return state
        player = state.players[player_index]

        new_players = list(state.players)
        new_players[player_index] = replace(player, is_active=False, is_current=False)

        next_index = find_next_active_player_index(new_players, player_index)

        new_state = replace(
            state,
            players=with_current(new_players, next_index),
            current_player_index=next_index,
            last_action=ActionInfo(
                type="FOLD", player_name=player.name, description="folded"
            ),
        )

        return check_for_single_player_win(new_state)

    @staticmethod
    def chaal(state: GameState, player_id: str) -> GameState:
        """
        Play chaal: stake the call amount and pass the turn.

        The call amount becomes the new current bet.

        Args:
            state: Current game state
            player_id: ID of the player

        Returns:
            New game state, or the same state if the player cannot pay
        """
        amount = calculate_chaal_amount(state.settings, state.current_bet)
        staked = _stake(state, player_id, amount, BlindStatus.PLAYED_SEEN)
        if staked is None:
            return state
        player, player_index, new_players, contributions = staked

        next_index = find_next_active_player_index(new_players, player_index)

        return replace(
            state,
            players=with_current(new_players, next_index),
            pot=state.pot + amount,
            current_bet=amount,
            current_player_index=next_index,
            player_contributions=contributions,
            last_action=ActionInfo(
                type="CHAAL",
                player_name=player.name,
                description=f"played chaal ({format_amount(amount)})",
            ),
        )

    @staticmethod
    def blind(state: GameState, player_id: str) -> GameState:
        """
        Play blind: stake the blind amount and pass the turn.

        The current bet is left untouched.

        Args:
            state: Current game state
            player_id: ID of the player

        Returns:
            New game state, or the same state if the player cannot pay
        """
        amount = state.settings.blind_amount
        staked = _stake(state, player_id, amount, BlindStatus.PLAYED_BLIND)
        if staked is None:
            return state
        player, player_index, new_players, contributions = staked

        next_index = find_next_active_player_index(new_players, player_index)

        return replace(
            state,
            players=with_current(new_players, next_index),
            pot=state.pot + amount,
            current_player_index=next_index,
            player_contributions=contributions,
            last_action=ActionInfo(
                type="BLIND",
                player_name=player.name,
                description=f"played blind ({format_amount(amount)})",
            ),
        )

    @staticmethod
    def show(state: GameState, player_id: str) -> GameState:
        """
        Request a show against the only other eligible player.

        Args:
            state: Current game state
            player_id: ID of the requesting player

        Returns:
            New game state with the show pending, or the same state if two
            eligible players are not left or the player cannot pay
        """
        eligible = active_players(state.players)
        if len(eligible) != 2 or player_id not in (p.id for p in eligible):
            return state
        opponent = next(p for p in eligible if p.id != player_id)

        return _request_show(state, player_id, opponent.id, "SHOW", "requested show")

    @staticmethod
    def back_show(state: GameState, player_id: str, target_id: str) -> GameState:
        """
        Request a show against a chosen player, usually the one seated behind.

        Args:
            state: Current game state
            player_id: ID of the requesting player
            target_id: ID of the opponent

        Returns:
            New game state with the show pending, or the same state if the
            target is not an eligible opponent or the player cannot pay
        """
        target = state.get_player(target_id)
        if target is None or target_id == player_id or not target.is_eligible:
            return state

        return _request_show(
            state, player_id, target_id, "BACK_SHOW", "requested back show"
        )

    @staticmethod
    def resolve_show(state: GameState, winner_id: str, loser_id: str) -> GameState:
        """
        Settle a pending show: the loser folds and play continues after the
        winner.

        Args:
            state: Current game state
            winner_id: ID of the player who won the show
            loser_id: ID of the player who lost the show

        Returns:
            New game state, resolved if a single player remains
        """
        if not state.show_in_progress:
            return state
        if (
            winner_id == loser_id
            or winner_id not in state.show_players
            or loser_id not in state.show_players
        ):
            return state

        winner = state.get_player(winner_id)
        loser = state.get_player(loser_id)
        if winner is None or loser is None:
            return state

        new_players = [
            replace(p, is_active=False, is_current=False) if p.id == loser_id else p
            for p in state.players
        ]
        next_index = find_next_active_player_index(
            new_players, state.index_of(winner_id)
        )

        new_state = replace(
            state,
            players=with_current(new_players, next_index),
            current_player_index=next_index,
            show_in_progress=False,
            show_players=(),
            last_action=ActionInfo(
                type="SHOW_RESULT",
                player_name=winner.name,
                description=f"won against {loser.name}",
            ),
            last_win_amount=state.pot,
        )

        return check_for_single_player_win(new_state)

    @staticmethod
    def end_game(state: GameState, winner_id: str) -> GameState:
        """
        Award the pot to the declared winner and reset the round bookkeeping.

        The round counter is not advanced here.

        Args:
            state: Current game state
            winner_id: ID of the round winner

        Returns:
            New game state waiting for the next round
        """
        winner = state.get_player(winner_id)
        if winner is None:
            return state
        current_pot = state.pot

        new_players = [
            replace(
                p,
                balance=p.balance + current_pot if p.id == winner_id else p.balance,
                is_active=not p.has_withdrawn,
                is_current=False,
                blind_status=BlindStatus.NEVER_ACTED,
            )
            for p in state.players
        ]

        return replace(
            state,
            players=new_players,
            pot=0,
            current_bet=0,
            previous_balances={},
            player_contributions={},
            show_in_progress=False,
            show_players=(),
            last_win_amount=current_pot,
            last_action=ActionInfo(
                type="WIN_ROUND",
                player_name=winner.name,
                description=f"won the round ({format_amount(current_pot)})",
            ),
        )

    @staticmethod
    def set_first_player(state: GameState, player_id: str) -> GameState:
        """
        Start the next round with the chosen player holding the turn.

        Args:
            state: Current game state
            player_id: ID of the player who opens the round

        Returns:
            New game state with the round in progress
        """
        first_player = state.get_player(player_id)
        if first_player is None or first_player.has_withdrawn:
            return state
        contenders = non_withdrawn_players(state.players)
        if len(contenders) < MIN_PLAYERS or state.pot > 0:
            return state

        boot = state.settings.boot_amount
        previous_balances, contributions = _snapshot_round(state.players, boot)

        new_players = [
            (
                replace(p, is_current=False)
                if p.has_withdrawn
                else replace(
                    p,
                    balance=p.balance - boot,
                    is_active=True,
                    is_current=p.id == player_id,
                    blind_status=BlindStatus.NEVER_ACTED,
                )
            )
            for p in state.players
        ]

        return replace(
            state,
            players=new_players,
            current_player_index=state.index_of(player_id),
            pot=len(contenders) * boot,
            current_bet=boot,
            is_game_started=True,
            previous_balances=previous_balances,
            player_contributions=contributions,
            show_in_progress=False,
            show_players=(),
            last_win_amount=None,
            last_action=ActionInfo(
                type="NEW_ROUND",
                player_name=first_player.name,
                description="starts the round",
            ),
        )

    @staticmethod
    def dismiss_round(state: GameState) -> GameState:
        """
        Call the round off and give every player their stake back.

        Args:
            state: Current game state

        Returns:
            New game state with the pot emptied into the players' balances
        """
        new_players = [
            replace(
                p,
                balance=p.balance + state.player_contributions.get(p.id, 0),
                is_active=not p.has_withdrawn,
                is_current=False,
                blind_status=BlindStatus.NEVER_ACTED,
            )
            for p in state.players
        ]

        return replace(
            state,
            players=new_players,
            pot=0,
            current_bet=0,
            show_in_progress=False,
            show_players=(),
            player_contributions={},
            last_win_amount=None,
            last_action=ActionInfo(
                type="DISMISS",
                player_name="",
                description="Round dismissed, balances restored",
            ),
        )

    @staticmethod
    def end_session(state: GameState) -> GameState:
        return initial_game_state()

    @staticmethod
    def set_settings(state: GameState, settings: GameSettings) -> GameState:
        return replace(state, settings=settings)

    @staticmethod
    def next_player(state: GameState) -> GameState:
        """Pass the turn without any stake."""
        next_index = find_next_active_player_index(
            state.players, state.current_player_index
        )
        return replace(
            state,
            players=with_current(state.players, next_index),
            current_player_index=next_index,
        )

    @staticmethod
    def add_money(state: GameState, player_id: str, amount: int) -> GameState:
        """
        Credit money brought into the session by a player.

        Args:
            state: Current game state
            player_id: ID of the player
            amount: Positive amount to credit

        Returns:
            New game state with the balance increased
        """
        player_index = state.index_of(player_id)
        if player_index < 0 or amount <= 0:
            return state
        player = state.players[player_index]

        new_players = list(state.players)
        new_players[player_index] = replace(player, balance=player.balance + amount)

        return replace(
            state,
            players=new_players,
            last_action=ActionInfo(
                type="ADD_MONEY",
                player_name=player.name,
                description=f"added {format_amount(amount)}",
            ),
        )

    @staticmethod
    def clear_toast(state: GameState) -> GameState:
        if state.last_action is None:
            return state
        return replace(state, last_action=None)


_S = StateTransitionEngine

_HANDLERS: Dict[ActionType, Callable[[GameState, Any], GameState]] = {
    ActionType.ADD_PLAYER: lambda s, a: _S.add_player(s, a.name),
    ActionType.REMOVE_PLAYER: lambda s, a: _S.remove_player(s, a.id),
    ActionType.WITHDRAW_PLAYER: lambda s, a: _S.withdraw_player(s, a.id),
    ActionType.PROCEED_TO_SETTINGS: lambda s, a: _S.proceed_to_settings(s),
    ActionType.START_GAME: lambda s, a: _S.start_game(s),
    ActionType.FOLD: lambda s, a: _S.fold(s, a.id),
    ActionType.CHAAL: lambda s, a: _S.chaal(s, a.id),
    ActionType.BLIND: lambda s, a: _S.blind(s, a.id),
    ActionType.SHOW: lambda s, a: _S.show(s, a.id),
    ActionType.BACK_SHOW: lambda s, a: _S.back_show(s, a.id, a.target_id),
    ActionType.RESOLVE_SHOW: lambda s, a: _S.resolve_show(s, a.winner_id, a.loser_id),
    ActionType.END_GAME: lambda s, a: _S.end_game(s, a.winner_id),
    ActionType.SET_FIRST_PLAYER: lambda s, a: _S.set_first_player(s, a.player_id),
    ActionType.DISMISS_ROUND: lambda s, a: _S.dismiss_round(s),
    ActionType.END_SESSION: lambda s, a: _S.end_session(s),
    ActionType.SET_SETTINGS: lambda s, a: _S.set_settings(s, a.settings),
    ActionType.NEXT_PLAYER: lambda s, a: _S.next_player(s),
    ActionType.ADD_MONEY: lambda s, a: _S.add_money(s, a.player_id, a.amount),
    ActionType.CLEAR_TOAST: lambda s, a: _S.clear_toast(s),
}


def transition(state: GameState, action: Union[Action, Mapping[str, Any]]) -> GameState:
    """
    Apply one action to a state.

    Accepts an Action or its dictionary wire form. Anything unrecognised is an
    identity transition.

    Args:
        state: Current game state
        action: Action to apply

    Returns:
        The next game state
    """
    if isinstance(action, Mapping):
        try:
            action = action_from_dict(action)
        except InvalidActionError:
            return state

    handler = _HANDLERS.get(getattr(action, "action_type", None))
    if handler is None or not isinstance(action, Action):
        return state

    return handler(state, action)


def _without(mapping: Mapping[str, int], key: str) -> Dict[str, int]:
    return {k: v for k, v in mapping.items() if k != key}


def _snapshot_round(
    players: Tuple[PlayerState, ...], boot: int
) -> Tuple[Dict[str, int], Dict[str, int]]:
    """Balances before the boot, and the boot as each player's first stake."""
    previous_balances = {p.id: p.balance for p in players}
    contributions = {p.id: 0 if p.has_withdrawn else boot for p in players}
    return previous_balances, contributions


def _stake(
    state: GameState,
    player_id: str,
    amount: int,
    blind_status: Optional[BlindStatus] = None,
):
    """
    Move a stake from a player's balance towards the pot.

    Returns:
        (player, index, new players, new contributions), or None if the
        player is unknown, withdrawn or cannot cover the amount
    """
    player_index = state.index_of(player_id)
    if player_index < 0:
        return None
    player = state.players[player_index]
    if player.has_withdrawn or player.balance < amount:
        return None

    new_players: List[PlayerState] = list(state.players)
    new_players[player_index] = replace(
        player,
        balance=player.balance - amount,
        is_current=False,
        blind_status=blind_status or player.blind_status,
    )
    contributions = dict(state.player_contributions)
    contributions[player_id] = contributions.get(player_id, 0) + amount

    return player, player_index, new_players, contributions


def _request_show(
    state: GameState,
    player_id: str,
    opponent_id: str,
    action_type: str,
    description: str,
) -> GameState:
    amount = calculate_chaal_amount(state.settings, state.current_bet)
    staked = _stake(state, player_id, amount)
    if staked is None:
        return state
    player, _, new_players, contributions = staked

    return replace(
        state,
        players=new_players,
        pot=state.pot + amount,
        player_contributions=contributions,
        show_in_progress=True,
        show_players=(player_id, opponent_id),
        last_action=ActionInfo(
            type=action_type, player_name=player.name, description=description
        ),
    )
