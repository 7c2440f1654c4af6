"""
Pure helpers for turn rotation, stake sizes and round resolution.

Two traversal styles live here and must not be mixed up:
find_next_active_player_index() walks the raw seating order and returns an
absolute index, while find_player_behind_current() walks only the eligible
players and returns a player.
"""

from dataclasses import replace
from typing import List, Optional, Sequence

from teenpatti.ledger.actions import ActionType
from teenpatti.ledger.constants import format_amount
from teenpatti.ledger.state import (
    ActionInfo,
    BlindStatus,
    ChaalType,
    GameSettings,
    GameState,
    PlayerState,
)


def is_eligible(player: PlayerState) -> bool:
    """Whether a player takes part in turn rotation."""
    return player.is_active and not player.has_withdrawn


def active_players(players: Sequence[PlayerState]) -> List[PlayerState]:
    """Players still contesting the round, in seating order."""
    return [p for p in players if is_eligible(p)]


def non_withdrawn_players(players: Sequence[PlayerState]) -> List[PlayerState]:
    """Players still in the session, in seating order."""
    return [p for p in players if not p.has_withdrawn]


def find_next_active_player_index(
    players: Sequence[PlayerState], current_index: int
) -> int:
    """
    Find the next eligible player after current_index, wrapping around.

    Args:
        players: Players in seating order
        current_index: Absolute index to start after

    Returns:
        Absolute index of the next eligible player, or current_index when
        fewer than two eligible players remain
    """
    if len(active_players(players)) <= 1:
        return current_index

    count = len(players)
    for step in range(1, count + 1):
        index = (current_index + step) % count
        if is_eligible(players[index]):
            return index

    return current_index


def find_player_behind_current(
    players: Sequence[PlayerState], current_player_id: str
) -> Optional[PlayerState]:
    """
    Find the eligible player seated immediately before the given player.

    Args:
        players: Players in seating order
        current_player_id: Id of the player looking behind

    Returns:
        The previous eligible player (circular), or None when fewer than two
        eligible players exist or the player is not eligible
    """
    eligible = active_players(players)
    if len(eligible) <= 1:
        return None

    for i, player in enumerate(eligible):
        if player.id == current_player_id:
            return eligible[(i - 1) % len(eligible)]

    return None


def calculate_chaal_amount(settings: GameSettings, current_bet: int) -> int:
    """
    Compute the chaal amount; show and back show cost the same.

    Args:
        settings: Stake configuration
        current_bet: Last accepted call amount

    Returns:
        Fixed amount, or current_bet times the multiplier
    """
    if settings.chaal_type == ChaalType.FIXED:
        return settings.chaal_fixed_amount
    return current_bet * settings.chaal_multiplier


def is_player_on_blind(state: GameState, player_id: str) -> bool:
    player = state.get_player(player_id)
    return player.blind_status == BlindStatus.PLAYED_BLIND if player else False


def is_pot_limit_reached(state: GameState) -> bool:
    """Whether the pot has reached the configured limit (0 is unlimited)."""
    limit = state.settings.pot_limit
    return limit > 0 and state.pot >= limit


def with_current(players: Sequence[PlayerState], index: int) -> List[PlayerState]:
    """
    Hand the turn to the player at index.

    The turn is only given to an eligible player; if the target is not
    eligible nobody holds the turn.
    """
    target_ok = 0 <= index < len(players) and is_eligible(players[index])

    new_players = []
    for i, player in enumerate(players):
        should_hold = target_ok and i == index
        if player.is_current != should_hold:
            player = replace(player, is_current=should_hold)
        new_players.append(player)

    return new_players


def check_for_single_player_win(state: GameState) -> GameState:
    """
    Award the pot when only one eligible player remains.

    The survivor takes the whole pot, nobody holds the turn, the round counter
    advances and per-round bookkeeping is cleared.

    Args:
        state: State right after an action that may shrink the active set

    Returns:
        Resolved state, or the same state if more than one player remains
    """
    survivors = active_players(state.players)
    if len(survivors) != 1:
        return state

    winner = survivors[0]
    current_pot = state.pot

    new_players = [
        (
            replace(p, balance=p.balance + current_pot, is_current=False)
            if p.id == winner.id
            else replace(p, is_current=False)
        )
        for p in state.players
    ]

    return replace(
        state,
        players=new_players,
        pot=0,
        current_bet=0,
        round=state.round + 1,
        previous_balances={},
        player_contributions={},
        show_in_progress=False,
        show_players=(),
        last_action=ActionInfo(
            type="WIN",
            player_name=winner.name,
            description=f"won {format_amount(current_pot)}",
        ),
        last_win_amount=current_pot,
    )


def get_valid_actions(state: GameState, player_id: str) -> List[ActionType]:
    """
    List the turn actions to offer a player.

    CHAAL and FOLD are always offered to the turn holder. BLIND is offered
    until the player has played seen. SHOW needs exactly two eligible players
    and an opponent who has played seen; BACK_SHOW needs more than two and a
    player behind who has played seen. Balance is not considered here.

    Args:
        state: Current game state
        player_id: Id of the player whose menu is built

    Returns:
        Actions to offer, empty if the player does not hold the turn
    """
    player = state.get_player(player_id)
    if player is None or not player.is_current or state.show_in_progress:
        return []

    actions = [ActionType.CHAAL]
    if player.blind_status != BlindStatus.PLAYED_SEEN:
        actions.append(ActionType.BLIND)

    eligible = active_players(state.players)
    if len(eligible) == 2:
        opponent = next(p for p in eligible if p.id != player_id)
        if opponent.blind_status == BlindStatus.PLAYED_SEEN:
            actions.append(ActionType.SHOW)
    elif len(eligible) > 2:
        behind = find_player_behind_current(state.players, player_id)
        if behind is not None and behind.blind_status == BlindStatus.PLAYED_SEEN:
            actions.append(ActionType.BACK_SHOW)

    actions.append(ActionType.FOLD)
    return actions
