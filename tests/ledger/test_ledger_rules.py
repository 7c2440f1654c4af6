"""
Tests for turn rotation, stake sizes, round resolution and action menus.
"""

from dataclasses import replace

from teenpatti.ledger.actions import ActionType
from teenpatti.ledger.rules import (
    calculate_chaal_amount,
    check_for_single_player_win,
    find_next_active_player_index,
    find_player_behind_current,
    get_valid_actions,
    is_player_on_blind,
    is_pot_limit_reached,
    with_current,
)
from teenpatti.ledger.state import (
    BlindStatus,
    ChaalType,
    GameSettings,
    PlayerState,
)
from teenpatti.ledger.transitions import StateTransitionEngine


def make_players(*flags):
    """Players named P0.. with (is_active, has_withdrawn) flags."""
    return [
        PlayerState(id=f"p{i}", name=f"P{i}", is_active=active, has_withdrawn=withdrawn)
        for i, (active, withdrawn) in enumerate(flags)
    ]


def test_next_active_player_wraps_around():
    players = make_players((True, False), (True, False), (True, False))
    assert find_next_active_player_index(players, 0) == 1
    assert find_next_active_player_index(players, 2) == 0


def test_next_active_player_skips_folded_and_withdrawn():
    players = make_players((True, False), (False, False), (True, True), (True, False))
    assert find_next_active_player_index(players, 0) == 3
    assert find_next_active_player_index(players, 3) == 0


def test_next_active_player_with_one_eligible_stays_put():
    players = make_players((True, False), (False, False), (False, False))
    assert find_next_active_player_index(players, 1) == 1


def test_next_active_player_from_folded_seat():
    players = make_players((True, False), (False, False), (True, False))
    assert find_next_active_player_index(players, 1) == 2


def test_player_behind_current():
    """Test that back show looks at the previous eligible player."""
    players = make_players((True, False), (False, False), (True, False), (True, False))
    assert find_player_behind_current(players, "p2").id == "p0"
    assert find_player_behind_current(players, "p0").id == "p3"


def test_player_behind_current_needs_two_eligible():
    players = make_players((True, False), (False, False))
    assert find_player_behind_current(players, "p0") is None


def test_player_behind_unknown_or_folded_player():
    players = make_players((True, False), (False, False), (True, False))
    assert find_player_behind_current(players, "p1") is None
    assert find_player_behind_current(players, "missing") is None


def test_chaal_amount_multiplier():
    assert calculate_chaal_amount(GameSettings(), 10) == 20
    assert calculate_chaal_amount(GameSettings(chaal_multiplier=3), 20) == 60


def test_chaal_amount_fixed_ignores_current_bet():
    settings = GameSettings(chaal_type=ChaalType.FIXED, chaal_fixed_amount=25)
    assert calculate_chaal_amount(settings, 10) == 25
    assert calculate_chaal_amount(settings, 400) == 25


def test_pot_limit(two_players):
    state = replace(two_players, pot=999)
    assert not is_pot_limit_reached(state)
    assert is_pot_limit_reached(replace(state, pot=1000))
    unlimited = replace(state, pot=5000, settings=GameSettings(pot_limit=0))
    assert not is_pot_limit_reached(unlimited)


def test_with_current_only_gives_turn_to_eligible():
    players = make_players((True, False), (False, False))
    assert [p.is_current for p in with_current(players, 0)] == [True, False]
    assert [p.is_current for p in with_current(players, 1)] == [False, False]
    assert [p.is_current for p in with_current(players, 5)] == [False, False]


def test_single_player_win_awards_pot(three_players):
    """Test that the last eligible player collects the pot."""
    state = StateTransitionEngine.start_game(three_players)
    players = [
        replace(p, is_active=(i == 2), is_current=False)
        for i, p in enumerate(state.players)
    ]
    state = replace(state, players=players)

    resolved = check_for_single_player_win(state)

    winner = resolved.players[2]
    assert winner.balance == 990 + 30
    assert resolved.pot == 0
    assert resolved.current_bet == 0
    assert resolved.round == 2
    assert resolved.current_player is None
    assert dict(resolved.player_contributions) == {}
    assert dict(resolved.previous_balances) == {}
    assert resolved.last_win_amount == 30
    assert resolved.last_action.type == "WIN"
    assert resolved.last_action.message == "Charlie won ₹30"


def test_single_player_win_needs_exactly_one(three_players):
    state = StateTransitionEngine.start_game(three_players)
    assert check_for_single_player_win(state) is state


def test_is_player_on_blind(two_players):
    state = StateTransitionEngine.start_game(two_players)
    alice = state.players[0]
    assert not is_player_on_blind(state, alice.id)
    state = StateTransitionEngine.blind(state, alice.id)
    assert is_player_on_blind(state, alice.id)
    assert not is_player_on_blind(state, "missing")


def test_valid_actions_at_round_start(three_players):
    state = StateTransitionEngine.start_game(three_players)
    alice, bob, _ = state.players

    assert get_valid_actions(state, alice.id) == [
        ActionType.CHAAL,
        ActionType.BLIND,
        ActionType.FOLD,
    ]
    assert get_valid_actions(state, bob.id) == []


def test_valid_actions_offer_back_show_behind_seen_player(three_players):
    state = StateTransitionEngine.start_game(three_players)
    alice, bob, _ = state.players
    state = StateTransitionEngine.chaal(state, alice.id)

    # Bob sits right after Alice, who played seen
    assert get_valid_actions(state, bob.id) == [
        ActionType.CHAAL,
        ActionType.BLIND,
        ActionType.BACK_SHOW,
        ActionType.FOLD,
    ]


def test_valid_actions_offer_show_heads_up(two_players):
    state = StateTransitionEngine.start_game(two_players)
    alice, bob = state.players
    state = StateTransitionEngine.chaal(state, alice.id)
    state = StateTransitionEngine.chaal(state, bob.id)

    # Both played seen: no blind, and show is available
    assert get_valid_actions(state, alice.id) == [
        ActionType.CHAAL,
        ActionType.SHOW,
        ActionType.FOLD,
    ]


def test_valid_actions_empty_while_show_pending(two_players):
    state = StateTransitionEngine.start_game(two_players)
    alice, bob = state.players
    state = StateTransitionEngine.chaal(state, alice.id)
    state = StateTransitionEngine.show(state, bob.id)
    assert get_valid_actions(state, alice.id) == []
    assert get_valid_actions(state, bob.id) == []


def test_blind_status_after_blind_keeps_blind_offered(two_players):
    state = StateTransitionEngine.start_game(two_players)
    alice, bob = state.players
    state = StateTransitionEngine.blind(state, alice.id)
    state = StateTransitionEngine.blind(state, bob.id)
    assert state.players[0].blind_status == BlindStatus.PLAYED_BLIND
    assert ActionType.BLIND in get_valid_actions(state, alice.id)
    assert ActionType.SHOW not in get_valid_actions(state, alice.id)
