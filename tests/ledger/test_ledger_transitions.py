"""
Tests for the pure ledger state transitions.

This module checks each transition on its own and the bookkeeping rules that
must hold across whole sequences of actions.
"""

from dataclasses import replace

import pytest

from teenpatti.ledger import actions as act
from teenpatti.ledger.state import (
    BlindStatus,
    ChaalType,
    GameSettings,
    GameState,
)
from teenpatti.ledger.transitions import (
    StateTransitionEngine as T,
    initial_game_state,
    transition,
)


def ids(state):
    return [p.id for p in state.players]


def holders(state):
    return [p for p in state.players if p.is_current]


# Session setup


def test_add_player(two_players):
    state = T.add_player(two_players, "Charlie")
    assert [p.name for p in state.players] == ["Alice", "Bob", "Charlie"]
    assert state.players[-1].balance == 1000
    assert two_players.players[-1].name == "Bob"


def test_remove_player_in_setup(three_players):
    bob = three_players.players[1]
    state = T.remove_player(three_players, bob.id)
    assert [p.name for p in state.players] == ["Alice", "Charlie"]


def test_remove_unknown_player_is_identity(three_players):
    assert T.remove_player(three_players, "missing") is three_players


def test_remove_contributor_during_round_is_identity(three_players):
    """Test that a player with money in the pot cannot be removed."""
    state = T.start_game(three_players)
    bob = state.players[1]
    assert T.remove_player(state, bob.id) is state


def test_remove_withdrawn_non_contributor_during_round(three_players):
    charlie = three_players.players[2]
    state = T.withdraw_player(three_players, charlie.id)
    state = T.start_game(state)
    assert charlie.id not in state.player_contributions or (
        state.player_contributions[charlie.id] == 0
    )

    removed = T.remove_player(state, charlie.id)
    assert charlie.id not in ids(removed)
    assert charlie.id not in removed.player_contributions
    assert removed.current_player.name == "Alice"


def test_proceed_to_settings(two_players):
    state = T.proceed_to_settings(two_players)
    assert state.in_settings_screen


def test_set_settings(two_players):
    settings = GameSettings(boot_amount=50)
    state = T.set_settings(two_players, settings)
    assert state.settings is settings


# Starting a round


def test_start_game_collects_boot(three_players):
    state = T.start_game(T.proceed_to_settings(three_players))

    assert state.is_game_started
    assert not state.in_settings_screen
    assert state.round == 1
    assert state.pot == 30
    assert state.current_bet == 10
    assert [p.balance for p in state.players] == [990, 990, 990]
    assert dict(state.player_contributions) == {pid: 10 for pid in ids(state)}
    assert dict(state.previous_balances) == {pid: 1000 for pid in ids(state)}
    assert state.current_player_index == 0
    assert holders(state) == [state.players[0]]


def test_start_game_needs_two_players(seat):
    state = seat("Alice")
    assert T.start_game(state) is state


def test_start_game_needs_two_non_withdrawn_players(two_players):
    state = T.withdraw_player(two_players, two_players.players[0].id)
    assert T.start_game(state) is state


def test_start_game_skips_withdrawn_players(three_players):
    alice = three_players.players[0]
    state = T.withdraw_player(three_players, alice.id)
    state = T.start_game(state)

    assert state.pot == 20
    assert state.players[0].balance == 1000
    assert state.players[0].has_withdrawn
    assert state.current_player.name == "Bob"
    assert state.current_player_index == 1


def test_start_game_twice_is_identity(two_players):
    state = T.start_game(two_players)
    assert T.start_game(state) is state


# Turn actions


def test_chaal_multiplier():
    """Test that chaal charges current bet times the multiplier."""
    state = T.start_game(T.add_player(T.add_player(initial_game_state(), "A"), "B"))
    a, b = state.players

    state = T.chaal(state, a.id)

    assert state.players[0].balance == 970
    assert state.pot == 40
    assert state.current_bet == 20
    assert state.players[0].blind_status == BlindStatus.PLAYED_SEEN
    assert state.current_player.id == b.id
    assert state.player_contributions[a.id] == 30
    assert state.last_action.message == "A played chaal (₹20)"


def test_chaal_fixed_amount(two_players):
    """Test a session playing fixed chaal amounts."""
    settings = GameSettings(chaal_type=ChaalType.FIXED, chaal_fixed_amount=20)
    state = T.start_game(T.set_settings(two_players, settings))

    assert state.pot == 20
    assert [p.balance for p in state.players] == [990, 990]
    assert state.current_bet == 10
    assert state.current_player == state.players[0]

    state = T.chaal(state, state.players[0].id)

    assert state.players[0].balance == 970
    assert state.pot == 40
    assert state.current_bet == 20


def test_blind_keeps_current_bet(three_players):
    state = T.start_game(three_players)
    alice = state.players[0]

    state = T.blind(state, alice.id)

    assert state.current_bet == 10
    assert state.pot == 50
    assert state.players[0].balance == 970
    assert state.players[0].blind_status == BlindStatus.PLAYED_BLIND
    assert state.current_player.name == "Bob"
    assert state.last_action.message == "Alice played blind (₹20)"


def test_chaal_with_insufficient_balance_is_identity(two_players):
    state = T.start_game(two_players)
    alice = state.players[0]
    poor = replace(state.players[0], balance=5)
    state = replace(state, players=(poor, state.players[1]))
    assert T.chaal(state, alice.id) is state
    assert T.blind(state, alice.id) is state


def test_show_with_insufficient_balance_is_identity(two_players):
    state = T.start_game(two_players)
    alice = state.players[0]
    poor = replace(alice, balance=5)
    state = replace(state, players=(poor, state.players[1]))
    assert T.show(state, alice.id) is state


def test_back_show_with_insufficient_balance_is_identity(three_players):
    state = T.start_game(three_players)
    alice, bob, charlie = state.players
    state = T.chaal(state, alice.id)
    poor = replace(state.players[1], balance=5)
    state = replace(state, players=(state.players[0], poor, charlie))
    assert T.back_show(state, bob.id, alice.id) is state


def test_stake_for_unknown_player_is_identity(two_players):
    state = T.start_game(two_players)
    for stake in (T.chaal, T.blind, T.show, T.fold):
        assert stake(state, "missing") is state


def test_fold_passes_turn(three_players):
    state = T.start_game(three_players)
    alice = state.players[0]

    state = T.fold(state, alice.id)

    assert not state.players[0].is_active
    assert state.current_player.name == "Bob"
    assert state.pot == 30
    assert state.last_action.message == "Alice folded"


def test_single_survivor_collects_pot(three_players):
    """Test that the round resolves when folds leave one player."""
    state = T.start_game(three_players)
    alice, bob, charlie = state.players
    pot_before = state.pot

    state = T.fold(state, alice.id)
    state = T.fold(state, bob.id)

    assert state.players[2].balance == charlie.balance + pot_before
    assert state.pot == 0
    assert state.round == 2
    assert holders(state) == []
    assert state.last_win_amount == 30
    assert state.last_action.message == "Charlie won ₹30"


# Shows


def test_show_heads_up(two_players):
    state = T.start_game(two_players)
    alice, bob = state.players
    state = T.chaal(state, alice.id)

    state = T.show(state, bob.id)

    assert state.show_in_progress
    assert state.show_players == (bob.id, alice.id)
    assert state.pot == 80
    assert state.players[1].balance == 950
    assert holders(state) == []
    assert state.last_action.message == "Bob requested show"


def test_show_needs_exactly_two_players(three_players):
    state = T.start_game(three_players)
    assert T.show(state, state.players[0].id) is state


def test_back_show(three_players):
    state = T.start_game(three_players)
    alice, bob, _ = state.players
    state = T.chaal(state, alice.id)

    state = T.back_show(state, bob.id, alice.id)

    assert state.show_in_progress
    assert state.show_players == (bob.id, alice.id)
    # Call amount derives from the bet Alice set
    assert state.players[1].balance == 990 - 40
    assert state.current_bet == 20


def test_back_show_rejects_bad_target(three_players):
    state = T.start_game(three_players)
    alice, bob, _ = state.players
    assert T.back_show(state, bob.id, bob.id) is state
    assert T.back_show(state, bob.id, "missing") is state

    folded = T.fold(state, alice.id)
    assert T.back_show(folded, bob.id, alice.id) is folded


def test_resolve_show_with_three_players(three_players):
    """Test that play continues after the show winner."""
    state = T.start_game(three_players)
    alice, bob, charlie = state.players
    state = T.chaal(state, alice.id)
    state = T.back_show(state, bob.id, alice.id)

    state = T.resolve_show(state, bob.id, alice.id)

    assert not state.show_in_progress
    assert state.show_players == ()
    assert not state.players[0].is_active
    assert state.current_player.id == charlie.id
    assert state.round == 1
    assert state.last_action.message == "Bob won against Alice"


def test_resolve_show_heads_up_resolves_round(two_players):
    state = T.start_game(two_players)
    alice, bob = state.players
    state = T.chaal(state, alice.id)
    state = T.show(state, bob.id)
    pot = state.pot

    state = T.resolve_show(state, alice.id, bob.id)

    assert state.players[0].balance == 970 + pot
    assert state.pot == 0
    assert state.round == 2
    assert state.last_win_amount == pot


def test_resolve_show_needs_the_show_pair(three_players):
    state = T.start_game(three_players)
    alice, bob, charlie = state.players
    assert T.resolve_show(state, alice.id, bob.id) is state

    state = T.chaal(state, alice.id)
    state = T.back_show(state, bob.id, alice.id)
    assert T.resolve_show(state, charlie.id, alice.id) is state
    assert T.resolve_show(state, bob.id, bob.id) is state


# Ending rounds and sessions


def test_end_game_pays_winner(three_players):
    state = T.start_game(three_players)
    alice, bob, _ = state.players
    state = T.fold(state, alice.id)

    state = T.end_game(state, bob.id)

    assert state.players[1].balance == 990 + 30
    assert state.pot == 0
    assert state.current_bet == 0
    assert state.round == 1
    assert all(p.is_active for p in state.players)
    assert holders(state) == []
    assert dict(state.player_contributions) == {}
    assert state.last_win_amount == 30
    assert state.last_action.message == "Bob won the round (₹30)"


def test_end_game_unknown_winner_is_identity(two_players):
    state = T.start_game(two_players)
    assert T.end_game(state, "missing") is state


def test_set_first_player_starts_next_round(three_players):
    state = T.start_game(three_players)
    alice, bob, charlie = state.players
    state = T.end_game(state, alice.id)

    state = T.set_first_player(state, charlie.id)

    assert state.current_player.id == charlie.id
    assert state.current_player_index == 2
    assert state.pot == 30
    assert state.current_bet == 10
    assert state.round == 1
    assert [p.balance for p in state.players] == [1010, 980, 980]
    assert state.last_action.message == "Charlie starts the round"


def test_set_first_player_while_pot_is_live_is_identity(three_players):
    state = T.start_game(three_players)
    assert T.set_first_player(state, state.players[1].id) is state


def test_set_first_player_rejects_withdrawn(three_players):
    state = T.start_game(three_players)
    alice, _, charlie = state.players
    state = T.end_game(state, alice.id)
    state = T.withdraw_player(state, charlie.id)
    assert T.set_first_player(state, charlie.id) is state


def test_dismiss_round_refunds_contributions(two_players):
    """Test that dismissing hands every stake back."""
    a, b = two_players.players
    state = replace(
        two_players,
        is_game_started=True,
        players=(replace(a, balance=990, is_active=False), replace(b, balance=980)),
        pot=30,
        player_contributions={a.id: 10, b.id: 20},
    )

    state = T.dismiss_round(state)

    assert state.pot == 0
    assert state.players[0].balance == 1000
    assert state.players[1].balance == 1000
    assert all(p.is_active for p in state.players)
    assert dict(state.player_contributions) == {}
    assert state.last_action.message == "Round dismissed, balances restored"


def test_dismiss_after_play_restores_round_start(three_players):
    state = T.start_game(three_players)
    alice, bob, _ = state.players
    state = T.chaal(state, alice.id)
    state = T.blind(state, bob.id)

    state = T.dismiss_round(state)

    assert [p.balance for p in state.players] == [1000, 1000, 1000]


def test_end_session_resets(three_players):
    state = T.start_game(three_players)
    fresh = T.end_session(state)
    assert fresh.players == ()
    assert fresh.id != state.id
    assert fresh.round == 0


# Miscellaneous


def test_next_player(three_players):
    state = T.start_game(three_players)
    state = T.next_player(state)
    assert state.current_player.name == "Bob"
    assert state.current_player_index == 1
    assert state.pot == 30


def test_add_money(two_players):
    alice = two_players.players[0]
    state = T.add_money(two_players, alice.id, 500)
    assert state.players[0].balance == 1500
    assert state.last_action.message == "Alice added ₹500"


@pytest.mark.parametrize("amount", [0, -100])
def test_add_money_non_positive_is_identity(two_players, amount):
    alice = two_players.players[0]
    assert T.add_money(two_players, alice.id, amount) is two_players


def test_clear_toast(two_players):
    state = T.add_money(two_players, two_players.players[0].id, 10)
    cleared = T.clear_toast(state)
    assert cleared.last_action is None
    assert T.clear_toast(cleared) is cleared


# Dispatch


def test_transition_accepts_actions_and_dicts(two_players):
    alice = two_players.players[0]
    by_action = transition(two_players, act.AddMoney(player_id=alice.id, amount=5))
    by_dict = transition(
        two_players, {"type": "ADD_MONEY", "playerId": alice.id, "amount": 5}
    )
    assert by_action.players[0].balance == by_dict.players[0].balance == 1005


@pytest.mark.parametrize(
    "action",
    [
        {"type": "SHUFFLE"},
        {"type": "CHAAL"},
        "CHAAL",
        None,
    ],
)
def test_transition_ignores_unrecognised_actions(two_players, action):
    assert transition(two_players, action) is two_players


@pytest.mark.parametrize(
    "action",
    [
        {"type": "SET_SETTINGS", "settings": None},
        {"type": "SET_SETTINGS", "settings": "fast"},
        {"type": "SET_SETTINGS", "settings": 5},
        {"type": "SET_SETTINGS", "settings": {"boot_amount": float("inf")}},
        {"type": "ADD_MONEY", "player_id": "p", "amount": float("inf")},
        {"type": "CHAAL", "id": ["a"]},
        {"type": "ADD_PLAYER", "name": None},
    ],
)
def test_transition_ignores_malformed_wire_actions(two_players, action):
    assert transition(two_players, action) is two_players


def test_resolve_show_with_unhashable_ids_is_identity(two_players):
    state = T.start_game(two_players)
    alice, bob = ids(state)
    state = T.chaal(state, alice)
    state = T.show(state, bob)
    assert state.show_in_progress

    assert T.resolve_show(state, [alice], [bob]) is state
    wire = {"type": "RESOLVE_SHOW", "winnerId": [alice], "loserId": [bob]}
    assert transition(state, wire) is state


# Properties over whole sessions


def play_session(state):
    """A session touching every kind of transition; yields (action, state)."""
    steps = []

    def apply(action):
        nonlocal state
        previous = state
        state = transition(state, action)
        steps.append((action, previous, state))

    a, b, c, d = ids(state)
    apply(act.ProceedToSettings())
    apply(act.StartGame())
    apply(act.Blind(id=a))
    apply(act.Chaal(id=b))
    apply(act.Chaal(id=c))
    apply(act.Fold(id=d))
    apply(act.BackShow(id=a, target_id=c))
    apply(act.ResolveShow(winner_id=a, loser_id=c))
    apply(act.Chaal(id=b))
    apply(act.AddMoney(player_id=d, amount=250))
    apply(act.Chaal(id=a))
    apply(act.EndGame(winner_id=b))
    apply(act.WithdrawPlayer(id=c))
    apply(act.SetFirstPlayer(player_id=d))
    apply(act.Blind(id=d))
    apply(act.WithdrawPlayer(id=a))
    apply(act.Chaal(id=b))
    apply(act.DismissRound())
    apply(act.SetFirstPlayer(player_id=b))
    apply(act.Fold(id=b))
    apply(act.SetSettings(settings=GameSettings(chaal_type=ChaalType.FIXED)))
    apply(act.NextPlayer())
    apply(act.RemovePlayer(id=c))
    apply(act.ClearToast())
    return steps


@pytest.fixture
def session_steps(seat):
    return play_session(seat("A", "B", "C", "D"))


def test_money_is_conserved(session_steps):
    """Test that only added money changes the table total."""
    for action, previous, current in session_steps:
        delta = current.total_money() - previous.total_money()
        if isinstance(action, act.AddMoney):
            assert delta == action.amount
        elif isinstance(action, act.RemovePlayer):
            removed = previous.get_player(action.id)
            assert delta == -removed.balance
        else:
            assert delta == 0, action


def test_at_most_one_player_holds_the_turn(session_steps):
    for action, _, current in session_steps:
        current_players = holders(current)
        assert len(current_players) <= 1, action
        for player in current_players:
            assert player.is_eligible


def test_withdrawn_players_never_return(session_steps):
    withdrawn = set()
    for action, _, current in session_steps:
        for player in current.players:
            if player.id in withdrawn:
                assert player.has_withdrawn, action
                assert not player.is_active, action
                assert not player.is_current, action
            if player.has_withdrawn:
                withdrawn.add(player.id)
    assert len(withdrawn) == 2


def test_pot_matches_contributions(session_steps):
    for action, _, current in session_steps:
        assert current.pot >= 0
        assert current.pot == sum(current.player_contributions.values()), action


def test_snapshots_are_never_modified(seat):
    """Test that a transition leaves its input snapshot untouched."""
    state = T.start_game(seat("A", "B", "C"))
    before = state.to_dict()
    T.chaal(state, state.players[0].id)
    T.fold(state, state.players[0].id)
    T.dismiss_round(state)
    assert state.to_dict() == before


def test_session_reaches_a_consistent_final_state(session_steps):
    _, _, final = session_steps[-1]
    assert isinstance(final, GameState)
    assert final.last_action is None
