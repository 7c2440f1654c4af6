"""
Tests for ledger verification and session statistics.

A real session is played through the engine while the recorder listens, then
the verifier and statistics run over what it captured. Broken transitions are
built by hand to check that each rule is actually enforced.
"""

from dataclasses import replace

import numpy as np
import pytest

from teenpatti.adapters import DummyAdapter
from teenpatti.engine import TeenPattiEngine
from teenpatti.ledger import actions as act
from teenpatti.ledger.actions import ActionType
from teenpatti.ledger.transitions import StateTransitionEngine
from teenpatti.verification import (
    LedgerVerifier,
    SessionStatistics,
    StateTransition,
    StateTransitionRecorder,
    VerificationType,
    expected_money_delta,
)


@pytest.fixture
def recorder():
    recorder = StateTransitionRecorder()
    yield recorder
    recorder.shutdown()


@pytest.fixture
def played_session(recorder):
    """Play one decided round and one dismissed round with three players."""
    engine = TeenPattiEngine(DummyAdapter(), {"toast_clear_delay": 0})
    for name in ("Alice", "Bob", "Charlie"):
        engine.dispatch(act.AddPlayer(name=name))
    alice, bob, charlie = [p.id for p in engine.state.players]

    engine.dispatch(act.AddMoney(player_id=bob, amount=100))
    engine.dispatch(act.StartGame())
    engine.dispatch(act.Chaal(id=alice))
    engine.dispatch(act.Fold(id=bob))
    engine.dispatch(act.Chaal(id=charlie))
    engine.dispatch(act.Show(id=alice))
    engine.dispatch(act.ResolveShow(winner_id=alice, loser_id=charlie))
    engine.dispatch(act.SetFirstPlayer(player_id=bob))
    engine.dispatch(act.Blind(id=bob))
    engine.dispatch(act.DismissRound())
    engine.dispatch(act.EndSession())

    return engine, (alice, bob, charlie)


def broken(state, **changes):
    return StateTransition(
        prev_state=state,
        next_state=replace(state, **changes),
        action=act.NextPlayer(),
        timestamp=0.0,
    )


def test_recorder_captures_applied_transitions(recorder, played_session):
    assert len(recorder.transitions) == 14
    assert recorder.transitions[0].action_type == ActionType.ADD_PLAYER
    assert recorder.transitions[-1].action_type == ActionType.END_SESSION
    assert len(recorder.get_transitions_by_action(ActionType.CHAAL)) == 2


def test_recorder_ignores_refused_actions(recorder):
    engine = TeenPattiEngine(DummyAdapter(), {"toast_clear_delay": 0})
    engine.dispatch(act.StartGame())
    assert recorder.transitions == []


def test_recorder_stops_after_shutdown(recorder):
    recorder.shutdown()
    engine = TeenPattiEngine(DummyAdapter(), {"toast_clear_delay": 0})
    engine.dispatch(act.AddPlayer(name="Alice"))
    assert recorder.transitions == []


def test_verify_all_passes_on_played_session(recorder, played_session):
    results = LedgerVerifier(recorder).verify_all()

    assert len(results) == 5
    assert all(result.passed for result in results), [str(r) for r in results]


def test_expected_money_delta(recorder, played_session):
    deltas = [expected_money_delta(t) for t in recorder.transitions]
    assert deltas[:4] == [1000, 1000, 1000, 100]
    assert deltas[4:-1] == [0] * 9
    assert deltas[-1] is None


def test_money_conservation_failure(recorder, two_players):
    state = StateTransitionEngine.start_game(two_players)
    recorder.transitions.append(broken(state, pot=state.pot + 50))

    result = LedgerVerifier(recorder).verify_money_conservation()

    assert not result.passed
    assert result.verification_type == VerificationType.MONEY_CONSERVATION
    assert "changed total money by 50, expected 0" in str(result)


def test_turn_singularity_failure(recorder, two_players):
    state = StateTransitionEngine.start_game(two_players)
    players = tuple(replace(p, is_current=True) for p in state.players)
    recorder.transitions.append(broken(state, players=players))

    result = LedgerVerifier(recorder).verify_turn_singularity()

    assert not result.passed
    assert "2 players holding the turn" in result.error_detail


def test_withdrawn_immutability_failure(recorder, three_players):
    charlie = three_players.players[2].id
    state = StateTransitionEngine.withdraw_player(three_players, charlie)
    players = tuple(
        replace(p, has_withdrawn=False) if p.id == charlie else p
        for p in state.players
    )
    recorder.transitions.append(broken(state, players=players))

    result = LedgerVerifier(recorder).verify_withdrawn_immutability()

    assert not result.passed
    assert "Charlie" in result.error_detail


def test_pot_checks_failure(recorder, two_players):
    state = StateTransitionEngine.start_game(two_players)
    recorder.transitions.append(broken(state, pot=-5))
    verifier = LedgerVerifier(recorder)

    assert not verifier.verify_non_negative_pot().passed
    assert not verifier.verify_pot_matches_contributions().passed


def test_verify_all_logs_failures(recorder, two_players, caplog):
    state = StateTransitionEngine.start_game(two_players)
    recorder.transitions.append(broken(state, pot=-5))

    LedgerVerifier(recorder).verify_all()

    assert "NON_NEGATIVE_POT: FAILED" in caplog.text


def test_session_statistics(recorder, played_session):
    engine, (alice, bob, charlie) = played_session
    stats = SessionStatistics(recorder)

    pots = stats.pot_summary()
    assert pots.count == 1
    assert pots.largest == stats.awarded_pots()[0]

    net = stats.net_results()
    assert net[bob] == -10
    assert sum(net.values()) == 0

    history = stats.balance_history()
    assert set(history) == {alice, bob, charlie}
    # Bob joins second, so he has no balance after the first transition
    assert np.isnan(history[bob][0])
    assert history[alice][0] == 1000
    assert stats.player_names() == {alice: "Alice", bob: "Bob", charlie: "Charlie"}

    counts = stats.action_counts()
    assert counts["ADD_PLAYER"] == 3
    assert counts["DISMISS_ROUND"] == 1

    summary = stats.run_all()
    assert set(summary) == {
        "pots",
        "players",
        "net_results",
        "volatility",
        "action_counts",
    }


def test_session_statistics_empty(recorder):
    stats = SessionStatistics(recorder)
    assert stats.pot_summary().count == 0
    assert stats.net_results() == {}
    assert stats.balance_history() == {}


def test_session_statistics_keeps_players_with_the_same_name_apart(recorder):
    engine = TeenPattiEngine(DummyAdapter(), {"toast_clear_delay": 0})
    engine.dispatch(act.AddPlayer(name="Sam"))
    engine.dispatch(act.AddPlayer(name="Sam"))
    first, second = [p.id for p in engine.state.players]
    engine.dispatch(act.StartGame())
    engine.dispatch(act.Fold(id=first))

    stats = SessionStatistics(recorder)

    assert stats.net_results() == {first: -10, second: 10}
    assert set(stats.balance_history()) == {first, second}


def test_recorder_filters_by_engine():
    ours = TeenPattiEngine(DummyAdapter(), {"toast_clear_delay": 0})
    theirs = TeenPattiEngine(DummyAdapter(), {"toast_clear_delay": 0})
    recorder = StateTransitionRecorder(engine_id=ours.engine_id)
    everything = StateTransitionRecorder()

    ours.dispatch(act.AddPlayer(name="Alice"))
    theirs.dispatch(act.AddPlayer(name="Bob"))
    theirs.dispatch(act.AddPlayer(name="Charlie"))

    assert len(recorder.transitions) == 1
    assert recorder.transitions[0].details["engine_id"] == ours.engine_id
    assert len(everything.transitions) == 3

    recorder.shutdown()
    everything.shutdown()
