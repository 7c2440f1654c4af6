"""
Session statistics for the Teen Patti ledger.

This module summarises a recorded session: how much each player won or lost,
how large the pots were and how the table's money spread out over time.
"""

from dataclasses import dataclass
from typing import Any, Dict, List

import numpy as np

from teenpatti.ledger.actions import ActionType
from teenpatti.verification.verifier import StateTransition, StateTransitionRecorder


@dataclass
class PotSummary:
    """
    Distribution of pots awarded over a session.

    Attributes:
        count: Number of pots awarded
        mean: Mean pot size
        median: Median pot size
        largest: Largest pot awarded
        std_dev: Standard deviation of pot sizes
    """

    count: int
    mean: float
    median: float
    largest: int
    std_dev: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "mean": self.mean,
            "median": self.median,
            "largest": self.largest,
            "std_dev": self.std_dev,
        }


def _is_award(transition: StateTransition) -> bool:
    """Whether a transition paid a pot out to a winner."""
    prev, nxt = transition.prev_state, transition.next_state
    if prev.pot <= 0 or nxt.pot != 0:
        return False
    return transition.action_type != ActionType.DISMISS_ROUND and (
        transition.action_type != ActionType.END_SESSION
    )


class SessionStatistics:
    """
    Statistics over the transitions recorded for one session.
    """

    def __init__(self, recorder: StateTransitionRecorder):
        """
        Initialize the statistics with a state transition recorder.

        Args:
            recorder: The state transition recorder
        """
        self.recorder = recorder

    def _session_transitions(self) -> List[StateTransition]:
        return [
            t
            for t in self.recorder.transitions
            if t.action_type != ActionType.END_SESSION
        ]

    def awarded_pots(self) -> List[int]:
        """Size of every pot paid out to a winner, in order."""
        return [t.prev_state.pot for t in self.recorder.transitions if _is_award(t)]

    def pot_summary(self) -> PotSummary:
        """
        Summarise the awarded pots.

        Returns:
            A PotSummary, all zeros if no pot was awarded
        """
        pots = np.array(self.awarded_pots(), dtype=float)
        if pots.size == 0:
            return PotSummary(0, 0.0, 0.0, 0, 0.0)

        return PotSummary(
            count=int(pots.size),
            mean=float(np.mean(pots)),
            median=float(np.median(pots)),
            largest=int(np.max(pots)),
            std_dev=float(np.std(pots)),
        )

    def balance_history(self) -> Dict[str, np.ndarray]:
        """
        Balance of every player after each recorded transition.

        Players who were not seated yet (or had left) show NaN.

        Returns:
            Player id to an array with one entry per transition
        """
        transitions = self._session_transitions()
        history: Dict[str, np.ndarray] = {}
        for step, t in enumerate(transitions):
            for p in t.next_state.players:
                if p.id not in history:
                    history[p.id] = np.full(len(transitions), np.nan)
                history[p.id][step] = p.balance

        return history

    def player_names(self) -> Dict[str, str]:
        """Display name of every player id seen in the session."""
        names: Dict[str, str] = {}
        for t in self._session_transitions():
            for p in t.next_state.players:
                names.setdefault(p.id, p.name)
        return names

    def net_results(self) -> Dict[str, int]:
        """
        Net result per player id at the last recorded snapshot.

        Money brought in through ADD_MONEY does not count as winnings.
        """
        transitions = self._session_transitions()
        if not transitions:
            return {}

        invested: Dict[str, int] = {}
        for t in transitions:
            if t.action_type == ActionType.ADD_PLAYER:
                joined = t.next_state.players[-1]
                invested[joined.id] = joined.balance
            elif t.action_type == ActionType.ADD_MONEY:
                pid = t.action.player_id
                invested[pid] = invested.get(pid, 0) + t.action.amount

        final = transitions[-1].next_state
        return {
            p.id: p.balance - invested.get(p.id, p.balance) for p in final.players
        }

    def volatility(self) -> Dict[str, float]:
        """
        Standard deviation of the balance changes of each player per transition.
        """
        result = {}
        for pid, values in self.balance_history().items():
            seated = values[~np.isnan(values)]
            if seated.size < 2:
                result[pid] = 0.0
                continue
            result[pid] = float(np.std(np.diff(seated)))
        return result

    def action_counts(self) -> Dict[str, int]:
        """Number of applied actions of each type."""
        counts: Dict[str, int] = {}
        for t in self.recorder.transitions:
            key = t.action_type.value
            counts[key] = counts.get(key, 0) + 1
        return counts

    def run_all(self) -> Dict[str, Any]:
        """
        Run every summary.

        Returns:
            A dictionary with the pot summary, player names, net results,
            volatility and action counts
        """
        return {
            "pots": self.pot_summary().to_dict(),
            "players": self.player_names(),
            "net_results": self.net_results(),
            "volatility": self.volatility(),
            "action_counts": self.action_counts(),
        }
