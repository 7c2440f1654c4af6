"""
Ledger verification using immutable snapshots.

The engine publishes every applied transition together with the snapshot
before and after it. StateTransitionRecorder keeps those pairs and
LedgerVerifier checks the bookkeeping rules against them: money is never
created or lost, at most one eligible player holds the turn, withdrawn
players never return and the pot always matches the recorded stakes.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional
import logging
import time

from teenpatti.events import EngineEventType, EventBus
from teenpatti.ledger.actions import Action, ActionType
from teenpatti.ledger.constants import STARTING_BALANCE
from teenpatti.ledger.state import GameState


class VerificationType(Enum):
    """Types of verification checks."""

    MONEY_CONSERVATION = auto()
    TURN_SINGULARITY = auto()
    WITHDRAWN_IMMUTABILITY = auto()
    NON_NEGATIVE_POT = auto()
    POT_MATCHES_CONTRIBUTIONS = auto()


class VerificationResult:
    """
    Result of a verification check.

    Attributes:
        verification_type: The type of verification check
        passed: Whether the check passed
        error_detail: Details about the error if the check failed
    """

    def __init__(
        self,
        verification_type: VerificationType,
        passed: bool,
        error_detail: Optional[str] = None,
    ):
        self.verification_type = verification_type
        self.passed = passed
        self.error_detail = error_detail

    def __str__(self) -> str:
        status = "PASSED" if self.passed else "FAILED"
        result = f"{self.verification_type.name}: {status}"
        if not self.passed and self.error_detail:
            result += f" - {self.error_detail}"
        return result


@dataclass(frozen=True)
class StateTransition:
    """
    An immutable record of a state transition.

    Attributes:
        prev_state: The snapshot before the transition
        next_state: The snapshot after the transition
        action: The action that produced it
        timestamp: When the transition occurred
    """

    prev_state: GameState
    next_state: GameState
    action: Action
    timestamp: float
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def action_type(self) -> ActionType:
        return self.action.action_type


class StateTransitionRecorder:
    """
    Records applied transitions for verification.

    Subscribes to STATE_CHANGED on the event bus until shutdown() is called.
    Given an engine_id, only that engine's transitions are kept; otherwise
    every engine publishing on the bus is recorded.
    """

    def __init__(self, event_bus=None, engine_id: Optional[str] = None):
        self.transitions: List[StateTransition] = []
        self.engine_id = engine_id
        self.event_bus = event_bus or EventBus.get_instance()
        self._unsubscribe = self.event_bus.on(
            EngineEventType.STATE_CHANGED, self._handle_event
        )

    def _handle_event(self, event_data: Dict[str, Any]) -> None:
        engine_id = event_data.get("engine_id")
        if self.engine_id is not None and engine_id != self.engine_id:
            return
        previous = event_data.get("previous_state")
        current = event_data.get("state")
        action = event_data.get("action")
        if previous is None or current is None or action is None:
            return

        self.transitions.append(
            StateTransition(
                prev_state=previous,
                next_state=current,
                action=action,
                timestamp=event_data.get("timestamp", time.time()),
                details={
                    "engine_id": event_data.get("engine_id"),
                    "session_id": event_data.get("session_id"),
                },
            )
        )

    def clear(self) -> None:
        """Clear all recorded transitions."""
        self.transitions = []

    def shutdown(self) -> None:
        """Unsubscribe from the event bus."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def get_transitions_by_action(self, action_type: ActionType) -> List[StateTransition]:
        return [t for t in self.transitions if t.action_type == action_type]

    def get_transitions_for_round(self, round_number: int) -> List[StateTransition]:
        return [t for t in self.transitions if t.next_state.round == round_number]


def expected_money_delta(transition: StateTransition) -> Optional[int]:
    """
    Money expected to enter (+) or leave (-) the table in one transition.

    Returns:
        The delta, or None when the transition starts a new session and the
        totals are not comparable
    """
    action = transition.action
    action_type = action.action_type

    if action_type == ActionType.END_SESSION:
        return None
    if action_type == ActionType.ADD_PLAYER:
        return STARTING_BALANCE
    if action_type == ActionType.ADD_MONEY:
        return action.amount
    if action_type == ActionType.REMOVE_PLAYER:
        removed = transition.prev_state.get_player(action.id)
        return -removed.balance if removed else 0
    return 0


class LedgerVerifier:
    """
    Verifies recorded ledger transitions.

    Each check walks every recorded transition and reports the first
    violation it finds.
    """

    def __init__(self, recorder: StateTransitionRecorder):
        """
        Initialize the verifier with a state transition recorder.

        Args:
            recorder: The state transition recorder
        """
        self.recorder = recorder
        self.logger = logging.getLogger(__name__)

    def verify_all(self) -> List[VerificationResult]:
        """
        Run all verification checks.

        Returns:
            A list of verification results
        """
        results = [
            self.verify_money_conservation(),
            self.verify_turn_singularity(),
            self.verify_withdrawn_immutability(),
            self.verify_non_negative_pot(),
            self.verify_pot_matches_contributions(),
        ]
        for result in results:
            if not result.passed:
                self.logger.warning(str(result))
        return results

    def verify_money_conservation(self) -> VerificationResult:
        """
        Verify that balances plus pot only change by money entering or
        leaving the table.
        """
        for i, t in enumerate(self.recorder.transitions):
            expected = expected_money_delta(t)
            if expected is None:
                continue
            actual = t.next_state.total_money() - t.prev_state.total_money()
            if actual != expected:
                return VerificationResult(
                    VerificationType.MONEY_CONSERVATION,
                    False,
                    f"Transition {i} ({t.action_type.value}) changed total money "
                    f"by {actual}, expected {expected}",
                )
        return VerificationResult(VerificationType.MONEY_CONSERVATION, True)

    def verify_turn_singularity(self) -> VerificationResult:
        """
        Verify that at most one player holds the turn and that they are
        still contesting the round.
        """
        for i, t in enumerate(self.recorder.transitions):
            holders = [p for p in t.next_state.players if p.is_current]
            if len(holders) > 1:
                return VerificationResult(
                    VerificationType.TURN_SINGULARITY,
                    False,
                    f"Transition {i} ({t.action_type.value}) left "
                    f"{len(holders)} players holding the turn",
                )
            if holders and not holders[0].is_eligible:
                return VerificationResult(
                    VerificationType.TURN_SINGULARITY,
                    False,
                    f"Transition {i} ({t.action_type.value}) gave the turn to "
                    f"{holders[0].name}, who is out of the round",
                )
        return VerificationResult(VerificationType.TURN_SINGULARITY, True)

    def verify_withdrawn_immutability(self) -> VerificationResult:
        """
        Verify that withdrawn players stay withdrawn and inactive.
        """
        for i, t in enumerate(self.recorder.transitions):
            if t.action_type == ActionType.END_SESSION:
                continue
            for before in t.prev_state.players:
                if not before.has_withdrawn:
                    continue
                after = t.next_state.get_player(before.id)
                if after is None:
                    continue
                if not after.has_withdrawn or after.is_active or after.is_current:
                    return VerificationResult(
                        VerificationType.WITHDRAWN_IMMUTABILITY,
                        False,
                        f"Transition {i} ({t.action_type.value}) brought "
                        f"withdrawn player {after.name} back",
                    )
        return VerificationResult(VerificationType.WITHDRAWN_IMMUTABILITY, True)

    def verify_non_negative_pot(self) -> VerificationResult:
        for i, t in enumerate(self.recorder.transitions):
            if t.next_state.pot < 0:
                return VerificationResult(
                    VerificationType.NON_NEGATIVE_POT,
                    False,
                    f"Transition {i} ({t.action_type.value}) left pot at "
                    f"{t.next_state.pot}",
                )
        return VerificationResult(VerificationType.NON_NEGATIVE_POT, True)

    def verify_pot_matches_contributions(self) -> VerificationResult:
        """
        Verify that the pot equals the sum of the recorded stakes, which is
        what makes dismissing a round refund exactly the pot.
        """
        for i, t in enumerate(self.recorder.transitions):
            staked = sum(t.next_state.player_contributions.values())
            if staked != t.next_state.pot:
                return VerificationResult(
                    VerificationType.POT_MATCHES_CONTRIBUTIONS,
                    False,
                    f"Transition {i} ({t.action_type.value}) has pot "
                    f"{t.next_state.pot} but stakes of {staked}",
                )
        return VerificationResult(VerificationType.POT_MATCHES_CONTRIBUTIONS, True)
